# app/schemas/campaign.py
from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.campaign import CampaignCategory
from app.schemas.common import CamelModel


class CampaignCreate(CamelModel):
    """Fields of POST /campaigns (multipart form, image handled separately)"""
    contract_id: Optional[int] = Field(None, ge=0, description="On-chain campaign index")
    owner: Optional[str] = Field(None, description="Owner wallet address")
    title: Optional[str] = None
    description: Optional[str] = None
    target: Optional[str] = Field(None, description="Target amount in wei (base-10 string)")
    deadline: Optional[datetime] = None
    category: Optional[CampaignCategory] = None
    transaction_hash: Optional[str] = None

    @field_validator('owner', 'title', 'description', 'target', 'transaction_hash')
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None


class DonationCreate(CamelModel):
    """Body of POST /campaigns/donation"""
    campaign_id: int = Field(..., ge=0, description="On-chain campaign index (contractId)")
    donator: str = Field(..., min_length=1)
    amount: str = Field(..., min_length=1, description="Donation in wei (base-10 string)")
    transaction_hash: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def amount_as_string(cls, v):
        # Clients sometimes send numbers; keep everything as text
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class DonatorResponse(CamelModel):
    address: str
    amount: str
    timestamp: datetime
    transaction_hash: Optional[str] = None


class CampaignResponse(CamelModel):
    campaign_id: str
    contract_id: int
    owner: str
    title: str
    description: str
    category: str
    image: str
    target: str
    amount_collected: str
    deadline: datetime
    donators: List[DonatorResponse] = Field(default_factory=list)
    total_donations: int
    withdrawn: bool
    is_active: bool
    transaction_hash: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SyncReportEntry(CamelModel):
    contract_id: int
    status: str  # in_sync, missing_offchain, missing_onchain, amount_mismatch, donation_count_mismatch
    on_chain_amount: Optional[str] = None
    off_chain_amount: Optional[str] = None
    on_chain_donations: Optional[int] = None
    off_chain_donations: Optional[int] = None


class SyncReport(CamelModel):
    checked_at: datetime
    on_chain_count: int
    off_chain_count: int
    in_sync: int
    drift: List[SyncReportEntry] = Field(default_factory=list)
