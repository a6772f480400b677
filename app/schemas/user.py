# app/schemas/user.py
import re
from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.schemas.common import CamelModel
from app.schemas.campaign import CampaignResponse

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, max_length=500)

    @field_validator('name', 'bio', mode='before')
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        v = str(v).strip()
        return v or None

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, v):
        if v is None:
            return v
        v = str(v).strip().lower()
        if not v:
            return None
        if not EMAIL_RE.match(v):
            raise ValueError('Invalid email address')
        return v


class UserDonationResponse(CamelModel):
    campaign_id: str
    amount: str
    date: datetime
    transaction_hash: Optional[str] = None
    campaign: Optional[CampaignResponse] = None


class UserProfileResponse(CamelModel):
    address: str
    name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar: str = ""
    campaigns_created: List[CampaignResponse] = Field(default_factory=list)
    campaigns_donated: List[UserDonationResponse] = Field(default_factory=list)
    total_donated: float = 0.0
    total_raised: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserStatsResponse(CamelModel):
    campaigns_created: int = 0
    total_raised: float = 0.0
    campaigns_donated: int = 0
    total_donated: float = 0.0
