# app/models/campaign.py
"""
Off-chain mirror of on-chain campaigns and their donations.
"""
import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class CampaignCategory(str, enum.Enum):
    EDUCATION = "education"
    HEALTH = "health"
    ENVIRONMENT = "environment"
    TECHNOLOGY = "technology"
    COMMUNITY = "community"
    OTHER = "other"


class Campaign(BaseModel):
    __tablename__ = "campaigns"

    campaign_id = Column(String(36), unique=True, index=True, nullable=False, default=lambda: str(uuid.uuid4()))
    contract_id = Column(Integer, unique=True, index=True, nullable=False)  # on-chain campaign index
    owner = Column(String(64), index=True, nullable=False)  # lowercase address

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(20), index=True, nullable=False, default=CampaignCategory.OTHER.value)
    image = Column(String(500), nullable=False)

    # wei amounts as base-10 strings
    target = Column(String(100), nullable=False, default="0")
    amount_collected = Column(String(100), nullable=False, default="0")

    deadline = Column(DateTime, index=True, nullable=False)
    total_donations = Column(Integer, nullable=False, default=0)
    withdrawn = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    transaction_hash = Column(String(100), nullable=True)  # creation tx, lowercase

    donators = relationship(
        "Donator",
        back_populates="campaign",
        order_by="Donator.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Campaign #{self.contract_id} {self.title}>"


class Donator(BaseModel):
    """One donation against a campaign (append-only)"""
    __tablename__ = "campaign_donators"
    __table_args__ = (
        UniqueConstraint('campaign_pk', 'transaction_hash', name='uq_campaign_donation_tx'),
    )

    campaign_pk = Column(Integer, ForeignKey("campaigns.id"), index=True, nullable=False)
    address = Column(String(64), index=True, nullable=False)
    amount = Column(String(100), nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    transaction_hash = Column(String(100), index=True, nullable=True)

    campaign = relationship("Campaign", back_populates="donators")

    def __repr__(self):
        return f"<Donator {self.address} {self.amount} ({self.transaction_hash})>"
