# app/models/user.py
"""Per-address user profile and donation history"""
from datetime import datetime
from sqlalchemy import Column, String, Text, Float, JSON, DateTime, Integer, ForeignKey
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    address = Column(String(64), unique=True, index=True, nullable=False)  # lowercase
    name = Column(String(255), nullable=True)
    email = Column(String(255), index=True, nullable=True)
    bio = Column(Text, nullable=True)
    avatar = Column(String(500), nullable=False, default="")

    campaigns_created = Column(MutableList.as_mutable(JSON), nullable=False, default=list)  # campaign UUIDs

    # float approximations of wei totals
    total_donated = Column(Float, nullable=False, default=0.0)
    total_raised = Column(Float, nullable=False, default=0.0)

    campaigns_donated = relationship(
        "UserDonation",
        back_populates="user",
        order_by="UserDonation.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<User {self.address}>"


class UserDonation(BaseModel):
    __tablename__ = "user_donations"

    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    campaign_id = Column(String(36), index=True, nullable=False)  # Campaign.campaign_id
    amount = Column(String(100), nullable=False)
    date = Column(DateTime, default=datetime.utcnow, nullable=False)
    transaction_hash = Column(String(100), nullable=True)

    user = relationship("User", back_populates="campaigns_donated")
