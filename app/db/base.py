# app/db/base.py
"""Import all models for Alembic"""
from app.models.base import Base

from app.models.campaign import Campaign, Donator
from app.models.user import User, UserDonation

__all__ = ["Base"]
