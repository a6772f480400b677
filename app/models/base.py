# app/models/base.py
"""
Base model with common fields for all database models.
Provides the primary key and timestamp columns.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with common fields.

    Provides:
    - id: Primary key
    - created_at: Auto timestamp on creation
    - updated_at: Auto timestamp on updates
    """
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

