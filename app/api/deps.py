# app/api/deps.py
"""
API dependencies for database access, services and the chain gateway.
"""
from typing import Optional
from fastapi import Request

from app.chain.gateway import ChainGateway
from app.db.session import get_db
from app.services import get_campaign_service, get_user_service, get_image_uploader


def get_chain_gateway(request: Request) -> Optional[ChainGateway]:
    """The process-wide gateway built in the app lifespan (None before startup)"""
    return getattr(request.app.state, "chain_gateway", None)


__all__ = [
    "get_db",
    "get_campaign_service",
    "get_user_service",
    "get_image_uploader",
    "get_chain_gateway",
]
