# app/api/v1/router.py
"""Main API router combining all v1 endpoints"""
from fastapi import APIRouter

from app.api.v1 import campaigns, users

api_router = APIRouter()

# Include all routers
api_router.include_router(campaigns.router, prefix="/campaigns", tags=["Campaigns"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
