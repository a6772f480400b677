# app/api/v1/users.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_user_service, get_image_uploader
from app.schemas.campaign import CampaignResponse
from app.schemas.common import dump, success_response
from app.schemas.user import UserUpdate
from app.services.image_service import ImageUploader, validate_image, AVATAR_IMAGE_TYPES, AVATAR_MAX_BYTES
from app.services.user_service import UserService, normalize_address

router = APIRouter()
log = logging.getLogger("crowdfund.users")


@router.get("/{address}")
def get_user_profile(
    address: str,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service)
):
    """Get user profile (a default profile when the address is unknown)"""
    log.info(f"👤 Fetching user profile for: {address}")
    profile, found = service.get_profile(db, address)
    if not found:
        return success_response(dump(profile), message="User profile not found, returning default data")
    return success_response(dump(profile))


@router.put("/{address}")
def update_user_profile(
    address: str,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    uploader: ImageUploader = Depends(get_image_uploader)
):
    """Update profile fields; an avatar upload failure keeps the previous avatar"""
    log.info(f"📝 Updating user profile for: {address}")
    data = UserUpdate(name=name, email=email, bio=bio)

    avatar_url = None
    if avatar is not None and avatar.filename:
        content = avatar.file.read()
        validate_image(avatar.filename, avatar.content_type, len(content), AVATAR_IMAGE_TYPES, AVATAR_MAX_BYTES)
        avatar_url = uploader.upload_avatar(content, avatar.filename, normalize_address(address))

    profile = service.update_profile(db, address, data, avatar_url=avatar_url)
    return success_response(dump(profile), message="Profile updated successfully")


@router.get("/{address}/stats")
def get_user_stats(
    address: str,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service)
):
    """Counts and float totals for an address (zeros when unknown)"""
    log.info(f"📊 Fetching user stats for: {address}")
    return success_response(dump(service.get_stats(db, address)))


@router.get("/{address}/campaigns")
def get_user_campaigns(
    address: str,
    type: str = Query("created"),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service)
):
    """Campaigns the address created or donated to"""
    campaigns = service.list_campaigns_for_user(db, address, relation=type)
    data = [dump(CampaignResponse.model_validate(c)) for c in campaigns]
    log.info(f"✅ Found {len(data)} campaigns for {address} (type: {type})")
    return success_response(data, count=len(data), type=type)
