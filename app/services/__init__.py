"""
Service layer initialization.
Provides service instances for FastAPI dependencies and the chain handlers.
"""
from app.core.config import (
    CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET, UPLOAD_TIMEOUT
)
from app.services.user_service import UserService
from app.services.campaign_service import CampaignService
from app.services.image_service import ImageUploader


def get_user_service() -> UserService:
    return UserService()


def get_campaign_service() -> CampaignService:
    return CampaignService(get_user_service())


def get_image_uploader() -> ImageUploader:
    return ImageUploader(
        CLOUDINARY_CLOUD_NAME,
        CLOUDINARY_API_KEY,
        CLOUDINARY_API_SECRET,
        timeout=UPLOAD_TIMEOUT
    )


__all__ = [
    'UserService',
    'CampaignService',
    'ImageUploader',
    'get_user_service',
    'get_campaign_service',
    'get_image_uploader',
]
