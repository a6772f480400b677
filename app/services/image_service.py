# app/services/image_service.py
"""
Image hosting - signed uploads to the Cloudinary REST API.

Uploads are a best-effort side effect: any failure is logged and reported as
None so the caller can fall back (default campaign image, unchanged avatar).
"""
import hashlib
import logging
import os
import time
from typing import Optional, Tuple

import httpx

from app.core.exceptions import ValidationError

log = logging.getLogger("crowdfund.images")

CAMPAIGN_IMAGE_TYPES = ("jpeg", "jpg", "png", "gif")
AVATAR_IMAGE_TYPES = ("jpeg", "jpg", "png")
CAMPAIGN_IMAGE_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
AVATAR_MAX_BYTES = 2 * 1024 * 1024  # 2 MB

CAMPAIGN_TRANSFORMATION = "c_fill,h_300,w_500"
AVATAR_TRANSFORMATION = "c_fill,h_300,w_300"


def validate_image(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    allowed_types: Tuple[str, ...],
    max_bytes: int
) -> None:
    """Reject files that are too large or not one of the allowed image types"""
    if size > max_bytes:
        raise ValidationError("File too large")

    extension = os.path.splitext(filename or "")[1].lower().lstrip(".")
    mimetype = (content_type or "").lower()
    if extension not in allowed_types or not any(t in mimetype for t in allowed_types):
        raise ValidationError("Only image files are allowed")


class ImageUploader:
    """Upload images to Cloudinary and return their secure URL"""

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self.client = client

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    @property
    def upload_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image/upload"

    def sign(self, params: dict) -> str:
        """Cloudinary signature: sha1 of the sorted params joined with '&', plus the secret"""
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def upload(
        self,
        content: bytes,
        filename: str,
        folder: str,
        public_id: str,
        transformation: Optional[str] = None
    ) -> Optional[str]:
        if not self.configured:
            log.warning("⚠️  Image hosting not configured - skipping upload")
            return None

        params = {
            "folder": folder,
            "public_id": public_id,
            "timestamp": int(time.time()),
        }
        if transformation:
            params["transformation"] = transformation
        params["signature"] = self.sign(params)
        params["api_key"] = self.api_key

        log.info(f"📸 Uploading {filename} to {folder}/{public_id}")
        try:
            if self.client is not None:
                response = self.client.post(
                    self.upload_url, data=params, files={"file": (filename, content)}, timeout=self.timeout
                )
            else:
                response = httpx.post(
                    self.upload_url, data=params, files={"file": (filename, content)}, timeout=self.timeout
                )
            response.raise_for_status()
            secure_url = response.json().get("secure_url")
        except (httpx.HTTPError, ValueError) as e:
            log.error(f"❌ Image upload failed: {e}")
            return None

        if not secure_url:
            log.error("❌ Image upload response had no secure_url")
            return None

        log.info(f"✅ Image uploaded successfully: {secure_url}")
        return secure_url

    def upload_campaign_image(self, content: bytes, filename: str, contract_id: int) -> Optional[str]:
        return self.upload(
            content,
            filename,
            folder="crowdfunding/campaigns",
            public_id=f"campaign_{contract_id}_{int(time.time() * 1000)}",
            transformation=CAMPAIGN_TRANSFORMATION,
        )

    def upload_avatar(self, content: bytes, filename: str, address: str) -> Optional[str]:
        return self.upload(
            content,
            filename,
            folder="crowdfunding/avatars",
            public_id=f"avatar_{address}_{int(time.time() * 1000)}",
            transformation=AVATAR_TRANSFORMATION,
        )
