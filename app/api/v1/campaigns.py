# app/api/v1/campaigns.py
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_campaign_service, get_image_uploader, get_chain_gateway
from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.campaign import CampaignCreate, CampaignResponse, DonationCreate
from app.schemas.common import dump, success_response
from app.services.campaign_service import CampaignService, parse_campaign_lookup
from app.services.image_service import (
    ImageUploader, validate_image, CAMPAIGN_IMAGE_TYPES, CAMPAIGN_IMAGE_MAX_BYTES
)
from app.services.sync_service import build_sync_report

router = APIRouter()
log = logging.getLogger("crowdfund.campaigns")


def _parse_contract_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError("Contract ID must be an integer")


def _parse_deadline(raw: Optional[str]) -> Optional[datetime]:
    """Deadlines arrive as unix seconds from the client"""
    if raw is None or not str(raw).strip():
        return None
    try:
        seconds = int(float(str(raw).strip()))
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise ValidationError("Deadline must be a unix timestamp in seconds")


@router.get("")
def list_campaigns(
    category: Optional[str] = None,
    status: Optional[str] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    service: CampaignService = Depends(get_campaign_service)
):
    """List campaigns filtered by category/status and sorted by newest, ending or amount"""
    campaigns = service.list_campaigns(db, category=category, status=status, sort=sort)
    data = [dump(CampaignResponse.model_validate(c)) for c in campaigns]
    return success_response(data, count=len(data))


@router.get("/sync")
def sync_with_blockchain(
    db: Session = Depends(get_db),
    gateway=Depends(get_chain_gateway)
):
    """Compare on-chain campaigns with the database and report drift"""
    report = build_sync_report(db, gateway)
    return success_response(dump(report), message="Sync check completed")


@router.get("/{campaign_ref}")
def get_campaign(
    campaign_ref: str,
    db: Session = Depends(get_db),
    service: CampaignService = Depends(get_campaign_service)
):
    """Get a campaign by internal id or on-chain contract id"""
    key = parse_campaign_lookup(campaign_ref)
    if key is None:
        raise NotFoundError("Campaign not found")

    campaign = service.get_campaign(db, key)
    return success_response(dump(CampaignResponse.model_validate(campaign)))


@router.post("", status_code=201)
def create_campaign(
    contractId: Optional[str] = Form(None),
    owner: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    target: Optional[str] = Form(None),
    deadline: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    transactionHash: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    service: CampaignService = Depends(get_campaign_service),
    uploader: ImageUploader = Depends(get_image_uploader)
):
    """
    Mirror a campaign that was just created on chain.

    Multipart form with an optional `image` file. The image goes to the image
    host; if that fails the default placeholder image is used.
    """
    log.info(f"📝 Creating campaign contractId={contractId} owner={owner} title={title!r}")
    log.info(f"📎 File upload: {'Yes' if image is not None and image.filename else 'No'}")

    data = CampaignCreate(
        contract_id=_parse_contract_id(contractId),
        owner=owner,
        title=title,
        description=description,
        target=target,
        deadline=_parse_deadline(deadline),
        category=category or None,
        transaction_hash=transactionHash,
    )
    service.validate_new_campaign(db, data)

    image_url = None
    if image is not None and image.filename:
        content = image.file.read()
        validate_image(image.filename, image.content_type, len(content), CAMPAIGN_IMAGE_TYPES, CAMPAIGN_IMAGE_MAX_BYTES)
        image_url = uploader.upload_campaign_image(content, image.filename, data.contract_id)

    campaign = service.create_campaign(db, data, image_url=image_url)
    return success_response(dump(CampaignResponse.model_validate(campaign)), message="Campaign created successfully")


@router.post("/donation")
def record_donation(
    data: DonationCreate,
    db: Session = Depends(get_db),
    service: CampaignService = Depends(get_campaign_service)
):
    """Record a donation made on chain (idempotent per transaction hash)"""
    campaign, applied = service.record_donation(
        db, data.campaign_id, data.donator, data.amount, data.transaction_hash
    )
    message = "Donation recorded successfully" if applied else "Donation already recorded"
    return success_response(dump(CampaignResponse.model_validate(campaign)), message=message)
