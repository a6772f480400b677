# app/services/campaign_service.py
"""
Campaign service - campaign CRUD and the donation merge shared by the API
and the chain event handlers.

Donation recording is idempotent per (campaign, transaction hash): chain
events are delivered at least once and clients retry, so a replayed donation
must never be credited twice.
"""
from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.amounts import add_amounts, is_negative_amount
from app.core.config import DEFAULT_CAMPAIGN_IMAGE
from app.core.exceptions import ValidationError, NotFoundError, ConflictError
from app.models.campaign import Campaign, CampaignCategory, Donator
from app.schemas.campaign import CampaignCreate, CampaignResponse
from app.schemas.common import dump
from app.services.user_service import UserService, normalize_address

log = logging.getLogger("crowdfund.campaigns")


def normalize_tx_hash(transaction_hash: Optional[str]) -> Optional[str]:
    """Hex hashes compare case-insensitively; stored lowercase like the event path"""
    if not transaction_hash:
        return None
    return transaction_hash.strip().lower() or None


# ────────────────────────────────────────────
# Campaign lookup keys
# ────────────────────────────────────────────

@dataclass(frozen=True)
class ById:
    campaign_id: str


@dataclass(frozen=True)
class ByContractId:
    contract_id: int


CampaignLookup = Union[ById, ByContractId]


def parse_campaign_lookup(raw: str) -> Optional[CampaignLookup]:
    """
    Turn a path segment into a lookup key: a UUID is an internal id, a
    non-negative integer is an on-chain contract id. Anything else is None.
    """
    raw = (raw or "").strip()
    try:
        return ById(str(uuid.UUID(raw)))
    except ValueError:
        pass
    if raw.isdigit():
        return ByContractId(int(raw))
    return None


def _to_naive_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.utcnow()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CampaignService:
    """Service for campaign operations"""

    def __init__(self, user_service: Optional[UserService] = None):
        self.users = user_service or UserService()

    # ────────────────────────────────────────────
    # Reads
    # ────────────────────────────────────────────

    def list_campaigns(
        self,
        db: Session,
        category: Optional[str] = None,
        status: Optional[str] = None,
        sort: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[Campaign]:
        """
        List campaigns with optional category/status filters.

        status: 'active' (deadline in the future) or 'ended'
        sort: 'newest' (default), 'ending' (soonest deadline) or 'amount' (largest target)
        """
        now = now or datetime.utcnow()
        query = db.query(Campaign)

        if category and category != "all":
            query = query.filter(Campaign.category == category)

        if status == "active":
            query = query.filter(Campaign.deadline > now)
        elif status == "ended":
            query = query.filter(Campaign.deadline <= now)

        if sort == "ending":
            query = query.order_by(Campaign.deadline.asc(), Campaign.id.asc())
        elif sort == "amount":
            # Targets are integer strings: longer is larger, equal lengths compare lexically
            query = query.order_by(func.length(Campaign.target).desc(), Campaign.target.desc(), Campaign.id.desc())
        else:
            query = query.order_by(Campaign.created_at.desc(), Campaign.id.desc())

        return query.all()

    def find_by_contract_id(self, db: Session, contract_id: int) -> Optional[Campaign]:
        return db.query(Campaign).filter(Campaign.contract_id == contract_id).first()

    def get_campaign(self, db: Session, key: CampaignLookup) -> Campaign:
        if isinstance(key, ById):
            campaign = db.query(Campaign).filter(Campaign.campaign_id == key.campaign_id).first()
        elif isinstance(key, ByContractId):
            campaign = self.find_by_contract_id(db, key.contract_id)
        else:
            campaign = None

        if not campaign:
            raise NotFoundError("Campaign not found")
        return campaign

    # ────────────────────────────────────────────
    # Create
    # ────────────────────────────────────────────

    def validate_new_campaign(self, db: Session, data: CampaignCreate) -> None:
        """Required fields and the one-record-per-contractId guard"""
        if data.contract_id is None:
            raise ValidationError("Contract ID is required")
        if not data.owner:
            raise ValidationError("Owner address is required")
        if not data.title:
            raise ValidationError("Campaign title is required")

        existing = self.find_by_contract_id(db, data.contract_id)
        if existing:
            log.warning(f"⚠️ Campaign already exists: {data.contract_id}")
            raise ConflictError(
                "Campaign with this contract ID already exists",
                data=dump(CampaignResponse.model_validate(existing)),
            )

    def create_campaign(self, db: Session, data: CampaignCreate, image_url: Optional[str] = None) -> Campaign:
        """
        Create the off-chain mirror of a campaign that was just created on chain.

        The owner's user record is upserted afterwards; a failure there is
        logged and does not undo the campaign.
        """
        self.validate_new_campaign(db, data)

        campaign = Campaign(
            campaign_id=str(uuid.uuid4()),
            contract_id=data.contract_id,
            owner=normalize_address(data.owner),
            title=data.title,
            description=data.description or "No description provided",
            target=data.target or "0",
            deadline=_to_naive_utc(data.deadline),
            image=image_url or DEFAULT_CAMPAIGN_IMAGE,
            category=(data.category or CampaignCategory.OTHER).value,
            transaction_hash=normalize_tx_hash(data.transaction_hash),
            amount_collected="0",
            total_donations=0,
            withdrawn=False,
            is_active=True,
        )

        log.info(f"💾 Saving campaign #{campaign.contract_id} '{campaign.title}' owned by {campaign.owner}")
        db.add(campaign)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent create for the same contractId
            db.rollback()
            existing = self.find_by_contract_id(db, data.contract_id)
            raise ConflictError(
                "Campaign with this contract ID already exists",
                data=dump(CampaignResponse.model_validate(existing)) if existing else None,
            )
        db.refresh(campaign)
        log.info(f"✅ Campaign saved: {campaign.campaign_id}")

        try:
            self.users.record_campaign_created(db, campaign.owner, campaign)
        except Exception as e:
            db.rollback()
            log.error(f"⚠️ Failed to update user profile for {campaign.owner}: {e}")

        return campaign

    # ────────────────────────────────────────────
    # Donation merge
    # ────────────────────────────────────────────

    def record_donation(
        self,
        db: Session,
        contract_id: int,
        donator: str,
        amount: str,
        transaction_hash: Optional[str] = None
    ) -> Tuple[Campaign, bool]:
        """
        Merge one donation into a campaign.

        Appends a donator entry, increments totalDonations and adds the amount
        to amountCollected with exact integer arithmetic (float fallback for
        non-integer amounts). A donation whose transaction hash is already
        recorded on the campaign is left as is.

        Returns:
            Tuple of (campaign, applied) where applied is False for a replay.
        """
        donator = normalize_address(donator)
        amount = str(amount).strip() if amount is not None else ""
        transaction_hash = normalize_tx_hash(transaction_hash)

        if not donator:
            raise ValidationError("Donator address is required")
        if not amount:
            raise ValidationError("Donation amount is required")
        if is_negative_amount(amount):
            raise ValidationError("Donation amount cannot be negative")

        log.info(f"💰 Recording donation: campaign=#{contract_id} donator={donator} amount={amount} tx={transaction_hash}")

        # Row lock serializes concurrent donations to the same campaign
        campaign = (
            db.query(Campaign)
            .filter(Campaign.contract_id == contract_id)
            .with_for_update()
            .first()
        )
        if not campaign:
            db.rollback()
            raise NotFoundError("Campaign not found")

        if transaction_hash:
            already = db.query(Donator.id).filter(
                Donator.campaign_pk == campaign.id,
                Donator.transaction_hash == transaction_hash
            ).first()
            if already:
                db.rollback()
                log.info(f"↩️ Donation {transaction_hash} already recorded for campaign #{contract_id}")
                return campaign, False
        else:
            log.warning(f"⚠️ Donation to campaign #{contract_id} has no transaction hash - cannot de-duplicate")

        now = datetime.utcnow()
        db.add(Donator(
            campaign_pk=campaign.id,
            address=donator,
            amount=amount,
            timestamp=now,
            transaction_hash=transaction_hash,
        ))
        db.query(Campaign).filter(Campaign.id == campaign.id).update(
            {
                Campaign.total_donations: Campaign.total_donations + 1,
                Campaign.amount_collected: add_amounts(campaign.amount_collected or "0", amount),
                Campaign.updated_at: now,
            },
            synchronize_session=False,
        )

        try:
            db.commit()
        except IntegrityError:
            # Same transaction hash inserted concurrently
            db.rollback()
            log.info(f"↩️ Donation {transaction_hash} recorded concurrently for campaign #{contract_id}")
            return self.find_by_contract_id(db, contract_id), False

        log.info(f"✅ Donation recorded for campaign #{contract_id}")

        try:
            self.users.record_donation(db, donator, campaign, amount, transaction_hash)
        except Exception as e:
            db.rollback()
            log.error(f"⚠️ Failed to update donator profile for {donator}: {e}")

        return campaign, True
