# app/services/user_service.py
"""
User service - per-address profiles and donation aggregates.

Users are never required to exist: reads fall back to a zero-valued default
profile, and writes upsert.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from app.core.amounts import amount_to_float
from app.core.exceptions import ValidationError
from app.models.campaign import Campaign, Donator
from app.models.user import User, UserDonation
from app.schemas.campaign import CampaignResponse
from app.schemas.user import UserUpdate, UserProfileResponse, UserDonationResponse, UserStatsResponse

log = logging.getLogger("crowdfund.users")

CAMPAIGN_RELATIONS = ("created", "donated")


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Addresses are stored lowercase so lookups are case-insensitive"""
    if not address:
        return address
    return str(address).strip().lower()


class UserService:
    """Service for user profile operations"""

    # ────────────────────────────────────────────
    # Reads
    # ────────────────────────────────────────────

    def find_user(self, db: Session, address: str) -> Optional[User]:
        return db.query(User).filter(User.address == normalize_address(address)).first()

    def get_profile(self, db: Session, address: str) -> Tuple[UserProfileResponse, bool]:
        """
        Get a user profile with created campaigns and donation history populated.

        Returns:
            Tuple of (profile, found). A missing user yields a default profile.
        """
        address = normalize_address(address)
        user = self.find_user(db, address)

        if not user:
            log.info(f"ℹ️ User {address} not found, returning default profile")
            now = datetime.utcnow()
            return UserProfileResponse(address=address, created_at=now, updated_at=now), False

        return self._build_profile(db, user), True

    def get_stats(self, db: Session, address: str) -> UserStatsResponse:
        user = self.find_user(db, address)
        if not user:
            return UserStatsResponse()

        return UserStatsResponse(
            campaigns_created=len(user.campaigns_created or []),
            total_raised=float(user.total_raised or 0),
            campaigns_donated=len(user.campaigns_donated or []),
            total_donated=float(user.total_donated or 0),
        )

    def list_campaigns_for_user(self, db: Session, address: str, relation: str = "created") -> List[Campaign]:
        """Campaigns owned by (created) or donated to by (donated) an address"""
        address = normalize_address(address)
        if relation not in CAMPAIGN_RELATIONS:
            raise ValidationError(f"Invalid campaign type '{relation}', expected 'created' or 'donated'")

        query = db.query(Campaign)
        if relation == "created":
            query = query.filter(Campaign.owner == address)
        else:
            donated = db.query(Donator.campaign_pk).filter(Donator.address == address)
            query = query.filter(Campaign.id.in_(donated))

        return query.order_by(Campaign.created_at.desc(), Campaign.id.desc()).all()

    # ────────────────────────────────────────────
    # Writes
    # ────────────────────────────────────────────

    def update_profile(
        self,
        db: Session,
        address: str,
        data: UserUpdate,
        avatar_url: Optional[str] = None
    ) -> UserProfileResponse:
        """Upsert name/email/bio; the avatar only changes when a new one was uploaded"""
        user = self._get_or_create(db, address)

        user.name = data.name
        user.email = data.email
        user.bio = data.bio
        if avatar_url:
            user.avatar = avatar_url

        db.commit()
        db.refresh(user)
        log.info(f"✅ Profile updated for {user.address}")
        return self._build_profile(db, user)

    def record_campaign_created(self, db: Session, owner: str, campaign: Campaign) -> User:
        user = self._get_or_create(db, owner)
        if campaign.campaign_id not in user.campaigns_created:
            user.campaigns_created.append(campaign.campaign_id)
        db.commit()
        log.info(f"✅ User {user.address} now owns campaign #{campaign.contract_id}")
        return user

    def record_donation(
        self,
        db: Session,
        address: str,
        campaign: Campaign,
        amount: str,
        transaction_hash: Optional[str] = None
    ) -> User:
        """Append a donation history entry and bump the float total atomically"""
        user = self._get_or_create(db, address)

        db.add(UserDonation(
            user_id=user.id,
            campaign_id=campaign.campaign_id,
            amount=amount,
            date=datetime.utcnow(),
            transaction_hash=transaction_hash,
        ))
        db.query(User).filter(User.id == user.id).update(
            {User.total_donated: User.total_donated + amount_to_float(amount)},
            synchronize_session=False,
        )
        db.commit()
        log.info(f"✅ Donation history updated for {user.address}")
        return user

    # ────────────────────────────────────────────
    # Helpers
    # ────────────────────────────────────────────

    def _get_or_create(self, db: Session, address: str) -> User:
        address = normalize_address(address)
        if not address:
            raise ValidationError("Address is required")

        user = self.find_user(db, address)
        if user:
            return user

        user = User(
            address=address,
            avatar="",
            campaigns_created=[],
            total_donated=0.0,
            total_raised=0.0,
        )
        db.add(user)
        db.flush()
        log.info(f"🆕 Created user record for {address}")
        return user

    def _build_profile(self, db: Session, user: User) -> UserProfileResponse:
        created_ids = list(user.campaigns_created or [])
        donated_ids = [entry.campaign_id for entry in user.campaigns_donated]

        campaigns = {}
        wanted = set(created_ids) | set(donated_ids)
        if wanted:
            for campaign in db.query(Campaign).filter(Campaign.campaign_id.in_(wanted)).all():
                campaigns[campaign.campaign_id] = CampaignResponse.model_validate(campaign)

        return UserProfileResponse(
            address=user.address,
            name=user.name,
            email=user.email,
            bio=user.bio,
            avatar=user.avatar or "",
            campaigns_created=[campaigns[cid] for cid in created_ids if cid in campaigns],
            campaigns_donated=[
                UserDonationResponse(
                    campaign_id=entry.campaign_id,
                    amount=entry.amount,
                    date=entry.date,
                    transaction_hash=entry.transaction_hash,
                    campaign=campaigns.get(entry.campaign_id),
                )
                for entry in user.campaigns_donated
            ],
            total_donated=float(user.total_donated or 0),
            total_raised=float(user.total_raised or 0),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
