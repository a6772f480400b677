# app/services/sync_service.py
"""
Manual reconciliation check: compare the on-chain campaigns with the
off-chain mirror and report drift. Read-only; nothing is created or fixed.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from app.chain.gateway import ChainGateway
from app.core.amounts import parse_integer_amount
from app.core.exceptions import ChainError, UpstreamError
from app.models.campaign import Campaign
from app.schemas.campaign import SyncReport, SyncReportEntry

log = logging.getLogger("crowdfund.sync")


def _same_amount(on_chain: str, off_chain: str) -> bool:
    left, right = parse_integer_amount(on_chain), parse_integer_amount(off_chain)
    if left is None or right is None:
        return on_chain == off_chain
    return left == right


def build_sync_report(db: Session, gateway: Optional[ChainGateway]) -> SyncReport:
    if gateway is None or not gateway.configured:
        raise UpstreamError("Chain gateway not configured")

    log.info("🔄 Comparing campaigns with blockchain...")
    try:
        on_chain = gateway.get_campaigns()
    except ChainError as e:
        log.error(f"❌ Error syncing with blockchain: {e}")
        raise UpstreamError(f"Error syncing with blockchain: {e}")

    off_chain = {c.contract_id: c for c in db.query(Campaign).all()}
    off_chain_count = len(off_chain)
    drift = []
    in_sync = 0

    for remote in on_chain:
        local = off_chain.pop(remote.contract_id, None)
        if local is None:
            drift.append(SyncReportEntry(
                contract_id=remote.contract_id,
                status="missing_offchain",
                on_chain_amount=remote.amount_collected,
            ))
            continue

        if not _same_amount(remote.amount_collected, local.amount_collected):
            drift.append(SyncReportEntry(
                contract_id=remote.contract_id,
                status="amount_mismatch",
                on_chain_amount=remote.amount_collected,
                off_chain_amount=local.amount_collected,
            ))
            continue

        try:
            donators, _ = gateway.get_donators(remote.contract_id)
        except ChainError as e:
            raise UpstreamError(f"Error syncing with blockchain: {e}")

        if len(donators) != local.total_donations:
            drift.append(SyncReportEntry(
                contract_id=remote.contract_id,
                status="donation_count_mismatch",
                on_chain_amount=remote.amount_collected,
                off_chain_amount=local.amount_collected,
                on_chain_donations=len(donators),
                off_chain_donations=local.total_donations,
            ))
            continue

        in_sync += 1

    for contract_id, local in sorted(off_chain.items()):
        drift.append(SyncReportEntry(
            contract_id=contract_id,
            status="missing_onchain",
            off_chain_amount=local.amount_collected,
            off_chain_donations=local.total_donations,
        ))

    log.info(f"✅ Sync check done: {in_sync} in sync, {len(drift)} drifted")
    return SyncReport(
        checked_at=datetime.utcnow(),
        on_chain_count=len(on_chain),
        off_chain_count=off_chain_count,
        in_sync=in_sync,
        drift=drift,
    )
