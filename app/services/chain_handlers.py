# app/services/chain_handlers.py
"""
Contract event handlers.

CampaignCreated is only a corroboration signal: the API call is the one
writer that creates campaign records, so a missing campaign is logged and
left alone. DonationReceived goes through the same merge as
POST /campaigns/donation, keyed by the event's transaction hash.
"""
from app.chain.abi import CAMPAIGN_CREATED, DONATION_RECEIVED
from app.chain.gateway import ChainEvent, ChainGateway
from app.core.exceptions import NotFoundError
from app.core.logging_config import get_chain_logger
from app.db.session import get_db_session
from app.services.campaign_service import CampaignService

log = get_chain_logger("handlers")


def register_handlers(gateway: ChainGateway, campaign_service: CampaignService, session_factory=get_db_session):
    """Attach the contract event handlers to the gateway"""

    @gateway.on(CAMPAIGN_CREATED)
    def handle_campaign_created(event: ChainEvent):
        contract_id = int(event.args["campaignId"])
        log.info(f"📢 CampaignCreated event received: #{contract_id} '{event.args.get('title')}'")

        with session_factory() as db:
            exists = campaign_service.find_by_contract_id(db, contract_id) is not None

        if exists:
            log.info(f"✅ Campaign {contract_id} already exists in database")
        else:
            log.info(f"🆕 New campaign {contract_id} detected, waiting for API creation")

    @gateway.on(DONATION_RECEIVED)
    def handle_donation_received(event: ChainEvent):
        contract_id = int(event.args["campaignId"])
        donator = str(event.args["donator"])
        amount = str(event.args["amount"])
        log.info(f"💰 DonationReceived event received: #{contract_id} {donator} {amount}")

        try:
            with session_factory() as db:
                _, applied = campaign_service.record_donation(
                    db, contract_id, donator, amount, event.transaction_hash
                )
        except NotFoundError:
            log.warning(f"⚠️ Campaign {contract_id} not found in database for donation {event.transaction_hash}")
            return

        if applied:
            log.info(f"💰 Donation of {amount} recorded for campaign {contract_id}")
        else:
            log.info(f"↩️ Donation {event.transaction_hash} for campaign {contract_id} was already recorded")

    return handle_campaign_created, handle_donation_received
