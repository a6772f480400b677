from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app.chain.gateway import ChainGateway, OnChainCampaign
from app.core.exceptions import ChainTransportError, UpstreamError
from app.schemas.campaign import CampaignCreate
from app.services.campaign_service import CampaignService
from app.services.sync_service import build_sync_report
from tests.conftest import DONOR, ONE_ETH, OWNER


def on_chain(contract_id, collected="0"):
    return OnChainCampaign(
        contract_id=contract_id,
        owner=OWNER.lower(),
        title="T",
        description="D",
        target=ONE_ETH,
        deadline=1700000000,
        amount_collected=collected,
        image="",
    )


@pytest.fixture
def gateway():
    gw = MagicMock(spec=ChainGateway)
    gw.configured = True
    return gw


@pytest.fixture
def seeded(db):
    service = CampaignService()
    for contract_id in (1, 2, 3):
        service.create_campaign(db, CampaignCreate(
            contract_id=contract_id, owner=OWNER, title="T", target=ONE_ETH,
            deadline=datetime.utcnow() + timedelta(days=1),
        ))
    service.record_donation(db, 1, DONOR, "100", "0x1")
    service.record_donation(db, 2, DONOR, "100", "0x2")
    return db


def test_report_classifies_drift(seeded, gateway):
    gateway.get_campaigns.return_value = [
        on_chain(1, "100"),   # in sync
        on_chain(2, "300"),   # amount differs
        on_chain(3, "0"),     # amount matches, donation count differs
        on_chain(4, "50"),    # never mirrored
    ]
    donators = {1: ["0xdef"], 3: ["0xdef"]}
    gateway.get_donators.side_effect = lambda cid: (donators.get(cid, []), [])

    report = build_sync_report(seeded, gateway)

    assert report.on_chain_count == 4
    assert report.off_chain_count == 3
    assert report.in_sync == 1
    statuses = {entry.contract_id: entry.status for entry in report.drift}
    assert statuses == {
        2: "amount_mismatch",
        3: "donation_count_mismatch",
        4: "missing_offchain",
    }


def test_report_lists_campaigns_missing_on_chain(seeded, gateway):
    gateway.get_campaigns.return_value = []

    report = build_sync_report(seeded, gateway)

    assert [entry.status for entry in report.drift] == ["missing_onchain"] * 3
    assert [entry.contract_id for entry in report.drift] == [1, 2, 3]


def test_unconfigured_gateway(db):
    with pytest.raises(UpstreamError):
        build_sync_report(db, None)

    gw = MagicMock(spec=ChainGateway)
    gw.configured = False
    with pytest.raises(UpstreamError):
        build_sync_report(db, gw)


def test_rpc_failure_is_upstream_error(db, gateway):
    gateway.get_campaigns.side_effect = ChainTransportError("getCampaigns failed")

    with pytest.raises(UpstreamError) as exc:
        build_sync_report(db, gateway)
    assert exc.value.status_code == 500
