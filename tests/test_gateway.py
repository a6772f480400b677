"""
ChainGateway tests. No RPC endpoint is contacted: connection parameter checks
run before any provider is built, and polling is exercised against a mocked
web3 client and contract.
"""
from unittest.mock import MagicMock

import pytest

from app.chain.abi import CAMPAIGN_CREATED, DONATION_RECEIVED
from app.chain.gateway import ChainEvent, ChainGateway
from app.core.exceptions import ChainConfigurationError, ChainTransportError

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def log_entry(block, index, tx_byte, **args):
    return {
        "args": args,
        "transactionHash": bytes([tx_byte]) * 32,
        "blockNumber": block,
        "logIndex": index,
    }


@pytest.fixture
def gateway():
    gw = ChainGateway("http://localhost:8545", CONTRACT, max_block_range=10)
    gw.w3 = MagicMock()
    gw.contract = MagicMock()
    return gw


class TestConnect:

    def test_configured(self):
        assert ChainGateway("http://rpc", CONTRACT).configured
        assert not ChainGateway(None, CONTRACT).configured
        assert not ChainGateway("http://rpc", "").configured

    def test_missing_rpc_url(self):
        with pytest.raises(ChainConfigurationError):
            ChainGateway(None, CONTRACT).connect()

    def test_missing_contract(self):
        with pytest.raises(ChainConfigurationError):
            ChainGateway("http://rpc", None).connect()

    def test_invalid_contract_address(self):
        with pytest.raises(ChainConfigurationError):
            ChainGateway("http://rpc", "not-an-address").connect()

    def test_connection_reports_current_block(self, gateway):
        gateway.w3.eth.block_number = 5
        assert gateway.test_connection() is True

    def test_connection_without_configuration_is_false(self):
        assert ChainGateway(None, CONTRACT).test_connection() is False


class TestListeners:

    def test_unknown_event_rejected(self):
        gw = ChainGateway(None, None)
        with pytest.raises(ValueError):
            gw.add_listener("Withdrawn", lambda event: None)

    def test_decorator_and_removal(self):
        gw = ChainGateway(None, None)

        @gw.on(DONATION_RECEIVED)
        def handler(event):
            pass

        assert gw.listener_count() == 1
        assert gw.listener_count(DONATION_RECEIVED) == 1
        gw.remove_all_listeners()
        assert gw.listener_count() == 0

    def test_failing_listener_does_not_block_others(self):
        gw = ChainGateway(None, None)
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        gw.add_listener(DONATION_RECEIVED, broken)
        gw.add_listener(DONATION_RECEIVED, seen.append)

        event = ChainEvent(DONATION_RECEIVED, {}, "0x1", 1, 0)
        gw.dispatch(event)

        assert seen == [event]


class TestPoll:

    def test_poll_requires_connection(self):
        with pytest.raises(ChainTransportError):
            ChainGateway("http://rpc", CONTRACT).poll()

    def test_poll_fetches_listened_events_in_order(self, gateway):
        gateway.add_listener(DONATION_RECEIVED, lambda event: None)
        gateway._next_block = 100
        gateway.w3.eth.block_number = 105
        get_logs = gateway.contract.events.DonationReceived.return_value.get_logs
        get_logs.return_value = [
            log_entry(103, 1, 0xbb, campaignId=1, donator="0xA", amount=2),
            log_entry(101, 4, 0xaa, campaignId=1, donator="0xB", amount=1),
            log_entry(103, 0, 0xcc, campaignId=2, donator="0xC", amount=3),
        ]

        events = gateway.poll()

        get_logs.assert_called_once_with(from_block=100, to_block=105)
        gateway.contract.events.CampaignCreated.assert_not_called()
        assert [(e.block_number, e.log_index) for e in events] == [(101, 4), (103, 0), (103, 1)]
        assert events[0].transaction_hash == "0x" + "aa" * 32
        assert events[0].args == {"campaignId": 1, "donator": "0xB", "amount": 1}
        assert gateway.next_block == 106

    def test_poll_caps_block_range(self, gateway):
        gateway.add_listener(CAMPAIGN_CREATED, lambda event: None)
        gateway._next_block = 100
        gateway.w3.eth.block_number = 500
        get_logs = gateway.contract.events.CampaignCreated.return_value.get_logs
        get_logs.return_value = []

        assert gateway.poll() == []
        get_logs.assert_called_once_with(from_block=100, to_block=109)
        assert gateway.next_block == 110

    def test_poll_up_to_date(self, gateway):
        gateway._next_block = 106
        gateway.w3.eth.block_number = 105

        assert gateway.poll() == []
        assert gateway.next_block == 106

    def test_rpc_failure_keeps_cursor(self, gateway):
        gateway.add_listener(DONATION_RECEIVED, lambda event: None)
        gateway._next_block = 100
        gateway.w3.eth.block_number = 105
        gateway.contract.events.DonationReceived.return_value.get_logs.side_effect = OSError("connection reset")

        with pytest.raises(ChainTransportError):
            gateway.poll()
        assert gateway.next_block == 100


class TestContractReads:

    def test_get_campaigns(self, gateway):
        gateway.contract.functions.getCampaigns.return_value.call.return_value = [
            (0, "0xOwNeR", "T", "D", 1000, 1700000000, 250, "img", ["0xDoNoR"], [250], False),
        ]

        campaigns = gateway.get_campaigns()

        assert len(campaigns) == 1
        campaign = campaigns[0]
        assert campaign.contract_id == 0
        assert campaign.owner == "0xowner"
        assert campaign.target == "1000"
        assert campaign.amount_collected == "250"
        assert campaign.donators == ["0xdonor"]

    def test_get_donators_failure(self, gateway):
        gateway.contract.functions.getDonators.return_value.call.side_effect = OSError("timeout")
        with pytest.raises(ChainTransportError):
            gateway.get_donators(1)
