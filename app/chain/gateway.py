# app/chain/gateway.py
"""
Chain gateway - read and poll access to the deployed CrowdFunding contract.

One instance is built per process (see app.main lifespan) and handed to the
reconciler and the sync endpoint. Events are delivered by polling logs over
block ranges; the block cursor survives reconnects, so a range missed during
an outage is replayed later (at-least-once delivery).
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from web3 import Web3

from app.chain.abi import CONTRACT_ABI, CONTRACT_EVENTS
from app.core.exceptions import (
    ChainError, ChainConfigurationError, ChainConnectionError, ChainTransportError
)
from app.core.logging_config import get_chain_logger

log = get_chain_logger("gateway")

Listener = Callable[["ChainEvent"], None]


@dataclass
class ChainEvent:
    name: str
    args: Dict[str, Any]
    transaction_hash: Optional[str]
    block_number: int
    log_index: int


@dataclass
class OnChainCampaign:
    contract_id: int
    owner: str
    title: str
    description: str
    target: str
    deadline: int
    amount_collected: str
    image: str
    donators: List[str] = field(default_factory=list)
    donations: List[str] = field(default_factory=list)
    withdrawn: bool = False


class ChainGateway:
    """web3.py access to the contract plus a small listener registry"""

    def __init__(
        self,
        rpc_url: Optional[str],
        contract_address: Optional[str],
        chain_id: Optional[int] = None,
        max_block_range: int = 2000,
        request_timeout: float = 30.0
    ):
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.chain_id = chain_id
        self.max_block_range = max(1, max_block_range)
        self.request_timeout = request_timeout

        self.w3 = None
        self.contract = None
        self._next_block: Optional[int] = None
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.Lock()

    # ────────────────────────────────────────────
    # Connection
    # ────────────────────────────────────────────

    @property
    def configured(self) -> bool:
        return bool(self.rpc_url and self.contract_address)

    @property
    def connected(self) -> bool:
        return self.contract is not None

    @property
    def next_block(self) -> Optional[int]:
        return self._next_block

    def connect(self) -> None:
        """
        Build the provider and contract and verify the endpoint answers.

        Raises:
            ChainConfigurationError: missing/invalid parameters (permanent)
            ChainConnectionError: endpoint unreachable (transient)
        """
        if not self.rpc_url:
            raise ChainConfigurationError("CHAIN_RPC_URL not configured")
        if not self.contract_address:
            raise ChainConfigurationError("CONTRACT_ADDRESS not configured")
        if not Web3.is_address(self.contract_address):
            raise ChainConfigurationError(f"Invalid contract address: {self.contract_address}")

        with self._lock:
            try:
                w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.request_timeout}))
                if not w3.is_connected():
                    raise ChainConnectionError(f"RPC endpoint not reachable: {self.rpc_url[:50]}...")
                if self.chain_id is not None:
                    actual_chain_id = w3.eth.chain_id
                    if actual_chain_id != self.chain_id:
                        raise ChainConfigurationError(
                            f"RPC endpoint is on chain {actual_chain_id}, expected {self.chain_id}"
                        )
                current_block = w3.eth.block_number
            except ChainError:
                raise
            except Exception as e:
                raise ChainConnectionError(f"Failed to connect to RPC endpoint: {e}") from e

            self.w3 = w3
            self.contract = w3.eth.contract(
                address=Web3.to_checksum_address(self.contract_address),
                abi=CONTRACT_ABI
            )
            if self._next_block is None:
                self._next_block = current_block

        log.info(f"✅ Blockchain connection initialized (contract {self.contract_address}, block {current_block})")

    def test_connection(self) -> bool:
        try:
            if not self.connected:
                self.connect()
            block_number = self.w3.eth.block_number
            log.info(f"✅ Blockchain connection test successful. Current block: {block_number}")
            return True
        except Exception as e:
            log.error(f"❌ Blockchain connection test failed: {e}")
            return False

    def close(self) -> None:
        self.remove_all_listeners()
        with self._lock:
            self.contract = None
            self.w3 = None
        log.info("🔌 Chain gateway closed")

    # ────────────────────────────────────────────
    # Listeners
    # ────────────────────────────────────────────

    def add_listener(self, event_name: str, listener: Listener) -> None:
        if event_name not in CONTRACT_EVENTS:
            raise ValueError(f"Unknown contract event: {event_name}")
        self._listeners.setdefault(event_name, []).append(listener)

    def on(self, event_name: str):
        """Decorator form of add_listener"""
        def decorator(listener: Listener) -> Listener:
            self.add_listener(event_name, listener)
            return listener
        return decorator

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(v) for v in self._listeners.values())
        return len(self._listeners.get(event_name, []))

    def dispatch(self, event: ChainEvent) -> None:
        """Run every listener for the event; one failing listener does not stop the others"""
        for listener in list(self._listeners.get(event.name, [])):
            try:
                listener(event)
            except Exception as e:
                log.error(f"❌ Error processing {event.name} event (tx {event.transaction_hash}): {e}", exc_info=True)

    # ────────────────────────────────────────────
    # Polling
    # ────────────────────────────────────────────

    def poll(self) -> List[ChainEvent]:
        """
        Fetch new events for the listened event types, ordered by block and log index.

        Raises:
            ChainTransportError: not connected, or an RPC call failed
        """
        if self.contract is None or self.w3 is None:
            raise ChainTransportError("Chain gateway is not connected")

        event_names = [name for name in CONTRACT_EVENTS if self._listeners.get(name)]

        try:
            latest = self.w3.eth.block_number
            from_block = self._next_block if self._next_block is not None else latest
            if from_block > latest:
                return []
            to_block = min(latest, from_block + self.max_block_range - 1)

            events = []
            for name in event_names:
                event_type = getattr(self.contract.events, name)
                for entry in event_type().get_logs(from_block=from_block, to_block=to_block):
                    events.append(self._to_chain_event(name, entry))
        except ChainError:
            raise
        except Exception as e:
            raise ChainTransportError(f"Polling contract events failed: {e}") from e

        self._next_block = to_block + 1
        events.sort(key=lambda ev: (ev.block_number, ev.log_index))
        if events:
            log.debug(f"📡 {len(events)} event(s) in blocks {from_block}-{to_block}")
        return events

    @staticmethod
    def _to_chain_event(name: str, entry) -> ChainEvent:
        tx_hash = entry.get("transactionHash")
        return ChainEvent(
            name=name,
            args=dict(entry["args"]),
            transaction_hash=Web3.to_hex(tx_hash) if tx_hash is not None else None,
            block_number=int(entry.get("blockNumber") or 0),
            log_index=int(entry.get("logIndex") or 0),
        )

    # ────────────────────────────────────────────
    # Contract reads
    # ────────────────────────────────────────────

    def _require_contract(self):
        if not self.connected:
            self.connect()
        return self.contract

    def get_campaigns(self) -> List[OnChainCampaign]:
        contract = self._require_contract()
        log.info("📡 Fetching campaigns from blockchain...")
        try:
            raw_campaigns = contract.functions.getCampaigns().call()
        except Exception as e:
            raise ChainTransportError(f"getCampaigns failed: {e}") from e

        campaigns = [
            OnChainCampaign(
                contract_id=int(raw[0]),
                owner=str(raw[1]).lower(),
                title=raw[2],
                description=raw[3],
                target=str(raw[4]),
                deadline=int(raw[5]),
                amount_collected=str(raw[6]),
                image=raw[7],
                donators=[str(a).lower() for a in raw[8]],
                donations=[str(d) for d in raw[9]],
                withdrawn=bool(raw[10]),
            )
            for raw in raw_campaigns
        ]
        log.info(f"✅ Found {len(campaigns)} campaigns on blockchain")
        return campaigns

    def get_donators(self, contract_id: int) -> Tuple[List[str], List[str]]:
        contract = self._require_contract()
        try:
            donators, donations = contract.functions.getDonators(contract_id).call()
        except Exception as e:
            raise ChainTransportError(f"getDonators({contract_id}) failed: {e}") from e
        return [str(a).lower() for a in donators], [str(d) for d in donations]
