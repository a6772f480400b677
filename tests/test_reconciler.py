"""
Reconciler state machine tests against a scripted fake gateway.
"""
import asyncio
import threading
import time

import pytest

from app.chain.gateway import ChainEvent
from app.chain.reconciler import EventReconciler, ReconcilerState
from app.core.exceptions import ChainConfigurationError, ChainConnectionError, ChainTransportError


class FakeGateway:
    """
    Scripted stand-in for ChainGateway.

    connect_results / poll_results are consumed in order; an exception entry
    is raised, anything else is returned. Once exhausted, connect succeeds and
    poll returns no events.
    """

    def __init__(self, connect_results=None, poll_results=None):
        self.configured = True
        self.next_block = 100
        self.connect_calls = 0
        self.poll_calls = 0
        self.listeners = []
        self.dispatched = []
        self._connect_results = list(connect_results or [])
        self._poll_results = list(poll_results or [])

    def connect(self):
        self.connect_calls += 1
        if self._connect_results:
            result = self._connect_results.pop(0)
            if isinstance(result, Exception):
                raise result

    def poll(self):
        self.poll_calls += 1
        if self._poll_results:
            result = self._poll_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return []

    def remove_all_listeners(self):
        self.listeners.clear()

    def listener_count(self, event_name=None):
        return len(self.listeners)

    def dispatch(self, event):
        self.dispatched.append(event)


def attach(gateway):
    gateway.listeners.append("DonationReceived")


def make_reconciler(gateway, **timings):
    options = dict(setup_retry_seconds=0.01, reconnect_seconds=0.01, poll_interval=0.01)
    options.update(timings)
    return EventReconciler(gateway, attach, **options)


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def donation_event(tx, block):
    return ChainEvent(
        name="DonationReceived",
        args={"campaignId": 1, "donator": "0xabc", "amount": 5},
        transaction_hash=tx,
        block_number=block,
        log_index=0,
    )


@pytest.mark.asyncio
async def test_connects_and_listens():
    gateway = FakeGateway()
    reconciler = make_reconciler(gateway)

    reconciler.start()
    await wait_until(lambda: reconciler.state == ReconcilerState.LISTENING)

    assert gateway.listeners == ["DonationReceived"]
    assert reconciler.status()["state"] == "listening"
    assert reconciler.status()["next_block"] == 100
    await reconciler.shutdown()


@pytest.mark.asyncio
async def test_configuration_error_is_not_retried():
    gateway = FakeGateway(connect_results=[ChainConfigurationError("CONTRACT_ADDRESS not configured")])
    reconciler = make_reconciler(gateway)

    task = reconciler.start()
    await asyncio.wait_for(task, timeout=1)

    assert reconciler.state == ReconcilerState.DISCONNECTED
    assert gateway.connect_calls == 1
    assert gateway.listeners == []
    assert "CONTRACT_ADDRESS" in reconciler.last_error


@pytest.mark.asyncio
async def test_setup_failure_is_retried():
    gateway = FakeGateway(connect_results=[ChainConnectionError("down"), ChainConnectionError("still down")])
    reconciler = make_reconciler(gateway)

    reconciler.start()
    await wait_until(lambda: reconciler.state == ReconcilerState.LISTENING)

    assert gateway.connect_calls == 3
    assert gateway.listeners == ["DonationReceived"]
    await reconciler.shutdown()


@pytest.mark.asyncio
async def test_events_dispatched_in_order():
    events = [donation_event("0x1", 101), donation_event("0x2", 102)]
    gateway = FakeGateway(poll_results=[events])
    reconciler = make_reconciler(gateway)

    reconciler.start()
    await wait_until(lambda: reconciler.events_processed == 2)

    assert [e.transaction_hash for e in gateway.dispatched] == ["0x1", "0x2"]
    await reconciler.shutdown()


@pytest.mark.asyncio
async def test_transport_error_reconnects_and_reattaches_once():
    gateway = FakeGateway(poll_results=[ChainTransportError("socket closed")])
    reconciler = make_reconciler(gateway)

    reconciler.start()
    await wait_until(lambda: gateway.connect_calls == 2 and reconciler.state == ReconcilerState.LISTENING)

    # Listeners dropped on failure and attached exactly once again
    assert gateway.listeners == ["DonationReceived"]
    assert reconciler.last_error == "socket closed"
    await reconciler.shutdown()


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_backoff():
    gateway = FakeGateway(poll_results=[ChainTransportError("socket closed")])
    reconciler = make_reconciler(gateway, reconnect_seconds=60)

    reconciler.start()
    await wait_until(lambda: reconciler.state == ReconcilerState.RECONNECTING)
    assert gateway.listeners == []

    await asyncio.wait_for(reconciler.shutdown(), timeout=1)

    assert reconciler.state == ReconcilerState.DISCONNECTED
    assert not reconciler.running
    assert gateway.connect_calls == 1


@pytest.mark.asyncio
async def test_shutdown_is_idempotent_and_final():
    gateway = FakeGateway()
    reconciler = make_reconciler(gateway)

    # Before start
    await reconciler.shutdown()
    await reconciler.shutdown()

    assert reconciler.state == ReconcilerState.DISCONNECTED
    assert reconciler.start() is None
    assert gateway.connect_calls == 0


@pytest.mark.asyncio
async def test_start_delay_defers_connection():
    gateway = FakeGateway()
    reconciler = make_reconciler(gateway, start_delay=60)

    reconciler.start()
    await asyncio.sleep(0.05)

    assert gateway.connect_calls == 0
    assert reconciler.state == ReconcilerState.DISCONNECTED
    await asyncio.wait_for(reconciler.shutdown(), timeout=1)


class SlowGateway(FakeGateway):
    """Dispatch blocks in a worker thread long enough for shutdown to arrive mid-event"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.started = threading.Event()

    def dispatch(self, event):
        self.started.set()
        time.sleep(0.1)
        self.dispatched.append(event)


@pytest.mark.asyncio
async def test_shutdown_waits_for_event_in_progress():
    events = [donation_event("0x1", 101), donation_event("0x2", 102)]
    gateway = SlowGateway(poll_results=[events])
    reconciler = make_reconciler(gateway)

    reconciler.start()
    await wait_until(gateway.started.is_set)

    await asyncio.wait_for(reconciler.shutdown(), timeout=2)

    # The first handler ran to completion; the second event never started
    assert [e.transaction_hash for e in gateway.dispatched] == ["0x1"]
    assert reconciler.events_processed == 1
    assert gateway.listeners == []
    assert reconciler.state == ReconcilerState.DISCONNECTED
