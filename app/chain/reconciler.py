# app/chain/reconciler.py
"""
Event reconciler - supervised background task that keeps the chain
subscription alive and replays contract events into the database.

States:
    disconnected -> connecting -> listening <-> reconnecting -> disconnected

- setup failures retry every `setup_retry_seconds`, except configuration
  errors, which leave the reconciler disconnected for good
- a failed poll while listening drops the listeners, backs off
  `reconnect_seconds`, reconnects and re-attaches them
- nothing raised in here reaches request handling
"""
from __future__ import annotations
import asyncio
import enum
from typing import Callable, Optional

from app.chain.gateway import ChainGateway
from app.core.exceptions import ChainConfigurationError
from app.core.logging_config import get_chain_logger

log = get_chain_logger("reconciler")


class ReconcilerState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LISTENING = "listening"
    RECONNECTING = "reconnecting"


class EventReconciler:

    def __init__(
        self,
        gateway: ChainGateway,
        attach_listeners: Callable[[ChainGateway], None],
        setup_retry_seconds: float = 30.0,
        reconnect_seconds: float = 10.0,
        poll_interval: float = 5.0,
        start_delay: float = 0.0
    ):
        self.gateway = gateway
        self.attach_listeners = attach_listeners
        self.setup_retry_seconds = setup_retry_seconds
        self.reconnect_seconds = reconnect_seconds
        self.poll_interval = poll_interval
        self.start_delay = start_delay

        self.state = ReconcilerState.DISCONNECTED
        self.last_error: Optional[str] = None
        self.events_processed = 0

        self._task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        self._shutdown_called = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> dict:
        return {
            "configured": self.gateway.configured,
            "state": self.state.value,
            "events_processed": self.events_processed,
            "next_block": self.gateway.next_block,
            "last_error": self.last_error,
        }

    def _set_state(self, state: ReconcilerState) -> None:
        if state != self.state:
            log.info(f"🔄 Reconciler state: {self.state.value} -> {state.value}")
        self.state = state

    def _attach(self) -> None:
        self.gateway.remove_all_listeners()
        self.attach_listeners(self.gateway)
        log.info(f"🎧 Contract event listeners attached ({self.gateway.listener_count()})")

    # ────────────────────────────────────────────
    # Lifecycle
    # ────────────────────────────────────────────

    def start(self) -> Optional[asyncio.Task]:
        """Spawn the background task (no-op if already started or shut down)"""
        if self._shutdown_called:
            log.warning("⚠️ Reconciler already shut down - not starting")
            return None
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="chain-event-reconciler")
        return self._task

    async def shutdown(self) -> None:
        """
        Wait for an in-flight event handler, cancel any pending backoff or poll,
        detach listeners and go disconnected.
        Only the first call does anything; it is safe before start().
        """
        if self._shutdown_called:
            log.debug("Reconciler shutdown already done")
            return
        self._shutdown_called = True
        log.info("🧹 Shutting down chain event reconciler...")

        task = self._task
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            # Let the event being handled finish; the loop stops before the next one
            await asyncio.wait([inflight])
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.gateway.remove_all_listeners()
        self._set_state(ReconcilerState.DISCONNECTED)
        log.info("✅ Event listeners cleaned up successfully")

    # ────────────────────────────────────────────
    # Background task
    # ────────────────────────────────────────────

    async def _run(self) -> None:
        try:
            if self.start_delay > 0:
                await asyncio.sleep(self.start_delay)
            if await self._connect_with_retry():
                await self._listen()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = str(e)
            log.error(f"❌ Reconciler stopped unexpectedly: {e}", exc_info=True)
            self.gateway.remove_all_listeners()
            self._set_state(ReconcilerState.DISCONNECTED)

    async def _connect_with_retry(self) -> bool:
        while True:
            self._set_state(ReconcilerState.CONNECTING)
            try:
                await asyncio.to_thread(self.gateway.connect)
            except ChainConfigurationError as e:
                self.last_error = str(e)
                log.error(f"❌ Chain not configured, running without event listeners: {e}")
                self._set_state(ReconcilerState.DISCONNECTED)
                return False
            except Exception as e:
                self.last_error = str(e)
                log.error(f"❌ Failed to initialize blockchain listeners: {e} - retrying in {self.setup_retry_seconds}s")
                await asyncio.sleep(self.setup_retry_seconds)
                continue

            self._attach()
            self._set_state(ReconcilerState.LISTENING)
            return True

    async def _reconnect(self) -> bool:
        self._set_state(ReconcilerState.RECONNECTING)
        self.gateway.remove_all_listeners()

        while True:
            await asyncio.sleep(self.reconnect_seconds)
            log.info("🔄 Attempting to reconnect event listeners...")
            try:
                await asyncio.to_thread(self.gateway.connect)
            except ChainConfigurationError as e:
                self.last_error = str(e)
                log.error(f"❌ Chain configuration became invalid: {e}")
                self._set_state(ReconcilerState.DISCONNECTED)
                return False
            except Exception as e:
                self.last_error = str(e)
                log.error(f"❌ Reconnect failed: {e} - retrying in {self.reconnect_seconds}s")
                continue

            self._attach()
            self._set_state(ReconcilerState.LISTENING)
            return True

    async def _listen(self) -> None:
        while True:
            try:
                events = await asyncio.to_thread(self.gateway.poll)
            except Exception as e:
                self.last_error = str(e)
                log.error(f"❌ Provider connection error: {e}")
                if not await self._reconnect():
                    return
                continue

            for event in events:
                if self._shutdown_called:
                    return
                log.info(f"📡 Blockchain event: {event.name} tx={event.transaction_hash} args={event.args}")
                # Shielded so cancellation never abandons a handler mid-write
                self._inflight = asyncio.ensure_future(asyncio.to_thread(self.gateway.dispatch, event))
                await asyncio.shield(self._inflight)
                self.events_processed += 1

            await asyncio.sleep(self.poll_interval)
