"""
Outbox synchronization worker.

A recurring timer spawns ticks. Each tick probes connectivity, fetches a
bounded batch of PENDING entries oldest first and transmits them one by one.

    IDLE --timer/nudge--> SCANNING --reachable, entries--> DRAINING --> IDLE
                              \\--unreachable or empty-------------------/

Only one tick runs at a time. A tick that fires while another one is
SCANNING or DRAINING is dropped, not queued. There is no backoff: every tick
retries every pending entry at the same cadence, whatever its attempt count.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum

from pdv_sync.config import get_logger
from pdv_sync.core.entities.outbox import OutboxEntry
from pdv_sync.core.exceptions import PDVSyncError
from pdv_sync.core.interfaces.network import (
    IConnectivityProbe,
    ITransmissionClient,
    TransmissionResult,
)
from pdv_sync.core.interfaces.outbox_store import IOutboxStore

logger = get_logger(__name__)


class WorkerState(str, Enum):
    """States of the worker loop."""

    IDLE = "IDLE"
    SCANNING = "SCANNING"
    DRAINING = "DRAINING"


@dataclass
class TickResult:
    """Summary of one scan/drain cycle."""

    skipped: bool = False
    reachable: bool | None = None
    fetched: int = 0
    synced: int = 0
    failed: int = 0
    already_resolved: int = 0
    error: str | None = None


class SyncWorker:
    """
    Drains the fiscal outbox when the terminal is online.

    Pure service: the outbox store, the probe and the transmission client are
    injected. Must be started from within a running event loop.
    """

    def __init__(
        self,
        outbox_store: IOutboxStore,
        probe: IConnectivityProbe,
        client: ITransmissionClient,
        interval_seconds: float = 5.0,
        batch_size: int = 10,
        probe_timeout: float = 2.0,
        transmit_timeout: float = 10.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self._outbox_store = outbox_store
        self._probe = probe
        self._client = client
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.probe_timeout = probe_timeout
        self.transmit_timeout = transmit_timeout

        self._state = WorkerState.IDLE
        self._timer: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[TickResult]] = set()
        self.last_result: TickResult | None = None

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """True while the timer is armed."""
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Arm the recurring timer. Calling start twice is a no-op."""
        if self.is_running:
            return
        self._timer = asyncio.create_task(self._run_timer(), name="sync-worker-timer")
        logger.info(
            "sync_worker_started",
            interval_seconds=self.interval_seconds,
            batch_size=self.batch_size,
            client=self._client.name,
        )

    async def stop(self) -> None:
        """
        Disarm the timer.

        A tick already in flight is allowed to finish so no entry is left
        half-processed; this coroutine waits for it.
        """
        if self._timer is not None:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None

        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

        logger.info("sync_worker_stopped")

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.nudge()

    def nudge(self) -> asyncio.Task[TickResult] | None:
        """
        Schedule a tick without waiting for it.

        Returns None when a cycle is already running. Safe to call any number
        of times; used by the timer and right after a sale is committed.
        """
        if self._state is not WorkerState.IDLE:
            logger.debug("sync_tick_dropped", state=self._state.value)
            return None

        task = asyncio.create_task(self.tick())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        return task

    async def tick(self) -> TickResult:
        """Run one scan/drain cycle, or return a skipped result if one is running."""
        if self._state is not WorkerState.IDLE:
            logger.debug("sync_tick_skipped", state=self._state.value)
            return TickResult(skipped=True)

        self._state = WorkerState.SCANNING
        result = TickResult()
        try:
            result.reachable = await self._is_reachable()
            if not result.reachable:
                logger.debug("sync_offline")
                return result

            entries = await self._outbox_store.fetch_pending(self.batch_size)
            result.fetched = len(entries)
            if not entries:
                return result

            self._state = WorkerState.DRAINING
            logger.info("sync_drain_started", pending=len(entries))

            # Sequential on purpose: the authority numbers documents in order
            for entry in entries:
                synced = await self._sync_entry(entry)
                if synced is None:
                    result.already_resolved += 1
                elif synced:
                    result.synced += 1
                else:
                    result.failed += 1

            logger.info(
                "sync_drain_finished",
                synced=result.synced,
                failed=result.failed,
                already_resolved=result.already_resolved,
            )

        except PDVSyncError as e:
            result.error = e.message
            logger.error("sync_tick_failed", error=e.message, code=e.code)

        finally:
            self._state = WorkerState.IDLE
            self.last_result = result

        return result

    async def _is_reachable(self) -> bool:
        """Probe connectivity; a probe that hangs past probe_timeout means offline."""
        try:
            return await asyncio.wait_for(
                self._probe.is_reachable(self.probe_timeout),
                timeout=self.probe_timeout,
            )
        except TimeoutError:
            logger.debug("sync_probe_timeout", timeout=self.probe_timeout)
            return False

    async def _sync_entry(self, entry: OutboxEntry) -> bool | None:
        """
        Transmit one entry and record the outcome.

        True if synced, False if the attempt failed, None if the entry was
        resolved by someone else while it was in flight.
        """
        assert entry.id is not None

        try:
            outcome = await asyncio.wait_for(
                self._client.transmit(entry.document_payload),
                timeout=self.transmit_timeout,
            )
        except TimeoutError:
            outcome = TransmissionResult(
                success=False,
                error=f"no answer after {self.transmit_timeout}s",
            )
        except Exception as e:
            # Any client failure is a failed attempt, never a failed tick
            outcome = TransmissionResult(success=False, error=str(e) or type(e).__name__)

        if outcome.success:
            if not await self._outbox_store.mark_synced(entry.id, outcome.protocol):
                logger.warning(
                    "outbox_entry_already_resolved",
                    entry_id=entry.id,
                    sale_id=entry.sale_id,
                    protocol=outcome.protocol,
                )
                return None
            logger.info(
                "outbox_entry_synced",
                entry_id=entry.id,
                sale_id=entry.sale_id,
                protocol=outcome.protocol,
            )
            return True

        await self._outbox_store.mark_attempt_failed(entry.id, outcome.error)
        logger.warning(
            "outbox_entry_attempt_failed",
            entry_id=entry.id,
            sale_id=entry.sale_id,
            attempts=entry.attempts + 1,
            error=outcome.error,
        )
        return False
