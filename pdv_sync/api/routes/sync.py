"""Sync worker status and operator endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from pdv_sync.api.dependencies import get_app_settings, get_outbox, get_worker
from pdv_sync.api.routes.sales import outbox_entry_response
from pdv_sync.application.dto.requests import FailPermanentRequest
from pdv_sync.application.dto.responses import (
    OutboxEntryResponse,
    SyncStatusResponse,
    TickResponse,
)
from pdv_sync.config import Settings, get_logger
from pdv_sync.core.exceptions import OutboxEntryNotFoundError
from pdv_sync.core.interfaces import IOutboxStore
from pdv_sync.core.services import SyncWorker, TickResult

logger = get_logger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


def _tick_response(result: TickResult) -> TickResponse:
    return TickResponse(
        skipped=result.skipped,
        reachable=result.reachable,
        fetched=result.fetched,
        synced=result.synced,
        failed=result.failed,
        error=result.error,
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    worker: SyncWorker = Depends(get_worker),
    outbox_store: IOutboxStore = Depends(get_outbox),
    settings: Settings = Depends(get_app_settings),
) -> SyncStatusResponse:
    """Worker state and outbox counts by status."""
    counts = await outbox_store.count_by_status()

    return SyncStatusResponse(
        enabled=settings.sync.enabled,
        running=worker.is_running,
        state=worker.state.value,
        interval_seconds=worker.interval_seconds,
        batch_size=worker.batch_size,
        transmission_provider=settings.sync.transmission_provider,
        counts={status.value: count for status, count in counts.items()},
        last_tick=_tick_response(worker.last_result) if worker.last_result else None,
    )


@router.post("/trigger", response_model=TickResponse)
async def trigger_sync(worker: SyncWorker = Depends(get_worker)) -> TickResponse:
    """
    Run one scan/drain cycle now and return its result.

    Returns skipped=true if a cycle is already running.
    """
    result = await worker.tick()
    logger.info("sync_triggered", skipped=result.skipped, synced=result.synced)
    return _tick_response(result)


@router.post("/entries/{entry_id}/fail-permanent", response_model=OutboxEntryResponse)
async def fail_permanent(
    entry_id: int,
    request: FailPermanentRequest,
    outbox_store: IOutboxStore = Depends(get_outbox),
) -> OutboxEntryResponse:
    """
    Escalate a PENDING entry to FAILED_PERMANENT.

    The worker stops retrying it. Resolved entries cannot be escalated.
    """
    changed = await outbox_store.mark_failed_permanent(entry_id, request.reason)
    if not changed:
        raise HTTPException(status_code=409, detail=f"Outbox entry {entry_id} is already resolved")

    entry = await outbox_store.get_entry(entry_id)
    if entry is None:
        raise OutboxEntryNotFoundError(entry_id)
    return outbox_entry_response(entry)
