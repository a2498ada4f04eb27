"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from pdv_sync.api.dependencies import get_app_settings, get_probe
from pdv_sync.application.dto.responses import HealthResponse, ProviderHealthResponse
from pdv_sync.config import Settings
from pdv_sync.core.interfaces import IConnectivityProbe

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Basic health check."""
    from pdv_sync.application.services import get_running_sync_worker

    worker = get_running_sync_worker()
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=time.time() - _start_time,
        details={
            "sync_worker": worker.state.value if worker else "STOPPED",
            "series": settings.fiscal.series,
        },
    )


@router.get("/db", response_model=HealthResponse)
async def db_health(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Database health check.

    An unhealthy database means sales cannot be committed.
    """
    from pdv_sync.infrastructure.storage.sqlite import get_pool

    try:
        pool = await get_pool()
        latency = await pool.ping()
        db_status = ProviderHealthResponse(name="sqlite", available=True, latency_ms=latency)
    except Exception as e:
        db_status = ProviderHealthResponse(name="sqlite", available=False, error=str(e))

    return HealthResponse(
        status="healthy" if db_status.available else "unhealthy",
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=time.time() - _start_time,
        database=db_status,
    )


@router.get("/connectivity", response_model=HealthResponse)
async def connectivity_health(
    probe: IConnectivityProbe = Depends(get_probe),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """
    Connectivity check.

    Offline is "degraded", not "unhealthy": sales keep being committed and
    queued in contingency.
    """
    result = await probe.check()
    probe_status = ProviderHealthResponse(
        name=result.target,
        available=result.reachable,
        latency_ms=result.latency_ms,
        error=result.error,
    )

    return HealthResponse(
        status="healthy" if result.reachable else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=time.time() - _start_time,
        connectivity=probe_status,
    )
