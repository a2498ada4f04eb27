"""
Dependency injection container for FastAPI.

Provides service instances to route handlers. Tests replace these through
app.dependency_overrides.
"""

from pdv_sync.application.services import get_sync_worker
from pdv_sync.application.use_cases import FinalizeSaleUseCase
from pdv_sync.config import Settings, get_settings
from pdv_sync.core.interfaces import IConnectivityProbe
from pdv_sync.core.services import SyncWorker
from pdv_sync.infrastructure.network import get_connectivity_probe
from pdv_sync.infrastructure.storage.sqlite import (
    SQLiteOutboxStore,
    SQLiteSalesStore,
    get_outbox_store,
    get_sales_store,
)


def get_app_settings() -> Settings:
    """Get application settings."""
    return get_settings()


# Use case dependencies
def get_finalize_sale_use_case() -> FinalizeSaleUseCase:
    """Get finalize sale use case."""
    return FinalizeSaleUseCase()


# Store dependencies
async def get_sales() -> SQLiteSalesStore:
    """Get sales store."""
    return await get_sales_store()


async def get_outbox() -> SQLiteOutboxStore:
    """Get outbox store."""
    return await get_outbox_store()


# Sync dependencies
async def get_worker() -> SyncWorker:
    """Get the sync worker (started by the lifespan when enabled)."""
    return await get_sync_worker()


def get_probe() -> IConnectivityProbe:
    """Get connectivity probe."""
    return get_connectivity_probe()
