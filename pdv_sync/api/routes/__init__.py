"""API route modules."""

from pdv_sync.api.routes.health import router as health_router
from pdv_sync.api.routes.sales import router as sales_router
from pdv_sync.api.routes.sync import router as sync_router

__all__ = [
    "health_router",
    "sales_router",
    "sync_router",
]
