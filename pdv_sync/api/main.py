"""
FastAPI application factory.

Creates and configures the terminal's local API. The lifespan owns the
database pool and the sync worker.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pdv_sync.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from pdv_sync.api.middleware.error_handler import setup_exception_handlers
from pdv_sync.api.routes import health_router, sales_router, sync_router
from pdv_sync.config import configure_logging, get_logger, get_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.

    Startup: migrate, open the pool, start the worker.
    Shutdown: stop the worker first so an in-flight tick can still write its
    outcome, then close the pool.
    """
    settings = get_settings()
    configure_logging()

    logger.info(
        "application_starting",
        host=settings.api.host,
        port=settings.api.port,
        environment=settings.environment,
    )

    try:
        from pdv_sync.infrastructure.storage.sqlite import get_pool
        from pdv_sync.infrastructure.storage.sqlite.migrations import migrate

        await migrate()
        logger.info("database_initialized")

        await get_pool()
        logger.info("connection_pool_ready")

    except Exception as e:
        logger.error("database_init_failed", error=str(e))
        raise

    worker = None
    if settings.sync.enabled:
        from pdv_sync.application.services import get_sync_worker

        worker = await get_sync_worker()
        worker.start()
    else:
        logger.warning("sync_worker_disabled")

    logger.info("application_started")

    yield

    logger.info("application_stopping")

    if worker is not None:
        await worker.stop()

    try:
        from pdv_sync.infrastructure.storage.sqlite import close_pool

        await close_pool()

    except Exception as e:
        logger.warning("connection_pool_close_failed", error=str(e))

    logger.info("application_stopped")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Offline-first NFC-e emission and synchronization for the PDV",
        version=settings.app_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(sales_router)
    app.include_router(sync_router)

    # Root health endpoint (for supervisors)
    @app.get("/health")
    async def root_health() -> dict[str, str]:
        """Simple health check at root level."""
        return {
            "status": "healthy",
            "version": settings.app_version,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "pdv_sync.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.debug,
    )
