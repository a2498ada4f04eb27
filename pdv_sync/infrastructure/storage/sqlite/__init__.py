"""SQLite storage implementations."""

from pdv_sync.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from pdv_sync.infrastructure.storage.sqlite.outbox_store import SQLiteOutboxStore
from pdv_sync.infrastructure.storage.sqlite.sales_store import SQLiteSalesStore

# Singleton instances
_outbox_store: SQLiteOutboxStore | None = None
_sales_store: SQLiteSalesStore | None = None


async def get_outbox_store() -> SQLiteOutboxStore:
    """Get singleton outbox store instance."""
    global _outbox_store
    if _outbox_store is None:
        _outbox_store = SQLiteOutboxStore()
    return _outbox_store


async def get_sales_store() -> SQLiteSalesStore:
    """Get singleton sales store, sharing the outbox store."""
    global _sales_store
    if _sales_store is None:
        from pdv_sync.config import get_settings

        _sales_store = SQLiteSalesStore(
            outbox_store=await get_outbox_store(),
            series=get_settings().fiscal.series,
        )
    return _sales_store


def reset_stores() -> None:
    """Drop the store singletons (for testing)."""
    global _outbox_store, _sales_store
    _outbox_store = None
    _sales_store = None


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Store classes
    "SQLiteOutboxStore",
    "SQLiteSalesStore",
    # Factory functions
    "get_outbox_store",
    "get_sales_store",
    "reset_stores",
]
