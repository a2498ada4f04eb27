"""Storage infrastructure implementations."""

from pdv_sync.infrastructure.storage.sqlite import (
    SQLiteOutboxStore,
    SQLiteSalesStore,
    close_pool,
    get_connection,
    get_outbox_store,
    get_pool,
    get_sales_store,
    get_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteOutboxStore",
    "SQLiteSalesStore",
    "get_outbox_store",
    "get_sales_store",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
