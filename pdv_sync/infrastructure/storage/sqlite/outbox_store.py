"""SQLite implementation of the fiscal document outbox (vendas_sync_queue)."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite

from pdv_sync.config import get_logger
from pdv_sync.core.entities.outbox import OutboxEntry, OutboxStatus
from pdv_sync.core.exceptions import DatabaseError, OutboxEntryNotFoundError
from pdv_sync.core.interfaces.outbox_store import IOutboxStore
from pdv_sync.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_transaction,
)

logger = get_logger(__name__)


def to_db_timestamp(value: datetime) -> str:
    """Fixed-width ISO timestamp so text ordering matches time ordering."""
    return value.isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None


@asynccontextmanager
async def _db_operation(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except aiosqlite.Error as e:
        logger.error("outbox_db_error", operation=operation, error=str(e))
        raise DatabaseError(operation, str(e)) from e


class SQLiteOutboxStore(IOutboxStore):
    """
    SQLite implementation of the outbox.

    Status updates each run in their own transaction and only touch rows that
    are still PENDING, so a resolved entry can never be moved again by a late
    or repeated update.
    """

    async def append(self, conn: aiosqlite.Connection, entry: OutboxEntry) -> OutboxEntry:
        """
        Insert a new entry using the caller's transaction.

        Only the sale commit transaction calls this; the entry becomes
        visible to the worker when that transaction commits.
        """
        cursor = await conn.execute(
            """
            INSERT INTO vendas_sync_queue (
                venda_id, xml_assinado, status, tentativas, data_criacao
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                entry.sale_id,
                entry.document_payload,
                OutboxStatus.PENDING.value,
                0,
                to_db_timestamp(entry.created_at),
            ),
        )
        return entry.model_copy(
            update={"id": cursor.lastrowid, "status": OutboxStatus.PENDING, "attempts": 0}
        )

    async def fetch_pending(self, limit: int) -> list[OutboxEntry]:
        """Return up to `limit` PENDING entries in creation order."""
        if limit <= 0:
            return []

        async with _db_operation("fetch_pending"), get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM vendas_sync_queue
                WHERE status = ?
                ORDER BY data_criacao ASC, id ASC
                LIMIT ?
                """,
                (OutboxStatus.PENDING.value, limit),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    async def mark_synced(self, entry_id: int, protocol: str | None = None) -> bool:
        """PENDING → SYNCED. No-op returning False if already resolved."""
        async with _db_operation("mark_synced"), get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE vendas_sync_queue
                SET status = ?, protocolo = ?, ultimo_erro = NULL, data_sincronizacao = ?
                WHERE id = ? AND status = ?
                """,
                (
                    OutboxStatus.SYNCED.value,
                    protocol,
                    to_db_timestamp(datetime.now(UTC)),
                    entry_id,
                    OutboxStatus.PENDING.value,
                ),
            )
            if cursor.rowcount == 0:
                status = await self._current_status(conn, entry_id)
                logger.debug("outbox_entry_already_resolved", entry_id=entry_id, status=status)
                return False
        return True

    async def mark_attempt_failed(self, entry_id: int, error: str | None = None) -> None:
        """Record a failed transmission; the entry stays PENDING."""
        async with _db_operation("mark_attempt_failed"), get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE vendas_sync_queue
                SET tentativas = tentativas + 1, ultimo_erro = ?
                WHERE id = ? AND status = ?
                """,
                (error, entry_id, OutboxStatus.PENDING.value),
            )
            if cursor.rowcount == 0:
                status = await self._current_status(conn, entry_id)
                logger.debug("outbox_entry_already_resolved", entry_id=entry_id, status=status)

    async def mark_failed_permanent(self, entry_id: int, reason: str) -> bool:
        """Operator escalation: PENDING → FAILED_PERMANENT."""
        async with _db_operation("mark_failed_permanent"), get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE vendas_sync_queue
                SET status = ?, ultimo_erro = ?, data_sincronizacao = ?
                WHERE id = ? AND status = ?
                """,
                (
                    OutboxStatus.FAILED_PERMANENT.value,
                    reason,
                    to_db_timestamp(datetime.now(UTC)),
                    entry_id,
                    OutboxStatus.PENDING.value,
                ),
            )
            if cursor.rowcount == 0:
                await self._current_status(conn, entry_id)
                return False

        logger.warning("outbox_entry_failed_permanent", entry_id=entry_id, reason=reason)
        return True

    async def get_entry(self, entry_id: int) -> OutboxEntry | None:
        """Get entry by ID."""
        async with _db_operation("get_entry"), get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM vendas_sync_queue WHERE id = ?",
                (entry_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_entry(row) if row else None

    async def get_by_sale(self, sale_id: int) -> OutboxEntry | None:
        """Get the entry produced by a sale."""
        async with _db_operation("get_by_sale"), get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM vendas_sync_queue WHERE venda_id = ?",
                (sale_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_entry(row) if row else None

    async def count_by_status(self) -> dict[OutboxStatus, int]:
        """Count entries per status (every status present, zero if none)."""
        counts = {status: 0 for status in OutboxStatus}
        async with _db_operation("count_by_status"), get_connection() as conn:
            cursor = await conn.execute(
                "SELECT status, COUNT(*) FROM vendas_sync_queue GROUP BY status"
            )
            for row in await cursor.fetchall():
                counts[OutboxStatus(row[0])] = row[1]
        return counts

    @staticmethod
    async def _current_status(conn: aiosqlite.Connection, entry_id: int) -> str:
        """Status of an entry, raising if it does not exist."""
        cursor = await conn.execute(
            "SELECT status FROM vendas_sync_queue WHERE id = ?",
            (entry_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise OutboxEntryNotFoundError(entry_id)
        return row["status"]

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> OutboxEntry:
        """Convert a database row to an OutboxEntry entity."""
        return OutboxEntry(
            id=row["id"],
            sale_id=row["venda_id"],
            document_payload=row["xml_assinado"],
            status=OutboxStatus(row["status"]),
            attempts=row["tentativas"],
            protocol=row["protocolo"],
            last_error=row["ultimo_erro"],
            created_at=from_db_timestamp(row["data_criacao"]) or datetime.now(UTC),
            resolved_at=from_db_timestamp(row["data_sincronizacao"]),
        )
