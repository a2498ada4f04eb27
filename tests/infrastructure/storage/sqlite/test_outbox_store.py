"""Tests for the SQLite outbox store."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest

from pdv_sync.core.entities import OutboxEntry, OutboxStatus
from pdv_sync.core.exceptions import OutboxEntryNotFoundError
from pdv_sync.infrastructure.storage.sqlite import SQLiteOutboxStore, get_transaction

BASE_TIME = datetime(2024, 3, 15, 12, 0, 0, tzinfo=UTC)


async def _insert_sale_row(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute(
        """
        INSERT INTO vendas (total, payment_method, created_at)
        VALUES (10.0, 'money', ?)
        """,
        (BASE_TIME.isoformat(),),
    )
    return cursor.lastrowid


async def _append(store: SQLiteOutboxStore, created_at: datetime, payload: str = "<NFe/>") -> OutboxEntry:
    async with get_transaction() as conn:
        sale_id = await _insert_sale_row(conn)
        return await store.append(
            conn,
            OutboxEntry(sale_id=sale_id, document_payload=payload, created_at=created_at),
        )


@pytest.fixture
def store() -> SQLiteOutboxStore:
    return SQLiteOutboxStore()


class TestAppendAndFetch:
    async def test_append_assigns_id(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        assert entry.id is not None
        assert entry.status == OutboxStatus.PENDING
        fetched = await store.get_entry(entry.id)
        assert fetched.document_payload == "<NFe/>"
        assert fetched.created_at == BASE_TIME

    async def test_fetch_in_creation_order(self, db_pool: Path, store: SQLiteOutboxStore):
        late = await _append(store, BASE_TIME + timedelta(seconds=2), "<late/>")
        early = await _append(store, BASE_TIME, "<early/>")
        middle = await _append(store, BASE_TIME + timedelta(seconds=1), "<middle/>")

        pending = await store.fetch_pending(10)

        assert [e.id for e in pending] == [early.id, middle.id, late.id]

    async def test_equal_timestamps_ordered_by_id(self, db_pool: Path, store: SQLiteOutboxStore):
        first = await _append(store, BASE_TIME)
        second = await _append(store, BASE_TIME)

        pending = await store.fetch_pending(10)

        assert [e.id for e in pending] == [first.id, second.id]

    async def test_fetch_respects_limit(self, db_pool: Path, store: SQLiteOutboxStore):
        for i in range(5):
            await _append(store, BASE_TIME + timedelta(seconds=i))

        assert len(await store.fetch_pending(3)) == 3
        assert await store.fetch_pending(0) == []

    async def test_resolved_entries_excluded(self, db_pool: Path, store: SQLiteOutboxStore):
        synced = await _append(store, BASE_TIME)
        escalated = await _append(store, BASE_TIME + timedelta(seconds=1))
        pending = await _append(store, BASE_TIME + timedelta(seconds=2))

        await store.mark_synced(synced.id, "P1")
        await store.mark_failed_permanent(escalated.id, "rejected")

        assert [e.id for e in await store.fetch_pending(10)] == [pending.id]


class TestStatusUpdates:
    async def test_mark_synced(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        assert await store.mark_synced(entry.id, "135240000000001") is True

        synced = await store.get_entry(entry.id)
        assert synced.status == OutboxStatus.SYNCED
        assert synced.protocol == "135240000000001"
        assert synced.resolved_at is not None

    async def test_mark_synced_is_idempotent(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        await store.mark_synced(entry.id, "P1")
        first = await store.get_entry(entry.id)

        assert await store.mark_synced(entry.id, "P2") is False

        second = await store.get_entry(entry.id)
        assert second.status == OutboxStatus.SYNCED
        assert second.resolved_at == first.resolved_at
        assert second.protocol == "P1"

    async def test_mark_synced_unknown_entry(self, db_pool: Path, store: SQLiteOutboxStore):
        with pytest.raises(OutboxEntryNotFoundError):
            await store.mark_synced(9999)

    async def test_mark_attempt_failed(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        await store.mark_attempt_failed(entry.id, "HTTP 503")
        await store.mark_attempt_failed(entry.id, "timeout")

        failed = await store.get_entry(entry.id)
        assert failed.status == OutboxStatus.PENDING
        assert failed.attempts == 2
        assert failed.last_error == "timeout"
        assert failed.resolved_at is None

    async def test_attempt_after_sync_is_ignored(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)
        await store.mark_synced(entry.id, "P1")

        await store.mark_attempt_failed(entry.id, "late failure")

        synced = await store.get_entry(entry.id)
        assert synced.status == OutboxStatus.SYNCED
        assert synced.attempts == 0

    async def test_mark_failed_permanent(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        assert await store.mark_failed_permanent(entry.id, "duplicate number") is True
        assert await store.mark_failed_permanent(entry.id, "again") is False
        assert await store.mark_synced(entry.id, "P1") is False

        escalated = await store.get_entry(entry.id)
        assert escalated.status == OutboxStatus.FAILED_PERMANENT
        assert escalated.last_error == "duplicate number"

    async def test_mark_failed_permanent_unknown_entry(self, db_pool: Path, store: SQLiteOutboxStore):
        with pytest.raises(OutboxEntryNotFoundError):
            await store.mark_failed_permanent(9999, "reason")

    async def test_count_by_status(self, db_pool: Path, store: SQLiteOutboxStore):
        assert await store.count_by_status() == {
            OutboxStatus.PENDING: 0,
            OutboxStatus.SYNCED: 0,
            OutboxStatus.FAILED_PERMANENT: 0,
        }

        a = await _append(store, BASE_TIME)
        await _append(store, BASE_TIME)
        await store.mark_synced(a.id)

        counts = await store.count_by_status()
        assert counts[OutboxStatus.PENDING] == 1
        assert counts[OutboxStatus.SYNCED] == 1


class TestSchemaGuards:
    async def test_payload_is_immutable(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        async with aiosqlite.connect(db_pool) as conn:
            with pytest.raises(aiosqlite.IntegrityError, match="immutable"):
                await conn.execute(
                    "UPDATE vendas_sync_queue SET xml_assinado = '<other/>' WHERE id = ?",
                    (entry.id,),
                )

    async def test_attempts_cannot_decrease(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)
        await store.mark_attempt_failed(entry.id, "x")

        async with aiosqlite.connect(db_pool) as conn:
            with pytest.raises(aiosqlite.IntegrityError, match="cannot decrease"):
                await conn.execute(
                    "UPDATE vendas_sync_queue SET tentativas = 0 WHERE id = ?",
                    (entry.id,),
                )

    async def test_entries_cannot_be_deleted(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        async with aiosqlite.connect(db_pool) as conn:
            with pytest.raises(aiosqlite.IntegrityError):
                await conn.execute("DELETE FROM vendas_sync_queue WHERE id = ?", (entry.id,))

    async def test_second_entry_for_same_sale_rejected(self, db_pool: Path, store: SQLiteOutboxStore):
        entry = await _append(store, BASE_TIME)

        with pytest.raises(aiosqlite.IntegrityError):
            async with get_transaction() as conn:
                await store.append(
                    conn,
                    OutboxEntry(sale_id=entry.sale_id, document_payload="<dup/>"),
                )
