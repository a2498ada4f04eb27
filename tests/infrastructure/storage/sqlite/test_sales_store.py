"""Tests for the SQLite sale commit transaction."""

from pathlib import Path

import aiosqlite
import pytest

from pdv_sync.core.entities import OutboxStatus, Sale
from pdv_sync.core.exceptions import CommitError, SigningError
from pdv_sync.core.services import FiscalDocumentBuilder
from pdv_sync.infrastructure.storage.sqlite import SQLiteOutboxStore, SQLiteSalesStore


async def _count(db_path: Path, table: str) -> int:
    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute(f"SELECT COUNT(*) FROM {table}")
        row = await cursor.fetchone()
        return row[0]


class TestCommitSale:
    async def test_commit_pix_sale(self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder):
        outbox = SQLiteOutboxStore()
        store = SQLiteSalesStore(outbox_store=outbox)

        committed = await store.commit_sale(sample_sale, builder.render)

        assert committed.id is not None
        assert committed.document_number == 1
        assert all(item.id is not None for item in committed.items)
        assert all(item.sale_id == committed.id for item in committed.items)

        fetched = await store.get_sale(committed.id)
        assert fetched is not None
        assert fetched.total == 42.50
        assert fetched.payment_method.value == "pix"
        assert fetched.tax_totals.icms == 7.65
        assert fetched.document_number == 1
        assert [i.description for i in fetched.items] == ["Cafe torrado 500g", "Pao de queijo"]
        assert fetched.items[1].line_total == 17.50

        entry = await outbox.get_by_sale(committed.id)
        assert entry is not None
        assert entry.status == OutboxStatus.PENDING
        assert entry.attempts == 0
        assert entry.resolved_at is None
        assert "<ds:Signature" in entry.document_payload
        assert "<tpEmis>1</tpEmis>" in entry.document_payload
        assert "<vNF>42.50</vNF>" in entry.document_payload
        assert "<qrCode>" in entry.document_payload

    async def test_tax_values_persisted(
        self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder
    ):
        store = SQLiteSalesStore()
        taxed = sample_sale.model_copy(
            update={
                "tax_totals": sample_sale.tax_totals.model_copy(update={"pis": 0.41, "cofins": 1.9}),
                "items": [
                    sample_sale.items[0].model_copy(update={"pis_value": 0.41, "cofins_value": 1.9}),
                    sample_sale.items[1],
                ],
            }
        )

        committed = await store.commit_sale(taxed, builder.render)
        fetched = await store.get_sale(committed.id)

        assert (fetched.tax_totals.pis, fetched.tax_totals.cofins) == (0.41, 1.9)
        assert (fetched.items[0].pis_value, fetched.items[0].cofins_value) == (0.41, 1.9)
        assert fetched.items[1].pis_value == 0.0

    async def test_offline_sale_queued_in_contingency(
        self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder
    ):
        outbox = SQLiteOutboxStore()
        store = SQLiteSalesStore(outbox_store=outbox)

        committed = await store.commit_sale(
            sample_sale.model_copy(update={"is_offline": True}), builder.render
        )

        entry = await outbox.get_by_sale(committed.id)
        assert "<tpEmis>9</tpEmis>" in entry.document_payload
        assert "<xJust>" in entry.document_payload

    async def test_one_entry_per_sale(self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder):
        store = SQLiteSalesStore()

        for _ in range(5):
            await store.commit_sale(sample_sale, builder.render)

        assert await store.count_sales() == 5
        assert await _count(db_pool, "vendas_sync_queue") == 5
        async with aiosqlite.connect(db_pool) as conn:
            cursor = await conn.execute(
                "SELECT COUNT(DISTINCT venda_id) FROM vendas_sync_queue"
            )
            assert (await cursor.fetchone())[0] == 5

    async def test_document_numbers_are_sequential(
        self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder
    ):
        store = SQLiteSalesStore()

        numbers = [
            (await store.commit_sale(sample_sale, builder.render)).document_number
            for _ in range(3)
        ]

        assert numbers == [1, 2, 3]

    async def test_item_fault_rolls_back_everything(
        self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder
    ):
        async with aiosqlite.connect(db_pool) as conn:
            await conn.execute(
                """
                CREATE TRIGGER test_fail_second_item BEFORE INSERT ON venda_items
                WHEN NEW.description = 'Pao de queijo'
                BEGIN
                    SELECT RAISE(ABORT, 'simulated fault');
                END
                """
            )
            await conn.commit()

        store = SQLiteSalesStore()

        with pytest.raises(CommitError) as exc_info:
            await store.commit_sale(sample_sale, builder.render)

        assert exc_info.value.stage == "items"
        assert exc_info.value.unavailable is False
        assert await _count(db_pool, "vendas") == 0
        assert await _count(db_pool, "venda_items") == 0
        assert await _count(db_pool, "vendas_sync_queue") == 0
        assert await _count(db_pool, "fiscal_sequence") == 0

    async def test_signing_failure_rolls_back(self, db_pool: Path, sample_sale: Sale):
        def broken_renderer(sale: Sale):
            raise SigningError("infNFe element is missing", sale.id)

        store = SQLiteSalesStore()

        with pytest.raises(SigningError):
            await store.commit_sale(sample_sale, broken_renderer)

        assert await _count(db_pool, "vendas") == 0
        assert await _count(db_pool, "venda_items") == 0
        assert await _count(db_pool, "vendas_sync_queue") == 0

    async def test_failed_commit_does_not_burn_a_number(
        self, db_pool: Path, sample_sale: Sale, builder: FiscalDocumentBuilder
    ):
        def broken_renderer(sale: Sale):
            raise SigningError("boom", sale.id)

        store = SQLiteSalesStore()
        with pytest.raises(SigningError):
            await store.commit_sale(sample_sale, broken_renderer)

        committed = await store.commit_sale(sample_sale, builder.render)
        assert committed.document_number == 1


class TestReadSales:
    async def test_get_sale_not_found(self, db_pool: Path):
        store = SQLiteSalesStore()
        assert await store.get_sale(9999) is None

    async def test_count_sales_empty(self, db_pool: Path):
        store = SQLiteSalesStore()
        assert await store.count_sales() == 0


async def test_unreachable_database_is_unavailable(tmp_path: Path, sample_sale: Sale, builder):
    """A pool that cannot open its file reports an unavailable commit."""
    from unittest.mock import MagicMock, patch

    import pdv_sync.infrastructure.storage.sqlite.connection as conn_module

    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    mock_settings = MagicMock()
    mock_settings.storage.db_path = blocker / "pdv.db"
    mock_settings.storage.pool_size = 1
    mock_settings.storage.busy_timeout = 1000

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        try:
            with pytest.raises(CommitError) as exc_info:
                await SQLiteSalesStore().commit_sale(sample_sale, builder.render)
        finally:
            await conn_module.close_pool()

    assert exc_info.value.stage == "connect"
    assert exc_info.value.unavailable is True
