"""
SQLite implementation of sale storage.

A sale, its items, its fiscal number and its outbox entry are written in one
transaction. If any step fails nothing is persisted.
"""

from datetime import UTC, datetime

import aiosqlite

from pdv_sync.config import get_logger
from pdv_sync.core.entities import (
    OutboxEntry,
    PaymentMethod,
    Sale,
    SaleItem,
    SaleStatus,
    TaxTotals,
)
from pdv_sync.core.exceptions import CommitError, PDVSyncError
from pdv_sync.core.interfaces import DocumentRenderer, ISalesStore
from pdv_sync.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_transaction,
)
from pdv_sync.infrastructure.storage.sqlite.outbox_store import (
    SQLiteOutboxStore,
    from_db_timestamp,
    to_db_timestamp,
)

logger = get_logger(__name__)

# SQLite messages that mean the database itself is not usable right now
_UNAVAILABLE_MARKERS = ("unable to open", "locked", "disk i/o", "readonly")


def _is_unavailable(error: Exception) -> bool:
    if isinstance(error, OSError):
        return True
    if isinstance(error, aiosqlite.OperationalError):
        message = str(error).lower()
        return any(marker in message for marker in _UNAVAILABLE_MARKERS)
    return False


class SQLiteSalesStore(ISalesStore):
    """SQLite implementation of sale storage."""

    def __init__(
        self,
        outbox_store: SQLiteOutboxStore | None = None,
        series: int = 1,
    ):
        self.outbox_store = outbox_store or SQLiteOutboxStore()
        self.series = series

    async def commit_sale(self, sale: Sale, render_document: DocumentRenderer) -> Sale:
        """
        Persist a sale and enqueue its signed fiscal document.

        Steps, all inside one BEGIN IMMEDIATE transaction:
        1. Insert the sale row
        2. Insert its items
        3. Reserve the next document number for the series
        4. Render and sign the document for the persisted sale
        5. Append the outbox entry

        Raises:
            CommitError: A storage step failed; the transaction was rolled back
            SigningError: Rendering failed; the transaction was rolled back
        """
        stage = "connect"
        try:
            async with get_transaction(immediate=True) as conn:
                stage = "sale"
                sale_id = await self._insert_sale(conn, sale)

                stage = "items"
                items = [await self._insert_item(conn, sale_id, item) for item in sale.items]

                stage = "numbering"
                document_number = await self._reserve_document_number(conn)
                await conn.execute(
                    "UPDATE vendas SET document_number = ? WHERE id = ?",
                    (document_number, sale_id),
                )

                persisted = sale.model_copy(
                    update={
                        "id": sale_id,
                        "items": items,
                        "document_number": document_number,
                    }
                )

                stage = "signing"
                document = render_document(persisted)

                stage = "outbox"
                entry = await self.outbox_store.append(
                    conn,
                    OutboxEntry(
                        sale_id=sale_id,
                        document_payload=document.xml,
                        created_at=datetime.now(UTC),
                    ),
                )

                stage = "commit"

        except PDVSyncError:
            logger.warning("sale_commit_aborted", stage=stage)
            raise
        except (aiosqlite.Error, OSError) as e:
            unavailable = _is_unavailable(e)
            logger.error(
                "sale_commit_failed",
                stage=stage,
                error=str(e),
                unavailable=unavailable,
            )
            raise CommitError(stage, str(e), unavailable=unavailable) from e

        logger.info(
            "sale_committed",
            sale_id=persisted.id,
            document_number=document_number,
            outbox_entry_id=entry.id,
            items=len(items),
            total=persisted.total,
            mode=persisted.emission_mode.value,
        )
        return persisted

    async def _insert_sale(self, conn: aiosqlite.Connection, sale: Sale) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO vendas (
                total, status, payment_method, total_icms, total_pis, total_cofins,
                total_ibs, total_cbs, is_offline, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                sale.total,
                sale.status.value,
                sale.payment_method.value,
                sale.tax_totals.icms,
                sale.tax_totals.pis,
                sale.tax_totals.cofins,
                sale.tax_totals.ibs,
                sale.tax_totals.cbs,
                1 if sale.is_offline else 0,
                to_db_timestamp(sale.created_at),
            ),
        )
        return cursor.lastrowid

    async def _insert_item(
        self,
        conn: aiosqlite.Connection,
        sale_id: int,
        item: SaleItem,
    ) -> SaleItem:
        """Insert a single line item."""
        cursor = await conn.execute(
            """
            INSERT INTO venda_items (
                venda_id, description, quantity, unit_price, total_price,
                icms_value, pis_value, cofins_value, ibs_value, cbs_value
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                sale_id,
                item.description,
                item.quantity,
                item.unit_price,
                item.line_total,
                item.icms_value,
                item.pis_value,
                item.cofins_value,
                item.ibs_value,
                item.cbs_value,
            ),
        )
        return item.model_copy(update={"id": cursor.lastrowid, "sale_id": sale_id})

    async def _reserve_document_number(self, conn: aiosqlite.Connection) -> int:
        """Increment and return the series counter (caller holds the write lock)."""
        await conn.execute(
            """
            INSERT INTO fiscal_sequence (serie, last_number) VALUES (?, 1)
            ON CONFLICT(serie) DO UPDATE SET last_number = last_number + 1
            """,
            (self.series,),
        )
        cursor = await conn.execute(
            "SELECT last_number FROM fiscal_sequence WHERE serie = ?",
            (self.series,),
        )
        row = await cursor.fetchone()
        return row[0]

    async def get_sale(self, sale_id: int) -> Sale | None:
        """Get sale by ID with items."""
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM vendas WHERE id = ?", (sale_id,))
            row = await cursor.fetchone()
            if row is None:
                return None

            items_cursor = await conn.execute(
                "SELECT * FROM venda_items WHERE venda_id = ? ORDER BY id",
                (sale_id,),
            )
            items = [self._row_to_item(r) for r in await items_cursor.fetchall()]
            return self._row_to_sale(row, items)

    async def count_sales(self) -> int:
        """Count committed sales."""
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM vendas")
            row = await cursor.fetchone()
            return row[0] if row else 0

    def _row_to_sale(self, row: aiosqlite.Row, items: list[SaleItem]) -> Sale:
        """Convert database row to Sale entity."""
        return Sale(
            id=row["id"],
            total=row["total"],
            payment_method=PaymentMethod(row["payment_method"]),
            tax_totals=TaxTotals(
                icms=row["total_icms"],
                pis=row["total_pis"],
                cofins=row["total_cofins"],
                ibs=row["total_ibs"],
                cbs=row["total_cbs"],
            ),
            status=SaleStatus(row["status"]),
            is_offline=bool(row["is_offline"]),
            document_number=row["document_number"],
            items=items,
            created_at=from_db_timestamp(row["created_at"]) or datetime.now(UTC),
        )

    def _row_to_item(self, row: aiosqlite.Row) -> SaleItem:
        """Convert database row to SaleItem entity."""
        return SaleItem(
            id=row["id"],
            sale_id=row["venda_id"],
            description=row["description"],
            quantity=row["quantity"],
            unit_price=row["unit_price"],
            icms_value=row["icms_value"],
            pis_value=row["pis_value"],
            cofins_value=row["cofins_value"],
            ibs_value=row["ibs_value"],
            cbs_value=row["cbs_value"],
        )
