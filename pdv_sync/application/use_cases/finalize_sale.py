"""Finalize Sale Use Case: commits a sale and queues its NFC-e."""

import time
from dataclasses import dataclass

import pydantic

from pdv_sync.application.dto.requests import FinalizeSaleRequest, SaleItemRequest
from pdv_sync.application.dto.responses import FinalizeSaleResponse
from pdv_sync.config import get_logger, get_settings
from pdv_sync.core.entities import Sale, SaleItem, TaxTotals
from pdv_sync.core.exceptions import CommitError, SigningError, ValidationError
from pdv_sync.core.interfaces import ISalesStore
from pdv_sync.core.services import FiscalDocumentBuilder, SyncWorker, TaxEngine, TaxRates

logger = get_logger(__name__)

TAX_COMPONENTS = ("icms", "pis", "cofins", "ibs", "cbs")


@dataclass
class FinalizeSaleResult:
    """Result of finalizing a sale."""

    success: bool
    sale_id: int | str | None = None
    error: str | None = None
    sale: Sale | None = None
    degraded: bool = False


class FinalizeSaleUseCase:
    """
    Turn a checkout cart into a committed sale plus a queued fiscal document.

    The sale never waits for the network: the document is signed and stored
    in the outbox, and the sync worker transmits it later. Failures are
    returned as success=False instead of being raised so the checkout always
    gets a {success, sale_id, error} answer.
    """

    def __init__(
        self,
        sales_store: ISalesStore | None = None,
        document_builder: FiscalDocumentBuilder | None = None,
        sync_worker: SyncWorker | None = None,
        tax_engine: TaxEngine | None = None,
    ):
        self._sales_store = sales_store
        self._document_builder = document_builder
        self._sync_worker = sync_worker
        self._tax_engine = tax_engine

    async def _get_sales_store(self) -> ISalesStore:
        if self._sales_store is None:
            from pdv_sync.infrastructure.storage.sqlite import get_sales_store

            self._sales_store = await get_sales_store()
        return self._sales_store

    def _get_document_builder(self) -> FiscalDocumentBuilder:
        if self._document_builder is None:
            from pdv_sync.application.services import get_document_builder

            self._document_builder = get_document_builder()
        return self._document_builder

    def _get_tax_engine(self) -> TaxEngine:
        if self._tax_engine is None:
            from pdv_sync.application.services import get_tax_engine

            self._tax_engine = get_tax_engine()
        return self._tax_engine

    def _get_sync_worker(self) -> SyncWorker | None:
        if self._sync_worker is None:
            from pdv_sync.application.services import get_running_sync_worker

            return get_running_sync_worker()
        return self._sync_worker

    async def execute(self, request: FinalizeSaleRequest) -> FinalizeSaleResult:
        """Execute finalize sale use case."""
        logger.info(
            "finalize_sale_started",
            total=request.total,
            items=len(request.items),
            payment_method=request.payment_method.value,
            is_offline=request.is_offline,
        )

        try:
            sale = self._to_sale(request)
        except ValidationError as e:
            logger.warning("finalize_sale_invalid", error=e.message)
            return FinalizeSaleResult(success=False, error=e.message)

        sales_store = await self._get_sales_store()
        builder = self._get_document_builder()

        try:
            committed = await sales_store.commit_sale(sale, builder.render)
        except SigningError as e:
            return FinalizeSaleResult(success=False, error=e.message)
        except CommitError as e:
            if e.unavailable and get_settings().degraded_mode_allowed:
                return self._degraded_result(e)
            return FinalizeSaleResult(success=False, error=e.message)

        self._nudge_worker()

        logger.info(
            "finalize_sale_complete",
            sale_id=committed.id,
            document_number=committed.document_number,
            mode=committed.emission_mode.value,
        )
        return FinalizeSaleResult(success=True, sale_id=committed.id, sale=committed)

    def _to_sale(self, request: FinalizeSaleRequest) -> Sale:
        try:
            items = [self._to_item(item) for item in request.items]
            return Sale(
                total=request.total,
                payment_method=request.payment_method,
                is_offline=request.is_offline,
                tax_totals=self._tax_totals(request, items),
                items=items,
            )
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "sale"
            raise ValidationError(field, first["msg"], first.get("input")) from e

    def _to_item(self, request: SaleItemRequest) -> SaleItem:
        """Build a line item, filling tax values the checkout left at zero."""
        item = SaleItem(
            description=request.description,
            quantity=request.quantity,
            unit_price=request.unit_price,
        )
        computed = self._get_tax_engine().calculate(
            item.line_total,
            TaxRates(
                icms=request.icms_rate,
                pis=request.pis_rate,
                cofins=request.cofins_rate,
                ibs=request.ibs_rate,
                cbs=request.cbs_rate,
            ),
        )
        return item.model_copy(
            update={
                f"{tax}_value": getattr(request, f"{tax}_value") or getattr(computed, tax)
                for tax in TAX_COMPONENTS
            }
        )

    def _tax_totals(self, request: FinalizeSaleRequest, items: list[SaleItem]) -> TaxTotals:
        sent = request.tax_totals
        return TaxTotals(
            **{
                tax: getattr(sent, tax)
                or round(sum(getattr(item, f"{tax}_value") for item in items), 2)
                for tax in TAX_COMPONENTS
            }
        )

    def _degraded_result(self, error: CommitError) -> FinalizeSaleResult:
        sale_id = f"MOCK-{int(time.time() * 1000)}"
        logger.warning(
            "sale_commit_degraded_mock",
            sale_id=sale_id,
            stage=error.stage,
            error=error.message,
        )
        return FinalizeSaleResult(success=True, sale_id=sale_id, degraded=True)

    def _nudge_worker(self) -> None:
        if not get_settings().sync.nudge_after_commit:
            return
        worker = self._get_sync_worker()
        if worker is not None:
            worker.nudge()

    def to_response(self, result: FinalizeSaleResult) -> FinalizeSaleResponse:
        """Convert result to API response."""
        return FinalizeSaleResponse(
            success=result.success,
            sale_id=result.sale_id,
            error=result.error,
        )
