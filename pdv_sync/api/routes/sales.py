"""
Sales endpoints.

POST /api/sales is the checkout's single write call. It always answers 200
with {success, sale_id, error}; a failed commit is reported in the body.
"""

from fastapi import APIRouter, Depends

from pdv_sync.api.dependencies import get_finalize_sale_use_case, get_outbox, get_sales
from pdv_sync.application.dto.requests import FinalizeSaleRequest
from pdv_sync.application.dto.responses import (
    FinalizeSaleResponse,
    OutboxEntryResponse,
    SaleItemResponse,
    SaleResponse,
)
from pdv_sync.application.use_cases import FinalizeSaleUseCase
from pdv_sync.config import get_logger
from pdv_sync.core.entities import OutboxEntry, Sale
from pdv_sync.core.exceptions import SaleNotFoundError
from pdv_sync.core.interfaces import IOutboxStore, ISalesStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/sales", tags=["sales"])


def outbox_entry_response(entry: OutboxEntry) -> OutboxEntryResponse:
    return OutboxEntryResponse(
        id=entry.id,
        sale_id=entry.sale_id,
        status=entry.status.value,
        attempts=entry.attempts,
        protocol=entry.protocol,
        last_error=entry.last_error,
        created_at=entry.created_at,
        resolved_at=entry.resolved_at,
    )


def _sale_response(sale: Sale, entry: OutboxEntry | None) -> SaleResponse:
    return SaleResponse(
        id=sale.id,
        total=sale.total,
        payment_method=sale.payment_method.value,
        status=sale.status.value,
        is_offline=sale.is_offline,
        emission_mode=sale.emission_mode.value,
        document_number=sale.document_number,
        tax_totals=sale.tax_totals.model_dump(),
        items=[
            SaleItemResponse(
                id=item.id,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in sale.items
        ],
        created_at=sale.created_at,
        outbox=outbox_entry_response(entry) if entry else None,
    )


@router.post("", response_model=FinalizeSaleResponse)
async def finalize_sale(
    request: FinalizeSaleRequest,
    use_case: FinalizeSaleUseCase = Depends(get_finalize_sale_use_case),
) -> FinalizeSaleResponse:
    """
    Commit a completed sale and queue its NFC-e for transmission.

    Never waits on the network.
    """
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: int,
    sales_store: ISalesStore = Depends(get_sales),
    outbox_store: IOutboxStore = Depends(get_outbox),
) -> SaleResponse:
    """Get a sale with its items and the sync state of its document."""
    sale = await sales_store.get_sale(sale_id)
    if sale is None:
        raise SaleNotFoundError(sale_id)

    entry = await outbox_store.get_by_sale(sale_id)
    return _sale_response(sale, entry)
