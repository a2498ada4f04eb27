"""Core domain entities."""

from pdv_sync.core.entities.fiscal_document import (
    EmissionMode,
    FiscalDocument,
    SignedDocument,
)
from pdv_sync.core.entities.outbox import OutboxEntry, OutboxStatus
from pdv_sync.core.entities.sale import (
    PaymentMethod,
    Sale,
    SaleItem,
    SaleStatus,
    TaxTotals,
)

__all__ = [
    # Fiscal
    "EmissionMode",
    "FiscalDocument",
    "SignedDocument",
    # Outbox
    "OutboxEntry",
    "OutboxStatus",
    # Sale
    "PaymentMethod",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "TaxTotals",
]
