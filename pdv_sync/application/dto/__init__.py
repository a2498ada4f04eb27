"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.
"""

from pdv_sync.application.dto.requests import (
    FailPermanentRequest,
    FinalizeSaleRequest,
    SaleItemRequest,
    TaxTotalsRequest,
)
from pdv_sync.application.dto.responses import (
    ErrorResponse,
    FinalizeSaleResponse,
    HealthResponse,
    OutboxEntryResponse,
    ProviderHealthResponse,
    SaleItemResponse,
    SaleResponse,
    SyncStatusResponse,
    TickResponse,
)

__all__ = [
    # Requests
    "FailPermanentRequest",
    "FinalizeSaleRequest",
    "SaleItemRequest",
    "TaxTotalsRequest",
    # Responses
    "ErrorResponse",
    "FinalizeSaleResponse",
    "HealthResponse",
    "OutboxEntryResponse",
    "ProviderHealthResponse",
    "SaleItemResponse",
    "SaleResponse",
    "SyncStatusResponse",
    "TickResponse",
]
