"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates the checkout write path and the sync worker:
DTOs define the API contracts, use cases coordinate core services and
the service factories wire infrastructure in.
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
from pdv_sync.application.services import (
    get_document_builder,
    get_running_sync_worker,
    get_sync_worker,
    reset_services,
)
from pdv_sync.application.use_cases import FinalizeSaleResult, FinalizeSaleUseCase

__all__ = [
    # Request DTOs
    "FinalizeSaleRequest",
    "SaleItemRequest",
    "TaxTotalsRequest",
    "FailPermanentRequest",
    # Response DTOs
    "FinalizeSaleResponse",
    "SaleResponse",
    "SaleItemResponse",
    "OutboxEntryResponse",
    "SyncStatusResponse",
    "TickResponse",
    "HealthResponse",
    "ProviderHealthResponse",
    "ErrorResponse",
    # Use Cases
    "FinalizeSaleUseCase",
    "FinalizeSaleResult",
    # Service factories
    "get_document_builder",
    "get_sync_worker",
    "get_running_sync_worker",
    "reset_services",
]
