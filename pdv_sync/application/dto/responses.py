"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class FinalizeSaleResponse(BaseModel):
    """Outcome reported to the checkout."""

    success: bool = Field(..., description="Sale was committed")
    sale_id: int | str | None = Field(
        default=None,
        description="Sale ID (MOCK-<ms> in degraded mode)",
    )
    error: str | None = Field(default=None, description="Why the sale was not committed")


class SaleItemResponse(BaseModel):
    """Line item in sale response."""

    id: int | None = Field(default=None, description="Item ID")
    description: str = Field(..., description="Item description")
    quantity: float = Field(..., description="Quantity")
    unit_price: float = Field(..., description="Price per unit")
    line_total: float = Field(..., description="quantity * unit_price")


class OutboxEntryResponse(BaseModel):
    """Synchronization state of a sale's fiscal document."""

    id: int = Field(..., description="Outbox entry ID")
    sale_id: int = Field(..., description="Sale ID")
    status: str = Field(..., description="PENDING, SYNCED or FAILED_PERMANENT")
    attempts: int = Field(default=0, description="Failed transmission attempts")
    protocol: str | None = Field(default=None, description="Authority protocol")
    last_error: str | None = Field(default=None, description="Last transmission error")
    created_at: datetime = Field(..., description="Creation timestamp")
    resolved_at: datetime | None = Field(default=None, description="Resolution timestamp")


class SaleResponse(BaseModel):
    """Sale response DTO."""

    id: int = Field(..., description="Sale ID")
    total: float = Field(..., description="Sale total")
    payment_method: str = Field(..., description="Payment method")
    status: str = Field(..., description="Sale status")
    is_offline: bool = Field(..., description="Emitted in contingency")
    emission_mode: str = Field(..., description="NORMAL or CONTINGENCY")
    document_number: int | None = Field(default=None, description="NFC-e number (nNF)")
    tax_totals: dict[str, float] = Field(default_factory=dict, description="icms/pis/cofins/ibs/cbs")
    items: list[SaleItemResponse] = Field(default=[], description="Line items")
    created_at: datetime = Field(..., description="Creation timestamp")
    outbox: OutboxEntryResponse | None = Field(default=None, description="Sync state")


class TickResponse(BaseModel):
    """Result of one scan/drain cycle."""

    skipped: bool = Field(default=False, description="Another cycle was running")
    reachable: bool | None = Field(default=None, description="Probe outcome")
    fetched: int = Field(default=0, description="Entries fetched")
    synced: int = Field(default=0, description="Entries synced")
    failed: int = Field(default=0, description="Failed attempts")
    error: str | None = Field(default=None, description="Store error, if any")


class SyncStatusResponse(BaseModel):
    """Worker state and outbox counts."""

    enabled: bool = Field(..., description="Worker configured to run")
    running: bool = Field(..., description="Timer armed")
    state: str = Field(..., description="IDLE, SCANNING or DRAINING")
    interval_seconds: float = Field(..., description="Tick interval")
    batch_size: int = Field(..., description="Entries per drain")
    transmission_provider: str = Field(..., description="Transmission client")
    counts: dict[str, int] = Field(default_factory=dict, description="Entries per status")
    last_tick: TickResponse | None = Field(default=None, description="Last completed tick")


class ProviderHealthResponse(BaseModel):
    """Health status of a dependency."""

    name: str = Field(..., description="Dependency name")
    available: bool = Field(..., description="Dependency available")
    latency_ms: float | None = Field(default=None, description="Check latency")
    error: str | None = Field(default=None, description="Error message if unavailable")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status (healthy, degraded, unhealthy)")
    version: str = Field(..., description="API version")
    environment: str | None = Field(default=None, description="Runtime environment")
    uptime_seconds: float = Field(..., description="Seconds since startup")
    database: ProviderHealthResponse | None = Field(default=None, description="SQLite status")
    connectivity: ProviderHealthResponse | None = Field(
        default=None, description="Connectivity probe status"
    )
    details: dict[str, Any] = Field(default_factory=dict, description="Extra details")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error_code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    hint: str | None = Field(default=None, description="How to resolve")
    detail: dict[str, Any] | str | None = Field(default=None, description="Error details")
    path: str | None = Field(default=None, description="Request path")
