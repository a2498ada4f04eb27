"""Outbox entities for fiscal document synchronization."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class OutboxStatus(str, Enum):
    """Resolution state of an outbox entry."""

    PENDING = "PENDING"
    SYNCED = "SYNCED"
    FAILED_PERMANENT = "FAILED_PERMANENT"


class OutboxEntry(BaseModel):
    """
    Durable intent to transmit one sale's signed fiscal document.

    Created in the same transaction as its sale and only mutated by the sync
    worker afterwards. document_payload never changes: a retry replays the
    exact signed XML, it never re-signs.
    """

    id: int | None = None
    sale_id: int  # weak reference to vendas.id
    document_payload: str
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = Field(default=0, ge=0)
    protocol: str | None = None  # authority receipt, set on success
    last_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status is not OutboxStatus.PENDING
