"""
Domain exceptions for the PDV sync engine.

Failures before the outbox entry is durably written abort the sale and reach
the checkout. Failures after that point belong to the sync worker and are
recorded on the outbox entry instead of being raised to the UI.
"""

from typing import Any


class PDVSyncError(Exception):
    """Base exception for all PDV sync errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(PDVSyncError):
    """Base exception for storage operations."""

    pass


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class CommitError(StorageError):
    """A sale could not be committed; nothing was persisted."""

    def __init__(self, stage: str, error: str, unavailable: bool = False):
        super().__init__(
            f"Sale could not be saved ({stage}): {error}",
            code="COMMIT_FAILED",
            details={"stage": stage, "error": error, "unavailable": unavailable},
        )
        self.stage = stage
        self.unavailable = unavailable


class SaleNotFoundError(StorageError):
    """Sale not found in storage."""

    def __init__(self, sale_id: int):
        super().__init__(
            f"Sale not found: {sale_id}",
            code="SALE_NOT_FOUND",
            details={"sale_id": sale_id},
        )


class OutboxEntryNotFoundError(StorageError):
    """Outbox entry not found in storage."""

    def __init__(self, entry_id: int):
        super().__init__(
            f"Outbox entry not found: {entry_id}",
            code="OUTBOX_ENTRY_NOT_FOUND",
            details={"entry_id": entry_id},
        )


# Fiscal Exceptions
class FiscalError(PDVSyncError):
    """Base exception for fiscal document operations."""

    pass


class SigningError(FiscalError):
    """Document is malformed or already carries a signature."""

    def __init__(self, reason: str, sale_id: int | None = None):
        super().__init__(
            f"Cannot sign fiscal document: {reason}",
            code="SIGNING_FAILED",
            details={"reason": reason, "sale_id": sale_id},
        )


# Sync Exceptions
class SyncError(PDVSyncError):
    """Base exception for synchronization operations."""

    pass


class TransmissionError(SyncError):
    """The authority or relay rejected or did not answer a transmission."""

    def __init__(self, reason: str, status_code: int | None = None):
        super().__init__(
            f"Transmission failed: {reason}",
            code="TRANSMISSION_FAILED",
            details={"reason": reason, "status_code": status_code},
        )


# Validation Exceptions
class ValidationError(PDVSyncError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class ConfigurationError(PDVSyncError):
    """Configuration error."""

    pass
