"""Abstract interface for the fiscal document outbox."""

from abc import ABC, abstractmethod

from pdv_sync.core.entities.outbox import OutboxEntry, OutboxStatus


class IOutboxStore(ABC):
    """
    Interface for the synchronization outbox.

    Appending is not part of this interface: entries are only written by the
    sale commit transaction of the concrete store.
    """

    @abstractmethod
    async def fetch_pending(self, limit: int) -> list[OutboxEntry]:
        """Return up to `limit` PENDING entries, oldest first."""
        pass

    @abstractmethod
    async def mark_synced(self, entry_id: int, protocol: str | None = None) -> bool:
        """
        Transition PENDING → SYNCED and stamp resolved_at.

        Returns False (no-op) if the entry was already resolved.
        """
        pass

    @abstractmethod
    async def mark_attempt_failed(self, entry_id: int, error: str | None = None) -> None:
        """Increment attempts; the entry stays PENDING."""
        pass

    @abstractmethod
    async def mark_failed_permanent(self, entry_id: int, reason: str) -> bool:
        """Operator escalation: PENDING → FAILED_PERMANENT."""
        pass

    @abstractmethod
    async def get_entry(self, entry_id: int) -> OutboxEntry | None:
        """Get entry by ID."""
        pass

    @abstractmethod
    async def get_by_sale(self, sale_id: int) -> OutboxEntry | None:
        """Get the entry produced by a sale."""
        pass

    @abstractmethod
    async def count_by_status(self) -> dict[OutboxStatus, int]:
        """Count entries per status."""
        pass
