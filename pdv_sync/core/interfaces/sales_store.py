"""Abstract interface for sale storage."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from pdv_sync.core.entities.fiscal_document import SignedDocument
from pdv_sync.core.entities.sale import Sale

# Called inside the commit transaction once the sale has its id and
# document number; must return the signed fiscal document.
DocumentRenderer = Callable[[Sale], SignedDocument]


class ISalesStore(ABC):
    """Interface for sale persistence."""

    @abstractmethod
    async def commit_sale(self, sale: Sale, render_document: DocumentRenderer) -> Sale:
        """
        Persist a sale, its items and its outbox entry atomically.

        Args:
            sale: Validated sale without id
            render_document: Builds and signs the fiscal document

        Returns:
            The sale with id, item ids and document_number assigned

        Raises:
            CommitError: Persistence failed; nothing was written
            SigningError: The document could not be signed; nothing was written
        """
        pass

    @abstractmethod
    async def get_sale(self, sale_id: int) -> Sale | None:
        """Get sale by ID with items."""
        pass

    @abstractmethod
    async def count_sales(self) -> int:
        """Count committed sales."""
        pass
