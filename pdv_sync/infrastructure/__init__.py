"""Infrastructure layer implementations."""

from pdv_sync.infrastructure import network, storage

__all__ = ["storage", "network"]
