"""Core interfaces (ports) for dependency injection."""

from pdv_sync.core.interfaces.network import (
    IConnectivityProbe,
    ITransmissionClient,
    ProbeResult,
    TransmissionProvider,
    TransmissionResult,
)
from pdv_sync.core.interfaces.outbox_store import IOutboxStore
from pdv_sync.core.interfaces.sales_store import DocumentRenderer, ISalesStore

__all__ = [
    # Network
    "IConnectivityProbe",
    "ITransmissionClient",
    "ProbeResult",
    "TransmissionProvider",
    "TransmissionResult",
    # Storage
    "IOutboxStore",
    "ISalesStore",
    "DocumentRenderer",
]
