"""Network infrastructure: connectivity probe and transmission clients."""

from pdv_sync.infrastructure.network.connectivity import HttpConnectivityProbe
from pdv_sync.infrastructure.network.factory import (
    get_connectivity_probe,
    get_transmission_client,
)
from pdv_sync.infrastructure.network.transmission import (
    HttpTransmissionClient,
    SimulatedTransmissionClient,
)

__all__ = [
    # Probe
    "HttpConnectivityProbe",
    # Transmission
    "HttpTransmissionClient",
    "SimulatedTransmissionClient",
    # Factory
    "get_connectivity_probe",
    "get_transmission_client",
]
