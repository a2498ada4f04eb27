"""
Network collaborator factory.

Creates the connectivity probe and transmission client from configuration.
"""

from pdv_sync.config import get_logger, get_settings
from pdv_sync.core.exceptions import ConfigurationError
from pdv_sync.core.interfaces import (
    IConnectivityProbe,
    ITransmissionClient,
    TransmissionProvider,
)

logger = get_logger(__name__)


def get_connectivity_probe() -> IConnectivityProbe:
    """Get the HTTP probe configured for the terminal."""
    from pdv_sync.infrastructure.network.connectivity import HttpConnectivityProbe

    settings = get_settings()
    return HttpConnectivityProbe(
        url=settings.sync.probe_url,
        default_timeout=settings.sync.probe_timeout,
    )


def get_transmission_client(provider_type: str | None = None) -> ITransmissionClient:
    """
    Get a transmission client instance.

    Args:
        provider_type: "simulated" or "http" (default from settings)

    Returns:
        ITransmissionClient instance

    Raises:
        ConfigurationError: The provider name is not known
    """
    settings = get_settings()
    provider_type = provider_type or settings.sync.transmission_provider

    if provider_type == TransmissionProvider.SIMULATED.value:
        from pdv_sync.infrastructure.network.transmission import SimulatedTransmissionClient

        return SimulatedTransmissionClient()

    elif provider_type == TransmissionProvider.HTTP.value:
        from pdv_sync.infrastructure.network.transmission import HttpTransmissionClient

        return HttpTransmissionClient(
            relay_url=settings.sync.relay_url,
            timeout=settings.sync.transmit_timeout,
        )

    else:
        raise ConfigurationError(
            f"Unknown transmission provider: {provider_type}",
            details={"transmission_provider": provider_type},
        )
