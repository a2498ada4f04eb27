"""
Abstract interfaces for the network collaborators of the sync worker.

Both calls must be time-bounded: the worker only returns to IDLE once they
come back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class TransmissionProvider(str, Enum):
    """Supported transmission client types."""

    SIMULATED = "simulated"
    HTTP = "http"


@dataclass
class ProbeResult:
    """Outcome of a connectivity probe. Being offline is not an error."""

    reachable: bool
    target: str
    latency_ms: float | None = None
    error: str | None = None


@dataclass
class TransmissionResult:
    """Outcome of submitting one signed document."""

    success: bool
    protocol: str | None = None  # authority receipt
    error: str | None = None


class IConnectivityProbe(ABC):
    """Lightweight reachability check used to gate draining."""

    @abstractmethod
    async def check(self, timeout: float | None = None) -> ProbeResult:
        """Probe reachability. Never raises."""
        pass

    async def is_reachable(self, timeout: float | None = None) -> bool:
        """True if the probe target answered within the timeout."""
        result = await self.check(timeout)
        return result.reachable


class ITransmissionClient(ABC):
    """Client for the authority or the cloud relay in front of it."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Client name for logging."""
        pass

    @abstractmethod
    async def transmit(self, document_payload: str) -> TransmissionResult:
        """
        Submit a signed document.

        A rejection is reported as success=False. Implementations may also
        raise; the worker treats any exception as a failed attempt.
        """
        pass
