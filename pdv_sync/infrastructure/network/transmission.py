"""
Transmission clients for signed NFC-e documents.

The HTTP client posts to a relay that forwards to the state authority and
answers with the authorization protocol. The simulated client stands in for
the authority in development and always authorizes.
"""

import hashlib

import httpx

from pdv_sync.config import get_logger
from pdv_sync.core.exceptions import TransmissionError
from pdv_sync.core.interfaces import ITransmissionClient, TransmissionResult

logger = get_logger(__name__)


class SimulatedTransmissionClient(ITransmissionClient):
    """Authorizes every document with a protocol derived from its content."""

    @property
    def name(self) -> str:
        return "simulated"

    async def transmit(self, document_payload: str) -> TransmissionResult:
        digest = hashlib.sha256(document_payload.encode("utf-8")).hexdigest()
        protocol = f"SIM{digest[:15]}"
        logger.debug("simulated_transmission", protocol=protocol)
        return TransmissionResult(success=True, protocol=protocol)


class HttpTransmissionClient(ITransmissionClient):
    """POSTs the signed XML to the relay endpoint."""

    def __init__(
        self,
        relay_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.relay_url = relay_url
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "http"

    async def transmit(self, document_payload: str) -> TransmissionResult:
        """
        Submit one signed document.

        Returns:
            success=True with the protocol on a 2xx JSON answer carrying one;
            success=False for any other answer

        Raises:
            TransmissionError: The relay could not be reached
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.relay_url,
                    content=document_payload.encode("utf-8"),
                    headers={"Content-Type": "application/xml; charset=utf-8"},
                )
        except httpx.HTTPError as e:
            raise TransmissionError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            error = f"HTTP {response.status_code}: {response.text[:200]}"
            logger.warning(
                "transmission_rejected",
                status_code=response.status_code,
                relay=self.relay_url,
            )
            return TransmissionResult(success=False, error=error)

        try:
            data = response.json()
        except ValueError:
            return TransmissionResult(success=False, error="Relay answer is not JSON")

        protocol = data.get("protocol") if isinstance(data, dict) else None
        if not protocol:
            return TransmissionResult(success=False, error="Relay answer has no protocol")

        return TransmissionResult(success=True, protocol=str(protocol))
