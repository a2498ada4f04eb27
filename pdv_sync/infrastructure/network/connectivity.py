"""
HTTP connectivity probe.

Decides whether the worker should try to drain the outbox. Any HTTP answer,
whatever its status, means the network path works.
"""

import asyncio
import time

import httpx

from pdv_sync.config import get_logger
from pdv_sync.core.interfaces import IConnectivityProbe, ProbeResult

logger = get_logger(__name__)


class HttpConnectivityProbe(IConnectivityProbe):
    """Sends a HEAD request to a well-known URL."""

    def __init__(
        self,
        url: str,
        default_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.default_timeout = default_timeout
        self._transport = transport

    async def check(self, timeout: float | None = None) -> ProbeResult:
        timeout = timeout or self.default_timeout
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                transport=self._transport,
                follow_redirects=False,
            ) as client:
                response = await asyncio.wait_for(client.head(self.url), timeout=timeout)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.debug("connectivity_probe_failed", target=self.url, error=error)
            return ProbeResult(reachable=False, target=self.url, error=error)

        elapsed = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "connectivity_probe_ok",
            target=self.url,
            status_code=response.status_code,
            latency_ms=round(elapsed, 1),
        )
        return ProbeResult(reachable=True, target=self.url, latency_ms=elapsed)
