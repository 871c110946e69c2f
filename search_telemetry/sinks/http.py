"""HTTP sink posting event batches to a telemetry ingestion endpoint."""
import logging
from typing import Dict, Optional, Sequence

import httpx

from search_telemetry.core.errors import SinkError
from search_telemetry.core.schemas import TelemetryEvent

logger = logging.getLogger(__name__)

# Status codes worth retrying: request timeout, throttling, server-side errors
TRANSIENT_STATUS_CODES = {408, 425, 429}


class HttpEventSink:
    """POSTs ``{"events": [...]}`` JSON batches with httpx."""

    REQUEST_TIMEOUT = 10.0
    USER_AGENT = "SearchTelemetry/1.0"

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            endpoint: Ingestion URL
            api_key: Sent as ``Authorization: Bearer <key>`` when set
            timeout: Request timeout in seconds
            client: Pre-built client (tests inject one with a MockTransport)
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.USER_AGENT, "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        payload = {"events": [event.to_wire() for event in events]}
        client = await self._get_client()

        try:
            resp = await client.post(self.endpoint, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise SinkError.transient(f"Timeout posting to {self.endpoint}: {e}") from e
        except httpx.TransportError as e:
            raise SinkError.transient(f"Transport error posting to {self.endpoint}: {e}") from e

        if resp.status_code < 300:
            logger.debug(f"✅ Posted {len(events)} events to {self.endpoint}")
            return

        message = f"{self.endpoint} answered {resp.status_code}: {resp.text[:200]}"
        if resp.status_code >= 500 or resp.status_code in TRANSIENT_STATUS_CODES:
            raise SinkError.transient(message)
        # Malformed payload, auth failure and other client errors
        raise SinkError.permanent(message)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
