"""
HTTP transport: posts capture request envelopes to a bridge endpoint.
"""

import logging
from typing import Any, Optional

import httpx

from context_grabber.errors import TransportError
from context_grabber.models.envelope import HostRequestMessage

logger = logging.getLogger(__name__)

USER_AGENT = "context-grabber/0.1.0"


class HttpTransport:
    def __init__(self, endpoint: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self._endpoint = endpoint
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
        )

    async def send(self, request: HostRequestMessage) -> Any:
        try:
            resp = await self._client.post(
                self._endpoint,
                json=request.to_wire(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"POST {self._endpoint} failed: {e}")
            raise TransportError(f"HTTP transport failed: {e}")

        if resp.status_code >= 400:
            raise TransportError(f"HTTP {resp.status_code}: {resp.text[:200]}", details={"status": resp.status_code})
        try:
            return resp.json()
        except ValueError:
            raise TransportError(f"Bridge returned a non-JSON body: {resp.text[:200]}")

    async def __call__(self, request: HostRequestMessage) -> Any:
        return await self.send(request)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()
