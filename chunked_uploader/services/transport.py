"""HTTP adapter for PUTs to signed URLs."""
from __future__ import annotations

from typing import Mapping, Optional

import httpx

from ..errors import TransportError
from ..protocols import RequestBody, TransportResponse


class HttpxTransport:
    """
    PUTs raw bytes with httpx.

    Implements IHttpTransport protocol. Timeouts are enforced here; the
    orchestrators have none of their own. Streamed bodies must come with a
    Content-Length header, signed PUT URLs reject chunked encoding.
    """

    def __init__(self, timeout: float = 60, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, *args):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def put(self, url: str, content: RequestBody, headers: Mapping[str, str]) -> TransportResponse:
        if not self._client:
            raise RuntimeError("HttpxTransport not initialized. Use 'async with' context.")

        try:
            response = await self._client.put(url, content=content, headers=dict(headers))
        except httpx.HTTPError as exc:
            raise TransportError(f"PUT failed: {type(exc).__name__}: {exc}") from exc

        return TransportResponse(
            status=response.status_code,
            headers=response.headers,
            body=response.text,
        )
