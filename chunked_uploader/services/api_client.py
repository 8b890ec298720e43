"""HTTP adapter for the signed URL and completion endpoints."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import ApiError
from ..models import CompletionRequest, UploadUrlRequest

logger = logging.getLogger(__name__)

UPLOAD_URL_ENDPOINT = "/api/upload/url"
COMPLETE_ENDPOINT = "/api/upload/complete"


def upload_url_payload(request: UploadUrlRequest) -> Dict[str, Any]:
    """JSON body for POST /api/upload/url."""
    payload: Dict[str, Any] = {"uploadType": request.upload_type.value}
    if request.media_kind is not None:
        payload["mediaType"] = request.media_kind.value
    if request.content_type:
        payload["contentType"] = request.content_type
    if request.extension:
        payload["extension"] = request.extension
    if request.total_parts is not None:
        payload["totalParts"] = request.total_parts
    return payload


def completion_payload(request: CompletionRequest) -> Dict[str, Any]:
    """JSON body for POST /api/upload/complete."""
    return {
        "eTags": [
            {"ETag": part.integrity_token, "PartNumber": part.part_number}
            for part in request.parts
        ],
        "key": request.key,
        "uploadId": request.session_id,
    }


class HTTPUploadUrlProvider:
    """
    Client for a backend that signs upload URLs and finalizes multipart sessions.

    get_upload_url and mark_upload_complete plug straight into
    UploadOrchestrator. 5xx answers and transport errors are retried.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_upload_url(self, request: UploadUrlRequest) -> Dict[str, Any]:
        response = await self.post(UPLOAD_URL_ENDPOINT, json=upload_url_payload(request))
        return response.json()

    async def mark_upload_complete(self, request: CompletionRequest) -> Any:
        response = await self.post(COMPLETE_ENDPOINT, json=completion_payload(request))
        return response.json()

    async def post(self, endpoint: str, json: Dict) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPUploadUrlProvider not initialized. Use 'async with' context.")

        for attempt in range(self._max_retries):
            last_attempt = attempt == self._max_retries - 1
            try:
                response = await self._client.post(endpoint, json=json)
            except httpx.TransportError as exc:
                if last_attempt:
                    raise
                logger.debug(f"[api] POST {endpoint} attempt {attempt + 1} failed: {exc}")
                await asyncio.sleep(0.5 * (attempt + 1))
                continue

            if response.status_code >= 500 and not last_attempt:
                logger.debug(f"[api] POST {endpoint} got {response.status_code}, retrying")
                await asyncio.sleep(0.5 * (attempt + 1))
                continue

            if response.status_code >= 400:
                try:
                    error_detail = response.json()
                except ValueError:
                    error_detail = response.text
                raise ApiError(response.status_code, "POST", endpoint, error_detail)

            return response

        raise RuntimeError(f"Failed to POST {endpoint} after {self._max_retries} attempts")
