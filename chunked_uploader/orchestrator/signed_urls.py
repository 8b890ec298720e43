"""Parse signed URL provider answers into tagged responses.

The request's upload type decides which shape is expected; field presence is
only checked to report contract violations.
"""
from __future__ import annotations

from typing import Any, Mapping, Union

from ..errors import ProviderContractError, SignedUrlError
from ..models import ChunkedUploadUrls, SingleUploadUrl, UploadType
from ..protocols import UploadUrlPayload

SESSION_ID_FIELDS = ("sessionId", "uploadId", "session_id", "upload_id")


def _require(payload: Mapping[str, Any], name: str, upload_type: UploadType) -> str:
    value = payload.get(name)
    if not value:
        raise ProviderContractError(
            f"Invalid response for {upload_type.value} upload: missing '{name}'"
        )
    return str(value)


def _parse_chunked(payload: UploadUrlPayload) -> ChunkedUploadUrls:
    if isinstance(payload, ChunkedUploadUrls):
        response = payload
    elif isinstance(payload, Mapping):
        session_id = next(
            (payload[name] for name in SESSION_ID_FIELDS if payload.get(name)), None
        )
        if not session_id:
            raise ProviderContractError("Invalid response for chunked upload: missing session id")
        response = ChunkedUploadUrls(
            key=_require(payload, "key", UploadType.CHUNKED),
            session_id=str(session_id),
            urls=tuple(payload.get("urls") or ()),
        )
    else:
        raise ProviderContractError(
            f"Invalid response for chunked upload: {type(payload).__name__}"
        )

    if not response.key or not response.session_id:
        raise ProviderContractError("Invalid response for chunked upload: missing key or session id")
    if not response.urls:
        raise SignedUrlError("Signed URLs not found")
    return response


def _parse_single(upload_type: UploadType, payload: UploadUrlPayload) -> SingleUploadUrl:
    if isinstance(payload, SingleUploadUrl):
        response = payload
    elif isinstance(payload, Mapping):
        response = SingleUploadUrl(
            url=_require(payload, "url", upload_type),
            key=_require(payload, "key", upload_type),
        )
    else:
        raise ProviderContractError(
            f"Invalid response for {upload_type.value} upload: {type(payload).__name__}"
        )

    if not response.url or not response.key:
        raise ProviderContractError(
            f"Invalid response for {upload_type.value} upload: missing url or key"
        )
    return response


def parse_upload_url_response(
    upload_type: UploadType,
    payload: UploadUrlPayload,
) -> Union[ChunkedUploadUrls, SingleUploadUrl]:
    """
    Turn a provider answer into ChunkedUploadUrls or SingleUploadUrl.

    Raises:
        SignedUrlError: chunked answer carries no URLs
        ProviderContractError: answer lacks key, session id or url
    """
    if upload_type == UploadType.CHUNKED:
        return _parse_chunked(payload)
    return _parse_single(upload_type, payload)
