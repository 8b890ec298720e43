"""
Protocols (Interfaces) for the upload engine's collaborators.

Following Interface Segregation Principle - small, focused interfaces.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    AsyncIterable,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

import httpx

from .models import (
    ChunkedUploadUrls,
    CompletionRequest,
    Dimensions,
    OverallProgress,
    ProgressSnapshot,
    SingleUploadUrl,
    ThumbnailOutcome,
    UploadUrlRequest,
)

UploadUrlPayload = Union[Mapping[str, Any], ChunkedUploadUrls, SingleUploadUrl]
UploadUrlProvider = Callable[[UploadUrlRequest], Awaitable[UploadUrlPayload]]
CompletionProvider = Callable[[CompletionRequest], Awaitable[Any]]
ProgressCallback = Callable[[ProgressSnapshot], Any]
OverallProgressCallback = Callable[[OverallProgress], Any]
RequestBody = Union[bytes, AsyncIterable[bytes]]


@dataclass(frozen=True)
class TransportResponse:
    """Response of an HTTP PUT. Header lookup is case-insensitive."""
    status: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: str = ""

    def __post_init__(self):
        if not isinstance(self.headers, httpx.Headers):
            object.__setattr__(self, "headers", httpx.Headers(self.headers or {}))

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name)


@runtime_checkable
class IHttpTransport(Protocol):
    """Interface for raw HTTP PUTs to signed URLs."""

    async def put(self, url: str, content: RequestBody, headers: Mapping[str, str]) -> TransportResponse:
        """PUT bytes, or an async stream of byte slices, to url."""
        ...


@runtime_checkable
class IFileReader(Protocol):
    """Interface for byte-range reads from local storage."""

    async def open(self, path: Path) -> Any:
        """Open file and return a handle."""
        ...

    async def read(self, handle: Any, offset: int, length: int) -> bytes:
        """Read length bytes starting at offset."""
        ...

    async def close(self, handle: Any) -> None:
        ...

    async def read_all(self, path: Path) -> bytes:
        """Read the whole file."""
        ...


@runtime_checkable
class IDimensionProbe(Protocol):
    """Interface for reading pixel dimensions of an image."""

    async def probe(self, path: Path) -> Dimensions:
        ...


@runtime_checkable
class IThumbnailGenerator(Protocol):
    """Interface for extracting a still image from a video."""

    async def generate(self, video_path: Path, time_ms: int, quality: float) -> ThumbnailOutcome:
        """Return the thumbnail path, or an explicit unavailable outcome.

        The handler deletes the file after uploading it only when the
        outcome is marked temporary.
        """
        ...
