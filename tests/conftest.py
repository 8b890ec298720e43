"""Shared fakes for uploader tests."""
import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from chunked_uploader.models import (
    Dimensions,
    FileDescriptor,
    MediaKind,
    ThumbnailOutcome,
    UploadType,
)
from chunked_uploader.protocols import TransportResponse


class FakeTransport:
    """Records PUTs and answers 200 with an ETag unless told otherwise."""

    def __init__(self, delay: float = 0):
        self.calls = []
        self.responses = {}
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def put(self, url, content, headers):
        if not isinstance(content, bytes):
            content = b"".join([piece async for piece in content])
        self.calls.append((url, len(content), dict(headers)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            response = self.responses.get(url)
            if isinstance(response, Exception):
                raise response
            if response is None:
                part = url.rsplit("/", 1)[-1]
                response = TransportResponse(200, httpx.Headers({"ETag": f'"etag-{part}"'}))
            return response
        finally:
            self.in_flight -= 1

    def urls(self):
        return [url for url, _, _ in self.calls]


class FakeReader:
    """Serves zero bytes of the requested length; can fail for given paths."""

    def __init__(self, fail_paths=()):
        self.fail_paths = {Path(path) for path in fail_paths}
        self.contents = {}
        self.opened = 0
        self.closed = 0

    async def open(self, path):
        if Path(path) in self.fail_paths:
            raise OSError(f"cannot open {path}")
        self.opened += 1
        return Path(path)

    async def read(self, handle, offset, length):
        return bytes(length)

    async def close(self, handle):
        self.closed += 1

    async def read_all(self, path):
        if Path(path) in self.fail_paths:
            raise OSError(f"cannot open {path}")
        return self.contents.get(Path(path), b"\xff\xd8thumbnail")


class FakeProvider:
    """In-memory signed URL / completion backend."""

    def __init__(self):
        self.requests = []
        self.completions = []
        self.complete_error = None

    async def get_upload_url(self, request):
        self.requests.append(request)
        n = len(self.requests)
        if request.upload_type == UploadType.CHUNKED:
            return {
                "urls": [f"https://s3.test/{n}/part/{i}" for i in range(1, request.total_parts + 1)],
                "key": f"uploads/{n}",
                "uploadId": f"upload-{n}",
            }
        return {
            "url": f"https://s3.test/{n}/{request.upload_type.value}",
            "key": f"{request.upload_type.value}/{n}",
        }

    async def mark_upload_complete(self, request):
        self.completions.append(request)
        if self.complete_error:
            raise self.complete_error
        return {"success": True, "key": request.key}

    def requests_of(self, upload_type):
        return [request for request in self.requests if request.upload_type == upload_type]


def make_file(index=0, size=1024, kind=MediaKind.PHOTO, thumbnail_path=None, name=None):
    name = name or (f"file{index}.mp4" if kind == MediaKind.VIDEO else f"file{index}.jpg")
    return FileDescriptor(
        index=index,
        path=Path("/media") / name,
        size=size,
        media_kind=kind,
        thumbnail_path=thumbnail_path,
        content_type="video/mp4" if kind == MediaKind.VIDEO else "image/jpeg",
        extension="mp4" if kind == MediaKind.VIDEO else "jpg",
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def probe():
    mock = AsyncMock()
    mock.probe.return_value = Dimensions(width=1920, height=1080)
    return mock


@pytest.fixture
def generator():
    mock = AsyncMock()
    mock.generate.return_value = ThumbnailOutcome.not_available("not installed")
    return mock
