"""One-shot upload of a small file through a single signed URL."""
import logging
from typing import AsyncIterator, Optional

from ..errors import ProviderContractError, SizeLimitExceededError, describe_exception
from ..models import (
    FileDescriptor,
    FileResult,
    SingleUploadUrl,
    UploadConfig,
    UploadType,
    UploadUrlRequest,
)
from ..protocols import IFileReader, IHttpTransport, ProgressCallback, UploadUrlProvider
from .chunk_uploader import CHUNK_CONTENT_TYPE
from .progress import ProgressTracker
from .signed_urls import parse_upload_url_response
from .thumbnail_handler import ThumbnailHandler

logger = logging.getLogger(__name__)

UPLOAD_SLICE_SIZE = 256 * 1024


class SimpleUploadHandler:
    """Uploads a whole file with one PUT, then runs the thumbnail step."""

    def __init__(
        self,
        reader: IFileReader,
        transport: IHttpTransport,
        thumbnails: ThumbnailHandler,
        get_upload_url: UploadUrlProvider,
        config: Optional[UploadConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self._reader = reader
        self._transport = transport
        self._thumbnails = thumbnails
        self._get_upload_url = get_upload_url
        self._config = config or UploadConfig()
        self._on_progress = on_progress

    async def upload(self, file: FileDescriptor) -> FileResult:
        tracker = ProgressTracker(file.index, file.size, total_parts=1, part_size=file.size,
                                  callback=self._on_progress)

        try:
            self._config.check_size_limit(file)
        except SizeLimitExceededError as e:
            return await self._fail(file, tracker, str(e))

        request = UploadUrlRequest(
            upload_type=UploadType.SIMPLE,
            media_kind=file.media_kind,
            content_type=file.content_type,
            extension=file.extension,
        )
        try:
            signed = parse_upload_url_response(UploadType.SIMPLE, await self._get_upload_url(request))
        except ProviderContractError:
            raise
        except Exception as e:
            return await self._fail(file, tracker, describe_exception(e))
        assert isinstance(signed, SingleUploadUrl)

        await tracker.started()
        try:
            data = await self._reader.read_all(file.path)
            response = await self._transport.put(
                signed.url,
                self._stream(data, tracker),
                {"Content-Type": CHUNK_CONTENT_TYPE, "Content-Length": str(len(data))},
            )
        except Exception as e:
            return await self._fail(file, tracker, describe_exception(e))

        if response.status != 200:
            return await self._fail(file, tracker, f"Upload failed with status {response.status}")

        thumbnail = await self._thumbnails.process(file)

        await tracker.completed()
        logger.info(f"[simple] {file.path.name} completed -> {signed.key}")
        return FileResult.ok(file, signed.key, thumbnail)

    @staticmethod
    async def _stream(data: bytes, tracker: ProgressTracker) -> AsyncIterator[bytes]:
        """Yield the body in slices, reporting each one once the transport asks for more."""
        for offset in range(0, len(data), UPLOAD_SLICE_SIZE):
            piece = data[offset:offset + UPLOAD_SLICE_SIZE]
            yield piece
            await tracker.bytes_sent(offset + len(piece))

    async def _fail(self, file: FileDescriptor, tracker: ProgressTracker, error: str) -> FileResult:
        logger.error(f"[simple] {file.path.name} failed: {error}")
        await tracker.failed(error)
        return FileResult.fail(file, error)
