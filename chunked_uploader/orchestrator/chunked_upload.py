"""Chunked (multipart) upload of a single file."""
import logging
from typing import Optional

from ..errors import (
    CompletionError,
    ProviderContractError,
    SignedUrlError,
    SizeLimitExceededError,
    describe_exception,
)
from ..models import (
    ChunkedUploadUrls,
    CompletedPart,
    CompletionRequest,
    FileDescriptor,
    FileResult,
    UploadConfig,
    UploadSession,
    UploadType,
    UploadUrlRequest,
)
from ..protocols import (
    CompletionProvider,
    IFileReader,
    IHttpTransport,
    ProgressCallback,
    UploadUrlProvider,
)
from .chunk_planner import count_parts, part_size_for, plan_chunks
from .chunk_uploader import ChunkUploader
from .concurrent import map_concurrent
from .progress import ProgressTracker
from .signed_urls import parse_upload_url_response
from .thumbnail_handler import ThumbnailHandler

logger = logging.getLogger(__name__)


class ChunkedUploadHandler:
    """
    Drives one file through a multipart session.

    SizeCheck -> RequestSession -> UploadChunks -> Thumbnail -> CompleteSession.
    Business failures end as a failed FileResult; only provider answers that
    break their contract are raised.
    """

    def __init__(
        self,
        reader: IFileReader,
        transport: IHttpTransport,
        thumbnails: ThumbnailHandler,
        get_upload_url: UploadUrlProvider,
        mark_upload_complete: CompletionProvider,
        config: Optional[UploadConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self._reader = reader
        self._transport = transport
        self._thumbnails = thumbnails
        self._get_upload_url = get_upload_url
        self._mark_upload_complete = mark_upload_complete
        self._config = config or UploadConfig()
        self._on_progress = on_progress

    async def upload(self, file: FileDescriptor) -> FileResult:
        config = self._config
        if file.size <= 0:
            tracker = ProgressTracker(file.index, file.size, callback=self._on_progress)
            return await self._fail(file, tracker, "File is empty")

        part_size = part_size_for(file.size, config.chunk_size)
        total_parts = count_parts(file.size, config.chunk_size)
        tracker = ProgressTracker(
            file.index,
            file.size,
            total_parts=total_parts,
            part_size=part_size,
            callback=self._on_progress,
        )

        try:
            config.check_size_limit(file)
        except SizeLimitExceededError as e:
            return await self._fail(file, tracker, str(e))

        try:
            session = await self._request_session(file, total_parts)
        except ProviderContractError:
            raise
        except Exception as e:
            return await self._fail(file, tracker, describe_exception(e))

        logger.info(
            f"[chunked] {file.path.name}: {total_parts} parts of {part_size} bytes (key={session.key})"
        )

        uploader = ChunkUploader(self._reader, self._transport, session, file.path, tracker)
        outcomes = await map_concurrent(
            plan_chunks(file.size, config.chunk_size),
            uploader,
            config.concurrent_chunk_upload_limit,
        )

        failed = next((outcome for outcome in outcomes if not outcome.success), None)
        if failed is not None:
            failed_count = sum(1 for outcome in outcomes if not outcome.success)
            logger.warning(
                f"[chunked] {file.path.name}: {failed_count}/{total_parts} parts failed; "
                f"session left open (key={session.key}, session_id={session.session_id})"
            )
            return await self._fail(file, tracker, failed.reason)

        thumbnail = await self._thumbnails.process(file)

        parts = tuple(
            CompletedPart(integrity_token=outcome.integrity_token, part_number=outcome.part_number)
            for outcome in sorted(outcomes, key=lambda outcome: outcome.part_number)
        )
        try:
            await self._mark_upload_complete(
                CompletionRequest(parts=parts, key=session.key, session_id=session.session_id)
            )
        except Exception as e:
            error = CompletionError(f"Failed to complete upload: {describe_exception(e)}")
            return await self._fail(file, tracker, str(error))

        await tracker.completed()
        logger.info(f"[chunked] {file.path.name} completed -> {session.key}")
        return FileResult.ok(file, session.key, thumbnail)

    async def _request_session(self, file: FileDescriptor, total_parts: int) -> UploadSession:
        request = UploadUrlRequest(
            upload_type=UploadType.CHUNKED,
            media_kind=file.media_kind,
            content_type=file.content_type,
            extension=file.extension,
            total_parts=total_parts,
        )
        response = parse_upload_url_response(UploadType.CHUNKED, await self._get_upload_url(request))
        assert isinstance(response, ChunkedUploadUrls)

        if len(response.urls) < total_parts:
            raise SignedUrlError(
                f"Expected {total_parts} signed URLs, got {len(response.urls)}"
            )
        if len(response.urls) > total_parts:
            logger.warning(
                f"[chunked] {file.path.name}: provider sent {len(response.urls)} URLs "
                f"for {total_parts} parts, extra URLs ignored"
            )
        return UploadSession(key=response.key, session_id=response.session_id, urls=response.urls)

    async def _fail(self, file: FileDescriptor, tracker: ProgressTracker, error: str) -> FileResult:
        logger.error(f"[chunked] {file.path.name} failed: {error}")
        await tracker.failed(error)
        return FileResult.fail(file, error)
