"""Core orchestrator - coordinates batch upload workflows."""
import logging
import math
from typing import Dict, List, Optional, Sequence

from ..errors import InvalidArgumentError
from ..models import FileDescriptor, FileResult, OverallProgress, UploadConfig
from ..protocols import (
    CompletionProvider,
    IDimensionProbe,
    IFileReader,
    IHttpTransport,
    IThumbnailGenerator,
    OverallProgressCallback,
    ProgressCallback,
    UploadUrlProvider,
)
from ..services.dimensions import PillowDimensionProbe
from ..services.file_reader import LocalFileReader
from ..services.thumbnail import FfmpegThumbnailGenerator
from ..services.transport import HttpxTransport
from ..utils.events import emit
from .chunked_upload import ChunkedUploadHandler
from .concurrent import map_concurrent
from .simple_upload import SimpleUploadHandler
from .thumbnail_handler import ThumbnailHandler

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Uploads batches of files, switching between chunked and one-shot uploads.

    Services are injected; anything left out gets the default implementation
    (local file reader, httpx transport, Pillow probe, ffmpeg thumbnails).

    Usage:
        async with UploadOrchestrator(provider.get_upload_url,
                                      provider.mark_upload_complete) as uploader:
            results = await uploader.upload_files(files)
    """

    def __init__(
        self,
        get_upload_url: UploadUrlProvider,
        mark_upload_complete: CompletionProvider,
        config: Optional[UploadConfig] = None,
        transport: Optional[IHttpTransport] = None,
        reader: Optional[IFileReader] = None,
        dimension_probe: Optional[IDimensionProbe] = None,
        thumbnail_generator: Optional[IThumbnailGenerator] = None,
        get_thumbnail_url: Optional[UploadUrlProvider] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_overall_progress: Optional[OverallProgressCallback] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            get_upload_url: Signed URL provider (chunked, simple and thumbnail requests)
            mark_upload_complete: Finalizes multipart sessions
            config: Upload configuration
            transport: HTTP PUT transport; an httpx one is created in __aenter__ if omitted
            reader: Byte-range file reader
            dimension_probe: Pixel dimension probe
            thumbnail_generator: Video thumbnail generator
            get_thumbnail_url: Separate provider for thumbnail URLs (defaults to get_upload_url)
            on_progress: Per-file progress callback
            on_overall_progress: Batch progress callback, called once per batch
        """
        self._get_upload_url = get_upload_url
        self._mark_upload_complete = mark_upload_complete
        self._config = config or UploadConfig()
        self._transport = transport
        self._owns_transport = False
        self._reader = reader or LocalFileReader()
        self._probe = dimension_probe or PillowDimensionProbe()
        self._generator = thumbnail_generator or FfmpegThumbnailGenerator()
        self._get_thumbnail_url = get_thumbnail_url or get_upload_url
        self._on_progress = on_progress
        self._on_overall_progress = on_overall_progress

        self._chunked_handler: Optional[ChunkedUploadHandler] = None
        self._simple_handler: Optional[SimpleUploadHandler] = None

    @property
    def config(self) -> UploadConfig:
        return self._config

    async def __aenter__(self):
        """Create the default transport if none was injected."""
        if self._transport is None:
            self._transport = HttpxTransport(timeout=self._config.request_timeout)
            self._owns_transport = True
            await self._transport.__aenter__()
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._owns_transport and self._transport is not None:
            await self._transport.__aexit__(*args)
            self._transport = None
            self._owns_transport = False
        self._chunked_handler = None
        self._simple_handler = None

    def _build_handlers(self) -> None:
        if self._transport is None:
            raise RuntimeError("UploadOrchestrator has no transport. Use 'async with' context.")

        thumbnails = ThumbnailHandler(
            self._reader,
            self._transport,
            self._config,
            url_provider=self._get_thumbnail_url if self._config.upload_thumbnails else None,
            dimension_probe=self._probe,
            thumbnail_generator=self._generator,
        )
        self._chunked_handler = ChunkedUploadHandler(
            self._reader,
            self._transport,
            thumbnails,
            self._get_upload_url,
            self._mark_upload_complete,
            self._config,
            self._on_progress,
        )
        self._simple_handler = SimpleUploadHandler(
            self._reader,
            self._transport,
            thumbnails,
            self._get_upload_url,
            self._config,
            self._on_progress,
        )

    async def upload_files(self, files: Sequence[FileDescriptor]) -> List[FileResult]:
        """
        Upload every file and return one FileResult per input, in input order.

        Files of at least chunk_threshold_bytes go through a multipart session,
        smaller ones through a single PUT. Both groups run under the file-level
        concurrency limit. Individual failures are reported in the results.

        Raises:
            InvalidArgumentError: duplicate file indexes or bad limits
            ProviderContractError: provider answer with the wrong shape
        """
        files = list(files)
        if not files:
            return []

        indexes = [file.index for file in files]
        if len(set(indexes)) != len(indexes):
            raise InvalidArgumentError("File indexes must be unique within a batch")

        if self._chunked_handler is None or self._simple_handler is None:
            self._build_handlers()

        config = self._config
        chunked_files = [file for file in files if config.is_chunked(file)]
        simple_files = [file for file in files if not config.is_chunked(file)]
        logger.info(
            f"[batch] Starting upload: {len(files)} files "
            f"({len(chunked_files)} chunked >= {config.chunk_threshold_bytes} bytes, "
            f"{len(simple_files)} simple), max {config.concurrent_file_upload_limit} parallel"
        )

        results: Dict[int, FileResult] = {}

        if chunked_files:
            chunked_results = await map_concurrent(
                chunked_files,
                lambda file, _: self._chunked_handler.upload(file),
                config.concurrent_file_upload_limit,
            )
            for result in chunked_results:
                results[result.file_index] = result

        if simple_files:
            simple_results = await map_concurrent(
                simple_files,
                lambda file, _: self._simple_handler.upload(file),
                config.concurrent_file_upload_limit,
            )
            for result in simple_results:
                results[result.file_index] = result

        ordered = []
        for file in files:
            result = results.get(file.index)
            if result is None:
                logger.error(f"[batch] No result for file index {file.index} ({file.path})")
                result = FileResult.fail(file, "Upload result not found")
            ordered.append(result)

        uploaded = sum(1 for result in ordered if result.success)
        logger.info(f"[batch] Upload complete: {uploaded} successful, {len(ordered) - uploaded} failed")

        await emit("overall_progress", self._on_overall_progress, overall_progress(files, ordered))
        return ordered


def overall_progress(files: Sequence[FileDescriptor], results: Sequence[FileResult]) -> OverallProgress:
    """Bytes of non-failed files over requested bytes, rounded up and capped at 100."""
    total_bytes = sum(file.size for file in files)
    uploaded_bytes = sum(
        file.size for file, result in zip(files, results) if result.success
    )
    percent = min(math.ceil(uploaded_bytes / total_bytes * 100), 100) if total_bytes > 0 else 0
    return OverallProgress(percent=percent, uploaded_bytes=uploaded_bytes, total_bytes=total_bytes)
