"""Best-effort thumbnail generation/upload and dimension probing."""
import logging
import shutil
from pathlib import Path
from typing import Optional

from ..errors import DimensionProbeError, ThumbnailError, describe_exception
from ..models import (
    Dimensions,
    FileDescriptor,
    MediaKind,
    SingleUploadUrl,
    ThumbnailOutcome,
    ThumbnailResult,
    UploadConfig,
    UploadType,
    UploadUrlRequest,
)
from ..protocols import (
    IDimensionProbe,
    IFileReader,
    IHttpTransport,
    IThumbnailGenerator,
    UploadUrlProvider,
)
from ..services.thumbnail import TEMP_DIR_PREFIX
from .signed_urls import parse_upload_url_response

logger = logging.getLogger(__name__)


class ThumbnailHandler:
    """
    Produces the thumbnail key and pixel dimensions for an uploaded file.

    Nothing here fails the parent upload: every step returns None when it
    cannot do its job and logs why.
    """

    def __init__(
        self,
        reader: IFileReader,
        transport: IHttpTransport,
        config: Optional[UploadConfig] = None,
        url_provider: Optional[UploadUrlProvider] = None,
        dimension_probe: Optional[IDimensionProbe] = None,
        thumbnail_generator: Optional[IThumbnailGenerator] = None,
    ):
        self._reader = reader
        self._transport = transport
        self._config = config or UploadConfig()
        self._url_provider = url_provider
        self._probe = dimension_probe
        self._generator = thumbnail_generator

    async def process(self, file: FileDescriptor) -> ThumbnailResult:
        """Thumbnail + dimensions for videos, dimensions only for photos."""
        if file.media_kind != MediaKind.VIDEO:
            return ThumbnailResult(dimensions=await self.probe_dimensions(file.path))

        if self._url_provider is None:
            return ThumbnailResult()

        temporary = False
        thumbnail_path = file.thumbnail_path
        if thumbnail_path is None:
            outcome = await self.generate_thumbnail(file.path)
            if outcome is None:
                return ThumbnailResult()
            thumbnail_path = outcome.path
            temporary = outcome.temporary

        try:
            thumbnail_key = await self.upload_thumbnail(thumbnail_path)
            dimensions = await self.probe_dimensions(thumbnail_path)
            return ThumbnailResult(thumbnail_key=thumbnail_key, dimensions=dimensions)
        finally:
            if temporary:
                self._cleanup(thumbnail_path)

    async def generate_thumbnail(self, video_path: Path) -> Optional[ThumbnailOutcome]:
        """Ask the generator for a still frame; None when unavailable or failed."""
        if self._generator is None:
            logger.warning(
                f"[thumbnail] No thumbnail generator configured. Skipping thumbnail for {video_path}"
            )
            return None

        try:
            outcome = await self._generator.generate(
                Path(video_path),
                time_ms=self._config.thumbnail_time_ms,
                quality=self._config.thumbnail_quality,
            )
        except Exception as e:
            logger.error(f"[thumbnail] Failed to generate thumbnail for {video_path}: {e}")
            return None

        if not outcome.available:
            logger.warning(
                f"[thumbnail] Thumbnail generation unavailable ({outcome.unavailable}). "
                f"Skipping thumbnail for {video_path}"
            )
            return None
        return outcome

    async def upload_thumbnail(self, thumbnail_path: Path) -> Optional[str]:
        """Request a thumbnail URL and PUT the image; returns its key or None."""
        if self._url_provider is None:
            return None

        try:
            return await self._upload_thumbnail(Path(thumbnail_path))
        except Exception as e:
            logger.error(f"[thumbnail] Failed to upload thumbnail {thumbnail_path}: {describe_exception(e)}")
            return None

    async def _upload_thumbnail(self, thumbnail_path: Path) -> str:
        request = UploadUrlRequest(
            upload_type=UploadType.THUMBNAIL,
            content_type=self._config.thumbnail_content_type,
            extension=self._config.thumbnail_extension,
        )
        signed = parse_upload_url_response(UploadType.THUMBNAIL, await self._url_provider(request))
        assert isinstance(signed, SingleUploadUrl)

        data = await self._reader.read_all(thumbnail_path)
        response = await self._transport.put(
            signed.url,
            data,
            {"Content-Type": self._config.thumbnail_content_type},
        )
        if response.status != 200:
            raise ThumbnailError(f"Thumbnail upload failed with status {response.status}")

        logger.info(f"[thumbnail] Uploaded {thumbnail_path.name} -> {signed.key}")
        return signed.key

    async def probe_dimensions(self, path: Path) -> Optional[Dimensions]:
        """Pixel size of an image file, or None."""
        if self._probe is None:
            return None

        try:
            dimensions = await self._probe.probe(Path(path))
            if dimensions is None or dimensions.width <= 0 or dimensions.height <= 0:
                raise DimensionProbeError(f"no usable dimensions: {dimensions}")
        except Exception as e:
            logger.error(f"[thumbnail] Failed to get image size for {path}: {e}")
            return None
        return dimensions

    @staticmethod
    def _cleanup(path: Path) -> None:
        path = Path(path)
        path.unlink(missing_ok=True)
        if path.parent.name.startswith(TEMP_DIR_PREFIX):
            shutil.rmtree(path.parent, ignore_errors=True)
