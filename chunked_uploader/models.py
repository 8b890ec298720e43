"""
Models for chunked_uploader.

Immutable dataclasses shared by the orchestrators and services.
"""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple
import mimetypes
import os

from .errors import InvalidArgumentError, SizeLimitExceededError

MB = 1024 * 1024

DEFAULT_CHUNK_SIZE = 5 * MB
DEFAULT_CHUNK_THRESHOLD_BYTES = 5 * MB
DEFAULT_CONCURRENT_FILE_UPLOAD_LIMIT = 3
DEFAULT_CONCURRENT_CHUNK_UPLOAD_LIMIT = 6
DEFAULT_MAX_FILE_SIZE_MB = 4096

ENV_PREFIX = "UPLOADER_"
CONFIG_ENV_VARS = (
    "UPLOADER_CHUNK_THRESHOLD_MB",
    "UPLOADER_CHUNK_SIZE_MB",
    "UPLOADER_FILE_CONCURRENCY",
    "UPLOADER_CHUNK_CONCURRENCY",
    "UPLOADER_MAX_FILE_SIZE_MB",
    "UPLOADER_REQUEST_TIMEOUT",
    "UPLOADER_UPLOAD_THUMBNAILS",
)


class MediaKind(Enum):
    """Kind of media being uploaded."""
    PHOTO = "photo"
    VIDEO = "video"


class UploadType(Enum):
    """Signed URL flavour requested from the provider."""
    CHUNKED = "chunked"
    SIMPLE = "simple"
    THUMBNAIL = "thumbnail"


class UploadStatus(Enum):
    """Upload operation status."""
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class FileDescriptor:
    """A local file the caller wants uploaded."""
    index: int
    path: Path
    size: int
    media_kind: MediaKind
    thumbnail_path: Optional[Path] = None
    content_type: Optional[str] = None
    extension: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))
        if self.thumbnail_path is not None:
            object.__setattr__(self, "thumbnail_path", Path(self.thumbnail_path))

    @classmethod
    def from_path(
        cls,
        index: int,
        path: Path,
        thumbnail_path: Optional[Path] = None,
    ) -> "FileDescriptor":
        """Describe a file on disk, guessing kind and content type from its name."""
        path = Path(path)
        content_type, _ = mimetypes.guess_type(str(path))
        content_type = content_type or "application/octet-stream"
        media_kind = MediaKind.VIDEO if content_type.startswith("video/") else MediaKind.PHOTO
        return cls(
            index=index,
            path=path,
            size=path.stat().st_size,
            media_kind=media_kind,
            thumbnail_path=thumbnail_path,
            content_type=content_type,
            extension=path.suffix.lstrip(".").lower() or None,
        )


@dataclass(frozen=True)
class UploadUrlRequest:
    """Request sent to the signed URL provider."""
    upload_type: UploadType
    media_kind: Optional[MediaKind] = None
    content_type: Optional[str] = None
    extension: Optional[str] = None
    total_parts: Optional[int] = None


@dataclass(frozen=True)
class ChunkedUploadUrls:
    """Provider answer for a chunked request."""
    key: str
    session_id: str
    urls: Tuple[str, ...]


@dataclass(frozen=True)
class SingleUploadUrl:
    """Provider answer for a simple or thumbnail request."""
    url: str
    key: str


@dataclass(frozen=True)
class UploadSession:
    """Remote multipart session; shared read-only by the file's chunk tasks."""
    key: str
    session_id: str
    urls: Tuple[str, ...]

    def url_for(self, part_number: int) -> str:
        return self.urls[part_number - 1]


@dataclass(frozen=True)
class ChunkTask:
    """Byte range of a file uploaded as one part."""
    position: int
    length: int
    part_number: int


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of uploading one part: an integrity token or a failure reason."""
    part_number: int
    integrity_token: Optional[str] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.reason is None

    @classmethod
    def ok(cls, part_number: int, integrity_token: str):
        return cls(part_number=part_number, integrity_token=integrity_token)

    @classmethod
    def fail(cls, part_number: int, reason: str):
        return cls(part_number=part_number, reason=reason)


@dataclass(frozen=True)
class CompletedPart:
    integrity_token: str
    part_number: int


@dataclass(frozen=True)
class CompletionRequest:
    """Request sent to the mark-complete provider."""
    parts: Tuple[CompletedPart, ...]
    key: str
    session_id: str


@dataclass(frozen=True)
class ProgressSnapshot:
    """Progress of a single file, passed to the per-file progress callback."""
    file_index: int
    status: UploadStatus
    total_parts: int = 0
    uploaded_parts: int = 0
    percent: int = 0
    uploaded_bytes: int = 0
    total_bytes: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class OverallProgress:
    """Aggregate progress of a batch, delivered once at the end."""
    percent: int
    uploaded_bytes: int
    total_bytes: int


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int


@dataclass(frozen=True)
class ThumbnailOutcome:
    """
    Thumbnail generator answer: a path, or the reason none is available.

    temporary marks a file the generator created for this upload; only those
    are removed once uploaded.
    """
    path: Optional[Path] = None
    unavailable: Optional[str] = None
    temporary: bool = False

    @property
    def available(self) -> bool:
        return self.path is not None

    @classmethod
    def generated(cls, path: Path, temporary: bool = False):
        return cls(path=Path(path), temporary=temporary)

    @classmethod
    def not_available(cls, reason: str):
        return cls(unavailable=reason)


@dataclass(frozen=True)
class ThumbnailResult:
    """What the best-effort thumbnail step managed to produce."""
    thumbnail_key: Optional[str] = None
    dimensions: Optional[Dimensions] = None


@dataclass(frozen=True)
class FileResult:
    """Immutable result of uploading one file. Exactly one per input."""
    file_index: int
    media_kind: MediaKind
    status: UploadStatus
    key: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnail_key: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.COMPLETED

    @classmethod
    def ok(
        cls,
        file: FileDescriptor,
        key: str,
        thumbnail: Optional[ThumbnailResult] = None,
    ):
        thumbnail = thumbnail or ThumbnailResult()
        dimensions = thumbnail.dimensions
        return cls(
            file_index=file.index,
            media_kind=file.media_kind,
            status=UploadStatus.COMPLETED,
            key=key,
            width=dimensions.width if dimensions else None,
            height=dimensions.height if dimensions else None,
            thumbnail_key=thumbnail.thumbnail_key,
        )

    @classmethod
    def fail(cls, file: FileDescriptor, error: str):
        return cls(
            file_index=file.index,
            media_kind=file.media_kind,
            status=UploadStatus.FAILED,
            error=error,
        )


def size_in_whole_mb(size: int) -> int:
    """Bytes as megabytes rounded half-up to 2 decimals, then truncated."""
    megabytes = (Decimal(size) / Decimal(MB)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(megabytes)


def _env_int(name: str, default: int, scale: int = 1) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(float(value) * scale)
    except ValueError as exc:
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    chunk_threshold_bytes: int = DEFAULT_CHUNK_THRESHOLD_BYTES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    concurrent_file_upload_limit: Optional[int] = DEFAULT_CONCURRENT_FILE_UPLOAD_LIMIT
    concurrent_chunk_upload_limit: Optional[int] = DEFAULT_CONCURRENT_CHUNK_UPLOAD_LIMIT
    max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB
    upload_thumbnails: bool = True
    thumbnail_time_ms: int = 1000
    thumbnail_quality: float = 0.8
    request_timeout: float = 60.0
    thumbnail_content_type: str = field(default="image/jpeg", repr=False)
    thumbnail_extension: str = field(default="jpg", repr=False)

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise InvalidArgumentError("chunk_size must be greater than 0")
        if self.chunk_threshold_bytes < 0:
            raise InvalidArgumentError("chunk_threshold_bytes must not be negative")
        for name in ("concurrent_file_upload_limit", "concurrent_chunk_upload_limit"):
            limit = getattr(self, name)
            if limit is not None and limit <= 0:
                raise InvalidArgumentError(f"{name} must be greater than 0")
        if self.max_file_size_mb <= 0:
            raise InvalidArgumentError("max_file_size_mb must be greater than 0")
        if not 0 < self.thumbnail_quality <= 1:
            raise InvalidArgumentError("thumbnail_quality must be in (0, 1]")
        if self.request_timeout <= 0:
            raise InvalidArgumentError("request_timeout must be greater than 0")

    def is_chunked(self, file: FileDescriptor) -> bool:
        """Files at or above the threshold use a multipart session."""
        return file.size >= self.chunk_threshold_bytes

    def check_size_limit(self, file: FileDescriptor) -> None:
        """Raise SizeLimitExceededError when the file is above max_file_size_mb."""
        if size_in_whole_mb(file.size) > self.max_file_size_mb:
            raise SizeLimitExceededError(f"File size is greater than {self.max_file_size_mb} MB")

    @classmethod
    def from_env(cls) -> "UploadConfig":
        """Build a configuration from UPLOADER_* environment variables."""
        timeout = os.getenv("UPLOADER_REQUEST_TIMEOUT")
        thumbnails = os.getenv("UPLOADER_UPLOAD_THUMBNAILS", "true")
        try:
            request_timeout = float(timeout) if timeout else 60.0
        except ValueError as exc:
            raise InvalidArgumentError(
                f"UPLOADER_REQUEST_TIMEOUT must be a number, got {timeout!r}"
            ) from exc
        return cls(
            chunk_threshold_bytes=_env_int(
                "UPLOADER_CHUNK_THRESHOLD_MB", DEFAULT_CHUNK_THRESHOLD_BYTES, MB
            ),
            chunk_size=_env_int("UPLOADER_CHUNK_SIZE_MB", DEFAULT_CHUNK_SIZE, MB),
            concurrent_file_upload_limit=_env_int(
                "UPLOADER_FILE_CONCURRENCY", DEFAULT_CONCURRENT_FILE_UPLOAD_LIMIT
            ),
            concurrent_chunk_upload_limit=_env_int(
                "UPLOADER_CHUNK_CONCURRENCY", DEFAULT_CONCURRENT_CHUNK_UPLOAD_LIMIT
            ),
            max_file_size_mb=_env_int("UPLOADER_MAX_FILE_SIZE_MB", DEFAULT_MAX_FILE_SIZE_MB),
            upload_thumbnails=thumbnails.strip().lower() not in {"0", "false", "no", "off"},
            request_timeout=request_timeout,
        )
