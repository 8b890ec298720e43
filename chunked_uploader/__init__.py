"""
chunked_uploader - upload large files through pre-signed URLs.

Big files are split into parts uploaded in parallel to a multipart session;
small files go up with a single PUT. The client never sees storage
credentials and never holds a whole large file in memory.

Usage:
    from chunked_uploader import (
        FileDescriptor, HTTPUploadUrlProvider, UploadConfig, UploadOrchestrator,
    )

    files = [FileDescriptor.from_path(i, p) for i, p in enumerate(paths)]

    async with HTTPUploadUrlProvider("http://localhost:3000") as provider:
        async with UploadOrchestrator(
            provider.get_upload_url,
            provider.mark_upload_complete,
            config=UploadConfig(chunk_size=8 * 1024 * 1024),
            on_progress=lambda p: print(p.file_index, p.percent),
        ) as uploader:
            results = await uploader.upload_files(files)
"""
from .errors import (
    UploaderError,
    InvalidArgumentError,
    SizeLimitExceededError,
    SignedUrlError,
    ChunkUploadError,
    CompletionError,
    ThumbnailError,
    DimensionProbeError,
    ProviderContractError,
    TransportError,
    ApiError,
)
from .models import (
    ChunkOutcome,
    ChunkTask,
    CompletionRequest,
    Dimensions,
    FileDescriptor,
    FileResult,
    MediaKind,
    OverallProgress,
    ProgressSnapshot,
    ThumbnailOutcome,
    UploadConfig,
    UploadSession,
    UploadStatus,
    UploadType,
    UploadUrlRequest,
)
from .orchestrator import UploadOrchestrator, map_concurrent, plan_chunks
from .services import (
    FfmpegThumbnailGenerator,
    HTTPUploadUrlProvider,
    HttpxTransport,
    LocalFileReader,
    PillowDimensionProbe,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "map_concurrent",
    "plan_chunks",
    # Models
    "ChunkOutcome",
    "ChunkTask",
    "CompletionRequest",
    "Dimensions",
    "FileDescriptor",
    "FileResult",
    "MediaKind",
    "OverallProgress",
    "ProgressSnapshot",
    "ThumbnailOutcome",
    "UploadConfig",
    "UploadSession",
    "UploadStatus",
    "UploadType",
    "UploadUrlRequest",
    # Services
    "FfmpegThumbnailGenerator",
    "HTTPUploadUrlProvider",
    "HttpxTransport",
    "LocalFileReader",
    "PillowDimensionProbe",
    # Errors
    "UploaderError",
    "InvalidArgumentError",
    "SizeLimitExceededError",
    "SignedUrlError",
    "ChunkUploadError",
    "CompletionError",
    "ThumbnailError",
    "DimensionProbeError",
    "ProviderContractError",
    "TransportError",
    "ApiError",
]
