"""
Error taxonomy for chunked uploads.

Chunk, thumbnail and dimension failures are captured as data and never
raised out of a file pipeline. Session-request and completion failures fail
only their own file. Only configuration errors and provider responses with
the wrong shape escape the batch call.
"""


class UploaderError(Exception):
    """Base class for uploader errors."""


class InvalidArgumentError(UploaderError, ValueError):
    """Raised for invalid configuration values (e.g. concurrency <= 0)."""


class SizeLimitExceededError(UploaderError):
    """File is larger than the configured maximum."""


class SignedUrlError(UploaderError):
    """Provider returned no usable signed URLs."""


class ChunkUploadError(UploaderError):
    """A single part PUT failed."""

    def __init__(self, part_number: int, reason: str):
        super().__init__(f"Part {part_number} failed: {reason}")
        self.part_number = part_number
        self.reason = reason


class CompletionError(UploaderError):
    """Mark-complete provider rejected the session."""


class ThumbnailError(UploaderError):
    """Thumbnail generation or upload failed (best-effort)."""


class DimensionProbeError(UploaderError):
    """Pixel dimensions could not be read (best-effort)."""


class ProviderContractError(UploaderError):
    """Provider response is missing fields required by its contract."""


class TransportError(UploaderError):
    """HTTP PUT could not be performed."""


class ApiError(UploaderError):
    """Upload API answered with an error status."""

    def __init__(self, status_code: int, method: str, endpoint: str, detail):
        super().__init__(f"API error {status_code} on {method} {endpoint}: {detail}")
        self.status_code = status_code
        self.detail = detail


def describe_exception(exc: BaseException) -> str:
    """Human-readable reason for a captured failure."""
    message = str(exc).strip()
    if message:
        return message
    return f"{type(exc).__name__}: {repr(exc)}"
