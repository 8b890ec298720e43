"""Services for chunked_uploader module."""
from .api_client import HTTPUploadUrlProvider
from .dimensions import PillowDimensionProbe
from .file_reader import LocalFileReader
from .thumbnail import FfmpegThumbnailGenerator
from .transport import HttpxTransport

__all__ = [
    "HTTPUploadUrlProvider",
    "PillowDimensionProbe",
    "LocalFileReader",
    "FfmpegThumbnailGenerator",
    "HttpxTransport",
]
