"""Orchestrator package - coordinates upload workflows."""
from .core import UploadOrchestrator, overall_progress
from .concurrent import map_concurrent
from .chunk_planner import plan_chunks
from .chunked_upload import ChunkedUploadHandler
from .simple_upload import SimpleUploadHandler
from .thumbnail_handler import ThumbnailHandler

__all__ = [
    "UploadOrchestrator",
    "overall_progress",
    "map_concurrent",
    "plan_chunks",
    "ChunkedUploadHandler",
    "SimpleUploadHandler",
    "ThumbnailHandler",
]
