"""Per-file progress bookkeeping."""
import math
from typing import Optional

from ..models import ProgressSnapshot, UploadStatus
from ..protocols import ProgressCallback
from ..utils.events import emit


class ProgressTracker:
    """
    Counts uploaded parts of one file and reports ProgressSnapshots.

    Only the owning file's chunk tasks touch the counter, and they all run
    on the same event loop, so no lock is needed. Reported percent never
    goes down.
    """

    def __init__(
        self,
        file_index: int,
        total_bytes: int,
        total_parts: int = 0,
        part_size: int = 0,
        callback: Optional[ProgressCallback] = None,
    ):
        self.file_index = file_index
        self.total_bytes = total_bytes
        self.total_parts = total_parts
        self.part_size = part_size
        self.uploaded_parts = 0
        self._percent = 0
        self._callback = callback

    @property
    def percent(self) -> int:
        return self._percent

    def _snapshot(self, status: UploadStatus, percent: int, uploaded_bytes: int, error=None):
        self._percent = max(self._percent, min(percent, 100))
        return ProgressSnapshot(
            file_index=self.file_index,
            status=status,
            total_parts=self.total_parts,
            uploaded_parts=self.uploaded_parts,
            percent=self._percent,
            uploaded_bytes=uploaded_bytes,
            total_bytes=self.total_bytes,
            error=error,
        )

    async def part_uploaded(self) -> ProgressSnapshot:
        """Record one more uploaded part and report it."""
        self.uploaded_parts += 1
        percent = math.ceil(self.uploaded_parts / self.total_parts * 100) if self.total_parts else 0
        # Approximation: the last part may be shorter than part_size.
        uploaded_bytes = min(self.uploaded_parts * self.part_size, self.total_bytes)
        snapshot = self._snapshot(UploadStatus.UPLOADING, percent, uploaded_bytes)
        await emit("progress", self._callback, snapshot)
        return snapshot

    async def bytes_sent(self, sent: int) -> ProgressSnapshot:
        """Report a single-shot body that has `sent` of its bytes on the wire."""
        sent = min(max(sent, 0), self.total_bytes)
        percent = math.floor(sent / self.total_bytes * 100) if self.total_bytes else 0
        snapshot = self._snapshot(UploadStatus.UPLOADING, percent, sent)
        await emit("progress", self._callback, snapshot)
        return snapshot

    async def started(self) -> ProgressSnapshot:
        snapshot = self._snapshot(UploadStatus.UPLOADING, 0, 0)
        await emit("progress", self._callback, snapshot)
        return snapshot

    async def completed(self) -> ProgressSnapshot:
        if self.total_parts:
            self.uploaded_parts = self.total_parts
        snapshot = self._snapshot(UploadStatus.COMPLETED, 100, self.total_bytes)
        await emit("progress", self._callback, snapshot)
        return snapshot

    async def failed(self, error: str) -> ProgressSnapshot:
        uploaded_bytes = min(self.uploaded_parts * self.part_size, self.total_bytes)
        snapshot = self._snapshot(UploadStatus.FAILED, self._percent, uploaded_bytes, error)
        await emit("progress", self._callback, snapshot)
        return snapshot
