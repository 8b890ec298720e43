"""Upload a single byte range of a file to its signed part URL."""
import logging
from pathlib import Path

from ..errors import ChunkUploadError, describe_exception
from ..models import ChunkOutcome, ChunkTask, UploadSession
from ..protocols import IFileReader, IHttpTransport
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

CHUNK_CONTENT_TYPE = "application/octet-stream"
INTEGRITY_HEADER = "ETag"


def strip_quotes(value: str) -> str:
    """Remove one leading and one trailing double quote, as S3 wraps ETags."""
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


class ChunkUploader:
    """
    Uploads the parts of one file.

    Failures come back as ChunkOutcome.fail so sibling parts keep going.
    """

    def __init__(
        self,
        reader: IFileReader,
        transport: IHttpTransport,
        session: UploadSession,
        path: Path,
        tracker: ProgressTracker,
    ):
        self._reader = reader
        self._transport = transport
        self._session = session
        self._path = Path(path)
        self._tracker = tracker

    async def _read(self, task: ChunkTask) -> bytes:
        handle = await self._reader.open(self._path)
        try:
            data = await self._reader.read(handle, task.position, task.length)
        finally:
            await self._reader.close(handle)
        if len(data) != task.length:
            raise ChunkUploadError(
                task.part_number,
                f"short read: expected {task.length} bytes, got {len(data)}",
            )
        return data

    async def upload(self, task: ChunkTask) -> ChunkOutcome:
        """Read, PUT and acknowledge one part."""
        try:
            data = await self._read(task)
            response = await self._transport.put(
                self._session.url_for(task.part_number),
                data,
                {"Content-Type": CHUNK_CONTENT_TYPE},
            )
            if response.status != 200:
                raise ChunkUploadError(task.part_number, f"Received {response.status} status")

            integrity_token = strip_quotes(response.header(INTEGRITY_HEADER) or "")
        except ChunkUploadError as e:
            logger.warning(f"[chunk] {self._path.name} {e}")
            return ChunkOutcome.fail(task.part_number, e.reason)
        except Exception as e:
            reason = describe_exception(e)
            logger.warning(f"[chunk] {self._path.name} part {task.part_number} failed: {reason}")
            return ChunkOutcome.fail(task.part_number, reason)

        await self._tracker.part_uploaded()
        logger.debug(
            f"[chunk] {self._path.name} part {task.part_number}/{self._tracker.total_parts} uploaded"
        )
        return ChunkOutcome.ok(task.part_number, integrity_token)

    async def __call__(self, task: ChunkTask, index: int) -> ChunkOutcome:
        return await self.upload(task)
