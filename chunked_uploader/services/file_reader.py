"""
File Reader - Single Responsibility: read byte ranges from local files.

Blocking file I/O runs in the default thread pool so the event loop keeps
serving other uploads.
"""
import asyncio
from pathlib import Path
from typing import BinaryIO


class LocalFileReader:
    """
    Byte-range reader over the local filesystem.

    Implements IFileReader protocol.
    """

    async def open(self, path: Path) -> BinaryIO:
        return await asyncio.to_thread(open, Path(path), "rb")

    async def read(self, handle: BinaryIO, offset: int, length: int) -> bytes:
        def _read_range() -> bytes:
            handle.seek(offset)
            return handle.read(length)

        return await asyncio.to_thread(_read_range)

    async def close(self, handle: BinaryIO) -> None:
        await asyncio.to_thread(handle.close)

    async def read_all(self, path: Path) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)
