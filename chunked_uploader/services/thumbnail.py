"""
Thumbnail Service - Single Responsibility: grab a still frame from a video.

Uses the ffmpeg binary when it is on PATH. Without it the generator answers
"unavailable" instead of raising.
"""
import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from ..errors import ThumbnailError
from ..models import ThumbnailOutcome

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "thumbnail_"


def jpeg_qscale(quality: float) -> int:
    """Map quality in (0, 1] to ffmpeg's -q:v scale (2 best .. 31 worst)."""
    quality = min(max(quality, 0.0), 1.0)
    return round(2 + (1 - quality) * 29)


class FfmpegThumbnailGenerator:
    """
    Extracts one JPEG frame with ffmpeg into a temporary directory.

    Implements IThumbnailGenerator protocol. The caller owns the returned
    file and its thumbnail_* parent directory.
    """

    def __init__(self, ffmpeg_path: Optional[str] = None):
        self._ffmpeg_path = ffmpeg_path

    def _resolve_ffmpeg(self) -> Optional[str]:
        return self._ffmpeg_path or shutil.which("ffmpeg")

    async def generate(
        self,
        video_path: Path,
        time_ms: int = 1000,
        quality: float = 0.8,
    ) -> ThumbnailOutcome:
        ffmpeg = self._resolve_ffmpeg()
        if not ffmpeg:
            return ThumbnailOutcome.not_available("ffmpeg is not installed")

        video_path = Path(video_path)
        out_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
        out_path = out_dir / f"{video_path.stem}.jpg"

        # Short clips have no frame at time_ms; fall back to the first frame.
        seek_positions = [time_ms / 1000, 0.0] if time_ms > 0 else [0.0]
        last_error = ""
        for seek in seek_positions:
            returncode, last_error = await self._run(
                self._command(ffmpeg, video_path, out_path, seek, quality)
            )
            if returncode == 0 and out_path.exists() and out_path.stat().st_size > 0:
                logger.debug(f"[thumbnail] Generated {out_path} at {seek:.3f}s")
                return ThumbnailOutcome.generated(out_path, temporary=True)

        shutil.rmtree(out_dir, ignore_errors=True)
        raise ThumbnailError(f"Failed to generate video thumbnail: {last_error or 'no frame written'}")

    @staticmethod
    def _command(ffmpeg: str, video_path: Path, out_path: Path, seek: float, quality: float) -> List[str]:
        return [
            ffmpeg,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-ss", f"{seek:.3f}",
            "-i", str(video_path),
            "-frames:v", "1",
            "-q:v", str(jpeg_qscale(quality)),
            str(out_path),
        ]

    @staticmethod
    async def _run(cmd: List[str]):
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        return process.returncode, stderr.decode(errors="replace").strip()
