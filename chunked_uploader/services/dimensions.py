"""Dimension probe backed by Pillow."""
import asyncio
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..errors import DimensionProbeError
from ..models import Dimensions


class PillowDimensionProbe:
    """Reads pixel width/height from an image header without decoding it."""

    async def probe(self, path: Path) -> Dimensions:
        return await asyncio.to_thread(self._probe, Path(path))

    @staticmethod
    def _probe(path: Path) -> Dimensions:
        try:
            with Image.open(path) as image:
                width, height = image.size
        except (OSError, UnidentifiedImageError) as e:
            raise DimensionProbeError(f"Failed to calculate image size: {e}") from e
        return Dimensions(width=width, height=height)
