"""
Decoded images for image-backed samplers.

The tracer only ever sees already decoded pixels: a dense row-major
array of shape (height, width, channels) with 8-bit channels. Loading
from disk is a thin Pillow adapter kept outside the trace path.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


class Image:
    """Row-major 8-bit pixel data with known width, height and channel count."""

    __slots__ = ('data',)

    def __init__(self, data: np.ndarray):
        """Wrap decoded pixel data.

        Args:
            data: uint8 array of shape (height, width) or (height, width, channels)
                  with 1 to 4 channels. Row 0 is the top row of the image.
        """
        data = np.asarray(data)
        if data.ndim == 2:
            data = data[:, :, np.newaxis]
        if data.ndim != 3 or not 1 <= data.shape[2] <= 4:
            raise ValueError(f"Expected (height, width, channels) pixel data, got shape {data.shape}")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise ValueError("Image must contain at least one pixel")
        self.data = np.ascontiguousarray(data, dtype=np.uint8)

    @classmethod
    def from_array(cls, data: np.ndarray) -> Image:
        """Create an image from an already decoded array."""
        return cls(data)

    @classmethod
    def load(cls, filename: Union[str, Path], alpha: int = 255) -> Image:
        """Decode an image file into RGBA pixel data.

        Args:
            filename: Path to any format Pillow can read
            alpha: Alpha value written into every pixel of images without
                   their own alpha channel
        """
        path = Path(filename)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {filename}")

        with PILImage.open(path) as img:
            has_alpha = 'A' in img.getbands()
            data = np.array(img.convert('RGBA'), dtype=np.uint8)

        if not has_alpha:
            data[:, :, 3] = alpha

        logger.debug("Loaded image %s (%dx%d)", path, data.shape[1], data.shape[0])
        return cls(data)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return int(self.data.shape[2])

    def flip(self) -> Image:
        """Return a vertically flipped copy."""
        return Image(self.data[::-1])

    def __repr__(self) -> str:
        return f"Image({self.width}x{self.height}, channels={self.channels})"
