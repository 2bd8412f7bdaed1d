"""
Framebuffer: the dense RGBA8 color buffer the tracer writes into.

Rows are stored top to bottom, each `pitch` bytes long. Writes that fall
outside the buffer are clipped silently.
"""

from __future__ import annotations
from pathlib import Path
from typing import Sequence, Union

import numpy as np
from PIL import Image as PILImage

from .image import Image

RGBA = Sequence[int]


class Framebuffer:
    """A width x height RGBA color buffer with a fixed row pitch."""

    CHANNELS = 4

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Framebuffer size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.pitch = width * self.CHANNELS
        self.data = np.zeros((height, width, self.CHANNELS), dtype=np.uint8)

    def clear(self, color: RGBA = (0, 0, 0, 0)) -> None:
        """Fill the whole buffer with one color."""
        self.data[:, :] = np.asarray(color, dtype=np.uint8)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def draw_point(self, x: int, y: int, color: RGBA) -> None:
        """Alpha-blend a single pixel; points outside the buffer are skipped."""
        if not self.in_bounds(x, y):
            return

        r, g, b, a = (int(c) for c in color)
        if a == 0:
            return
        if a == 255:
            self.data[y, x, :3] = (r, g, b)
            return

        dest = self.data[y, x, :3].astype(np.uint16)
        src = np.array((r, g, b), dtype=np.uint16)
        self.data[y, x, :3] = ((src * a + dest * (255 - a)) // 255).astype(np.uint8)

    def blit(self, x: int, y: int, pixels: np.ndarray) -> None:
        """Copy an (h, w, 3|4) uint8 block with its top-left corner at (x, y).

        RGB blocks are written fully opaque. The block is clipped to the buffer.
        """
        h, w = pixels.shape[:2]
        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + w, self.width), min(y + h, self.height)
        if x0 >= x1 or y0 >= y1:
            return

        block = pixels[y0 - y:y1 - y, x0 - x:x1 - x]
        self.data[y0:y1, x0:x1, :block.shape[2]] = block
        if block.shape[2] == 3:
            self.data[y0:y1, x0:x1, 3] = 255

    def draw_image(self, x: int, y: int, image: Image) -> None:
        """Alpha-blend an image with its top-left corner at (x, y), clipped."""
        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + image.width, self.width), min(y + image.height, self.height)
        if x0 >= x1 or y0 >= y1:
            return

        src = image.data[y0 - y:y1 - y, x0 - x:x1 - x]
        if image.channels >= 3:
            rgb = src[:, :, :3].astype(np.uint16)
        else:
            rgb = np.repeat(src[:, :, :1], 3, axis=2).astype(np.uint16)
        if image.channels in (2, 4):
            alpha = src[:, :, -1:].astype(np.uint16)
        else:
            alpha = np.full(src.shape[:2] + (1,), 255, dtype=np.uint16)

        dest = self.data[y0:y1, x0:x1, :3].astype(np.uint16)
        self.data[y0:y1, x0:x1, :3] = ((rgb * alpha + dest * (255 - alpha)) // 255).astype(np.uint8)

    def to_bytes(self) -> bytes:
        """Return the buffer as row-major RGBA bytes (pitch bytes per row)."""
        return self.data.tobytes()

    def save(self, filename: Union[str, Path]) -> None:
        """Save the buffer as an image file (format from the extension)."""
        PILImage.fromarray(self.data[:, :, :3], 'RGB').save(filename)

    def __repr__(self) -> str:
        return f"Framebuffer({self.width}x{self.height}, pitch={self.pitch})"
