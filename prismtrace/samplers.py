"""
Samplers map a surface coordinate and/or a world-space point to a color.

Implements:
- Constant colors
- 3D checker patterns built from two sub-samplers
- Image lookups by wrapped UV
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Union
import math

from .vec3 import Color, Point3
from .image import Image


class Sampler(ABC):
    """Abstract base class for samplers."""

    @abstractmethod
    def value(self, u: float, v: float, point: Point3) -> Color:
        """Get the color at the given surface coordinate.

        Args:
            u: Horizontal surface coordinate, nominally [0, 1]
            v: Vertical surface coordinate, nominally [0, 1]
            point: 3D point in world space (for procedural samplers)

        Returns:
            Color at this location
        """
        pass


def as_sampler(value: Union[Sampler, Color]) -> Sampler:
    """Wrap a literal color in a ColorSampler, pass samplers through."""
    if isinstance(value, Sampler):
        return value
    return ColorSampler(value)


class ColorSampler(Sampler):
    """A constant color."""

    def __init__(self, color: Color):
        self.color = color

    @classmethod
    def from_rgb(cls, r: float, g: float, b: float) -> ColorSampler:
        return cls(Color(r, g, b))

    def value(self, u: float, v: float, point: Point3) -> Color:
        return self.color

    def __repr__(self) -> str:
        return f"ColorSampler({self.color})"


class CheckerSampler(Sampler):
    """A 3D checker pattern alternating between two samplers.

    The pattern is computed from the world-space point rather than UV, so
    it stays continuous across surfaces regardless of their parametrization.
    """

    def __init__(self, even: Sampler, odd: Sampler, scale: float = 1.0):
        """Create a checker sampler.

        Args:
            even: Sampler used where the cell index sum is even
            odd: Sampler used where the cell index sum is odd
            scale: Edge length of each checker cell
        """
        self.even = even
        self.odd = odd
        self.scale = scale

    @classmethod
    def from_colors(cls, even: Color, odd: Color, scale: float = 1.0) -> CheckerSampler:
        return cls(ColorSampler(even), ColorSampler(odd), scale)

    def is_even(self, point: Point3) -> bool:
        """Whether the checker cell containing point has an even index sum."""
        x = math.floor(point.x / self.scale)
        y = math.floor(point.y / self.scale)
        z = math.floor(point.z / self.scale)
        return (x + y + z) % 2 == 0

    def value(self, u: float, v: float, point: Point3) -> Color:
        if self.is_even(point):
            return self.even.value(u, v, point)
        return self.odd.value(u, v, point)


class TextureSampler(Sampler):
    """Looks up a decoded image by wrapped UV."""

    def __init__(self, image: Image, scale: float = 1.0):
        """Create an image-backed sampler.

        Args:
            image: Decoded pixel data (shared, never modified)
            scale: Repetition factor applied to UV before wrapping
        """
        self.image = image
        self.scale = scale

    @staticmethod
    def _wrap(coord: float) -> float:
        if 0.0 <= coord <= 1.0:
            return coord
        return coord - math.floor(coord)

    def value(self, u: float, v: float, point: Point3) -> Color:
        u = self._wrap(u * self.scale)
        # Flip v to match image rows (row 0 is the top)
        v = 1.0 - self._wrap(v * self.scale)

        width = self.image.width
        height = self.image.height
        i = min(max(int(math.floor(u * (width - 1))), 0), width - 1)
        j = min(max(int(math.floor(v * (height - 1))), 0), height - 1)

        pixel = self.image.data[j, i]
        if self.image.channels < 3:
            gray = pixel[0] / 255.0
            return Color(gray, gray, gray)
        return Color(pixel[0] / 255.0, pixel[1] / 255.0, pixel[2] / 255.0)

    def __repr__(self) -> str:
        return f"TextureSampler({self.image!r}, scale={self.scale})"
