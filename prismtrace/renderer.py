"""
Renderer module - the heart of the ray tracer.

Implements:
- Recursive path tracing with a fixed depth limit
- Box-filter anti-aliasing over jittered samples
- Multi-threaded tile-based rendering with per-tile random streams
- Gamma tone mapping into an 8-bit framebuffer
"""

from __future__ import annotations
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

from .vec3 import Color, get_rng
from .ray import Ray
from .camera import Camera
from .shapes import Hittable
from .framebuffer import Framebuffer
from .errors import RenderCancelled, RenderSettingsError

logger = logging.getLogger(__name__)

Tile = Tuple[int, int, int, int]


@dataclass
class RenderSettings:
    """Configuration for the renderer."""
    width: int = 800
    height: int = 600
    samples_per_pixel: int = 100
    max_depth: int = 50
    tile_size: int = 32
    num_threads: int = 0  # 0 = auto-detect
    background_color: Color = None
    use_sky_gradient: bool = False
    gamma: float = 2.0
    t_min: float = 0.001  # Minimum hit distance, avoids self-intersection
    seed: Optional[int] = None

    def __post_init__(self):
        if self.background_color is None:
            self.background_color = Color(0.0, 0.0, 0.0)
        if self.num_threads == 0:
            self.num_threads = os.cpu_count() or 4

        for name in ('width', 'height', 'samples_per_pixel', 'max_depth', 'tile_size', 'num_threads'):
            value = getattr(self, name)
            if value <= 0:
                raise RenderSettingsError(f"{name} must be positive, got {value}")
        if self.gamma <= 0:
            raise RenderSettingsError(f"gamma must be positive, got {self.gamma}")
        if self.t_min < 0:
            raise RenderSettingsError(f"t_min must not be negative, got {self.t_min}")


class Renderer:
    """Path tracing renderer with multi-threading support."""

    def __init__(self, settings: RenderSettings = None):
        """Create a renderer with the given settings.

        Args:
            settings: Render configuration (uses defaults if None)
        """
        self.settings = settings if settings else RenderSettings()
        self._progress_callback: Optional[Callable[[float], None]] = None
        self._cancel_flag = threading.Event()

    def set_progress_callback(self, callback: Callable[[float], None]) -> None:
        """Set a callback function for progress updates.

        Args:
            callback: Function that takes progress as float (0.0 to 1.0)
        """
        self._progress_callback = callback

    def cancel(self) -> None:
        """Stop the running trace at the next tile boundary.

        A cancel issued before a trace starts stops that trace before its
        first tile. The request is consumed when the trace ends.
        """
        self._cancel_flag.set()

    def trace(self, buffer: Framebuffer, scene: Hittable, camera: Camera) -> None:
        """Trace the scene into a framebuffer.

        The buffer's own size is used, not the settings' width and height.
        Each tile is tone mapped and written into its own region of the
        buffer. Blocks until every pixel is written.

        Raises:
            RenderCancelled: If cancel() was called before the trace finished
        """
        def write_tile(tile: Tile, tile_image: np.ndarray) -> None:
            x0, y0, _, _ = tile
            buffer.blit(x0, y0, self.to_ldr(tile_image))

        self._render_tiles(buffer.width, buffer.height, scene, camera, write_tile)

    def render(self, scene: Hittable, camera: Camera) -> np.ndarray:
        """Render the scene and return the image as a numpy array.

        Args:
            scene: The scene to render (any Hittable)
            camera: The camera to render from

        Returns:
            HDR image as numpy array of shape (height, width, 3), row 0 at the top
        """
        width = self.settings.width
        height = self.settings.height

        # Initialize output image (HDR, no clamping during accumulation)
        image = np.zeros((height, width, 3), dtype=np.float64)

        def store_tile(tile: Tile, tile_image: np.ndarray) -> None:
            x0, y0, x1, y1 = tile
            image[y0:y1, x0:x1] = tile_image

        self._render_tiles(width, height, scene, camera, store_tile)
        return image

    def _render_tiles(self, width: int, height: int, scene: Hittable, camera: Camera,
                      sink: Callable[[Tile, np.ndarray], None]) -> None:
        """Render every tile and hand each finished tile to sink."""
        samples = self.settings.samples_per_pixel
        max_depth = self.settings.max_depth

        tiles = self._generate_tiles(width, height)
        total_tiles = len(tiles)

        # One independent random stream per tile, fixed by the seed
        seeds = np.random.SeedSequence(self.settings.seed).spawn(total_tiles)
        completed_tiles = [0]
        progress_lock = threading.Lock()

        def render_tile(index: int) -> None:
            """Render a single tile."""
            if self._cancel_flag.is_set():
                raise RenderCancelled("Render cancelled")

            x0, y0, x1, y1 = tiles[index]
            rng = np.random.default_rng(seeds[index])
            tile_image = np.zeros((y1 - y0, x1 - x0, 3), dtype=np.float64)

            for y in range(y0, y1):
                for x in range(x0, x1):
                    pixel_color = Color(0, 0, 0)

                    for _ in range(samples):
                        jitter_x, jitter_y = rng.random(2)
                        s = (x + jitter_x) / width
                        t = (height - 1 - y + jitter_y) / height

                        ray = camera.get_ray(s, t, rng)
                        pixel_color = pixel_color + self.ray_color(ray, scene, max_depth, rng)

                    tile_image[y - y0, x - x0] = pixel_color.to_array() / samples

            sink(tiles[index], tile_image)

            # Callbacks see strictly increasing fractions
            with progress_lock:
                completed_tiles[0] += 1
                if self._progress_callback:
                    self._progress_callback(completed_tiles[0] / total_tiles)

        logger.info(
            "Tracing %dx%d, %d spp, depth %d, %d tiles on %d threads",
            width, height, samples, max_depth, total_tiles, self.settings.num_threads
        )
        start_time = time.perf_counter()

        try:
            if self.settings.num_threads > 1:
                with ThreadPoolExecutor(max_workers=self.settings.num_threads) as executor:
                    # list() re-raises the first worker exception
                    list(executor.map(render_tile, range(total_tiles)))
            else:
                for index in range(total_tiles):
                    render_tile(index)
        except RenderCancelled:
            logger.warning("Trace cancelled after %d of %d tiles", completed_tiles[0], total_tiles)
            raise
        finally:
            self._cancel_flag.clear()

        logger.info("Trace finished in %.2fs", time.perf_counter() - start_time)

    def ray_color(self, ray: Ray, scene: Hittable, depth: int,
                  rng: Optional[np.random.Generator] = None) -> Color:
        """Compute the radiance carried back along a ray.

        Args:
            ray: The ray to trace
            scene: The scene to trace against
            depth: Remaining bounces; at 0 the ray contributes nothing

        Returns:
            The computed (unclamped) color for this ray
        """
        if depth <= 0:
            return Color(0, 0, 0)

        rng = get_rng(rng)

        hit_record = scene.hit(ray, self.settings.t_min, float('inf'))

        if hit_record is None:
            if self.settings.use_sky_gradient:
                return self._sky_color(ray)
            return self.settings.background_color

        material = hit_record.material
        emitted = material.emitted(hit_record.u, hit_record.v, hit_record.point)

        scatter_result = material.scatter(ray, hit_record, rng)
        if scatter_result is None:
            return emitted

        return emitted + scatter_result.attenuation * self.ray_color(
            scatter_result.scattered_ray, scene, depth - 1, rng
        )

    @staticmethod
    def _sky_color(ray: Ray) -> Color:
        """Vertical white-to-blue gradient background."""
        unit_direction = ray.direction.normalize()
        t = 0.5 * (unit_direction.y + 1.0)
        return Color(1.0, 1.0, 1.0) * (1.0 - t) + Color(0.5, 0.7, 1.0) * t

    def _generate_tiles(self, width: int, height: int) -> list[Tile]:
        """Split the image into tiles as (x0, y0, x1, y1) tuples, row by row."""
        tile_size = self.settings.tile_size
        tiles = []

        for y in range(0, height, tile_size):
            for x in range(0, width, tile_size):
                x1 = min(x + tile_size, width)
                y1 = min(y + tile_size, height)
                tiles.append((x, y, x1, y1))

        return tiles

    def to_ldr(self, hdr_image: np.ndarray) -> np.ndarray:
        """Convert HDR image to 8-bit LDR with gamma correction.

        Args:
            hdr_image: HDR image array (float64)

        Returns:
            LDR image as uint8 array
        """
        gamma = self.settings.gamma
        corrected = np.power(np.clip(hdr_image, 0, None), 1.0 / gamma)

        # Clamp and convert to 8-bit
        return np.clip(corrected * 255, 0, 255).astype(np.uint8)
