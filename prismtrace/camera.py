"""
Camera module for generating primary rays.

Supports:
- Perspective projection
- Depth of field (thin lens defocus blur)
- Configurable field of view
- Arbitrary positioning via look-at
"""

from __future__ import annotations
import math
from typing import Optional

import numpy as np

from .vec3 import Vec3, Point3
from .ray import Ray
from .errors import CameraConfigError


class Camera:
    """A camera with perspective projection and depth of field.

    All derived vectors are computed once at construction; the camera is
    read-only afterwards and safe to share between render threads.
    """

    def __init__(
        self,
        look_from: Point3,
        look_at: Point3,
        vup: Vec3 = Vec3(0, 1, 0),
        vfov: float = 90.0,
        aspect_ratio: float = 16.0 / 9.0,
        aperture: float = 0.0,
        focus_dist: float = 1.0
    ):
        """Create a camera.

        Args:
            look_from: Camera position in world space
            look_at: Point the camera is looking at
            vup: World up vector (usually (0, 1, 0))
            vfov: Vertical field of view in degrees
            aspect_ratio: Width / Height ratio
            aperture: Lens diameter for depth of field (0 = pinhole)
            focus_dist: Distance to the plane in perfect focus

        Raises:
            CameraConfigError: If the parameters cannot describe a camera
        """
        self._validate(look_from, look_at, vup, vfov, aspect_ratio, aperture, focus_dist)

        theta = math.radians(vfov)
        h = math.tan(theta / 2)
        viewport_height = 2.0 * h
        viewport_width = aspect_ratio * viewport_height

        # Compute orthonormal camera basis
        self.w = (look_from - look_at).normalize()  # Points backward from camera
        self.u = vup.cross(self.w).normalize()       # Points right
        self.v = self.w.cross(self.u)                # Points up

        self.origin = look_from
        self.horizontal = self.u * viewport_width * focus_dist
        self.vertical = self.v * viewport_height * focus_dist
        self.lower_left_corner = (
            self.origin
            - self.horizontal / 2
            - self.vertical / 2
            - self.w * focus_dist
        )

        self.vfov = vfov
        self.aspect_ratio = aspect_ratio
        self.focus_dist = focus_dist
        self.lens_radius = aperture / 2

    @staticmethod
    def _validate(look_from: Point3, look_at: Point3, vup: Vec3, vfov: float,
                  aspect_ratio: float, aperture: float, focus_dist: float) -> None:
        if not 0.0 < vfov < 180.0:
            raise CameraConfigError(f"vfov must be between 0 and 180 degrees, got {vfov}")
        if aspect_ratio <= 0:
            raise CameraConfigError(f"aspect_ratio must be positive, got {aspect_ratio}")
        if aperture < 0:
            raise CameraConfigError(f"aperture must not be negative, got {aperture}")
        if focus_dist <= 0:
            raise CameraConfigError(f"focus_dist must be positive, got {focus_dist}")

        view = look_from - look_at
        if view.near_zero():
            raise CameraConfigError("look_from and look_at must be different points")
        if vup.cross(view).near_zero():
            raise CameraConfigError(f"vup {vup} must not be parallel to the view direction")

    def get_ray(self, s: float, t: float, rng: Optional[np.random.Generator] = None) -> Ray:
        """Generate a ray for the given coordinates on the image plane.

        Args:
            s: Horizontal coordinate [0, 1] (0 = left, 1 = right)
            t: Vertical coordinate [0, 1] (0 = bottom, 1 = top)
            rng: Random source for the lens sample

        Returns:
            A ray from the lens through the matching point on the focus plane
        """
        if self.lens_radius > 0:
            rd = Vec3.random_in_unit_disk(rng) * self.lens_radius
            offset = self.u * rd.x + self.v * rd.y
        else:
            offset = Vec3(0, 0, 0)

        direction = (
            self.lower_left_corner
            + self.horizontal * s
            + self.vertical * t
            - self.origin
            - offset
        )

        return Ray(self.origin + offset, direction.normalize())

    def __repr__(self) -> str:
        return f"Camera(origin={self.origin}, looking_at={self.lower_left_corner + self.horizontal/2 + self.vertical/2})"
