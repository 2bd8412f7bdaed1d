"""Tests for Camera."""

import math
import pytest

from prismtrace.vec3 import Vec3, Point3
from prismtrace.camera import Camera
from prismtrace.errors import CameraConfigError, RenderConfigError


def simple_camera(**kwargs):
    params = dict(
        look_from=Point3(0, 0, 0),
        look_at=Point3(0, 0, -1),
        vup=Vec3(0, 1, 0),
        vfov=90.0,
        aspect_ratio=1.0,
    )
    params.update(kwargs)
    return Camera(**params)


class TestCameraBasis:
    """Test the orthonormal camera basis."""

    def test_axis_aligned_basis(self):
        cam = simple_camera()
        assert cam.w == Vec3(0, 0, 1)
        assert cam.u == Vec3(1, 0, 0)
        assert cam.v == Vec3(0, 1, 0)

    def test_basis_is_orthonormal(self):
        cam = simple_camera(look_from=Point3(3, 2, 1), look_at=Point3(-1, 0, -4))
        for a in (cam.u, cam.v, cam.w):
            assert abs(a.length() - 1.0) < 1e-9
        assert abs(cam.u.dot(cam.v)) < 1e-9
        assert abs(cam.u.dot(cam.w)) < 1e-9
        assert abs(cam.v.dot(cam.w)) < 1e-9

    def test_viewport_size(self):
        cam = simple_camera(vfov=60.0, aspect_ratio=2.0, focus_dist=3.0)
        height = 2 * math.tan(math.radians(30)) * 3.0
        assert abs(cam.vertical.length() - height) < 1e-9
        assert abs(cam.horizontal.length() - 2 * height) < 1e-9


class TestCameraRays:
    """Test primary ray generation."""

    def test_center_ray(self):
        ray = simple_camera().get_ray(0.5, 0.5)
        assert ray.origin == Point3(0, 0, 0)
        assert ray.direction == Vec3(0, 0, -1)

    def test_directions_are_normalized(self):
        cam = simple_camera()
        for s, t in [(0, 0), (1, 1), (0.2, 0.9)]:
            assert abs(cam.get_ray(s, t).direction.length() - 1.0) < 1e-9

    def test_corners(self):
        cam = simple_camera()
        assert cam.get_ray(0, 0).direction == Vec3(-1, -1, -1).normalize()
        assert cam.get_ray(1, 1).direction == Vec3(1, 1, -1).normalize()

    def test_t_zero_is_bottom(self):
        cam = simple_camera()
        assert cam.get_ray(0.5, 0.0).direction.y < 0
        assert cam.get_ray(0.5, 1.0).direction.y > 0

    def test_pinhole_ignores_rng(self, rng):
        cam = simple_camera()
        assert cam.get_ray(0.3, 0.6, rng).origin == Point3(0, 0, 0)

    def test_depth_of_field_offsets_origin(self, rng):
        cam = simple_camera(aperture=2.0, focus_dist=5.0)
        origins = [cam.get_ray(0.5, 0.5, rng).origin for _ in range(20)]
        assert any(o != Point3(0, 0, 0) for o in origins)
        for o in origins:
            # Stays within the lens disk in the camera plane
            assert abs(o.z) < 1e-9
            assert o.length() <= 1.0

    def test_depth_of_field_converges_on_focus_plane(self, rng):
        cam = simple_camera(aperture=1.0, focus_dist=4.0)
        for _ in range(20):
            ray = cam.get_ray(0.5, 0.5, rng)
            t = -4.0 / ray.direction.z
            assert ray.at(t) == Point3(0, 0, -4)


class TestCameraValidation:
    """Test rejected configurations."""

    @pytest.mark.parametrize("kwargs", [
        dict(vfov=0.0),
        dict(vfov=180.0),
        dict(vfov=-10.0),
        dict(aspect_ratio=0.0),
        dict(aperture=-0.1),
        dict(focus_dist=0.0),
        dict(look_at=Point3(0, 0, 0)),
        dict(vup=Vec3(0, 0, 1)),
        dict(vup=Vec3(0, 0, 0)),
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(CameraConfigError):
            simple_camera(**kwargs)

    def test_error_hierarchy(self):
        with pytest.raises(RenderConfigError):
            simple_camera(vfov=200)
        with pytest.raises(ValueError):
            simple_camera(vfov=200)
