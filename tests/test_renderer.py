"""Tests for the renderer."""

import numpy as np
import pytest

from prismtrace.vec3 import Vec3, Point3, Color
from prismtrace.ray import Ray
from prismtrace.shapes import Sphere, Plane, Hittable
from prismtrace.scene import Scene
from prismtrace.materials import Lambertian, Emissive, Metal
from prismtrace.camera import Camera
from prismtrace.framebuffer import Framebuffer
from prismtrace.renderer import Renderer, RenderSettings
from prismtrace.errors import RenderCancelled, RenderSettingsError


class ExplodingScene(Hittable):
    """A scene that fails if anything traces against it."""

    def hit(self, ray, t_min, t_max):
        raise AssertionError("scene should not be queried")


def small_settings(**kwargs):
    params = dict(width=8, height=6, samples_per_pixel=2, max_depth=4,
                  tile_size=4, num_threads=1, seed=7)
    params.update(kwargs)
    return RenderSettings(**params)


def small_camera(aspect_ratio=8 / 6):
    return Camera(Point3(0, 0, 0), Point3(0, 0, -1), Vec3(0, 1, 0),
                  vfov=60.0, aspect_ratio=aspect_ratio)


def diffuse_scene():
    scene = Scene()
    scene.add(Sphere(Point3(0, 0, -3), 1.0, Lambertian(Color(0.7, 0.3, 0.3))))
    scene.add(Plane(Point3(0, -1, 0), Vec3(0, 1, 0), Metal(Color(0.8, 0.8, 0.8), 0.3)))
    return scene


class TestRenderSettings:
    """Test settings validation."""

    def test_defaults(self):
        settings = RenderSettings()
        assert settings.num_threads >= 1
        assert settings.background_color == Color(0, 0, 0)
        assert settings.gamma == 2.0

    @pytest.mark.parametrize("kwargs", [
        dict(width=0),
        dict(height=-1),
        dict(samples_per_pixel=0),
        dict(max_depth=0),
        dict(tile_size=0),
        dict(num_threads=-2),
        dict(gamma=0.0),
        dict(t_min=-0.1),
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(RenderSettingsError):
            RenderSettings(**kwargs)


class TestRayColor:
    """Test per-ray radiance."""

    def test_depth_zero_is_black(self):
        renderer = Renderer(small_settings())
        ray = Ray(Point3(0, 0, 0), Vec3(0, 0, -1))
        assert renderer.ray_color(ray, ExplodingScene(), 0) == Color(0, 0, 0)

    def test_miss_returns_background(self):
        renderer = Renderer(small_settings(background_color=Color(0.1, 0.2, 0.3)))
        ray = Ray(Point3(0, 0, 0), Vec3(0, 0, -1))
        assert renderer.ray_color(ray, Scene(), 5) == Color(0.1, 0.2, 0.3)

    def test_sky_gradient(self):
        renderer = Renderer(small_settings(use_sky_gradient=True))
        up = renderer.ray_color(Ray(Point3(0, 0, 0), Vec3(0, 1, 0)), Scene(), 5)
        down = renderer.ray_color(Ray(Point3(0, 0, 0), Vec3(0, -1, 0)), Scene(), 5)
        assert up == Color(0.5, 0.7, 1.0)
        assert down == Color(1, 1, 1)

    def test_emitter_seen_directly(self, rng):
        scene = Scene([Sphere(Point3(0, 25, 0), 10.0, Emissive(Color(10, 10, 10)))])
        renderer = Renderer(small_settings())
        color = renderer.ray_color(Ray(Point3(0, 0, 0), Vec3(0, 1, 0)), scene, 5, rng)
        assert (color.r, color.g, color.b) == (10.0, 10.0, 10.0)

    def test_diffuse_on_black_background_is_black(self, rng):
        scene = Scene([Sphere(Point3(0, 0, -3), 1.0, Lambertian(Color(1, 1, 1)))])
        renderer = Renderer(small_settings())
        for _ in range(20):
            color = renderer.ray_color(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), scene, 10, rng)
            assert color == Color(0, 0, 0)

    def test_attenuation_applied_per_bounce(self, rng):
        # Mirror facing an emitter: one bounce, attenuated once
        scene = Scene()
        scene.add(Plane(Point3(0, 0, -5), Vec3(0, 0, 1), Metal(Color(0.5, 0.5, 0.5), 0.0)))
        scene.add(Sphere(Point3(0, 0, 10), 2.0, Emissive(Color(4, 4, 4))))
        renderer = Renderer(small_settings())
        color = renderer.ray_color(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), scene, 5, rng)
        assert color == Color(2, 2, 2)

    def test_bounce_limit_cuts_light(self, rng):
        scene = Scene()
        scene.add(Plane(Point3(0, 0, -5), Vec3(0, 0, 1), Metal(Color(0.5, 0.5, 0.5), 0.0)))
        scene.add(Sphere(Point3(0, 0, 10), 2.0, Emissive(Color(4, 4, 4))))
        renderer = Renderer(small_settings())
        color = renderer.ray_color(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), scene, 1, rng)
        assert color == Color(0, 0, 0)


class TestRender:
    """Test whole-image rendering."""

    def test_output_shape(self):
        image = Renderer(small_settings()).render(diffuse_scene(), small_camera())
        assert image.shape == (6, 8, 3)
        assert image.dtype == np.float64

    def test_same_seed_same_image(self):
        a = Renderer(small_settings()).render(diffuse_scene(), small_camera())
        b = Renderer(small_settings()).render(diffuse_scene(), small_camera())
        assert np.array_equal(a, b)

    def test_thread_count_does_not_change_image(self):
        settings = dict(use_sky_gradient=True, seed=42)
        single = Renderer(small_settings(num_threads=1, **settings)).render(diffuse_scene(), small_camera())
        multi = Renderer(small_settings(num_threads=4, **settings)).render(diffuse_scene(), small_camera())
        assert np.array_equal(single, multi)

    def test_top_row_is_up(self):
        # Sky gradient is bluer looking up
        settings = small_settings(use_sky_gradient=True, samples_per_pixel=1)
        image = Renderer(settings).render(Scene(), small_camera())
        assert image[0, 4, 0] < image[-1, 4, 0]

    def test_progress_reaches_one(self):
        reports = []
        renderer = Renderer(small_settings())
        renderer.set_progress_callback(reports.append)
        renderer.render(Scene(), small_camera())
        # 8x6 in 4x4 tiles
        assert len(reports) == 4
        assert reports == sorted(reports)
        assert reports[-1] == 1.0

    def test_cancel(self):
        renderer = Renderer(small_settings())
        renderer.set_progress_callback(lambda progress: renderer.cancel())
        with pytest.raises(RenderCancelled):
            renderer.render(Scene(), small_camera())

    def test_cancel_before_start(self):
        renderer = Renderer(small_settings())
        renderer.cancel()
        with pytest.raises(RenderCancelled):
            renderer.render(Scene(), small_camera())

    def test_render_after_cancel_runs(self):
        renderer = Renderer(small_settings())
        renderer.cancel()
        with pytest.raises(RenderCancelled):
            renderer.render(Scene(), small_camera())
        image = renderer.render(Scene(), small_camera())
        assert image.shape == (6, 8, 3)

    def test_progress_in_order_with_threads(self):
        reports = []
        renderer = Renderer(small_settings(width=16, height=16, num_threads=4, samples_per_pixel=1))
        renderer.set_progress_callback(reports.append)
        renderer.render(Scene(), small_camera(1.0))
        assert reports == [i / 16 for i in range(1, 17)]


class TestTrace:
    """Test tracing into a framebuffer."""

    def test_writes_every_pixel(self):
        buffer = Framebuffer(8, 6)
        renderer = Renderer(small_settings(background_color=Color(1, 1, 1)))
        renderer.trace(buffer, Scene(), small_camera())
        assert (buffer.data == 255).all()

    def test_uses_buffer_size(self):
        buffer = Framebuffer(5, 3)
        renderer = Renderer(small_settings(width=100, height=100, background_color=Color(0.25, 0.25, 0.25)))
        renderer.trace(buffer, Scene(), small_camera(5 / 3))
        # sqrt(0.25) = 0.5
        assert (buffer.data[:, :, :3] == 127).all()
        assert (buffer.data[:, :, 3] == 255).all()

    def test_matches_render(self):
        settings = small_settings(use_sky_gradient=True)
        buffer = Framebuffer(8, 6)
        Renderer(settings).trace(buffer, diffuse_scene(), small_camera())
        renderer = Renderer(settings)
        expected = renderer.to_ldr(renderer.render(diffuse_scene(), small_camera()))
        assert np.array_equal(buffer.data[:, :, :3], expected)


class TestToneMapping:
    """Test HDR to 8-bit conversion."""

    def test_gamma_and_clamp(self):
        renderer = Renderer(small_settings())
        hdr = np.array([[[0.0, 0.25, 1.0], [4.0, -1.0, 0.01]]])
        ldr = renderer.to_ldr(hdr)
        assert ldr.dtype == np.uint8
        assert ldr.tolist() == [[[0, 127, 255], [255, 0, 25]]]

    def test_custom_gamma(self):
        renderer = Renderer(small_settings(gamma=1.0))
        assert renderer.to_ldr(np.array([[[0.5, 0.5, 0.5]]])).tolist() == [[[127, 127, 127]]]
