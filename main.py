#!/usr/bin/env python3
"""
prismtrace - A Python Ray Tracing Renderer

Main entry point for rendering scenes.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from prismtrace.vec3 import Vec3, Color, Point3
from prismtrace.camera import Camera
from prismtrace.image import Image
from prismtrace.samplers import CheckerSampler, TextureSampler
from prismtrace.shapes import Sphere, Plane
from prismtrace.scene import Scene
from prismtrace.materials import Lambertian, Metal, Dielectric, Emissive
from prismtrace.framebuffer import Framebuffer
from prismtrace.renderer import Renderer, RenderSettings
from prismtrace.scene_parser import load_scene
from prismtrace.errors import RenderConfigError, RenderCancelled


def make_bands_image(width: int = 256, height: int = 128) -> Image:
    """Blue/green latitude bands, a stand-in for a planet texture."""
    rows = np.linspace(0.0, 1.0, height)[:, np.newaxis]
    cols = np.linspace(0.0, 1.0, width)[np.newaxis, :]
    land = (np.sin(cols * 18.0) * np.cos(rows * 11.0) > 0.3).astype(np.float64)

    data = np.zeros((height, width, 3), dtype=np.uint8)
    data[:, :, 0] = (40 + 80 * land).astype(np.uint8)
    data[:, :, 1] = (70 + 110 * land).astype(np.uint8)
    data[:, :, 2] = (200 - 150 * land).astype(np.uint8)
    return Image.from_array(data)


def make_brushed_image(width: int = 128, height: int = 128, seed: int = 7) -> Image:
    """Gray horizontal streaks, a stand-in for a brushed metal texture."""
    rng = np.random.default_rng(seed)
    streaks = rng.uniform(150, 230, size=(height, 1))
    data = np.repeat(np.repeat(streaks, width, axis=1)[:, :, np.newaxis], 3, axis=2)
    return Image.from_array(data.astype(np.uint8))


def create_demo_scene(texture: Optional[Image] = None) -> Scene:
    """Create the demo scene: textured spheres, glass, a checker floor and a sphere light."""
    world = Scene()

    planet = TextureSampler(texture if texture is not None else make_bands_image())
    brushed = TextureSampler(make_brushed_image())
    checker = CheckerSampler.from_colors(Color(0, 0, 0), Color(1, 1, 1))

    world.add(Sphere(Point3(0, 4, -7), 2.5, Lambertian(brushed)))
    world.add(Sphere(Point3(4, 1, -8), 3.2, Lambertian(Color(0.4, 0.25, 0.6))))
    world.add(Sphere(Point3(-3, 2, -8), 1.0, Metal(planet, 0.15)))
    world.add(Sphere(Point3(2, -1, -4), 1.5, Dielectric(2.0, Color(0.6, 0.8, 0.25))))
    world.add(Plane(Point3(0, -2, 0), Vec3(0, 1, 0), Lambertian(checker)))

    # Light
    world.add(Sphere(Point3(0, 25, 0), 10.0, Emissive(Color(10, 10, 10))))

    return world


def create_glass_scene() -> Scene:
    """Three spheres (diffuse, glass, metal) on a checker floor under a sky."""
    world = Scene()

    checker = CheckerSampler.from_colors(Color(0.2, 0.3, 0.1), Color(0.9, 0.9, 0.9), scale=0.5)
    world.add(Plane(Point3(0, -0.5, 0), Vec3(0, 1, 0), Lambertian(checker)))

    world.add(Sphere(Point3(0, 0, -1), 0.5, Lambertian(Color(0.1, 0.2, 0.5))))
    world.add(Sphere(Point3(-1, 0, -1), 0.5, Dielectric(1.5)))
    world.add(Sphere(Point3(1, 0, -1), 0.5, Metal(Color(0.8, 0.6, 0.2), 0.0)))

    return world


def _flag(value: Optional[int], default: int) -> int:
    return default if value is None else value


def build_from_args(args: argparse.Namespace) -> Tuple[Scene, Camera, RenderSettings]:
    """Assemble scene, camera and settings from the command line."""
    if args.scene_file:
        # Explicit flags override the file's render section
        overrides = {
            'width': args.width, 'height': args.height, 'samples_per_pixel': args.samples,
            'max_depth': args.depth, 'num_threads': args.threads, 'seed': args.seed,
        }
        overrides = {name: value for name, value in overrides.items() if value is not None}
        return load_scene(args.scene_file, overrides)

    settings = RenderSettings(
        width=_flag(args.width, 400),
        height=_flag(args.height, 300),
        samples_per_pixel=_flag(args.samples, 16),
        max_depth=_flag(args.depth, 10),
        num_threads=_flag(args.threads, 0),
        use_sky_gradient=args.scene == 'glass',
        seed=args.seed
    )
    aspect_ratio = settings.width / settings.height

    if args.scene == 'glass':
        world = create_glass_scene()
        camera = Camera(
            look_from=Point3(-2, 2, 1),
            look_at=Point3(0, 0, -1),
            vup=Vec3(0, 1, 0),
            vfov=40,
            aspect_ratio=aspect_ratio,
            aperture=0.1,
            focus_dist=(Point3(-2, 2, 1) - Point3(0, 0, -1)).length()
        )
    else:
        texture = Image.load(args.texture) if args.texture else None
        world = create_demo_scene(texture)
        eye = Point3(5, 1, 2)
        look_at = Point3(0, 2, -10)
        camera = Camera(
            look_from=eye,
            look_at=look_at,
            vup=Vec3(0, 1, 0),
            vfov=90,
            aspect_ratio=aspect_ratio,
            aperture=0.2,
            focus_dist=(eye - look_at).length()
        )

    return world, camera, settings


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='prismtrace - A Python Ray Tracing Renderer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --scene demo --output render.png
  python main.py --width 200 --height 150 --samples 4 --depth 5 --output quick.png
  python main.py --scene-file scenes/glass.yaml --seed 42 --output glass.png
        '''
    )

    parser.add_argument('--width', type=int, default=None, help='Image width (default: 400)')
    parser.add_argument('--height', type=int, default=None, help='Image height (default: 300)')
    parser.add_argument('--samples', type=int, default=None, help='Samples per pixel (default: 16)')
    parser.add_argument('--depth', type=int, default=None, help='Max ray depth (default: 10)')
    parser.add_argument('--threads', type=int, default=None, help='Number of threads (0=auto)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for repeatable renders')
    parser.add_argument('--output', type=str, default='output/render.png', help='Output filename')
    parser.add_argument('--scene', type=str, default='demo', choices=['demo', 'glass'],
                        help='Built-in scene to render (default: demo)')
    parser.add_argument('--scene-file', type=str, default=None, help='YAML or JSON scene description')
    parser.add_argument('--texture', type=str, default=None,
                        help='Image file for the demo scene\'s textured sphere')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    print("=" * 60)
    print("prismtrace Ray Tracer")
    print("=" * 60)

    try:
        world, camera, settings = build_from_args(args)
    except (RenderConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"\nRender Settings:")
    print(f"  Resolution: {settings.width}x{settings.height}")
    print(f"  Samples: {settings.samples_per_pixel}")
    print(f"  Max Depth: {settings.max_depth}")
    print(f"  Threads: {settings.num_threads}")
    print(f"  Objects in scene: {len(world)}")

    renderer = Renderer(settings)

    # Progress tracking
    last_progress = [0]

    def progress_callback(progress: float):
        pct = int(progress * 100)
        if pct > last_progress[0]:
            last_progress[0] = pct
            bar_len = 40
            filled = int(bar_len * progress)
            bar = '█' * filled + '░' * (bar_len - filled)
            print(f'\rRendering: [{bar}] {pct}%', end='', flush=True)

    renderer.set_progress_callback(progress_callback)

    framebuffer = Framebuffer(settings.width, settings.height)
    framebuffer.clear((0, 0, 0, 255))

    print("\nRendering...")
    start_time = time.time()

    try:
        renderer.trace(framebuffer, world, camera)
    except RenderCancelled:
        print("\nRender cancelled", file=sys.stderr)
        return 130

    elapsed = time.time() - start_time
    print(f"\nRender completed in {elapsed:.2f} seconds")
    print(f"  Samples per second: {(settings.width * settings.height * settings.samples_per_pixel) / elapsed:.0f}")

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    print(f"\nSaving to: {args.output}")
    framebuffer.save(output_path)

    print("\nDone!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
