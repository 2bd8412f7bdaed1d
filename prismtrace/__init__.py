"""
prismtrace - A Python Ray Tracing Renderer

Renders a static 3D scene into a color buffer by tracing rays:
- Spheres and infinite planes
- Lambertian, metal, dielectric and emissive materials
- Constant, checker and image-backed samplers
- Thin-lens camera with depth of field
- Multi-sample anti-aliasing on a multi-threaded tile renderer
"""

__version__ = "0.1.0"

from .vec3 import Vec3, Point3, Color
from .ray import Ray
from .image import Image
from .samplers import Sampler, ColorSampler, CheckerSampler, TextureSampler
from .materials import Material, ScatterResult, Lambertian, Metal, Dielectric, Emissive
from .shapes import Hittable, HitRecord, Sphere, Plane
from .scene import Scene
from .camera import Camera
from .framebuffer import Framebuffer
from .renderer import Renderer, RenderSettings
from .scene_parser import (
    SceneParser, load_scene, parse_scene, build_scene,
    SphereDesc, PlaneDesc, LambertianDesc, MetalDesc, DielectricDesc, EmissiveDesc
)
from .errors import (
    RenderConfigError, CameraConfigError, RenderSettingsError,
    SceneParseError, RenderCancelled
)
