"""
Scene construction from descriptors and scene description files.

A scene is an ordered list of (geometry, material) descriptor pairs.
`build_scene` validates the descriptors and turns them into a Scene;
`SceneParser` reads the same information from a dict, a JSON file or a
YAML file.

Example scene file:
```yaml
samplers:
  checker:
    type: checker
    even: [0, 0, 0]
    odd: [1, 1, 1]
    scale: 1

materials:
  ground:
    type: lambertian
    albedo: checker

  glass:
    type: dielectric
    ior: 1.5

  light:
    type: emissive
    emission: [10, 10, 10]

objects:
  - type: plane
    point: [0, -2, 0]
    normal: [0, 1, 0]
    material: ground

  - type: sphere
    center: [0, 1, -4]
    radius: 1
    material: glass

  - type: sphere
    center: [0, 25, 0]
    radius: 10
    material: light

camera:
  look_from: [5, 1, 2]
  look_at: [0, 2, -10]
  vfov: 90
  aperture: 0.2

render:
  width: 400
  height: 300
  samples: 16
  max_depth: 10
```
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import yaml

from .vec3 import Vec3, Point3, Color
from .camera import Camera
from .image import Image
from .samplers import Sampler, ColorSampler, CheckerSampler, TextureSampler, as_sampler
from .materials import Material, Lambertian, Metal, Dielectric, Emissive
from .shapes import Hittable, Sphere, Plane
from .scene import Scene
from .renderer import RenderSettings
from .errors import SceneParseError

logger = logging.getLogger(__name__)

ColorInput = Union[Color, Sampler]


# Geometry descriptors

@dataclass
class SphereDesc:
    center: Point3
    radius: float

    def validate(self) -> None:
        if self.radius <= 0:
            raise SceneParseError(f"Sphere radius must be positive, got {self.radius}")


@dataclass
class PlaneDesc:
    point: Point3
    normal: Vec3

    def validate(self) -> None:
        if self.normal.near_zero():
            raise SceneParseError("Plane normal must not be zero-length")


# Material descriptors

@dataclass
class LambertianDesc:
    albedo: ColorInput


@dataclass
class MetalDesc:
    albedo: ColorInput
    fuzz: float = 0.0

    def validate(self) -> None:
        if not 0.0 <= self.fuzz <= 1.0:
            raise SceneParseError(f"Metal fuzz must be in [0, 1], got {self.fuzz}")


@dataclass
class DielectricDesc:
    ior: float = 1.5
    albedo: Optional[ColorInput] = None

    def validate(self) -> None:
        if self.ior < 1.0:
            raise SceneParseError(f"Dielectric ior must be at least 1, got {self.ior}")


@dataclass
class EmissiveDesc:
    emission: ColorInput
    intensity: float = 1.0

    def validate(self) -> None:
        if self.intensity < 0:
            raise SceneParseError(f"Emissive intensity must not be negative, got {self.intensity}")


GeometryDesc = Union[SphereDesc, PlaneDesc]
MaterialDesc = Union[LambertianDesc, MetalDesc, DielectricDesc, EmissiveDesc]


def _validate(desc: Any) -> None:
    validate = getattr(desc, 'validate', None)
    if validate is not None:
        validate()


def build_material(desc: MaterialDesc) -> Material:
    """Create the Material for a material descriptor."""
    _validate(desc)
    if isinstance(desc, LambertianDesc):
        return Lambertian(desc.albedo)
    if isinstance(desc, MetalDesc):
        return Metal(desc.albedo, desc.fuzz)
    if isinstance(desc, DielectricDesc):
        return Dielectric(desc.ior, desc.albedo)
    if isinstance(desc, EmissiveDesc):
        return Emissive(desc.emission, desc.intensity)
    raise SceneParseError(f"Unknown material descriptor: {desc!r}")


def build_geometry(desc: GeometryDesc, material: Material) -> Hittable:
    """Create the Hittable for a geometry descriptor."""
    _validate(desc)
    if isinstance(desc, SphereDesc):
        return Sphere(desc.center, desc.radius, material)
    if isinstance(desc, PlaneDesc):
        return Plane(desc.point, desc.normal, material)
    raise SceneParseError(f"Unknown geometry descriptor: {desc!r}")


def build_scene(pairs: Iterable[Tuple[GeometryDesc, MaterialDesc]]) -> Scene:
    """Build a Scene from (geometry, material) descriptor pairs.

    Every descriptor is validated before any object is created. A material
    descriptor object used by several pairs yields one shared Material.

    Raises:
        SceneParseError: If any descriptor is malformed
    """
    pairs = list(pairs)
    for geometry, material in pairs:
        _validate(geometry)
        _validate(material)

    materials: Dict[int, Material] = {}
    scene = Scene()
    for geometry, material_desc in pairs:
        material = materials.get(id(material_desc))
        if material is None:
            material = build_material(material_desc)
            materials[id(material_desc)] = material
        scene.add(build_geometry(geometry, material))

    return scene


class SceneParser:
    """Parser for scene description files."""

    def __init__(self, base_dir: Optional[Path] = None):
        """Create a parser.

        Args:
            base_dir: Directory that relative image paths are resolved against
        """
        self.base_dir = base_dir if base_dir is not None else Path.cwd()
        self.samplers: Dict[str, Sampler] = {}
        self.materials: Dict[str, MaterialDesc] = {}
        self.pairs: list[Tuple[GeometryDesc, MaterialDesc]] = []

    def parse_file(self, filepath: Union[str, Path],
                   overrides: Optional[Dict[str, Any]] = None) -> Tuple[Scene, Camera, RenderSettings]:
        """Parse a scene file.

        Args:
            filepath: Path to the scene file (YAML or JSON)
            overrides: RenderSettings fields that replace the file's values

        Returns:
            Tuple of (scene, camera, settings)
        """
        path = Path(filepath)
        if not path.exists():
            raise SceneParseError(f"Scene file not found: {filepath}")

        content = path.read_text()
        self.base_dir = path.parent

        try:
            if path.suffix == '.json':
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise SceneParseError(f"Cannot read scene file {filepath}: {e}") from e

        logger.info("Loading scene from %s", path)
        return self.parse_dict(data, overrides)

    def parse_dict(self, data: Dict[str, Any],
                   overrides: Optional[Dict[str, Any]] = None) -> Tuple[Scene, Camera, RenderSettings]:
        """Parse a scene from a dictionary.

        Args:
            data: Scene description dictionary
            overrides: RenderSettings fields that replace the document's values.
                       Applied before the camera is built, so a default aspect
                       ratio follows the overridden size.

        Returns:
            Tuple of (scene, camera, settings)
        """
        data = self._mapping(data, "Scene description")

        # Samplers first (materials reference them), then materials (objects reference them)
        for name, sampler_data in self._mapping(data.get('samplers') or {}, "'samplers'").items():
            self.samplers[name] = self._parse_sampler(sampler_data)

        for name, mat_data in self._mapping(data.get('materials') or {}, "'materials'").items():
            self.materials[name] = self._parse_material(mat_data)

        objects = data.get('objects') or []
        if not isinstance(objects, list):
            raise SceneParseError(f"'objects' must be a list, got {type(objects).__name__}")
        for obj_data in objects:
            self.pairs.append(self._parse_object(obj_data))

        settings = self._parse_settings(data.get('render') or {})
        if overrides:
            try:
                settings = replace(settings, **overrides)
            except TypeError as e:
                raise SceneParseError(f"Invalid render override: {e}") from e
        camera = self._parse_camera(data.get('camera') or {}, settings)
        scene = build_scene(self.pairs)

        logger.debug(
            "Parsed %d objects, %d materials, %d samplers",
            len(scene), len(self.materials), len(self.samplers)
        )
        return scene, camera, settings

    @staticmethod
    def _mapping(data: Any, what: str) -> Dict[str, Any]:
        """Return data if it is a mapping, otherwise raise SceneParseError."""
        if not isinstance(data, dict):
            raise SceneParseError(f"{what} must be a mapping, got {type(data).__name__}")
        return data

    @staticmethod
    def _parse_float(data: Dict[str, Any], key: str, default: float) -> float:
        value = data.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"'{key}' must be a number, got {value!r}") from e

    @staticmethod
    def _parse_int(data: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
        value = data.get(key, default)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"'{key}' must be an integer, got {value!r}") from e

    def _parse_vec3(self, data: Any) -> Vec3:
        """Parse a Vec3 from a list or an x/y/z mapping."""
        try:
            if isinstance(data, (list, tuple)):
                if len(data) != 3:
                    raise SceneParseError(f"Vec3 must have 3 components, got {len(data)}")
                return Vec3(float(data[0]), float(data[1]), float(data[2]))
            if isinstance(data, dict):
                return Vec3(
                    float(data.get('x', 0)),
                    float(data.get('y', 0)),
                    float(data.get('z', 0))
                )
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Cannot parse Vec3 from: {data}") from e
        raise SceneParseError(f"Cannot parse Vec3 from: {data}")

    def _parse_color(self, data: Any) -> Color:
        """Parse a Color from a list, an r/g/b mapping or a hex string."""
        if isinstance(data, str):
            hex_color = data[1:] if data.startswith('#') else ''
            if len(hex_color) == 6:
                try:
                    r = int(hex_color[0:2], 16) / 255.0
                    g = int(hex_color[2:4], 16) / 255.0
                    b = int(hex_color[4:6], 16) / 255.0
                except ValueError as e:
                    raise SceneParseError(f"Cannot parse color from string: {data}") from e
                return Color(r, g, b)
            raise SceneParseError(f"Cannot parse color from string: {data}")
        if isinstance(data, dict):
            data = [data.get('r', 0), data.get('g', 0), data.get('b', 0)]
        if isinstance(data, (list, tuple)):
            if len(data) != 3:
                raise SceneParseError(f"Color must have 3 components, got {len(data)}")
            return self._parse_vec3(data)
        raise SceneParseError(f"Cannot parse Color from: {data}")

    def _parse_color_input(self, data: Any) -> ColorInput:
        """Parse a literal color, a sampler name or an inline sampler."""
        if isinstance(data, str) and not data.startswith('#'):
            if data not in self.samplers:
                raise SceneParseError(f"Unknown sampler: {data}")
            return self.samplers[data]
        if isinstance(data, dict) and 'type' in data:
            return self._parse_sampler(data)
        return self._parse_color(data)

    def _parse_sampler(self, sampler_data: Dict[str, Any]) -> Sampler:
        """Parse one sampler definition."""
        sampler_data = self._mapping(sampler_data, "Sampler definition")
        sampler_type = str(sampler_data.get('type', 'color')).lower()

        if sampler_type == 'color':
            return ColorSampler(self._parse_color(sampler_data.get('color', [1, 1, 1])))

        if sampler_type == 'checker':
            scale = self._parse_float(sampler_data, 'scale', 1.0)
            if scale <= 0:
                raise SceneParseError(f"Checker scale must be positive, got {scale}")
            even = as_sampler(self._parse_color_input(sampler_data.get('even', [0, 0, 0])))
            odd = as_sampler(self._parse_color_input(sampler_data.get('odd', [1, 1, 1])))
            return CheckerSampler(even, odd, scale)

        if sampler_type == 'image':
            if not isinstance(sampler_data.get('file'), str):
                raise SceneParseError("Image sampler requires a 'file' path")
            path = Path(sampler_data['file'])
            if not path.is_absolute():
                path = self.base_dir / path
            try:
                image = Image.load(path)
            except (FileNotFoundError, OSError) as e:
                raise SceneParseError(f"Cannot load image {path}: {e}") from e
            return TextureSampler(image, self._parse_float(sampler_data, 'scale', 1.0))

        raise SceneParseError(f"Unknown sampler type: {sampler_type}")

    def _parse_material(self, mat_data: Dict[str, Any]) -> MaterialDesc:
        """Parse one material definition into a validated descriptor."""
        mat_data = self._mapping(mat_data, "Material definition")
        mat_type = str(mat_data.get('type', 'lambertian')).lower()

        if mat_type == 'lambertian':
            desc = LambertianDesc(self._parse_color_input(mat_data.get('albedo', [0.5, 0.5, 0.5])))
        elif mat_type == 'metal':
            desc = MetalDesc(
                self._parse_color_input(mat_data.get('albedo', [0.8, 0.8, 0.8])),
                self._parse_float(mat_data, 'fuzz', 0.0)
            )
        elif mat_type == 'dielectric':
            albedo = None
            if 'albedo' in mat_data:
                albedo = self._parse_color_input(mat_data['albedo'])
            desc = DielectricDesc(self._parse_float(mat_data, 'ior', 1.5), albedo)
        elif mat_type == 'emissive':
            desc = EmissiveDesc(
                self._parse_color_input(mat_data.get('emission', [1, 1, 1])),
                self._parse_float(mat_data, 'intensity', 1.0)
            )
        else:
            raise SceneParseError(f"Unknown material type: {mat_type}")

        _validate(desc)
        return desc

    def _get_material(self, mat_ref: Any) -> MaterialDesc:
        """Get a material by name or inline definition."""
        if isinstance(mat_ref, str):
            if mat_ref not in self.materials:
                raise SceneParseError(f"Unknown material: {mat_ref}")
            return self.materials[mat_ref]
        if isinstance(mat_ref, dict):
            return self._parse_material(mat_ref)
        raise SceneParseError(f"Invalid material reference: {mat_ref}")

    def _parse_object(self, obj_data: Dict[str, Any]) -> Tuple[GeometryDesc, MaterialDesc]:
        """Parse one object into a (geometry, material) pair."""
        obj_data = self._mapping(obj_data, "Object definition")
        obj_type = str(obj_data.get('type', 'sphere')).lower()
        if 'material' not in obj_data:
            raise SceneParseError(f"Object of type {obj_type} has no material")
        material = self._get_material(obj_data['material'])

        if obj_type == 'sphere':
            geometry = SphereDesc(
                self._parse_vec3(obj_data.get('center', [0, 0, 0])),
                self._parse_float(obj_data, 'radius', 1.0)
            )
        elif obj_type == 'plane':
            geometry = PlaneDesc(
                self._parse_vec3(obj_data.get('point', [0, 0, 0])),
                self._parse_vec3(obj_data.get('normal', [0, 1, 0]))
            )
        else:
            raise SceneParseError(f"Unknown object type: {obj_type}")

        geometry.validate()
        return geometry, material

    def _parse_camera(self, camera_data: Dict[str, Any], settings: RenderSettings) -> Camera:
        """Parse camera section; aspect ratio defaults to the render size."""
        camera_data = self._mapping(camera_data, "'camera'")
        look_from = self._parse_vec3(camera_data.get('look_from', [0, 0, 5]))
        look_at = self._parse_vec3(camera_data.get('look_at', [0, 0, 0]))
        vup = self._parse_vec3(camera_data.get('vup', [0, 1, 0]))
        vfov = self._parse_float(camera_data, 'vfov', 90.0)
        aspect_ratio = self._parse_float(camera_data, 'aspect_ratio', settings.width / settings.height)
        aperture = self._parse_float(camera_data, 'aperture', 0.0)
        focus_dist = self._parse_float(camera_data, 'focus_dist', (look_from - look_at).length())

        return Camera(
            look_from=look_from,
            look_at=look_at,
            vup=vup,
            vfov=vfov,
            aspect_ratio=aspect_ratio,
            aperture=aperture,
            focus_dist=focus_dist
        )

    def _parse_settings(self, settings_data: Dict[str, Any]) -> RenderSettings:
        """Parse render settings section."""
        settings_data = self._mapping(settings_data, "'render'")
        background = settings_data.get('background')
        return RenderSettings(
            width=self._parse_int(settings_data, 'width', 800),
            height=self._parse_int(settings_data, 'height', 600),
            samples_per_pixel=self._parse_int(settings_data, 'samples', 100),
            max_depth=self._parse_int(settings_data, 'max_depth', 50),
            tile_size=self._parse_int(settings_data, 'tile_size', 32),
            num_threads=self._parse_int(settings_data, 'threads', 0),
            background_color=self._parse_color(background) if background is not None else None,
            use_sky_gradient=bool(settings_data.get('sky', False)),
            gamma=self._parse_float(settings_data, 'gamma', 2.0),
            seed=self._parse_int(settings_data, 'seed', None)
        )


def load_scene(filepath: Union[str, Path],
               overrides: Optional[Dict[str, Any]] = None) -> Tuple[Scene, Camera, RenderSettings]:
    """Convenience function to load a scene file.

    Args:
        filepath: Path to the scene file
        overrides: RenderSettings fields that replace the file's values

    Returns:
        Tuple of (scene, camera, settings)
    """
    parser = SceneParser()
    return parser.parse_file(filepath, overrides)


def parse_scene(data: Dict[str, Any]) -> Tuple[Scene, Camera, RenderSettings]:
    """Convenience function to parse a scene from a dictionary.

    Args:
        data: Scene description dictionary

    Returns:
        Tuple of (scene, camera, settings)
    """
    parser = SceneParser()
    return parser.parse_dict(data)
