"""
Materials decide how a surface scatters or emits light.

Implements:
- Lambertian diffuse
- Metal (specular reflection with fuzz)
- Dielectric (glass, water - with refraction)
- Emissive (light sources)

Every color input accepts either a literal Color or a Sampler, so
textures and checker patterns plug into any material.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union
import math

import numpy as np

from .vec3 import Vec3, Color, get_rng
from .ray import Ray
from .shapes import HitRecord
from .samplers import Sampler, as_sampler


@dataclass
class ScatterResult:
    """Result of a material scatter operation."""
    scattered_ray: Ray
    attenuation: Color


class Material(ABC):
    """Abstract base class for materials."""

    @abstractmethod
    def scatter(self, ray_in: Ray, hit: HitRecord,
                rng: Optional[np.random.Generator] = None) -> Optional[ScatterResult]:
        """Compute the scattered ray and attenuation.

        Args:
            ray_in: The incoming ray
            hit: The intersection being shaded
            rng: Random source for stochastic decisions

        Returns:
            ScatterResult if the ray scatters, None if it is absorbed
        """
        pass

    def emitted(self, u: float, v: float, point: Vec3) -> Color:
        """Return emitted light color. Default is no emission."""
        return Color(0, 0, 0)


class Lambertian(Material):
    """Diffuse material with Lambertian (ideal matte) scattering."""

    def __init__(self, albedo: Union[Sampler, Color]):
        """Create a Lambertian material.

        Args:
            albedo: The base color (RGB, each component 0-1) or a Sampler
        """
        self.albedo = as_sampler(albedo)

    def scatter(self, ray_in: Ray, hit: HitRecord,
                rng: Optional[np.random.Generator] = None) -> Optional[ScatterResult]:
        scatter_direction = hit.normal + Vec3.random_unit_vector(rng)

        # Catch degenerate scatter direction
        if scatter_direction.near_zero():
            scatter_direction = hit.normal

        return ScatterResult(
            scattered_ray=Ray(hit.point, scatter_direction),
            attenuation=self.albedo.value(hit.u, hit.v, hit.point)
        )


class Metal(Material):
    """Metallic material with specular reflection."""

    def __init__(self, albedo: Union[Sampler, Color], fuzz: float = 0.0):
        """Create a metal material.

        Args:
            albedo: The reflection color or a Sampler
            fuzz: Perturbation radius of the reflection (0 = mirror, 1 = very rough)
        """
        self.albedo = as_sampler(albedo)
        self.fuzz = max(0.0, min(fuzz, 1.0))

    def scatter(self, ray_in: Ray, hit: HitRecord,
                rng: Optional[np.random.Generator] = None) -> Optional[ScatterResult]:
        reflected = ray_in.direction.normalize().reflect(hit.normal)

        if self.fuzz > 0:
            reflected = reflected + Vec3.random_in_unit_sphere(rng) * self.fuzz

        # Rays pushed below the surface are absorbed
        if reflected.dot(hit.normal) <= 0:
            return None

        return ScatterResult(
            scattered_ray=Ray(hit.point, reflected),
            attenuation=self.albedo.value(hit.u, hit.v, hit.point)
        )


class Dielectric(Material):
    """Dielectric (glass-like) material with refraction."""

    def __init__(self, ior: float = 1.5, albedo: Union[Sampler, Color, None] = None):
        """Create a dielectric material.

        Args:
            ior: Index of refraction (1.0 = air, 1.5 = glass, 2.4 = diamond)
            albedo: Optional color tint or Sampler (clear glass by default)
        """
        self.ior = ior
        self.albedo = as_sampler(albedo if albedo is not None else Color(1, 1, 1))

    def scatter(self, ray_in: Ray, hit: HitRecord,
                rng: Optional[np.random.Generator] = None) -> Optional[ScatterResult]:
        rng = get_rng(rng)
        attenuation = self.albedo.value(hit.u, hit.v, hit.point)

        # Entering the medium from outside, or leaving it
        refraction_ratio = 1.0 / self.ior if hit.front_face else self.ior

        unit_direction = ray_in.direction.normalize()
        cos_theta = min(-unit_direction.dot(hit.normal), 1.0)
        sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))

        cannot_refract = refraction_ratio * sin_theta > 1.0

        if cannot_refract or self._reflectance(cos_theta, refraction_ratio) > rng.random():
            direction = unit_direction.reflect(hit.normal)
        else:
            direction = unit_direction.refract(hit.normal, refraction_ratio)

        return ScatterResult(
            scattered_ray=Ray(hit.point, direction),
            attenuation=attenuation
        )

    @staticmethod
    def _reflectance(cosine: float, ref_idx: float) -> float:
        """Schlick's approximation for reflectance."""
        r0 = (1 - ref_idx) / (1 + ref_idx)
        r0 = r0 * r0
        # Index-matched media have no boundary to reflect from
        if r0 == 0.0:
            return 0.0
        return r0 + (1 - r0) * pow(1 - cosine, 5)


class Emissive(Material):
    """Light-emitting material."""

    def __init__(self, emission: Union[Sampler, Color], intensity: float = 1.0):
        """Create an emissive material.

        Args:
            emission: The emission color or a Sampler
            intensity: Emission intensity multiplier
        """
        self.emission = as_sampler(emission)
        self.intensity = intensity

    def scatter(self, ray_in: Ray, hit: HitRecord,
                rng: Optional[np.random.Generator] = None) -> Optional[ScatterResult]:
        return None

    def emitted(self, u: float, v: float, point: Vec3) -> Color:
        color = self.emission.value(u, v, point)
        if self.intensity == 1.0:
            return color
        return color * self.intensity
