"""
Geometric shapes for the ray tracer.

Each shape implements the Hittable interface with a `hit` method.
Degenerate shapes (zero radius, zero-length plane normal) are a caller
error and are not checked here; scene construction validates them.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
import math

from .vec3 import Vec3, Point3
from .ray import Ray

if TYPE_CHECKING:
    from .materials import Material


# Rays closer to parallel than this never hit a plane
PARALLEL_EPSILON = 1e-8

# Discriminants below this count as a miss (0.0 only rejects non-real roots)
DISCRIMINANT_EPSILON = 0.0


@dataclass
class HitRecord:
    """Stores information about a ray-object intersection.

    Attributes:
        point: The intersection point in world space
        normal: Unit surface normal at the intersection (always points against ray)
        t: The ray parameter at intersection
        front_face: True if the ray hit the side the outward normal points to
        material: The material of the hit object
        u, v: Surface coordinates at the hit point
    """
    point: Point3
    normal: Vec3
    t: float
    front_face: bool = True
    material: Optional[Material] = None
    u: float = 0.0
    v: float = 0.0

    def set_face_normal(self, ray: Ray, outward_normal: Vec3) -> None:
        """Set the normal to always point against the ray direction.

        Args:
            ray: The incoming ray
            outward_normal: The unit geometric normal pointing outward from surface
        """
        self.front_face = ray.direction.dot(outward_normal) < 0
        self.normal = outward_normal if self.front_face else -outward_normal


class Hittable(ABC):
    """Abstract base class for all objects that can be hit by rays."""

    @abstractmethod
    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Test if ray intersects this object.

        Args:
            ray: The ray to test
            t_min: Minimum t value to consider (avoid self-intersection)
            t_max: Maximum t value to consider

        Returns:
            HitRecord for the nearest intersection in [t_min, t_max], None otherwise
        """
        pass


class Sphere(Hittable):
    """A sphere defined by center and radius."""

    def __init__(self, center: Point3, radius: float, material: Optional[Material] = None,
                 epsilon: float = DISCRIMINANT_EPSILON):
        """Create a sphere.

        Args:
            center: Center point of the sphere
            radius: Radius of the sphere (must be positive)
            material: Material for shading
            epsilon: Discriminants below this are treated as a miss
        """
        self.center = center
        self.radius = radius
        self.material = material
        self.epsilon = epsilon

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Test ray-sphere intersection using the quadratic formula.

        The equation (P-C)·(P-C) = r² where P = ray.at(t)
        expands to: t²(d·d) + 2t(d·(O-C)) + (O-C)·(O-C) - r² = 0
        which is the quadratic at² + bt + c = 0.
        """
        oc = ray.origin - self.center
        a = ray.direction.length_squared()
        half_b = oc.dot(ray.direction)
        c = oc.length_squared() - self.radius * self.radius

        discriminant = half_b * half_b - a * c
        if discriminant < self.epsilon:
            return None

        sqrtd = math.sqrt(discriminant)

        # Find the nearest root in the acceptable range
        root = (-half_b - sqrtd) / a
        if root < t_min or root > t_max:
            root = (-half_b + sqrtd) / a
            if root < t_min or root > t_max:
                return None

        point = ray.at(root)
        outward_normal = (point - self.center) / self.radius

        u, v = self._get_sphere_uv(outward_normal)

        hit_record = HitRecord(
            point=point,
            normal=outward_normal,
            t=root,
            material=self.material,
            u=u,
            v=v
        )
        hit_record.set_face_normal(ray, outward_normal)

        return hit_record

    @staticmethod
    def _get_sphere_uv(point: Vec3) -> tuple[float, float]:
        """Get spherical UV coordinates for a point on the unit sphere.

        u: returned value [0,1] of angle around the Y axis from X=-1
        v: returned value [0,1] of angle from Y=-1 to Y=+1
        """
        theta = math.acos(max(-1.0, min(1.0, -point.y)))
        phi = math.atan2(-point.z, point.x) + math.pi

        u = phi / (2 * math.pi)
        v = theta / math.pi
        return u, v

    def __repr__(self) -> str:
        return f"Sphere(center={self.center}, radius={self.radius})"


class Plane(Hittable):
    """An infinite plane defined by a point and normal."""

    def __init__(self, point: Point3, normal: Vec3, material: Optional[Material] = None,
                 epsilon: float = PARALLEL_EPSILON):
        """Create a plane.

        Args:
            point: Any point on the plane
            normal: The plane's normal vector (will be normalized, must be non-zero)
            material: Material for shading
            epsilon: Rays with |direction · normal| below this are treated as parallel
        """
        self.point = point
        self.normal = normal.normalize()
        self.material = material
        self.epsilon = epsilon

        # Tangent basis for planar UV mapping
        up = Vec3(0, 1, 0) if abs(self.normal.y) < 0.999 else Vec3(1, 0, 0)
        self.tangent = up.cross(self.normal).normalize()
        self.bitangent = self.normal.cross(self.tangent)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Test ray-plane intersection."""
        denom = self.normal.dot(ray.direction)

        if abs(denom) < self.epsilon:
            return None

        t = (self.point - ray.origin).dot(self.normal) / denom

        # Plane behind the ray origin
        if t < 0:
            return None

        if t < t_min or t > t_max:
            return None

        point = ray.at(t)

        local = point - self.point
        s = local.dot(self.tangent)
        r = local.dot(self.bitangent)

        hit_record = HitRecord(
            point=point,
            normal=self.normal,
            t=t,
            material=self.material,
            u=s - math.floor(s),
            v=r - math.floor(r)
        )
        hit_record.set_face_normal(ray, self.normal)

        return hit_record

    def __repr__(self) -> str:
        return f"Plane(point={self.point}, normal={self.normal})"
