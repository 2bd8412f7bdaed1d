"""
Scene: the collection of objects rays are traced against.
"""

from __future__ import annotations
from typing import Iterable, Iterator, Optional

from .ray import Ray
from .shapes import Hittable, HitRecord


class Scene(Hittable):
    """An ordered collection of hittable objects.

    Order only matters for ties: when two objects report the same t,
    the one added first wins.
    """

    def __init__(self, objects: Optional[Iterable[Hittable]] = None):
        self.objects: list[Hittable] = list(objects) if objects is not None else []

    def add(self, obj: Hittable) -> None:
        """Add an object to the scene."""
        self.objects.append(obj)

    def clear(self) -> None:
        """Remove all objects."""
        self.objects.clear()

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Find the closest intersection among all objects."""
        closest_hit: Optional[HitRecord] = None
        closest_t = t_max

        for obj in self.objects:
            hit_record = obj.hit(ray, t_min, closest_t)
            # Strictly nearer only, so earlier objects keep equal-t ties
            if hit_record is not None and (closest_hit is None or hit_record.t < closest_t):
                closest_hit = hit_record
                closest_t = hit_record.t

        return closest_hit

    def __len__(self) -> int:
        return len(self.objects)

    def __iter__(self) -> Iterator[Hittable]:
        return iter(self.objects)

    def __repr__(self) -> str:
        return f"Scene({len(self.objects)} objects)"
