"""Vector and bounding-box helpers shared by every generation phase."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple


@dataclass(frozen=True)
class Vec3:
    """Immutable 3D vector. Y is up; depth grows downward (negative y)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> Vec3:
        return self.scale(factor)

    def __neg__(self) -> Vec3:
        return Vec3(-self.x, -self.y, -self.z)

    def scale(self, factor: float) -> Vec3:
        return Vec3(self.x * factor, self.y * factor, self.z * factor)

    def dot(self, other: Vec3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vec3) -> Vec3:
        return Vec3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length_squared(self) -> float:
        return self.dot(self)

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalize(self) -> Vec3:
        """Return a unit vector; a zero vector stays zero."""
        length = self.length()
        if length == 0.0:
            return Vec3()
        return Vec3(self.x / length, self.y / length, self.z / length)

    def distance_squared(self, other: Vec3) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return dx * dx + dy * dy + dz * dz

    def distance(self, other: Vec3) -> float:
        return math.sqrt(self.distance_squared(other))

    def lerp(self, other: Vec3, t: float) -> Vec3:
        return Vec3(
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
            self.z + (other.z - self.z) * t,
        )

    def horizontal(self) -> Vec3:
        return Vec3(self.x, 0.0, self.z)

    def to_tuple(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.z

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> Vec3:
        x, y, z = values
        return cls(float(x), float(y), float(z))


ORIGIN = Vec3()


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box in world space."""

    min: Vec3
    max: Vec3

    @property
    def size(self) -> Vec3:
        return self.max - self.min

    @property
    def center(self) -> Vec3:
        return self.min.lerp(self.max, 0.5)

    def contains(self, point: Vec3) -> bool:
        return (
            self.min.x <= point.x <= self.max.x
            and self.min.y <= point.y <= self.max.y
            and self.min.z <= point.z <= self.max.z
        )

    def expanded_to(self, point: Vec3) -> Bounds:
        return Bounds(
            Vec3(min(self.min.x, point.x), min(self.min.y, point.y), min(self.min.z, point.z)),
            Vec3(max(self.max.x, point.x), max(self.max.y, point.y), max(self.max.z, point.z)),
        )

    def padded(self, amount: float) -> Bounds:
        pad = Vec3(amount, amount, amount)
        return Bounds(self.min - pad, self.max + pad)

    @classmethod
    def from_points(cls, points: Iterable[Vec3]) -> Optional[Bounds]:
        bounds: Optional[Bounds] = None
        for point in points:
            bounds = Bounds(point, point) if bounds is None else bounds.expanded_to(point)
        return bounds
