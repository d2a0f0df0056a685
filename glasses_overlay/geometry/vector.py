"""
Minimal 3D vector and matrix value types.

Only the operations the pose pipeline needs are provided. Values are plain
Python floats so that identical inputs always produce bit-identical results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Vec3:
    """Immutable 3-component vector."""

    x: float
    y: float
    z: float

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __add__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> "Vec3":
        return Vec3(self.x * factor, self.y * factor, self.z * factor)

    __rmul__ = __mul__

    def __neg__(self) -> "Vec3":
        return Vec3(-self.x, -self.y, -self.z)

    def dot(self, other: "Vec3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vec3") -> "Vec3":
        return Vec3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def distance_to(self, other: "Vec3") -> float:
        return (self - other).length()

    def normalized(self) -> "Vec3":
        """
        Unit vector in the same direction.

        Raises:
            ZeroDivisionError: for a zero-length vector. Callers that may see
                degenerate input check ``length()`` first.
        """
        n = self.length()
        if n == 0.0:
            raise ZeroDivisionError("cannot normalize a zero-length vector")
        return Vec3(self.x / n, self.y / n, self.z / n)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def lerp(self, other: "Vec3", t: float) -> "Vec3":
        return self + (other - self) * t

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def as_array(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=np.float64)

    @staticmethod
    def midpoint(a: "Vec3", b: "Vec3") -> "Vec3":
        return (a + b) * 0.5


@dataclass(frozen=True)
class Mat3:
    """Immutable row-major 3x3 matrix."""

    rows: Tuple[Tuple[float, float, float], ...]

    def __post_init__(self):
        if len(self.rows) != 3 or any(len(r) != 3 for r in self.rows):
            raise ValueError("Mat3 needs exactly 3 rows of 3 values")

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> "Mat3":
        return cls(tuple(tuple(float(v) for v in row) for row in rows))

    @classmethod
    def identity(cls) -> "Mat3":
        return cls.from_rows([[1, 0, 0], [0, 1, 0], [0, 0, 1]])

    @classmethod
    def from_basis(cls, right: Vec3, up: Vec3, forward: Vec3) -> "Mat3":
        """Matrix whose columns are right, up and forward."""
        return cls.from_rows([
            [right.x, up.x, forward.x],
            [right.y, up.y, forward.y],
            [right.z, up.z, forward.z],
        ])

    def column(self, index: int) -> Vec3:
        return Vec3(self.rows[0][index], self.rows[1][index], self.rows[2][index])

    def transform(self, v: Vec3) -> Vec3:
        r = self.rows
        return Vec3(
            r[0][0] * v.x + r[0][1] * v.y + r[0][2] * v.z,
            r[1][0] * v.x + r[1][1] * v.y + r[1][2] * v.z,
            r[2][0] * v.x + r[2][1] * v.y + r[2][2] * v.z,
        )

    def __matmul__(self, other: "Mat3") -> "Mat3":
        cols = [self.transform(other.column(i)) for i in range(3)]
        return Mat3.from_basis(cols[0], cols[1], cols[2])

    def as_array(self) -> np.ndarray:
        return np.array(self.rows, dtype=np.float64)
