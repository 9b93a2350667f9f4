# mapgen/world/geometry.py
from enum import Enum, auto
from typing import List, NamedTuple, Tuple

import math


class Position(NamedTuple):
    x: int
    y: int


class Rect(NamedTuple):
    """A rectangle on the map, bounds inclusive on both corners."""
    x1: int
    y1: int
    x2: int
    y2: int

    @classmethod
    def from_size(cls, x: int, y: int, width: int, height: int) -> "Rect":
        return cls(x, y, x + width, y + height)

    @property
    def center(self) -> Tuple[int, int]:
        """Center coordinates of the rectangle."""
        center_x = (self.x1 + self.x2) // 2
        center_y = (self.y1 + self.y2) // 2
        return center_x, center_y

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    def intersects(self, other: "Rect") -> bool:
        """Returns True if this rectangle intersects with another one."""
        return (
            self.x1 <= other.x2
            and self.x2 >= other.x1
            and self.y1 <= other.y2
            and self.y2 >= other.y1
        )

    def contains(self, x: int, y: int) -> bool:
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2


class DistanceAlg(Enum):
    PYTHAGORAS = auto()
    PYTHAGORAS_SQUARED = auto()
    MANHATTAN = auto()
    CHEBYSHEV = auto()

    def distance2d(self, a: Tuple[int, int], b: Tuple[int, int]) -> float:
        dx = abs(a[0] - b[0])
        dy = abs(a[1] - b[1])
        if self is DistanceAlg.PYTHAGORAS:
            return math.sqrt(dx * dx + dy * dy)
        if self is DistanceAlg.PYTHAGORAS_SQUARED:
            return float(dx * dx + dy * dy)
        if self is DistanceAlg.MANHATTAN:
            return float(dx + dy)
        return float(max(dx, dy))


def line2d(x0: int, y0: int, x1: int, y1: int) -> List[Position]:
    """Bresenham line from ``(x0, y0)`` to ``(x1, y1)``, both ends included."""
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx + dy

    points = [Position(x0, y0)]
    xi, yi = x0, y0
    while (xi, yi) != (x1, y1):
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            xi += sx
        if e2 <= dx:
            err += dx
            yi += sy
        points.append(Position(xi, yi))
    return points


__all__ = ["DistanceAlg", "Position", "Rect", "line2d"]
