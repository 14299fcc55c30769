from __future__ import annotations

import math
from typing import Tuple

Point = Tuple[float, float]


def rotate(x: float, y: float, cos_a: float, sin_a: float) -> Tuple[float, float]:
    return (x * cos_a - y * sin_a, x * sin_a + y * cos_a)


def ellipse_point(angle: float, radius: float, aspect: float) -> Point:
    """Point of the ellipse ``(radius, radius * aspect)`` at parametric ``angle``."""
    return (radius * math.cos(angle), radius * aspect * math.sin(angle))


def ellipse_tangent(angle: float, radius: float, aspect: float) -> Tuple[float, float]:
    """Derivative of :func:`ellipse_point` with respect to ``angle`` (not normalised)."""
    return (-radius * math.sin(angle), radius * aspect * math.cos(angle))


def ellipse_speed(angle: float, radius: float, aspect: float) -> float:
    """
    Arc length travelled per unit of parametric angle.

    For a circle this is the radius; for an ellipse it varies with the angle,
    which is why rolling two ellipses has no closed form.
    """
    dx, dy = ellipse_tangent(angle, radius, aspect)
    return math.sqrt(dx * dx + dy * dy)


def ellipse_circumference(radius: float, aspect: float) -> float:
    """Ramanujan's second approximation; exact for circles."""
    a = radius
    b = radius * aspect
    if aspect == 1:
        return 2.0 * math.pi * radius
    h = (a - b) ** 2 / (a + b) ** 2
    return math.pi * (a + b) * (1.0 + (3.0 * h) / (10.0 + math.sqrt(4.0 - 3.0 * h)))


def ellipse_extent(radius: float, aspect: float) -> float:
    """Largest distance from the centre to any point of the ellipse."""
    return radius * max(1.0, aspect)


__all__ = [
    "Point",
    "ellipse_circumference",
    "ellipse_extent",
    "ellipse_point",
    "ellipse_speed",
    "ellipse_tangent",
    "rotate",
]
