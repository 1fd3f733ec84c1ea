"""
geometry.py

Point and vector helpers shared by the anchor resolver, edge router,
hit tester and painter. Everything here is pure and works in world space.
"""

from __future__ import annotations

import math
from typing import List, NamedTuple, Sequence, Tuple


class Point(NamedTuple):
    """A 2-D point in world (or screen) coordinates."""
    x: float
    y: float


Segment = Tuple[Point, Point]


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


def is_finite_point(p) -> bool:
    return p is not None and math.isfinite(p[0]) and math.isfinite(p[1])


def distance_to_segment(p: Point, start: Point, end: Point) -> float:
    """Shortest distance from ``p`` to the segment ``start``-``end``.

    A degenerate segment collapses to a point distance.
    """
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(p.x - start.x, p.y - start.y)
    t = ((p.x - start.x) * dx + (p.y - start.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(p.x - (start.x + t * dx), p.y - (start.y + t * dy))


def quadratic_point(start: Point, control: Point, end: Point, t: float) -> Point:
    """Evaluate a quadratic Bezier at parameter ``t``."""
    inv = 1 - t
    return Point(
        inv * inv * start.x + 2 * inv * t * control.x + t * t * end.x,
        inv * inv * start.y + 2 * inv * t * control.y + t * t * end.y,
    )


def sample_quadratic(start: Point, control: Point, end: Point, steps: int) -> List[Point]:
    """Return ``steps + 1`` points along the curve, endpoints included."""
    steps = max(1, int(steps))
    return [quadratic_point(start, control, end, i / steps) for i in range(steps + 1)]


def distance_to_polyline(p: Point, points: Sequence[Point]) -> float:
    if len(points) == 1:
        return distance(p, points[0])
    return min(
        distance_to_segment(p, points[i - 1], points[i])
        for i in range(1, len(points))
    )


def distance_to_quadratic(p: Point, start: Point, control: Point, end: Point,
                          steps: int = 24) -> float:
    """Approximate point-to-curve distance by fixed-step sampling.

    The exact solution needs a cubic root; sampling is accurate enough at
    pick tolerances.
    """
    return distance_to_polyline(p, sample_quadratic(start, control, end, steps))


def point_in_polygon(p: Point, vertices: Sequence[Point]) -> bool:
    """Even-odd ray casting test."""
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if (yi > p.y) != (yj > p.y):
            cross_x = (xj - xi) * (p.y - yi) / (yj - yi) + xi
            if p.x < cross_x:
                inside = not inside
        j = i
    return inside


def point_in_ellipse(p: Point, center: Point, rx: float, ry: float) -> bool:
    if rx <= 0 or ry <= 0:
        return False
    nx = (p.x - center.x) / rx
    ny = (p.y - center.y) / ry
    return nx * nx + ny * ny <= 1.0


def rotate_point(p: Point, center: Point, radians: float) -> Point:
    """Rotate ``p`` about ``center``; y grows downward so positive is clockwise on screen."""
    if not radians:
        return Point(p.x, p.y)
    cos = math.cos(radians)
    sin = math.sin(radians)
    dx = p.x - center.x
    dy = p.y - center.y
    return Point(center.x + dx * cos - dy * sin, center.y + dx * sin + dy * cos)
