"""
shapes/polygons.py

Straight-sided shapes: diamond, decision (hexagon) and triangle.

The ``*_vertices`` helpers are the single source of each outline; the
painter and hit tester use them too.
"""

from __future__ import annotations

import math
from typing import Callable, List, Optional, Tuple

from geometry import Point, midpoint
from metrics import node_dimensions
from models import Node, ShapeKind
from shapes.common import ALIGN_CENTER, center, ratio_point, size_options
from shapes.registry import AnchorDef, ShapeOptions, ShapeRegistry

EPSILON = 1e-6

# Top/bottom edge half-length of the hexagon, as a fraction of half_width
DECISION_INSET = 0.65


def diamond_vertices(node: Node) -> List[Point]:
    hw, hh = node_dimensions(node)
    return [
        Point(node.x, node.y - hh),
        Point(node.x + hw, node.y),
        Point(node.x, node.y + hh),
        Point(node.x - hw, node.y),
    ]


def decision_vertices(node: Node) -> List[Point]:
    hw, hh = node_dimensions(node)
    inset = hw * DECISION_INSET
    return [
        Point(node.x - inset, node.y - hh),
        Point(node.x + inset, node.y - hh),
        Point(node.x + hw, node.y),
        Point(node.x + inset, node.y + hh),
        Point(node.x - inset, node.y + hh),
        Point(node.x - hw, node.y),
    ]


def triangle_vertices(node: Node) -> Tuple[Point, Point, Point]:
    """Return (apex, left corner, right corner); the apex points east."""
    hw, hh = node_dimensions(node)
    return (
        Point(node.x + hw, node.y),
        Point(node.x - hw, node.y - hh),
        Point(node.x - hw, node.y + hh),
    )


# ----------------------------
# Diamond
# ----------------------------

def _diamond_border(angle: float) -> Callable[[Node], Point]:
    """Border point along *angle*; the diamond is the unit ball of the L1 norm."""
    def point(node: Node) -> Point:
        hw, hh = node_dimensions(node)
        radians = math.radians(angle)
        dx = math.cos(radians)
        dy = -math.sin(radians)
        denom = abs(dx) / (hw or 1) + abs(dy) / (hh or 1)
        scale = 0 if denom == 0 else 1 / denom
        return Point(node.x + dx * scale, node.y + dy * scale)
    return point


def _diamond_edge_mid(a: int, b: int) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        vertices = diamond_vertices(node)
        return midpoint(vertices[a], vertices[b])
    return point


# vertex order: north, east, south, west
DIAMOND_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("text", center, connectable=False),
    AnchorDef("mid", center, connectable=False),
    AnchorDef("base", center, connectable=False),
    AnchorDef("north", ratio_point(0, -1), aliases=("n",)),
    AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
    AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
    AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
    AnchorDef("north east", _diamond_edge_mid(0, 1), aliases=("northeast",)),
    AnchorDef("north west", _diamond_edge_mid(0, 3), aliases=("northwest",)),
    AnchorDef("south east", _diamond_edge_mid(2, 1), aliases=("southeast",)),
    AnchorDef("south west", _diamond_edge_mid(2, 3), aliases=("southwest",)),
    AnchorDef("130", _diamond_border(130)),
    AnchorDef("10", _diamond_border(10)),
]


def diamond_options(node: Node, register_color) -> ShapeOptions:
    options = ["diamond", "aspect=2"]
    if node.width is not None or node.height is not None:
        options += size_options(node, "", "")
    options.append(ALIGN_CENTER)
    return ShapeOptions(options=options, libraries=["shapes.geometric"])


# ----------------------------
# Decision
# ----------------------------

DECISION_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("north", ratio_point(0, -1), aliases=("n",)),
    AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
    AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
    AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
]


def decision_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(
        options=[
            "regular polygon",
            "regular polygon sides=6",
            "shape border rotate=90",
            *size_options(node, "5.6cm", "3.2cm"),
            ALIGN_CENTER,
        ],
        libraries=["shapes.geometric"],
    )


# ----------------------------
# Triangle
# ----------------------------

def _cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def _ray_hit(origin: Point, dx: float, dy: float, a: Point, b: Point) -> Optional[float]:
    """Ray parameter where origin + t*(dx, dy) crosses segment a-b, or None."""
    sx, sy = b.x - a.x, b.y - a.y
    denom = _cross(dx, dy, sx, sy)
    if abs(denom) < EPSILON:
        return None
    diff_x, diff_y = a.x - origin.x, a.y - origin.y
    t = _cross(diff_x, diff_y, sx, sy) / denom
    u = _cross(diff_x, diff_y, dx, dy) / denom
    if t < 0 or u < -EPSILON or u > 1 + EPSILON:
        return None
    return t


def _triangle_border(angle: float) -> Callable[[Node], Point]:
    """Ray cast from the centroid at *angle* to the nearest side."""
    def point(node: Node) -> Point:
        apex, left, right = triangle_vertices(node)
        origin = Point((apex.x + left.x + right.x) / 3, (apex.y + left.y + right.y) / 3)
        radians = math.radians(angle)
        dx, dy = math.cos(radians), -math.sin(radians)
        hits = [
            t for t in (
                _ray_hit(origin, dx, dy, apex, left),
                _ray_hit(origin, dx, dy, apex, right),
                _ray_hit(origin, dx, dy, left, right),
            )
            if t is not None
        ]
        if not hits:
            return Point(node.x, node.y)
        t = min(hits)
        return Point(origin.x + dx * t, origin.y + dy * t)
    return point


def _vertex(index: int) -> Callable[[Node], Point]:
    return lambda node: triangle_vertices(node)[index]


def _side(a: int, b: int) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        vertices = triangle_vertices(node)
        return midpoint(vertices[a], vertices[b])
    return point


# vertex order: apex, left corner, right corner
TRIANGLE_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("apex", _vertex(0)),
    AnchorDef("left corner", _vertex(1)),
    AnchorDef("right corner", _vertex(2)),
    AnchorDef("east", _vertex(0), aliases=("e",)),
    AnchorDef("west", _side(1, 2), aliases=("w",)),
    AnchorDef("north", _triangle_border(90), aliases=("n",)),
    AnchorDef("south", _triangle_border(270), aliases=("s",)),
    AnchorDef("lower side", _side(1, 2)),
    AnchorDef("left side", _side(0, 1)),
    AnchorDef("right side", _side(0, 2)),
    AnchorDef("120", _triangle_border(120)),
    AnchorDef("90", _triangle_border(90)),
    AnchorDef("220", _triangle_border(220)),
    AnchorDef("270", _triangle_border(270)),
]


def triangle_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(
        options=[
            "isosceles triangle",
            "isosceles triangle stretches",
            *size_options(node, "5.6cm", "3.2cm"),
            ALIGN_CENTER,
        ],
        libraries=["shapes.geometric"],
    )


def register(registry: ShapeRegistry) -> None:
    registry.register(ShapeKind.DIAMOND, diamond_options)
    registry.register_anchors(ShapeKind.DIAMOND, DIAMOND_ANCHORS)
    registry.register(ShapeKind.DECISION, decision_options)
    registry.register_anchors(ShapeKind.DECISION, DECISION_ANCHORS)
    registry.register(ShapeKind.TRIANGLE, triangle_options)
    registry.register_anchors(ShapeKind.TRIANGLE, TRIANGLE_ANCHORS)
