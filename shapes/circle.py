"""
shapes/circle.py

Circle shape: TikZ options and anchors.
"""

from __future__ import annotations

import math
from typing import Callable

from geometry import Point
from metrics import format_cm, node_dimensions
from models import Node, ShapeKind
from shapes.common import ALIGN_CENTER, center
from shapes.registry import AnchorDef, ShapeOptions, ShapeRegistry


def _on_circle(angle: float) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        radius, _ = node_dimensions(node)
        radians = math.radians(angle)
        return Point(node.x + math.cos(radians) * radius, node.y - math.sin(radians) * radius)
    return point


CIRCLE_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("text", center, connectable=False),
    AnchorDef("mid", center, connectable=False),
    AnchorDef("base", center, connectable=False),
    AnchorDef("north", _on_circle(90), aliases=("n",)),
    AnchorDef("south", _on_circle(270), aliases=("s",)),
    AnchorDef("east", _on_circle(0), aliases=("e",)),
    AnchorDef("west", _on_circle(180), aliases=("w",)),
    AnchorDef("north west", _on_circle(135), aliases=("northwest",)),
    AnchorDef("north east", _on_circle(45), aliases=("northeast",)),
    AnchorDef("south west", _on_circle(225), aliases=("southwest",)),
    AnchorDef("south east", _on_circle(315), aliases=("southeast",)),
    AnchorDef("130", _on_circle(130)),
    AnchorDef("10", _on_circle(10)),
    AnchorDef("mid west", _on_circle(180), aliases=("midwest",)),
    AnchorDef("base west", _on_circle(225)),
    AnchorDef("mid east", _on_circle(0), aliases=("mideast",)),
    AnchorDef("base east", _on_circle(315)),
]


def circle_options(node: Node, register_color) -> ShapeOptions:
    radius, _ = node_dimensions(node)
    return ShapeOptions(
        options=["circle", f"minimum size={format_cm(radius * 2)}", "shape aspect=1", ALIGN_CENTER],
    )


def register(registry: ShapeRegistry) -> None:
    registry.register(ShapeKind.CIRCLE, circle_options)
    registry.register_anchors(ShapeKind.CIRCLE, CIRCLE_ANCHORS)
