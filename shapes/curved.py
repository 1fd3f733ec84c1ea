"""
shapes/curved.py

Round-bordered shapes: ellipse, semicircle and cloud.
"""

from __future__ import annotations

import math
from typing import Callable

from geometry import Point
from metrics import node_dimensions
from models import Node, ShapeKind
from shapes.common import ALIGN_CENTER, center, ratio_point, size_options
from shapes.registry import AnchorDef, ShapeOptions, ShapeRegistry

SQRT1_2 = math.sqrt(0.5)


# ----------------------------
# Ellipse
# ----------------------------

ELLIPSE_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("text", center, connectable=False, aliases=("t",)),
    AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
    AnchorDef("north", ratio_point(0, -1), aliases=("n",)),
    AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
    AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
    AnchorDef("north east", ratio_point(SQRT1_2, -SQRT1_2), aliases=("ne",)),
    AnchorDef("north west", ratio_point(-SQRT1_2, -SQRT1_2), aliases=("nw",)),
    AnchorDef("south east", ratio_point(SQRT1_2, SQRT1_2), aliases=("se",)),
    AnchorDef("south west", ratio_point(-SQRT1_2, SQRT1_2), aliases=("sw",)),
    AnchorDef("base", ratio_point(0, 0.5), connectable=False, aliases=("b",)),
    AnchorDef("mid", center, connectable=False, aliases=("m",)),
]


def ellipse_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(
        options=["ellipse", *size_options(node, "5.6cm", "3.2cm"), ALIGN_CENTER],
        libraries=["shapes.geometric"],
    )


# ----------------------------
# Semicircle
# ----------------------------

def semicircle_arc_point(angle: float) -> Callable[[Node], Point]:
    """
    Point on the arc at *angle*.

    The arc is a half ellipse standing on the chord (the node's bottom
    edge) and reaching the node's top edge.
    """
    def point(node: Node) -> Point:
        hw, hh = node_dimensions(node)
        radians = math.radians(angle)
        return Point(node.x + math.cos(radians) * hw, node.y + hh - math.sin(radians) * hh * 2)
    return point


SEMICIRCLE_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("text", center, connectable=False, aliases=("t",)),
    AnchorDef("mid", center, connectable=False, aliases=("m",)),
    AnchorDef("base", ratio_point(0, 1), connectable=False, aliases=("b",)),
    AnchorDef("north", semicircle_arc_point(90), aliases=("n",)),
    AnchorDef("apex", semicircle_arc_point(90)),
    AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
    AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
    AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
    AnchorDef("north east", semicircle_arc_point(45), aliases=("ne", "northeast")),
    AnchorDef("north west", semicircle_arc_point(135), aliases=("nw", "northwest")),
    AnchorDef("south east", ratio_point(1, 1), aliases=("se", "southeast")),
    AnchorDef("south west", ratio_point(-1, 1), aliases=("sw", "southwest")),
    AnchorDef("arc start", ratio_point(1, 1)),
    AnchorDef("arc end", ratio_point(-1, 1)),
    AnchorDef("chord center", ratio_point(0, 1)),
    AnchorDef("mid east", ratio_point(1, 0), aliases=("mideast",)),
    AnchorDef("mid west", ratio_point(-1, 0), aliases=("midwest",)),
    AnchorDef("base east", ratio_point(1, 1)),
    AnchorDef("base west", ratio_point(-1, 1)),
    AnchorDef("30", semicircle_arc_point(30)),
    AnchorDef("10", semicircle_arc_point(10)),
]


def semicircle_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(
        options=["semicircle", *size_options(node, "5.6cm", "3.2cm"), ALIGN_CENTER],
        libraries=["shapes.geometric"],
    )


# ----------------------------
# Cloud
# ----------------------------

# Anchor positions of an 18-puff TikZ cloud as fractions of the half size,
# y pointing up
CLOUD_MID_OFFSET = 0.075131
CLOUD_DIAGONAL = (0.714476, 0.699002)
CLOUD_PUFFS = (
    (0.0, 1.0),
    (-0.597326, 0.810173),
    (-0.967660, 0.312055),
    (-0.967660, -0.312055),
    (-0.597326, -0.810173),
    (0.0, -1.0),
    (0.597326, -0.810173),
    (0.967660, -0.312055),
    (0.967660, 0.312055),
    (0.597326, 0.810173),
)


def _cloud_point(sx: float, sy: float) -> Callable[[Node], Point]:
    return ratio_point(sx, -sy)


def _cloud_anchor_defs():
    dx, dy = CLOUD_DIAGONAL
    defs = [
        AnchorDef("center", center, connectable=False),
        AnchorDef("text", center, connectable=False, aliases=("t",)),
        AnchorDef("mid", _cloud_point(0, CLOUD_MID_OFFSET), connectable=False, aliases=("m",)),
        AnchorDef("base", center, connectable=False, aliases=("b",)),
        AnchorDef("north", _cloud_point(0, 1), aliases=("n",)),
        AnchorDef("south", _cloud_point(0, -1), aliases=("s",)),
        AnchorDef("east", _cloud_point(1, 0), aliases=("e",)),
        AnchorDef("west", _cloud_point(-1, 0), aliases=("w",)),
        AnchorDef("north east", _cloud_point(dx, dy), aliases=("ne", "northeast")),
        AnchorDef("north west", _cloud_point(-dx, dy), aliases=("nw", "northwest")),
        AnchorDef("south east", _cloud_point(dx, -dy), aliases=("se", "southeast")),
        AnchorDef("south west", _cloud_point(-dx, -dy), aliases=("sw", "southwest")),
        AnchorDef("70", _cloud_point(0.168649, 0.906704)),
    ]
    for index, (sx, sy) in enumerate(CLOUD_PUFFS, start=1):
        defs.append(AnchorDef(f"puff {index}", _cloud_point(sx, sy)))
    return defs


CLOUD_ANCHORS = _cloud_anchor_defs()


def cloud_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(
        options=["cloud", "cloud puffs=18", *size_options(node, "2.8cm", "1.8cm"), ALIGN_CENTER],
        libraries=["shapes.symbols"],
    )


def register(registry: ShapeRegistry) -> None:
    registry.register(ShapeKind.ELLIPSE, ellipse_options)
    registry.register_anchors(ShapeKind.ELLIPSE, ELLIPSE_ANCHORS)
    registry.register(ShapeKind.SEMICIRCLE, semicircle_options)
    registry.register_anchors(ShapeKind.SEMICIRCLE, SEMICIRCLE_ANCHORS)
    registry.register(ShapeKind.CLOUD, cloud_options)
    registry.register_anchors(ShapeKind.CLOUD, CLOUD_ANCHORS)
