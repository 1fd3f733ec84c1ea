"""
shapes/rectangles.py

Rectangle family: plain rectangle, rounded rectangle and rectangle split.
"""

from __future__ import annotations

from typing import Callable, List

from geometry import Point
from metrics import node_dimensions
from models import Node, ShapeKind
from shapes.common import ALIGN_CENTER, center, ratio_point, rectangle_border_point, size_options
from shapes.registry import AnchorDef, ShapeOptions, ShapeRegistry
from shapes.style import rounding

# TikZ node part names after the first ("text") part
SPLIT_PART_NAMES = ("two", "three", "four", "five", "six")


# ----------------------------
# Rectangle
# ----------------------------

RECTANGLE_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("shape center", center, connectable=False),
    AnchorDef("text", center, connectable=False),
    AnchorDef("mid", center, connectable=False),
    AnchorDef("base", center, connectable=False),
    AnchorDef("north", ratio_point(0, -1), aliases=("n",)),
    AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
    AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
    AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
    AnchorDef("north west", ratio_point(-1, -1), aliases=("northwest",)),
    AnchorDef("north east", ratio_point(1, -1), aliases=("northeast",)),
    AnchorDef("south west", ratio_point(-1, 1), aliases=("southwest",)),
    AnchorDef("south east", ratio_point(1, 1), aliases=("southeast",)),
    AnchorDef("130", rectangle_border_point(130), connectable=False),
    AnchorDef("10", rectangle_border_point(10), connectable=False),
    AnchorDef("mid west", ratio_point(-1, 0), aliases=("midwest",)),
    AnchorDef("base west", ratio_point(-1, 1)),
    AnchorDef("mid east", ratio_point(1, 0), aliases=("mideast",)),
    AnchorDef("base east", ratio_point(1, 1)),
]


def rectangle_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(options=[
        "rectangle",
        f"rounded corners={rounding(node.effective_corner_radius)}pt",
        *size_options(node, "2.4cm", "1.2cm"),
        ALIGN_CENTER,
    ])


# ----------------------------
# Rounded rectangle
# ----------------------------

ROUNDED_RECTANGLE_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("text", center, connectable=False, aliases=("t",)),
    AnchorDef("mid", center, connectable=False, aliases=("m",)),
    AnchorDef("base", center, connectable=False, aliases=("b",)),
    AnchorDef("north", ratio_point(0, -1), aliases=("n",)),
    AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
    AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
    AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
    AnchorDef("north west", ratio_point(-1, -1), aliases=("nw", "northwest")),
    AnchorDef("north east", ratio_point(1, -1), aliases=("ne", "northeast")),
    AnchorDef("south west", ratio_point(-1, 1), aliases=("sw", "southwest")),
    AnchorDef("south east", ratio_point(1, 1), aliases=("se", "southeast")),
    AnchorDef("mid west", ratio_point(-1, 0), aliases=("midwest",)),
    AnchorDef("mid east", ratio_point(1, 0), aliases=("mideast",)),
    AnchorDef("base west", ratio_point(-1, 1)),
    AnchorDef("base east", ratio_point(1, 1)),
    AnchorDef("10", rectangle_border_point(10), connectable=False),
]


def rounded_rectangle_options(node: Node, register_color) -> ShapeOptions:
    return ShapeOptions(
        options=[
            "rounded rectangle",
            "rounded corners=15pt",
            *size_options(node, "2.4cm", "1.2cm"),
            ALIGN_CENTER,
        ],
        libraries=["shapes.misc"],
    )


# ----------------------------
# Rectangle split
# ----------------------------

def split_part_center_y(node: Node, index: int) -> float:
    """Vertical center of part *index* (0-based), clamped to the part count."""
    _, hh = node_dimensions(node)
    part_height = hh * 2 / node.split_parts
    index = min(max(index, 0), node.split_parts - 1)
    return node.y - hh + part_height * (index + 0.5)


def split_line_y(node: Node, index: int) -> float:
    """Y of the divider below part *index* (1-based)."""
    _, hh = node_dimensions(node)
    part_height = hh * 2 / node.split_parts
    index = min(max(index, 1), node.split_parts)
    return node.y - hh + part_height * index


def _part(index: int, side: int = 0) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        hw, _ = node_dimensions(node)
        return Point(node.x + hw * side, split_part_center_y(node, index))
    return point


def _split(index: int, side: int = 0) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        hw, _ = node_dimensions(node)
        return Point(node.x + hw * side, split_line_y(node, index))
    return point


def _split_anchor_defs() -> List[AnchorDef]:
    defs = [
        AnchorDef("center", center, connectable=False),
        AnchorDef("text", _part(0), connectable=False, aliases=("t",)),
        AnchorDef("mid", center, connectable=False, aliases=("m",)),
        AnchorDef("base", ratio_point(0, 1), connectable=False, aliases=("b",)),
        AnchorDef("north", ratio_point(0, -1), aliases=("n",)),
        AnchorDef("south", ratio_point(0, 1), aliases=("s",)),
        AnchorDef("east", ratio_point(1, 0), aliases=("e",)),
        AnchorDef("west", ratio_point(-1, 0), aliases=("w",)),
        AnchorDef("north west", ratio_point(-1, -1), aliases=("nw", "northwest")),
        AnchorDef("north east", ratio_point(1, -1), aliases=("ne", "northeast")),
        AnchorDef("south west", ratio_point(-1, 1), aliases=("sw", "southwest")),
        AnchorDef("south east", ratio_point(1, 1), aliases=("se", "southeast")),
        AnchorDef("text east", _part(0, 1)),
        AnchorDef("text west", _part(0, -1)),
    ]
    for index, name in enumerate(("two", "three", "four"), start=1):
        defs.append(AnchorDef(name, _part(index)))
        defs.append(AnchorDef(f"{name} east", _part(index, 1)))
        defs.append(AnchorDef(f"{name} west", _part(index, -1)))
    for index, name in enumerate(("text", "two", "three"), start=1):
        defs.append(AnchorDef(f"{name} split", _split(index)))
        defs.append(AnchorDef(f"{name} split east", _split(index, 1)))
        defs.append(AnchorDef(f"{name} split west", _split(index, -1)))
    defs += [
        AnchorDef("mid east", ratio_point(1, 0), aliases=("mideast",)),
        AnchorDef("mid west", ratio_point(-1, 0), aliases=("midwest",)),
        AnchorDef("base east", ratio_point(1, 1)),
        AnchorDef("base west", ratio_point(-1, 1)),
        AnchorDef("70", rectangle_border_point(70)),
    ]
    return defs


RECTANGLE_SPLIT_ANCHORS = _split_anchor_defs()


def rectangle_split_options(node: Node, register_color) -> ShapeOptions:
    options = ["rectangle split", f"rectangle split parts={node.split_parts}"]
    if node.width is not None or node.height is not None:
        options += size_options(node, "", "")
    options.append(ALIGN_CENTER)
    return ShapeOptions(options=options, libraries=["shapes.multipart"])


def register(registry: ShapeRegistry) -> None:
    registry.register(ShapeKind.RECTANGLE, rectangle_options)
    registry.register_anchors(ShapeKind.RECTANGLE, RECTANGLE_ANCHORS)
    registry.register(ShapeKind.ROUNDED_RECTANGLE, rounded_rectangle_options)
    registry.register_anchors(ShapeKind.ROUNDED_RECTANGLE, ROUNDED_RECTANGLE_ANCHORS)
    registry.register(ShapeKind.RECTANGLE_SPLIT, rectangle_split_options)
    registry.register_anchors(ShapeKind.RECTANGLE_SPLIT, RECTANGLE_SPLIT_ANCHORS)
