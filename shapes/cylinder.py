"""
shapes/cylinder.py

Cylinder shape. Anchor points re-derive the cylinder metrics on every
call, so they follow edits to aspect, minimum size and padding.
"""

from __future__ import annotations

import math
from typing import Callable, List

from geometry import Point
from metrics import cylinder_metrics, format_cm, is_tex_dimension
from models import Node, ShapeKind
from shapes.common import ALIGN_CENTER, center
from shapes.registry import AnchorDef, ShapeOptions, ShapeRegistry
from utils import format_number, normalize_degrees


def _cap_point(cap: str, angle: float) -> Callable[[Node], Point]:
    """Point at *angle* on the top or bottom end ellipse."""
    def point(node: Node) -> Point:
        m = cylinder_metrics(node)
        offset = m.body_height / 2
        cy = node.y - offset if cap == "top" else node.y + offset
        radians = math.radians(angle)
        return Point(node.x + math.cos(radians) * m.rx, cy - math.sin(radians) * m.ry)
    return point


def _side_point(direction: int) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        return Point(node.x + cylinder_metrics(node).half_width * direction, node.y)
    return point


def _end_point(direction: int) -> Callable[[Node], Point]:
    def point(node: Node) -> Point:
        return Point(node.x, node.y + cylinder_metrics(node).half_height * direction)
    return point


CYLINDER_ANCHORS = [
    AnchorDef("center", center, connectable=False),
    AnchorDef("shape center", center, connectable=False),
    AnchorDef("text", center, connectable=False),
    AnchorDef("mid", center, connectable=False),
    AnchorDef("base", center, connectable=False),
    AnchorDef("north", _end_point(-1), aliases=("n",)),
    AnchorDef("south", _end_point(1), aliases=("s",)),
    AnchorDef("east", _side_point(1), aliases=("e",)),
    AnchorDef("west", _side_point(-1), aliases=("w",)),
    AnchorDef("north west", _cap_point("top", 135), aliases=("northwest",)),
    AnchorDef("north east", _cap_point("top", 45), aliases=("northeast",)),
    AnchorDef("south west", _cap_point("bottom", 225), aliases=("southwest",)),
    AnchorDef("south east", _cap_point("bottom", 315), aliases=("southeast",)),
    AnchorDef("top", _cap_point("top", 90)),
    AnchorDef("bottom", _cap_point("bottom", 270)),
    AnchorDef("after top", _cap_point("top", 15)),
    AnchorDef("before top", _cap_point("top", 165)),
    AnchorDef("after bottom", _cap_point("bottom", 345)),
    AnchorDef("before bottom", _cap_point("bottom", 195)),
    AnchorDef("160", _cap_point("top", 160)),
    AnchorDef("mid west", _side_point(-1), aliases=("midwest",)),
    AnchorDef("base west", _cap_point("bottom", 210)),
    AnchorDef("mid east", _side_point(1), aliases=("mideast",)),
    AnchorDef("base east", _cap_point("bottom", 330)),
]


def _dimension_text(value) -> str:
    if isinstance(value, str):
        return value.strip() if is_tex_dimension(value) else ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(float(value), 2)
    return ""


def cylinder_options(node: Node, register_color) -> ShapeOptions:
    """
    Cylinder options.

    TikZ draws a cylinder lying on its side, so the canvas rotation is
    exported as ``rotate = 90 - angle``, wrapped into (-180, 180].
    """
    m = cylinder_metrics(node)
    options: List[str] = [
        "cylinder",
        ALIGN_CENTER,
        f"minimum width={format_cm(m.content_width)}",
        f"minimum height={format_cm(m.body_height)}",
    ]

    rotate = normalize_degrees(90 - node.rotate)
    if abs(rotate) > 1e-4:
        options.append(f"rotate={format_number(rotate, 2)}")

    if node.border_rotate % 360 != 0:
        options.append(f"shape border rotate={format_number(node.border_rotate, 2)}")

    if node.aspect is not None and node.aspect > 0:
        options.append(f"shape aspect={format_number(node.aspect, 2)}")

    for key, value in (("inner xsep", node.inner_xsep), ("inner ysep", node.inner_ysep)):
        text = _dimension_text(value)
        if text:
            options.append(f"{key}={text}")

    if node.cylinder_custom_fill:
        options.append("cylinder uses custom fill")
        for key, color in (("cylinder end fill", node.cylinder_end_fill),
                           ("cylinder body fill", node.cylinder_body_fill)):
            name = register_color(color) if color else None
            if name:
                options.append(f"{key}={name}")
    else:
        options.append("cylinder uses custom fill=false")

    return ShapeOptions(options=options, libraries=["shapes.geometric"])


def register(registry: ShapeRegistry) -> None:
    registry.register(ShapeKind.CYLINDER, cylinder_options)
    registry.register_anchors(ShapeKind.CYLINDER, CYLINDER_ANCHORS)
