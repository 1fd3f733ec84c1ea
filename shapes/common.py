"""
shapes/common.py

Point-function builders reused across shape definitions.

All of them work on the unrotated node; the resolver applies rotation.
Angles are in degrees, counter-clockwise on screen (y grows downward,
so the sine term is subtracted).
"""

from __future__ import annotations

import math
from typing import Callable

from geometry import Point
from metrics import format_cm, node_dimensions
from models import Node

ALIGN_CENTER = "align=center"


def center(node: Node) -> Point:
    return Point(node.x, node.y)


def ratio_point(sx: float, sy: float) -> Callable[[Node], Point]:
    """Point at (sx * half_width, sy * half_height) from the center, screen axes."""
    def point(node: Node) -> Point:
        hw, hh = node_dimensions(node)
        return Point(node.x + hw * sx, node.y + hh * sy)
    return point


def rectangle_border_point(angle: float) -> Callable[[Node], Point]:
    """Where a ray from the center at *angle* leaves the bounding box."""
    def point(node: Node) -> Point:
        hw, hh = node_dimensions(node)
        radians = math.radians(angle)
        dx = math.cos(radians)
        dy = -math.sin(radians)
        denom = max(abs(dx) / (hw or 1), abs(dy) / (hh or 1))
        scale = 0 if denom == 0 else 1 / denom
        return Point(node.x + dx * scale, node.y + dy * scale)
    return point


def size_options(node: Node, default_width: str, default_height: str):
    """``minimum width``/``minimum height`` options, from the size override when set."""
    if node.width is None and node.height is None:
        return [f"minimum width={default_width}", f"minimum height={default_height}"]
    hw, hh = node_dimensions(node)
    return [f"minimum width={format_cm(hw * 2)}", f"minimum height={format_cm(hh * 2)}"]
