"""
metrics.py

Node dimensions and unit conversion.

Every measurement the painter, hit tester, anchor functions and exporter
need about a node's extent comes from here, so that all four agree on
where a shape's border is.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from utils import clamp, coerce_float, format_number

# World pixels to TikZ centimetres
PX_TO_CM = 0.05

NODE_RADIUS = 32.0
NODE_WIDTH = 112.0
NODE_HEIGHT = 64.0

NODE_SIZE_MIN = 20.0
NODE_SIZE_MAX = 720.0

# Cylinder defaults (TikZ: minimum width=1.6cm, minimum height=1.8cm)
CYLINDER_MIN_WIDTH_CM = 1.6
CYLINDER_MIN_HEIGHT_CM = 1.8
CYLINDER_CONTENT_HEIGHT = 24.0
CYLINDER_ASPECT = 0.35

PX_PER_CM_WIDTH = NODE_WIDTH / CYLINDER_MIN_WIDTH_CM
PX_PER_CM_HEIGHT = CYLINDER_CONTENT_HEIGHT / CYLINDER_MIN_HEIGHT_CM

CM_PER_INCH = 2.54
CM_PER_POINT = CM_PER_INCH / 72
CM_PER_PICA = CM_PER_POINT * 12

_DIMENSION_RE = re.compile(r"^(-?\d*\.?\d+)\s*(cm|mm|in|pt|pc|px)?$", re.IGNORECASE)


def is_tex_dimension(text: str) -> bool:
    """True for a plain number with an optional unit, e.g. ``4pt`` or ``0.3cm``."""
    return bool(_DIMENSION_RE.match(text.strip()))


def px_to_cm(px: float) -> float:
    return px * PX_TO_CM


def format_cm(px: float, digits: int = 2) -> str:
    """Format a pixel length as a TikZ centimetre dimension (``64`` -> ``3.2cm``)."""
    return f"{format_number(px_to_cm(px), digits)}cm"


def format_coordinate(px: float) -> str:
    """Format one already frame-relative coordinate in centimetres."""
    cm = px_to_cm(px)
    if abs(cm) < 1e-4:
        return "0"
    return format_number(cm, 2)


def convert_dimension(raw: Any, axis: str) -> Optional[float]:
    """
    Convert a TeX dimension to canvas pixels.

    Plain numbers are taken as pixels. Strings may carry a unit
    (cm, mm, in, pt, pc, px); physical units go through centimetres and
    then the cylinder's per-axis pixel density.

    Args:
        raw: Number or dimension string such as ``"1.2cm"``
        axis: ``"width"`` or ``"height"``

    Returns:
        Pixels, or None for a negative, empty or unparseable value
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if raw >= 0 else None
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    match = _DIMENSION_RE.match(text)
    if not match:
        numeric = coerce_float(text)
        return numeric if numeric is not None and numeric >= 0 else None
    value = float(match.group(1))
    if value < 0:
        return None
    unit = (match.group(2) or "px").lower()
    if unit == "px":
        return value

    if unit == "cm":
        cm_value = value
    elif unit == "mm":
        cm_value = value / 10
    elif unit == "in":
        cm_value = value * CM_PER_INCH
    elif unit == "pt":
        cm_value = value * CM_PER_POINT
    else:
        cm_value = value * CM_PER_PICA

    scale = PX_PER_CM_WIDTH if axis == "width" else PX_PER_CM_HEIGHT
    return cm_value * scale


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


@dataclass(frozen=True)
class CylinderMetrics:
    """Derived cylinder geometry, all in pixels."""
    half_width: float
    half_height: float
    rx: float
    ry: float
    body_height: float
    total_height: float
    width: float
    content_width: float
    content_height: float
    padding_x: float
    padding_y: float


def cylinder_metrics(node) -> CylinderMetrics:
    """
    Derive cylinder geometry from a node's TeX-style parameters.

    The end-cap radius ``ry`` follows the aspect ratio but stays within
    [max(6, 0.12 rx), max(min, 0.75 rx)] so the caps never vanish or
    swallow the body.
    """
    min_width_px = _positive(convert_dimension(node.minimum_width, "width"))
    padding_x = _positive(convert_dimension(node.inner_xsep, "width")) or 0.0
    content_width = max(NODE_WIDTH, min_width_px if min_width_px is not None else NODE_WIDTH)
    if node.width is not None:
        content_width = max(content_width, node.width - padding_x * 2)
    total_width = content_width + padding_x * 2
    half_width = total_width / 2

    aspect = coerce_float(node.aspect)
    if aspect is None or aspect <= 0:
        aspect = CYLINDER_ASPECT
    aspect = clamp(aspect, 0.1, 1.5)

    min_height_px = _positive(convert_dimension(node.minimum_height, "height"))
    content_height = max(
        CYLINDER_CONTENT_HEIGHT,
        min_height_px if min_height_px is not None else CYLINDER_CONTENT_HEIGHT,
    )
    padding_y = _positive(convert_dimension(node.inner_ysep, "height")) or 0.0
    body_height = content_height + padding_y * 2

    rx = half_width
    min_ry = max(6.0, rx * 0.12)
    max_ry = max(min_ry, rx * 0.75)
    ry = clamp(rx * aspect, min_ry, max_ry)

    total_height = body_height + ry * 2
    return CylinderMetrics(
        half_width=half_width,
        half_height=total_height / 2,
        rx=rx,
        ry=ry,
        body_height=body_height,
        total_height=total_height,
        width=total_width,
        content_width=content_width,
        content_height=content_height,
        padding_x=padding_x,
        padding_y=padding_y,
    )


def node_dimensions(node) -> Tuple[float, float]:
    """
    Return (half_width, half_height) of a node.

    Circles use the larger override side as their diameter and never
    shrink below the default radius.
    """
    shape = getattr(node.shape, "value", node.shape)
    if shape == "circle":
        diameter = max(node.width or 0.0, node.height or 0.0, NODE_RADIUS * 2)
        radius = diameter / 2
        return radius, radius
    if shape == "cylinder":
        metrics = cylinder_metrics(node)
        return metrics.half_width, metrics.half_height
    width = node.width if node.width is not None else NODE_WIDTH
    height = node.height if node.height is not None else NODE_HEIGHT
    return width / 2, height / 2


def node_bounds(node) -> Tuple[float, float, float, float]:
    """Return (left, top, right, bottom) of the unrotated node box."""
    hw, hh = node_dimensions(node)
    return node.x - hw, node.y - hh, node.x + hw, node.y + hh


def point_inside_frame(x: float, y: float, frame) -> bool:
    if frame is None:
        return True
    return (
        frame.x <= x <= frame.x + frame.width
        and frame.y <= y <= frame.y + frame.height
    )


def node_inside_frame(node, frame) -> bool:
    """True when the whole node box lies inside the frame (or there is no frame)."""
    if frame is None:
        return True
    left, top, right, bottom = node_bounds(node)
    return (
        left >= frame.x
        and right <= frame.x + frame.width
        and top >= frame.y
        and bottom <= frame.y + frame.height
    )
