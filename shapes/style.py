"""
shapes/style.py

Common node style options (stroke, fill, line width, font, opacity,
shadow) shared by every shape.

The option list for a node is ``prefix + shape options + extra + suffix``;
this module builds the prefix and suffix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from models import Node, ShapeKind
from shapes.registry import ColorRegistrar
from utils import format_number

FONT_MAP = {
    12: "\\small",
    16: "",
    20: "\\large",
}


def rounding(radius: float) -> str:
    """Canvas corner radius (px) to TikZ ``rounded corners`` points."""
    if radius is None or radius < 0:
        return "0.00"
    return f"{radius * 0.1875:.2f}"


def fontsize_command(size: float) -> str:
    """``\\fontsize{pt}{baseline}\\selectfont`` for a pixel font size."""
    pt = round(size * 0.75, 1)
    baseline = round(pt * 1.2, 1)
    return f"\\fontsize{{{format_number(pt, 1)}}}{{{format_number(baseline, 1)}}}\\selectfont"


def font_command(size: float) -> str:
    """Return the TikZ font command for a pixel font size ('' for the default)."""
    if float(size).is_integer() and int(size) in FONT_MAP:
        return FONT_MAP[int(size)]
    return fontsize_command(size)


@dataclass
class StyleOptions:
    prefix: List[str] = field(default_factory=list)
    suffix: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)


def build_style_options(node: Node, register_color: ColorRegistrar) -> StyleOptions:
    """
    Build the shape-independent options of a node.

    Rectangles only carry stroke, fill and line width when those were set
    explicitly (TikZ's own rectangle defaults are kept otherwise). A
    cylinder painting its own end/body fills gets no ``fill=``.
    Opacity and shadow are only written when set explicitly.
    """
    result = StyleOptions()
    explicit = node.explicit
    plain_rectangle = node.shape is ShapeKind.RECTANGLE

    stroke: Optional[str] = None
    if not plain_rectangle or "border_color" in explicit:
        stroke = register_color(node.effective_border_color)
    result.prefix.append(f"draw={stroke}" if stroke else "draw")
    if node.border_style in ("dashed", "dotted"):
        result.prefix.append(node.border_style)

    custom_cylinder = node.shape is ShapeKind.CYLINDER and node.cylinder_custom_fill
    if not custom_cylinder and (not plain_rectangle or "fill" in explicit):
        fill = register_color(node.effective_fill)
        if fill:
            result.suffix.append(f"fill={fill}")

    if not plain_rectangle or "border_width" in explicit:
        width = node.effective_border_width
        if width > 0:
            result.suffix.append(f"line width={width * 0.6:.2f}pt")

    font = font_command(node.effective_font_size)
    if font:
        result.suffix.append(f"font={font}")

    if node.opacity is not None:
        result.suffix.append(f"opacity={format_number(node.opacity, 2)}")

    if node.shadow:
        result.suffix.append("drop shadow")
        result.libraries.append("shadows")

    return result
