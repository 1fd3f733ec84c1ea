"""
models.py

Scene graph data model and constants for TikzCanvas.

Every record normalizes its own fields: ``from_dict`` coerces raw JSON
values (falling back to defaults for anything malformed) and
``normalize`` re-applies the same clamps after an in-place edit, so a
scene built from the canvas and a scene loaded from disk obey the same
rules. Unknown JSON keys are kept in ``extras`` and written back out.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from camera import Camera
from debug_trace import trace
from geometry import Point
from settings import get_settings
from utils import (
    clamp,
    coerce_bool,
    coerce_float,
    coerce_non_negative,
    coerce_positive,
    coerce_str,
)


# ----------------------------
# Enumerations
# ----------------------------

class ShapeKind(str, Enum):
    """Built-in node shapes. Values are the persisted and TikZ shape names."""
    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    ROUNDED_RECTANGLE = "rounded rectangle"
    RECTANGLE_SPLIT = "rectangle split"
    DIAMOND = "diamond"
    DECISION = "decision"
    TRIANGLE = "triangle"
    ELLIPSE = "ellipse"
    SEMICIRCLE = "semicircle"
    CYLINDER = "cylinder"
    CLOUD = "cloud"

    @classmethod
    def parse(cls, value: Any) -> "ShapeKind":
        """Resolve a persisted shape name; unknown names fall back to circle."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            for member in cls:
                if member.value == name:
                    return member
        if value not in (None, ""):
            trace(f"Unknown shape {value!r}, using circle", "WARN")
        return cls.CIRCLE


class RoutingKind(str, Enum):
    """Edge path styles."""
    STRAIGHT = "straight"
    CURVED_LEFT = "curved-left"
    CURVED_RIGHT = "curved-right"
    ORTHOGONAL_VERTICAL = "orthogonal-vertical"
    ORTHOGONAL_HORIZONTAL = "orthogonal-horizontal"

    @property
    def is_curved(self) -> bool:
        return self in (RoutingKind.CURVED_LEFT, RoutingKind.CURVED_RIGHT)

    @property
    def is_orthogonal(self) -> bool:
        return self in (RoutingKind.ORTHOGONAL_VERTICAL, RoutingKind.ORTHOGONAL_HORIZONTAL)

    @classmethod
    def parse(cls, value: Any) -> "RoutingKind":
        """Resolve current and legacy routing spellings; anything else is straight."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.STRAIGHT
        name = value.strip()
        for member in cls:
            if member.value == name:
                return member
        return LEGACY_ROUTING_MAP.get(name, cls.STRAIGHT)


# Older scene files stored the path style under these names
LEGACY_ROUTING_MAP: Dict[str, RoutingKind] = {
    "--": RoutingKind.STRAIGHT,
    "curva-direita": RoutingKind.CURVED_RIGHT,
    "curva-esquerda": RoutingKind.CURVED_LEFT,
    "bend right": RoutingKind.CURVED_RIGHT,
    "bend left": RoutingKind.CURVED_LEFT,
    "90-vertical": RoutingKind.ORTHOGONAL_VERTICAL,
    "90-horizontal": RoutingKind.ORTHOGONAL_HORIZONTAL,
    "|-": RoutingKind.ORTHOGONAL_HORIZONTAL,
    "-|": RoutingKind.ORTHOGONAL_VERTICAL,
}


class ElementKind:
    """Selection / hit categories for scene elements."""
    NODE = "node"
    EDGE = "edge"
    LINE = "line"
    TEXT_BLOCK = "text"
    MATRIX_GRID = "matrix"
    FRAME = "frame"


# ----------------------------
# Drawing mode constants
# ----------------------------

class Mode:
    """Tool modes for the canvas."""
    SELECT = "select"
    NODE = "node"
    LINE = "line"
    TEXT = "text"
    FRAME = "frame"
    PAN = "pan"


# ----------------------------
# Defaults and limits
# ----------------------------

BORDER_STYLES = ("solid", "dashed", "dotted")
EDGE_DIRECTIONS = ("-", "->", "<-", "<->")
LABEL_ALIGNMENTS = ("auto", "left", "center", "right")

DEFAULT_NODE_FILL = "#f8fafc"
DEFAULT_NODE_BORDER = "#94a3b8"
DEFAULT_NODE_BORDER_WIDTH = 3.0
DEFAULT_CORNER_RADIUS = 16.0
MAX_CORNER_RADIUS = 64.0
DEFAULT_FONT_SIZE = 16.0

NODE_SIZE_MIN = 20.0
NODE_SIZE_MAX = 720.0

SPLIT_PARTS_MIN = 4
SPLIT_PARTS_MAX = 6

DEFAULT_EDGE_COLOR = "#94a3b8"
DEFAULT_EDGE_BEND = 30.0

TEXT_BLOCK_MIN_WIDTH = 96.0
TEXT_BLOCK_MIN_HEIGHT = 60.0
TEXT_BLOCK_DEFAULT_WIDTH = 260.0
TEXT_BLOCK_DEFAULT_HEIGHT = 160.0
TEXT_BLOCK_FONT_MIN = 10.0
TEXT_BLOCK_FONT_MAX = 72.0
TEXT_BLOCK_OPACITY_MIN = 0.1

DEFAULT_MATRIX_CELL_SIZE = 4.0

FRAME_MIN_SIZE = 64.0
FRAME_DEFAULT_WIDTH = 640.0
FRAME_DEFAULT_HEIGHT = 480.0


def _border_style(value: Any) -> str:
    style = coerce_str(value, "solid").lower()
    return style if style in BORDER_STYLES else "solid"


def _extras(d: Dict[str, Any], known_keys: Iterable[str]) -> Dict[str, Any]:
    """Return the keys of *d* that the record does not consume."""
    known = set(known_keys)
    return {k: v for k, v in d.items() if k not in known}


def _point(value: Any) -> Point:
    if isinstance(value, dict):
        return Point(coerce_float(value.get("x"), 0.0), coerce_float(value.get("y"), 0.0))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Point(coerce_float(value[0], 0.0), coerce_float(value[1], 0.0))
    return Point(0.0, 0.0)


# ----------------------------
# Node
# ----------------------------

@dataclass
class SplitCell:
    """One part of a rectangle-split node."""
    text: str = ""
    fill: Optional[str] = None
    text_color: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Any) -> "SplitCell":
        if isinstance(d, str):
            return cls(text=d)
        if not isinstance(d, dict):
            return cls()
        text = d.get("text")
        return cls(
            text="" if text is None else str(text),
            fill=coerce_str(d.get("fill")),
            text_color=coerce_str(d.get("textColor")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"text": self.text}
        if self.fill:
            d["fill"] = self.fill
        if self.text_color:
            d["textColor"] = self.text_color
        return d


# Node style fields that are None unless set explicitly
NODE_STYLE_FIELDS = ("fill", "border_color", "border_width", "corner_radius",
                     "font_size", "opacity", "shadow")

_NODE_KEYS = (
    "id", "x", "y", "shape", "label", "fill", "color", "draw", "borderColor",
    "lineWidth", "borderWidth", "borderStyle", "cornerRadius", "fontSize",
    "opacity", "shadow", "rotate", "shapeBorderRotate", "size", "aspect",
    "minimumWidth", "minimumHeight", "innerXsep", "innerYsep",
    "cylinderUsesCustomFill", "cylinderEndFill", "cylinderBodyFill",
    "rectangleSplitParts", "rectangleSplitCells",
)


@dataclass
class Node:
    """A shape placed on the canvas.

    Style fields left as None were never set explicitly; the ``effective_*``
    properties supply the defaults and the exporter uses ``explicit`` to
    decide which options to write.
    """
    id: str
    x: float = 0.0
    y: float = 0.0
    shape: ShapeKind = ShapeKind.CIRCLE
    label: str = ""
    fill: Optional[str] = None
    border_color: Optional[str] = None
    border_width: Optional[float] = None
    border_style: str = "solid"
    corner_radius: Optional[float] = None
    font_size: Optional[float] = None
    opacity: Optional[float] = None
    shadow: Optional[bool] = None
    rotate: float = 0.0
    border_rotate: float = 0.0
    width: Optional[float] = None
    height: Optional[float] = None
    # Cylinder parameters (numbers are pixels, strings are TeX dimensions)
    aspect: Optional[float] = None
    minimum_width: Any = None
    minimum_height: Any = None
    inner_xsep: Any = None
    inner_ysep: Any = None
    cylinder_custom_fill: bool = True
    cylinder_end_fill: Optional[str] = None
    cylinder_body_fill: Optional[str] = None
    # Rectangle split parameters
    split_parts: int = SPLIT_PARTS_MIN
    split_cells: List[SplitCell] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> "Node":
        """Re-apply clamps after any edit. Returns self for chaining."""
        self.shape = ShapeKind.parse(self.shape)
        self.label = "" if self.label is None else str(self.label)
        self.border_style = _border_style(self.border_style)
        if self.corner_radius is not None:
            self.corner_radius = clamp(self.corner_radius, 0.0, MAX_CORNER_RADIUS)
        if self.opacity is not None:
            self.opacity = clamp(self.opacity, 0.0, 1.0)
        if self.width is not None:
            self.width = clamp(self.width, NODE_SIZE_MIN, NODE_SIZE_MAX)
        if self.height is not None:
            self.height = clamp(self.height, NODE_SIZE_MIN, NODE_SIZE_MAX)
        self.split_parts = int(clamp(round(self.split_parts), SPLIT_PARTS_MIN, SPLIT_PARTS_MAX))
        return self

    @property
    def center(self) -> Point:
        return Point(self.x, self.y)

    @property
    def explicit(self) -> Set[str]:
        """Names of the style fields that were set explicitly."""
        return {name for name in NODE_STYLE_FIELDS if getattr(self, name) is not None}

    @property
    def effective_fill(self) -> str:
        return self.fill or DEFAULT_NODE_FILL

    @property
    def effective_border_color(self) -> str:
        return self.border_color or DEFAULT_NODE_BORDER

    @property
    def effective_border_width(self) -> float:
        return self.border_width if self.border_width is not None else DEFAULT_NODE_BORDER_WIDTH

    @property
    def effective_corner_radius(self) -> float:
        return self.corner_radius if self.corner_radius is not None else DEFAULT_CORNER_RADIUS

    @property
    def effective_font_size(self) -> float:
        return self.font_size if self.font_size is not None else DEFAULT_FONT_SIZE

    @property
    def effective_opacity(self) -> float:
        return self.opacity if self.opacity is not None else 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Node":
        """Build a node from its JSON dict, accepting the legacy style keys.

        ``color`` is read as the fill, ``borderColor`` as the stroke and
        ``borderWidth`` as the line width when the primary keys are absent
        or unusable.
        """
        fill = coerce_str(d.get("fill")) or coerce_str(d.get("color"))
        draw = coerce_str(d.get("draw")) or coerce_str(d.get("borderColor"))
        line_width = coerce_non_negative(d.get("lineWidth"))
        if line_width is None:
            line_width = coerce_non_negative(d.get("borderWidth"))
        opacity = coerce_float(d.get("opacity"))
        if opacity is not None and not 0 <= opacity <= 1:
            opacity = None
        width = height = None
        size = d.get("size")
        if isinstance(size, dict):
            width = coerce_positive(size.get("width"))
            height = coerce_positive(size.get("height"))
            width, height = width or height, height or width
        elif coerce_positive(size) is not None:
            width = height = coerce_positive(size)
        cells = d.get("rectangleSplitCells")
        parts = coerce_float(d.get("rectangleSplitParts"))
        return cls(
            id=str(d.get("id", "")),
            x=coerce_float(d.get("x"), 0.0),
            y=coerce_float(d.get("y"), 0.0),
            shape=ShapeKind.parse(d.get("shape")),
            label=d.get("label") or "",
            fill=fill,
            border_color=draw,
            border_width=line_width,
            border_style=d.get("borderStyle"),
            corner_radius=coerce_non_negative(d.get("cornerRadius")),
            font_size=coerce_positive(d.get("fontSize")),
            opacity=opacity,
            shadow=coerce_bool(d.get("shadow")),
            rotate=coerce_float(d.get("rotate"), 0.0),
            border_rotate=coerce_float(d.get("shapeBorderRotate"), 0.0),
            width=width,
            height=height,
            aspect=coerce_positive(d.get("aspect")),
            minimum_width=d.get("minimumWidth"),
            minimum_height=d.get("minimumHeight"),
            inner_xsep=d.get("innerXsep"),
            inner_ysep=d.get("innerYsep"),
            cylinder_custom_fill=coerce_bool(d.get("cylinderUsesCustomFill"), True),
            cylinder_end_fill=coerce_str(d.get("cylinderEndFill")),
            cylinder_body_fill=coerce_str(d.get("cylinderBodyFill")),
            split_parts=SPLIT_PARTS_MIN if parts is None else parts,
            split_cells=[SplitCell.from_dict(c) for c in cells] if isinstance(cells, list) else [],
            extras=_extras(d, _NODE_KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "shape": self.shape.value,
            "label": self.label,
        }
        optional = {
            "fill": self.fill,
            "draw": self.border_color,
            "lineWidth": self.border_width,
            "cornerRadius": self.corner_radius,
            "fontSize": self.font_size,
            "opacity": self.opacity,
            "shadow": self.shadow,
            "aspect": self.aspect,
            "minimumWidth": self.minimum_width,
            "minimumHeight": self.minimum_height,
            "innerXsep": self.inner_xsep,
            "innerYsep": self.inner_ysep,
            "cylinderEndFill": self.cylinder_end_fill,
            "cylinderBodyFill": self.cylinder_body_fill,
        }
        d.update({k: v for k, v in optional.items() if v is not None})
        if self.border_style != "solid":
            d["borderStyle"] = self.border_style
        if self.rotate:
            d["rotate"] = self.rotate
        if self.border_rotate:
            d["shapeBorderRotate"] = self.border_rotate
        if self.width is not None or self.height is not None:
            d["size"] = {"width": self.width, "height": self.height}
        if not self.cylinder_custom_fill:
            d["cylinderUsesCustomFill"] = False
        if self.shape is ShapeKind.RECTANGLE_SPLIT:
            d["rectangleSplitParts"] = self.split_parts
            if self.split_cells:
                d["rectangleSplitCells"] = [c.to_dict() for c in self.split_cells]
        d.update(self.extras)
        return d


# ----------------------------
# Edge
# ----------------------------

@dataclass
class EdgeLabel:
    """Text attached to an edge; ``alignment`` None uses the scene default."""
    text: str = ""
    offset: Tuple[float, float] = (0.0, 0.0)
    color: Optional[str] = None
    alignment: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional["EdgeLabel"]:
        """Accept a label dict or a bare legacy string. Empty text yields None."""
        if isinstance(value, str):
            return cls(text=value) if value else None
        if not isinstance(value, dict):
            return None
        text = value.get("text")
        text = "" if text is None else str(text)
        if not text:
            return None
        offset = value.get("offset")
        if isinstance(offset, (list, tuple)) and len(offset) == 2:
            offset = (coerce_float(offset[0], 0.0), coerce_float(offset[1], 0.0))
        elif isinstance(offset, dict):
            offset = (coerce_float(offset.get("x"), 0.0), coerce_float(offset.get("y"), 0.0))
        else:
            offset = (0.0, 0.0)
        alignment = coerce_str(value.get("alignment"))
        if alignment not in LABEL_ALIGNMENTS:
            alignment = None
        return cls(text=text, offset=offset, color=coerce_str(value.get("color")),
                   alignment=alignment)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"text": self.text, "offset": [self.offset[0], self.offset[1]]}
        if self.color:
            d["color"] = self.color
        if self.alignment:
            d["alignment"] = self.alignment
        return d


_EDGE_KEYS = (
    "id", "source", "target", "from", "to", "sourceAnchor", "targetAnchor",
    "fromAnchor", "toAnchor", "style", "direction", "routing", "shape", "bend",
    "label", "color", "thickness",
)


def _endpoint(d: Dict[str, Any], key: str, legacy_key: str) -> Tuple[Optional[str], Optional[str]]:
    """Read ``(node_id, port)`` from either spelling of an edge endpoint."""
    raw = d.get(key)
    if isinstance(raw, dict):
        node_id = raw.get("nodeId")
        port = coerce_str(raw.get("portId"))
        return (str(node_id) if node_id is not None else None), port
    if raw is None:
        raw = d.get(legacy_key)
    return (str(raw) if raw is not None else None), None


@dataclass
class Edge:
    """A connector between two nodes."""
    id: str
    source: str
    target: str
    source_anchor: Optional[str] = None
    target_anchor: Optional[str] = None
    style: str = "solid"
    direction: str = "->"
    routing: RoutingKind = RoutingKind.STRAIGHT
    bend: float = DEFAULT_EDGE_BEND
    label: Optional[EdgeLabel] = None
    color: str = DEFAULT_EDGE_COLOR
    thickness: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> "Edge":
        self.style = _border_style(self.style)
        if self.direction not in EDGE_DIRECTIONS:
            self.direction = "->"
        self.routing = RoutingKind.parse(self.routing)
        # A zero bend is stored as the default, matching from_dict
        self.bend = clamp(self.bend, 0.0, 100.0) or DEFAULT_EDGE_BEND
        self.color = coerce_str(self.color, DEFAULT_EDGE_COLOR)
        return self

    def endpoint(self, which: str) -> Tuple[str, Optional[str]]:
        """Return (node_id, anchor) for ``"source"`` or ``"target"``."""
        if which == "source":
            return self.source, self.source_anchor
        return self.target, self.target_anchor

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Edge":
        source, source_port = _endpoint(d, "source", "from")
        target, target_port = _endpoint(d, "target", "to")
        routing = d.get("routing")
        if routing is None:
            routing = d.get("shape")
        bend = coerce_positive(d.get("bend"), DEFAULT_EDGE_BEND)
        return cls(
            id=str(d.get("id", "")),
            source=source or "",
            target=target or "",
            source_anchor=coerce_str(d.get("sourceAnchor")) or coerce_str(d.get("fromAnchor")) or source_port,
            target_anchor=coerce_str(d.get("targetAnchor")) or coerce_str(d.get("toAnchor")) or target_port,
            style=d.get("style"),
            direction=coerce_str(d.get("direction"), "->"),
            routing=RoutingKind.parse(routing),
            bend=bend,
            label=EdgeLabel.from_value(d.get("label")),
            color=coerce_str(d.get("color"), DEFAULT_EDGE_COLOR),
            thickness=coerce_positive(d.get("thickness")),
            extras=_extras(d, _EDGE_KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "style": self.style,
            "direction": self.direction,
            "routing": self.routing.value,
            "bend": self.bend,
            "color": self.color,
        }
        if self.source_anchor:
            d["sourceAnchor"] = self.source_anchor
        if self.target_anchor:
            d["targetAnchor"] = self.target_anchor
        if self.label is not None:
            d["label"] = self.label.to_dict()
        if self.thickness is not None:
            d["thickness"] = self.thickness
        d.update(self.extras)
        return d


# ----------------------------
# Free lines, text blocks, grids, frame
# ----------------------------

@dataclass
class Line:
    """A free line segment not attached to any node."""
    id: str
    start: Point = Point(0.0, 0.0)
    end: Point = Point(0.0, 0.0)
    color: str = DEFAULT_EDGE_COLOR
    style: str = "solid"
    thickness: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> "Line":
        self.start = Point(*self.start)
        self.end = Point(*self.end)
        self.style = _border_style(self.style)
        self.color = coerce_str(self.color, DEFAULT_EDGE_COLOR)
        return self

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Line":
        return cls(
            id=str(d.get("id", "")),
            start=_point(d.get("start")),
            end=_point(d.get("end")),
            color=coerce_str(d.get("color"), DEFAULT_EDGE_COLOR),
            style=d.get("style"),
            thickness=coerce_positive(d.get("thickness")),
            extras=_extras(d, ("id", "start", "end", "color", "style", "thickness")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "start": {"x": self.start.x, "y": self.start.y},
            "end": {"x": self.end.x, "y": self.end.y},
            "color": self.color,
            "style": self.style,
        }
        if self.thickness is not None:
            d["thickness"] = self.thickness
        d.update(self.extras)
        return d


_TEXT_BLOCK_KEYS = (
    "id", "x", "y", "width", "height", "text", "fontSize", "fontWeight",
    "color", "fillColor", "borderColor", "borderWidth", "borderStyle",
    "showBackground", "opacity",
)


@dataclass
class TextBlock:
    """A free-standing block of wrapped text anchored at its top-left corner."""
    id: str
    x: float = 0.0
    y: float = 0.0
    width: float = TEXT_BLOCK_DEFAULT_WIDTH
    height: float = TEXT_BLOCK_DEFAULT_HEIGHT
    text: str = ""
    font_size: float = DEFAULT_FONT_SIZE
    font_weight: int = 500
    color: Optional[str] = None
    fill_color: Optional[str] = None
    border_color: Optional[str] = None
    border_width: float = 2.0
    border_style: str = "solid"
    show_background: bool = True
    opacity: float = 1.0
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> "TextBlock":
        self.width = max(TEXT_BLOCK_MIN_WIDTH, self.width)
        self.height = max(TEXT_BLOCK_MIN_HEIGHT, self.height)
        self.font_size = clamp(self.font_size, TEXT_BLOCK_FONT_MIN, TEXT_BLOCK_FONT_MAX)
        self.border_width = max(0.0, self.border_width)
        self.border_style = _border_style(self.border_style)
        self.opacity = clamp(self.opacity, TEXT_BLOCK_OPACITY_MIN, 1.0)
        self.text = "" if self.text is None else str(self.text)
        return self

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TextBlock":
        weight = coerce_positive(d.get("fontWeight"), 500)
        return cls(
            id=str(d.get("id", "")),
            x=coerce_float(d.get("x"), 0.0),
            y=coerce_float(d.get("y"), 0.0),
            width=coerce_positive(d.get("width"), TEXT_BLOCK_DEFAULT_WIDTH),
            height=coerce_positive(d.get("height"), TEXT_BLOCK_DEFAULT_HEIGHT),
            text=d.get("text"),
            font_size=coerce_positive(d.get("fontSize"), DEFAULT_FONT_SIZE),
            font_weight=int(weight),
            color=coerce_str(d.get("color")),
            fill_color=coerce_str(d.get("fillColor")),
            border_color=coerce_str(d.get("borderColor")),
            border_width=coerce_non_negative(d.get("borderWidth"), 2.0),
            border_style=d.get("borderStyle"),
            show_background=coerce_bool(d.get("showBackground"), True),
            opacity=coerce_float(d.get("opacity"), 1.0),
            extras=_extras(d, _TEXT_BLOCK_KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "text": self.text,
            "fontSize": self.font_size,
            "fontWeight": self.font_weight,
            "borderWidth": self.border_width,
            "borderStyle": self.border_style,
            "showBackground": self.show_background,
            "opacity": self.opacity,
        }
        for key, value in (("color", self.color), ("fillColor", self.fill_color),
                           ("borderColor", self.border_color)):
            if value:
                d[key] = value
        d.update(self.extras)
        return d


@dataclass
class MatrixGrid:
    """A pixel grid: each cell value maps to a color through ``color_map``."""
    id: str
    x: float = 0.0
    y: float = 0.0
    data: List[List[str]] = field(default_factory=list)
    cell_size: float = DEFAULT_MATRIX_CELL_SIZE
    color_map: Dict[str, str] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> "MatrixGrid":
        rows = [[str(cell) for cell in row] for row in self.data
                if isinstance(row, (list, tuple)) and len(row) > 0]
        if rows:
            width = len(rows[0])
            dropped = [r for r in rows if len(r) != width]
            if dropped:
                trace(f"Grid {self.id}: dropped {len(dropped)} ragged row(s)", "WARN")
            rows = [r for r in rows if len(r) == width]
        self.data = rows
        if not self.cell_size or self.cell_size <= 0:
            self.cell_size = DEFAULT_MATRIX_CELL_SIZE
        self.color_map = {str(k): v for k, v in self.color_map.items()
                          if isinstance(v, str) and v}
        return self

    @property
    def rows(self) -> int:
        return len(self.data)

    @property
    def columns(self) -> int:
        return len(self.data[0]) if self.data else 0

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y,
                self.x + self.columns * self.cell_size,
                self.y + self.rows * self.cell_size)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MatrixGrid":
        data = d.get("data")
        color_map = d.get("colorMap")
        return cls(
            id=str(d.get("id", "")),
            x=coerce_float(d.get("x"), 0.0),
            y=coerce_float(d.get("y"), 0.0),
            data=data if isinstance(data, list) else [],
            cell_size=coerce_positive(d.get("cellSize"), DEFAULT_MATRIX_CELL_SIZE),
            color_map=color_map if isinstance(color_map, dict) else {},
            extras=_extras(d, ("id", "x", "y", "data", "cellSize", "colorMap")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "data": [list(row) for row in self.data],
            "cellSize": self.cell_size,
            "colorMap": dict(self.color_map),
        }
        d.update(self.extras)
        return d


@dataclass
class Frame:
    """The export bounding box. Elements outside it are not exported."""
    x: float = 0.0
    y: float = 0.0
    width: float = FRAME_DEFAULT_WIDTH
    height: float = FRAME_DEFAULT_HEIGHT

    def resized(self, handle: str, dx: float, dy: float) -> "Frame":
        """
        Return this frame resized by dragging *handle* by (dx, dy).

        West/north handles move the origin and keep the opposite edge
        fixed; no side shrinks below FRAME_MIN_SIZE.
        """
        x, y, w, h = self.x, self.y, self.width, self.height
        if "e" in handle:
            w = max(FRAME_MIN_SIZE, self.width + dx)
        if "s" in handle:
            h = max(FRAME_MIN_SIZE, self.height + dy)
        if "w" in handle:
            x = min(self.x + dx, self.x + self.width - FRAME_MIN_SIZE)
            w = max(FRAME_MIN_SIZE, self.width + (self.x - x))
        if "n" in handle:
            y = min(self.y + dy, self.y + self.height - FRAME_MIN_SIZE)
            h = max(FRAME_MIN_SIZE, self.height + (self.y - y))
        return Frame(x, y, w, h)

    def moved(self, dx: float, dy: float) -> "Frame":
        return Frame(self.x + dx, self.y + dy, self.width, self.height)

    @classmethod
    def from_dict(cls, d: Any) -> Optional["Frame"]:
        if not isinstance(d, dict):
            return None
        x = coerce_float(d.get("x"))
        y = coerce_float(d.get("y"))
        w = coerce_positive(d.get("width"))
        h = coerce_positive(d.get("height"))
        if None in (x, y, w, h):
            return None
        return cls(x, y, max(FRAME_MIN_SIZE, w), max(FRAME_MIN_SIZE, h))

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


# ----------------------------
# Scene
# ----------------------------

def _default_edge_thickness() -> float:
    return get_settings().settings.export.edge_thickness


def _default_label_alignment() -> str:
    return get_settings().settings.export.edge_label_alignment


@dataclass
class Scene:
    """The whole diagram: ordered element lists plus view and export defaults.

    List order is paint order; later elements are on top.
    """
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    lines: List[Line] = field(default_factory=list)
    text_blocks: List[TextBlock] = field(default_factory=list)
    matrix_grids: List[MatrixGrid] = field(default_factory=list)
    frame: Optional[Frame] = None
    camera: Camera = field(default_factory=Camera)
    edge_thickness: float = field(default_factory=_default_edge_thickness)
    edge_label_alignment: str = field(default_factory=_default_label_alignment)
    _id_counters: Dict[str, int] = field(default_factory=dict, init=False, repr=False,
                                         compare=False)

    # --- lookups ---

    def node_by_id(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge_by_id(self, edge_id: str) -> Optional[Edge]:
        return next((e for e in self.edges if e.id == edge_id), None)

    def line_by_id(self, line_id: str) -> Optional[Line]:
        return next((ln for ln in self.lines if ln.id == line_id), None)

    def text_block_by_id(self, block_id: str) -> Optional[TextBlock]:
        return next((b for b in self.text_blocks if b.id == block_id), None)

    def matrix_grid_by_id(self, grid_id: str) -> Optional[MatrixGrid]:
        return next((g for g in self.matrix_grids if g.id == grid_id), None)

    def element(self, kind: str, element_id: str):
        """Look up any element by its ElementKind and id."""
        lookup = {
            ElementKind.NODE: self.node_by_id,
            ElementKind.EDGE: self.edge_by_id,
            ElementKind.LINE: self.line_by_id,
            ElementKind.TEXT_BLOCK: self.text_block_by_id,
            ElementKind.MATRIX_GRID: self.matrix_grid_by_id,
        }.get(kind)
        return lookup(element_id) if lookup else None

    def all_ids(self) -> Set[str]:
        ids: Set[str] = set()
        for group in (self.nodes, self.edges, self.lines, self.text_blocks, self.matrix_grids):
            ids.update(item.id for item in group)
        return ids

    def next_id(self, prefix: str) -> str:
        """Return the next unused id of the form ``<prefix><n>``."""
        used = self.all_ids()
        n = self._id_counters.get(prefix, 0)
        while True:
            n += 1
            candidate = f"{prefix}{n}"
            if candidate not in used:
                self._id_counters[prefix] = n
                return candidate

    # --- mutation ---

    def add_node(self, node: Node) -> Node:
        self.nodes.append(node)
        return node

    def add_edge(self, edge: Edge) -> Edge:
        """Append an edge; both endpoints must already exist."""
        for node_id in (edge.source, edge.target):
            if self.node_by_id(node_id) is None:
                raise ValueError(f"Edge {edge.id} references missing node {node_id!r}")
        self.edges.append(edge)
        return edge

    def add_line(self, line: Line) -> Line:
        self.lines.append(line)
        return line

    def add_text_block(self, block: TextBlock) -> TextBlock:
        self.text_blocks.append(block)
        return block

    def add_matrix_grid(self, grid: MatrixGrid) -> MatrixGrid:
        self.matrix_grids.append(grid)
        return grid

    def remove_node(self, node_id: str) -> List[Edge]:
        """Remove a node and every edge touching it. Returns the removed edges."""
        self.nodes = [n for n in self.nodes if n.id != node_id]
        removed = [e for e in self.edges if node_id in (e.source, e.target)]
        if removed:
            self.edges = [e for e in self.edges if node_id not in (e.source, e.target)]
        return removed

    def remove_edge(self, edge_id: str) -> None:
        self.edges = [e for e in self.edges if e.id != edge_id]

    def remove_line(self, line_id: str) -> None:
        self.lines = [ln for ln in self.lines if ln.id != line_id]

    def remove_text_block(self, block_id: str) -> None:
        self.text_blocks = [b for b in self.text_blocks if b.id != block_id]

    def remove_matrix_grid(self, grid_id: str) -> None:
        self.matrix_grids = [g for g in self.matrix_grids if g.id != grid_id]

    def remove(self, kind: str, element_id: str) -> None:
        if kind == ElementKind.NODE:
            self.remove_node(element_id)
        elif kind == ElementKind.EDGE:
            self.remove_edge(element_id)
        elif kind == ElementKind.LINE:
            self.remove_line(element_id)
        elif kind == ElementKind.TEXT_BLOCK:
            self.remove_text_block(element_id)
        elif kind == ElementKind.MATRIX_GRID:
            self.remove_matrix_grid(element_id)
        elif kind == ElementKind.FRAME:
            self.frame = None

    def prune_edges(self) -> int:
        """Drop edges whose source or target node is missing. Returns the count."""
        ids = {n.id for n in self.nodes}
        kept = [e for e in self.edges if e.source in ids and e.target in ids]
        pruned = len(self.edges) - len(kept)
        if pruned:
            for edge in self.edges:
                if edge.source not in ids or edge.target not in ids:
                    trace(f"Pruned dangling edge {edge.id} ({edge.source} -> {edge.target})", "WARN")
            self.edges = kept
        return pruned

    def copy(self) -> "Scene":
        return copy.deepcopy(self)
