"""
tikz_export.py

Serialize a scene into a standalone TikZ document.

Output depends only on list order and field values, so serializing an
unchanged scene twice gives byte-identical text. Coordinates are world
pixels converted at 0.05 cm/px, relative to the frame origin when a
frame exists, with y negated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple, Union

from anchors import AnchorResolver
from camera import Camera
from debug_trace import trace, trace_call
from metrics import format_cm, format_coordinate, node_inside_frame, point_inside_frame, px_to_cm
from models import (
    LABEL_ALIGNMENTS,
    Edge,
    Frame,
    Line,
    MatrixGrid,
    Node,
    Scene,
    ShapeKind,
    TextBlock,
)
from routing import tikz_path
from shapes.rectangles import SPLIT_PART_NAMES
from shapes.registry import ShapeRegistry
from shapes.style import build_style_options, fontsize_command
from utils import format_number, hex_to_rgb, normalize_degrees, normalize_hex

PICTURE_OPTIONS = "node distance=2cm, auto, >=stealth"
DEFAULT_EDGE_THICKNESS = 2.5
DEFAULT_LABEL_ALIGNMENT = "right"

TEXT_BLOCK_PADDING = 14.0
TEXT_BLOCK_CORNER_RADIUS = 12.0

_TEX_SPECIALS = {
    "\\": "\\textbackslash{}",
    "&": "\\&",
    "%": "\\%",
    "$": "\\$",
    "#": "\\#",
    "_": "\\_",
    "{": "\\{",
    "}": "\\}",
    "~": "\\textasciitilde{}",
    "^": "\\textasciicircum{}",
}
_TEX_SPECIALS_RE = re.compile(r"[\\&%$#_{}~^]")


def escape_tex(text: str) -> str:
    """Escape TeX special characters in one line of label text."""
    return _TEX_SPECIALS_RE.sub(lambda m: _TEX_SPECIALS[m.group(0)], text)


def format_label(text: Optional[str]) -> str:
    """Escape a multi-line label and join its lines with TeX line breaks."""
    if text is None:
        return ""
    result = ""
    for index, part in enumerate(str(text).split("\n")):
        part = escape_tex(part)
        if index == 0:
            result = part
        elif not result:
            result = f"\\\\ {part}"
        else:
            result = f"{result} \\\\ {part}"
    return result


class ColorRegistry:
    """Assigns ``customColorN`` names to hex colors in first-seen order."""

    def __init__(self):
        self._names: Dict[str, str] = {}
        self._declarations: List[str] = []

    def register(self, value) -> Optional[str]:
        """Return the TikZ name for *value*, or None when it is not a hex color."""
        normalized = normalize_hex(value)
        if normalized is None:
            return None
        name = self._names.get(normalized)
        if name is None:
            name = f"customColor{len(self._names) + 1}"
            self._names[normalized] = name
            r, g, b = hex_to_rgb(normalized)
            self._declarations.append(f"\\definecolor{{{name}}}{{RGB}}{{{r},{g},{b}}}")
        return name

    @property
    def declarations(self) -> List[str]:
        return list(self._declarations)

    def __len__(self) -> int:
        return len(self._names)


@dataclass
class ExportOptions:
    """Document-wide overrides; None means use the scene's own defaults."""
    edge_thickness: Optional[float] = None
    edge_label_alignment: Optional[str] = None


class _Document:
    """Mutable state of one serialize() call."""

    def __init__(self, frame: Optional[Frame]):
        self.frame = frame
        self.colors = ColorRegistry()
        self.libraries: List[str] = ["arrows.meta"]
        self.body = ""

    def add_library(self, name: str) -> None:
        if name and name not in self.libraries:
            self.libraries.append(name)

    def x(self, value: float) -> float:
        return value - (self.frame.x if self.frame else 0.0)

    def y(self, value: float) -> float:
        return value - (self.frame.y if self.frame else 0.0)

    def coordinate(self, x: float, y: float) -> str:
        return f"({format_coordinate(self.x(x))},{format_coordinate(-self.y(y))})"


class TikzSerializer:
    """Turns a Scene into TikZ text using a shape registry and anchor resolver."""

    def __init__(self, registry: ShapeRegistry, resolver: AnchorResolver):
        self.registry = registry
        self.resolver = resolver

    # ----------------------------
    # Entry point
    # ----------------------------

    def serialize(self, scene: Scene, options: Optional[ExportOptions] = None) -> str:
        """
        Serialize *scene* into a complete LaTeX document.

        Nodes not fully inside the frame are skipped, and so are the
        edges touching them. Lines and text blocks are kept only when
        both of their end points lie inside the frame.
        """
        options = options or ExportOptions()
        thickness = options.edge_thickness
        if thickness is None or thickness <= 0:
            thickness = scene.edge_thickness if scene.edge_thickness > 0 else DEFAULT_EDGE_THICKNESS
        alignment = options.edge_label_alignment or scene.edge_label_alignment
        if alignment not in LABEL_ALIGNMENTS:
            alignment = DEFAULT_LABEL_ALIGNMENT
        line_width = f"line width={thickness * 0.75:.2f}pt"

        frame = scene.frame
        doc = _Document(frame)

        nodes = [n for n in scene.nodes if node_inside_frame(n, frame)]
        node_map = {n.id: n for n in nodes}
        edges = [e for e in scene.edges if e.source in node_map and e.target in node_map]
        lines = [
            ln for ln in scene.lines
            if point_inside_frame(ln.start.x, ln.start.y, frame)
            and point_inside_frame(ln.end.x, ln.end.y, frame)
        ]
        blocks = [b for b in scene.text_blocks if self._block_inside(b, frame)]
        grids = [g for g in scene.matrix_grids if g.columns and g.rows]

        doc.body = f"\\begin{{tikzpicture}}[{PICTURE_OPTIONS}]\n"

        for node in nodes:
            doc.body += self._node_statement(node, doc)

        if edges or lines:
            doc.body += "\n"

        if blocks:
            if not doc.body.endswith("\n\n"):
                doc.body += "\n"
            for block in blocks:
                doc.body += self._text_block_statement(block, doc)
            doc.body += "\n"

        for edge in edges:
            doc.body += self._edge_statement(edge, node_map, doc, alignment, line_width)

        for line in lines:
            doc.body += self._line_statement(line, doc, line_width)

        if grids:
            doc.body += "\n"
        for index, grid in enumerate(grids):
            doc.body += self._grid_block(grid, doc)
            if index < len(grids) - 1:
                doc.body += "\n"

        doc.body += "\\end{tikzpicture}\n"

        trace(
            f"Serialized {len(nodes)} nodes, {len(edges)} edges, {len(lines)} lines, "
            f"{len(blocks)} text blocks, {len(grids)} grids, {len(doc.colors)} colors",
            "EXPORT",
        )
        return self._assemble(doc)

    @staticmethod
    def _assemble(doc: _Document) -> str:
        library_line = f"\\usetikzlibrary{{{', '.join(doc.libraries)}}}\n"
        declarations = doc.colors.declarations
        color_block = "\n".join(declarations) + "\n" if declarations else ""
        return (
            "\\documentclass{standalone}\n"
            "\\usepackage{tikz}\n"
            "\\usepackage{amsmath}\n"
            "\\usepackage{amssymb}\n"
            f"{library_line}{color_block}\n"
            "\\begin{document}\n"
            f"{doc.body}"
            "\\end{document}"
        )

    @staticmethod
    def _block_inside(block: TextBlock, frame: Optional[Frame]) -> bool:
        left, top, right, bottom = block.bounds
        return point_inside_frame(left, top, frame) and point_inside_frame(right, bottom, frame)

    # ----------------------------
    # Nodes
    # ----------------------------

    def _split_label(self, node: Node, doc: _Document):
        """Label and part-fill option for a rectangle split with cell data."""
        segments: List[str] = []
        fills: List[str] = []
        for index, cell in enumerate(node.split_cells):
            text = format_label(cell.text) or "\\,"
            color_name = doc.colors.register(cell.text_color) if cell.text_color else None
            if color_name:
                text = f"\\textcolor{{{color_name}}}{{{text}}}"
            if index == 0:
                segments.append(text)
            else:
                part = SPLIT_PART_NAMES[index - 1] if index - 1 < len(SPLIT_PART_NAMES) else f"part{index + 1}"
                segments.append(f"\\nodepart{{{part}}}{text}")
            fills.append((doc.colors.register(cell.fill) or "none") if cell.fill else "")
        extra = []
        if any(fills):
            extra.append(f"rectangle split part fill={{{', '.join(f or 'none' for f in fills)}}}")
        return "".join(segments), extra

    def _node_statement(self, node: Node, doc: _Document) -> str:
        label: Optional[str] = None
        extra: List[str] = []
        if node.shape is ShapeKind.RECTANGLE_SPLIT and node.split_cells:
            label, extra = self._split_label(node, doc)

        style = build_style_options(node, doc.colors.register)
        for library in style.libraries:
            doc.add_library(library)

        factory = self.registry.get_factory(node.shape)
        shape_options = factory(node, doc.colors.register)
        for library in shape_options.libraries:
            doc.add_library(library)

        rotation: List[str] = []
        if node.shape is not ShapeKind.CYLINDER:
            angle = normalize_degrees(-((node.rotate or 0.0) + (node.border_rotate or 0.0)))
            if abs(angle) > 1e-4:
                rotation.append(f"rotate={format_number(angle, 2)}")

        option_list = [
            opt for opt in (*style.prefix, *shape_options.options, *rotation, *extra, *style.suffix)
            if opt
        ]
        content = label if label is not None else format_label(node.label)
        return (
            f"    \\node[{', '.join(option_list)}] ({node.id}) at "
            f"{doc.coordinate(node.x, node.y)} {{{content}}};\n"
        )

    def _text_block_statement(self, block: TextBlock, doc: _Document) -> str:
        options = [
            "rectangle",
            f"rounded corners={format_cm(TEXT_BLOCK_CORNER_RADIUS)}",
            "align=left",
            "anchor=north west",
            f"text width={format_cm(max(block.width - TEXT_BLOCK_PADDING * 2, 1))}",
            f"inner sep={format_cm(TEXT_BLOCK_PADDING)}",
            f"minimum width={format_cm(block.width)}",
            f"minimum height={format_cm(block.height)}",
        ]
        if block.border_style in ("dashed", "dotted"):
            options.append(block.border_style)
        options.append(f"font={fontsize_command(block.font_size)}")
        if block.color:
            text_color = doc.colors.register(block.color)
            if text_color:
                options.append(f"text={text_color}")
        fill = doc.colors.register(block.fill_color) if block.show_background else None
        options.append(f"fill={fill}" if fill else "fill=none")
        border_color = doc.colors.register(block.border_color)
        if block.border_width > 0:
            options.append(f"draw={border_color}" if border_color else "draw")
            options.append(f"line width={block.border_width * 0.6:.2f}pt")
        else:
            options.append("draw=none")
        if 0 < block.opacity < 1:
            options.append(f"opacity={max(0.05, block.opacity):.2f}")
        return (
            f"    \\node[{', '.join(options)}] ({block.id}) at "
            f"{doc.coordinate(block.x, block.y)} {{{format_label(block.text)}}};\n"
        )

    # ----------------------------
    # Edges and lines
    # ----------------------------

    def _label_options(self, edge: Edge, path: str, alignment: str, doc: _Document) -> List[str]:
        options = ["fill=white", "inner sep=2pt"]
        label = edge.label
        if label.color:
            color_name = doc.colors.register(label.color)
            if color_name:
                options.append(f"text={color_name}")
        curved = edge.routing.is_curved
        if alignment == "auto":
            options.insert(0, "midway")
            shift_x = round(px_to_cm(label.offset[0]), 2)
            shift_y = round(-px_to_cm(label.offset[1]), 2)
            if shift_x:
                options.append(f"xshift={format_number(shift_x)}cm")
            if shift_y:
                options.append(f"yshift={format_number(shift_y)}cm")
        elif alignment == "center":
            if curved:
                options.insert(0, "midway")
                options.append("sloped")
            elif path == "--":
                options.insert(0, "pos=0.5")
            else:
                options.insert(0, "pos=0.25" if path == "|-" else "pos=0.75")
        else:
            left = alignment == "left"
            if curved:
                options.insert(0, "pos=0.35" if left else "pos=0.65")
                options.append("sloped")
            else:
                options.insert(0, "pos=0.25" if left else "pos=0.75")
        return options

    def _endpoint_ref(self, node: Node, anchor: Optional[str]) -> str:
        if not anchor:
            return node.id
        return f"{node.id}.{self.resolver.tikz_anchor(node, anchor)}"

    def _edge_statement(self, edge: Edge, node_map: Dict[str, Node], doc: _Document,
                        alignment: str, line_width: str) -> str:
        style = [edge.direction or "->"]
        if edge.style != "solid":
            style.append(edge.style)
        color_name = doc.colors.register(edge.color)
        if color_name:
            style.append(f"draw={color_name}")
        if edge.thickness is not None and edge.thickness > 0:
            style.append(f"line width={edge.thickness * 0.75:.2f}pt")
        else:
            style.append(line_width)

        path = tikz_path(edge.routing, edge.bend)
        label_segment = ""
        if edge.label is not None and edge.label.text:
            edge_alignment = edge.label.alignment if edge.label.alignment in LABEL_ALIGNMENTS else alignment
            label_options = self._label_options(edge, path, edge_alignment, doc)
            label_segment = f" node[{', '.join(label_options)}]{{{format_label(edge.label.text)}}}"

        source = self._endpoint_ref(node_map[edge.source], edge.source_anchor)
        target = self._endpoint_ref(node_map[edge.target], edge.target_anchor)
        return f"    \\draw[{', '.join(style)}] ({source}) {path}{label_segment} ({target});\n"

    def _line_statement(self, line: Line, doc: _Document, line_width: str) -> str:
        parts = []
        if line.style in ("dashed", "dotted"):
            parts.append(line.style)
        color_name = doc.colors.register(line.color)
        if color_name:
            parts.append(f"draw={color_name}")
        if line.thickness is not None and line.thickness > 0:
            parts.append(f"line width={line.thickness * 0.75:.2f}pt")
        else:
            parts.append(line_width)
        return (
            f"    \\draw[{', '.join(parts)}] "
            f"{doc.coordinate(line.start.x, line.start.y)} -- {doc.coordinate(line.end.x, line.end.y)};\n"
        )

    # ----------------------------
    # Grids
    # ----------------------------

    def _grid_block(self, grid: MatrixGrid, doc: _Document) -> str:
        cell = px_to_cm(grid.cell_size)
        cell_token = format_number(cell)
        out = f"    \\begin{{scope}}[shift={{({format_cm(doc.x(grid.x))},{format_cm(-doc.y(grid.y))})}}]\n"
        for row_index, row in enumerate(grid.data):
            for col_index, value in enumerate(row):
                color_name = doc.colors.register(grid.color_map.get(str(value))) or "black"
                x = format_number(col_index * cell)
                y = format_number(-(row_index + 1) * cell)
                out += f"      \\fill[{color_name}] ({x},{y}) rectangle ++({cell_token},{cell_token});\n"
        out += "    \\end{scope}\n"
        return out


@trace_call("EXPORT")
def export_document(text: str, path: str) -> None:
    """Write a serialized document to *path* as UTF-8."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    trace(f"Wrote TikZ document to {path}", "IO")


# ----------------------------
# Compilation boundary
# ----------------------------

@dataclass
class CompileResult:
    """Rendered preview image plus the content bounding box (x, y, w, h) in image px."""
    image_bytes: bytes
    bbox: Tuple[float, float, float, float]


@dataclass
class CompileError:
    message: str


class CompileService(Protocol):
    """Anything that turns document text into a preview image."""

    def compile(self, document: str) -> Union[CompileResult, CompileError]:
        ...


def preview_camera(result: CompileResult, view_width: float, view_height: float,
                   padding: float = 16.0) -> Camera:
    """Camera that fits the compiled content box inside a preview of the given size."""
    camera = Camera()
    x, y, w, h = result.bbox
    camera.fit_rect(x, y, w, h, view_width, view_height, padding=padding)
    return camera
