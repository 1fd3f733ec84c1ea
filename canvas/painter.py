"""
canvas/painter.py

QPainter rendering of a Scene through the camera.

The painter applies the camera as a world transform, so every element
is drawn in world pixels; handle and tolerance sizes are divided by the
camera scale to stay constant on screen.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QPolygonF

from anchors import AnchorResolver
from geometry import Point
from hit_test import frame_handle_points
from interaction import (
    ConnectingEdge,
    DrawingShape,
    GestureController,
    MarqueeSelecting,
    RewiringEdge,
)
from metrics import cylinder_metrics, node_dimensions
from models import (
    DEFAULT_NODE_BORDER,
    DEFAULT_NODE_FILL,
    EDGE_DIRECTIONS,
    ElementKind,
    Mode,
    Node,
    Scene,
    ShapeKind,
)
from routing import EdgeGeometry, EdgeRouter
from settings import get_settings
from shapes.polygons import decision_vertices, diamond_vertices, triangle_vertices
from shapes.rectangles import split_line_y, split_part_center_y
from utils import hex_to_rgb

SELECTION_COLOR = QColor(0, 120, 215)
ANCHOR_COLOR = QColor(14, 165, 233)
ARROW_LENGTH = 12.0
ARROW_HALF_ANGLE = math.radians(25)
CLOUD_PUFFS = 18
TEXT_BLOCK_FLAGS = (
    Qt.AlignmentFlag.AlignLeft.value | Qt.AlignmentFlag.AlignTop.value | Qt.TextFlag.TextWordWrap.value
)

THEME_COLORS = {
    "dark": {"background": QColor(30, 30, 30), "grid": QColor(60, 60, 60), "text": QColor(226, 232, 240)},
    "light": {"background": QColor(250, 250, 250), "grid": QColor(225, 225, 225), "text": QColor(15, 23, 42)},
}


def hex_to_qcolor(value, fallback: str = DEFAULT_NODE_BORDER, opacity: float = 1.0) -> QColor:
    """QColor for a hex string, or *fallback* when it does not parse."""
    rgb = hex_to_rgb(value) or hex_to_rgb(fallback) or (0, 0, 0)
    color = QColor(*rgb)
    color.setAlphaF(max(0.0, min(1.0, opacity)))
    return color


def _pen_style(style: str) -> Qt.PenStyle:
    if style == "dashed":
        return Qt.PenStyle.DashLine
    if style == "dotted":
        return Qt.PenStyle.DotLine
    return Qt.PenStyle.SolidLine


def _qpoint(p: Point) -> QPointF:
    return QPointF(p.x, p.y)


def _polygon(points: Iterable[Point]) -> QPolygonF:
    return QPolygonF([_qpoint(p) for p in points])


def node_path(node: Node) -> QPainterPath:
    """Unrotated outline of a node in world pixels."""
    hw, hh = node_dimensions(node)
    x, y = node.x, node.y
    path = QPainterPath()
    shape = node.shape
    if shape in (ShapeKind.CIRCLE, ShapeKind.ELLIPSE):
        path.addEllipse(QPointF(x, y), hw, hh)
    elif shape is ShapeKind.ROUNDED_RECTANGLE:
        radius = min(hw, hh)
        path.addRoundedRect(QRectF(x - hw, y - hh, hw * 2, hh * 2), radius, radius)
    elif shape is ShapeKind.DIAMOND:
        path.addPolygon(_polygon(diamond_vertices(node)))
        path.closeSubpath()
    elif shape is ShapeKind.DECISION:
        path.addPolygon(_polygon(decision_vertices(node)))
        path.closeSubpath()
    elif shape is ShapeKind.TRIANGLE:
        path.addPolygon(_polygon(triangle_vertices(node)))
        path.closeSubpath()
    elif shape is ShapeKind.SEMICIRCLE:
        base_y = y + hh
        rect = QRectF(x - hw, base_y - hh * 2, hw * 2, hh * 4)
        path.moveTo(x + hw, base_y)
        path.arcTo(rect, 0, 180)
        path.closeSubpath()
    elif shape is ShapeKind.CLOUD:
        _cloud_path(path, x, y, hw, hh)
    elif shape is ShapeKind.CYLINDER:
        m = cylinder_metrics(node)
        top = y - m.half_height + m.ry
        bottom = y + m.half_height - m.ry
        path.moveTo(x - m.rx, top)
        path.lineTo(x - m.rx, bottom)
        path.arcTo(QRectF(x - m.rx, bottom - m.ry, m.rx * 2, m.ry * 2), 180, 180)
        path.lineTo(x + m.rx, top)
        path.arcTo(QRectF(x - m.rx, top - m.ry, m.rx * 2, m.ry * 2), 0, 180)
        path.closeSubpath()
    else:
        radius = node.effective_corner_radius if shape is ShapeKind.RECTANGLE else 0.0
        radius = min(radius, hw, hh)
        path.addRoundedRect(QRectF(x - hw, y - hh, hw * 2, hh * 2), radius, radius)
    return path


def _cloud_path(path: QPainterPath, x: float, y: float, hw: float, hh: float) -> None:
    inner_w, inner_h = hw * 0.85, hh * 0.85
    points = [
        (x + math.cos(2 * math.pi * i / CLOUD_PUFFS) * inner_w,
         y + math.sin(2 * math.pi * i / CLOUD_PUFFS) * inner_h)
        for i in range(CLOUD_PUFFS)
    ]
    path.moveTo(*points[0])
    for i in range(CLOUD_PUFFS):
        mid_angle = 2 * math.pi * (i + 0.5) / CLOUD_PUFFS
        control = (x + math.cos(mid_angle) * hw * 1.15, y + math.sin(mid_angle) * hh * 1.15)
        end = points[(i + 1) % CLOUD_PUFFS]
        path.quadTo(QPointF(*control), QPointF(*end))
    path.closeSubpath()


class ScenePainter:
    """Draws a scene, the selection and any in-progress gesture."""

    def __init__(self, resolver: AnchorResolver, router: EdgeRouter):
        self.resolver = resolver
        self.router = router

    # ----------------------------
    # Entry point
    # ----------------------------

    def paint(self, painter: QPainter, scene: Scene, width: int, height: int,
              controller: Optional[GestureController] = None) -> None:
        settings = get_settings().settings
        colors = THEME_COLORS.get(settings.theme, THEME_COLORS["dark"])
        camera = scene.camera
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.fillRect(QRectF(0, 0, width, height), colors["background"])

        painter.save()
        painter.translate(camera.offset_x, camera.offset_y)
        painter.scale(camera.scale, camera.scale)

        if settings.canvas.grid.visible:
            self._paint_grid(painter, camera.visible_world_rect(width, height),
                             settings.canvas.grid.spacing, colors["grid"], camera.scale)

        selection = controller.selection if controller else []
        if scene.frame is not None:
            self._paint_frame(painter, scene, (ElementKind.FRAME, "frame") in selection, camera.scale)
        for grid in scene.matrix_grids:
            self._paint_grid_element(painter, grid)
        for edge in scene.edges:
            geometry = self.router.route(edge, scene)
            if geometry is not None:
                selected = (ElementKind.EDGE, edge.id) in selection
                self._paint_edge(painter, edge, geometry, scene, selected, colors["text"])
        for node in scene.nodes:
            self._paint_node(painter, node, (ElementKind.NODE, node.id) in selection, camera.scale)
        for line in scene.lines:
            self._paint_line(painter, line, scene, (ElementKind.LINE, line.id) in selection, camera.scale)
        for block in scene.text_blocks:
            self._paint_text_block(painter, block, (ElementKind.TEXT_BLOCK, block.id) in selection,
                                   camera.scale, colors["text"])

        if controller is not None:
            self._paint_anchors(painter, scene, controller, camera.scale)
            self._paint_gesture(painter, scene, controller, camera.scale)
        painter.restore()

    # ----------------------------
    # Background and frame
    # ----------------------------

    def _paint_grid(self, painter: QPainter, rect: Tuple[float, float, float, float],
                    spacing: float, color: QColor, scale: float) -> None:
        if spacing <= 0 or spacing * scale < 8:
            return
        left, top, right, bottom = rect
        painter.setPen(QPen(color, 1 / scale))
        x = math.floor(left / spacing) * spacing
        while x <= right:
            painter.drawLine(QPointF(x, top), QPointF(x, bottom))
            x += spacing
        y = math.floor(top / spacing) * spacing
        while y <= bottom:
            painter.drawLine(QPointF(left, y), QPointF(right, y))
            y += spacing

    def _paint_frame(self, painter: QPainter, scene: Scene, selected: bool, scale: float) -> None:
        frame = scene.frame
        pen = QPen(SELECTION_COLOR if selected else QColor(148, 163, 184), 2 / scale, Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(QRectF(frame.x, frame.y, frame.width, frame.height))
        if selected:
            size = get_settings().settings.canvas.hit.frame_handle_size / scale
            painter.setBrush(QBrush(QColor(255, 255, 255)))
            painter.setPen(QPen(SELECTION_COLOR, 1 / scale))
            for _, p in frame_handle_points(frame):
                painter.drawRect(QRectF(p.x - size / 2, p.y - size / 2, size, size))

    # ----------------------------
    # Elements
    # ----------------------------

    def _paint_node(self, painter: QPainter, node: Node, selected: bool, scale: float) -> None:
        painter.save()
        degrees = math.degrees(self.resolver.rotation(node))
        if degrees:
            painter.translate(node.x, node.y)
            painter.rotate(degrees)
            painter.translate(-node.x, -node.y)
        painter.setOpacity(node.effective_opacity)

        path = node_path(node)
        width = node.effective_border_width
        pen = QPen(hex_to_qcolor(node.effective_border_color), width, _pen_style(node.border_style))
        if width <= 0:
            pen = QPen(Qt.PenStyle.NoPen)
        fill = node.effective_fill
        if node.shape is ShapeKind.CYLINDER and node.cylinder_custom_fill and node.cylinder_body_fill:
            fill = node.cylinder_body_fill
        painter.setPen(pen)
        painter.setBrush(QBrush(hex_to_qcolor(fill, DEFAULT_NODE_FILL)))
        painter.drawPath(path)

        hw, hh = node_dimensions(node)
        if node.shape is ShapeKind.CYLINDER:
            m = cylinder_metrics(node)
            top = node.y - m.half_height + m.ry
            end_fill = node.cylinder_end_fill if node.cylinder_custom_fill else None
            painter.setBrush(QBrush(hex_to_qcolor(end_fill or fill, DEFAULT_NODE_FILL)))
            painter.drawEllipse(QPointF(node.x, top), m.rx, m.ry)
        elif node.shape is ShapeKind.RECTANGLE_SPLIT:
            for index in range(1, node.split_parts):
                y = split_line_y(node, index)
                painter.drawLine(QPointF(node.x - hw, y), QPointF(node.x + hw, y))

        self._paint_node_text(painter, node, hw, hh)
        if selected:
            painter.setOpacity(1.0)
            painter.setPen(QPen(SELECTION_COLOR, 1.5 / scale, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            pad = 4 / scale
            painter.drawRect(QRectF(node.x - hw - pad, node.y - hh - pad, (hw + pad) * 2, (hh + pad) * 2))
        painter.restore()

    def _paint_node_text(self, painter: QPainter, node: Node, hw: float, hh: float) -> None:
        font = QFont()
        font.setPixelSize(max(1, int(round(node.effective_font_size))))
        painter.setFont(font)
        painter.setPen(QPen(QColor(15, 23, 42)))
        if node.shape is ShapeKind.RECTANGLE_SPLIT and node.split_cells:
            part_height = hh * 2 / node.split_parts
            for index, cell in enumerate(node.split_cells[:node.split_parts]):
                cy = split_part_center_y(node, index)
                rect = QRectF(node.x - hw, cy - part_height / 2, hw * 2, part_height)
                if cell.fill:
                    painter.fillRect(rect, hex_to_qcolor(cell.fill))
                painter.setPen(QPen(hex_to_qcolor(cell.text_color, "#0f172a")))
                painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, cell.text)
            return
        if node.label:
            painter.drawText(QRectF(node.x - hw, node.y - hh, hw * 2, hh * 2),
                             Qt.AlignmentFlag.AlignCenter, node.label)

    def _paint_edge(self, painter: QPainter, edge, geometry: EdgeGeometry, scene: Scene,
                    selected: bool, text_color: QColor) -> None:
        width = edge.thickness or scene.edge_thickness
        color = SELECTION_COLOR if selected else hex_to_qcolor(edge.color)
        painter.setPen(QPen(color, width, _pen_style(edge.style)))
        painter.setBrush(Qt.BrushStyle.NoBrush)

        path = QPainterPath(_qpoint(geometry.start))
        if geometry.control is not None:
            path.quadTo(_qpoint(geometry.control), _qpoint(geometry.end))
        else:
            for _, end in geometry.segments:
                path.lineTo(_qpoint(end))
        painter.drawPath(path)

        direction = edge.direction if edge.direction in EDGE_DIRECTIONS else "->"
        painter.setBrush(QBrush(color))
        painter.setPen(QPen(color, 1))
        if direction in ("->", "<->"):
            self._arrowhead(painter, geometry.end, geometry.end_angle)
        if direction in ("<-", "<->"):
            self._arrowhead(painter, geometry.start, geometry.start_angle + math.pi)

        if edge.label is not None and edge.label.text:
            label_color = hex_to_qcolor(edge.label.color, "#0f172a") if edge.label.color else text_color
            painter.setPen(QPen(label_color))
            font = QFont()
            font.setPixelSize(14)
            painter.setFont(font)
            x = geometry.label_point.x + edge.label.offset[0]
            y = geometry.label_point.y - 8 + edge.label.offset[1]
            painter.drawText(QRectF(x - 200, y - 18, 400, 18),
                             Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
                             edge.label.text)

    @staticmethod
    def _arrowhead(painter: QPainter, tip: Point, angle: float) -> None:
        left = Point(tip.x - ARROW_LENGTH * math.cos(angle - ARROW_HALF_ANGLE),
                     tip.y - ARROW_LENGTH * math.sin(angle - ARROW_HALF_ANGLE))
        right = Point(tip.x - ARROW_LENGTH * math.cos(angle + ARROW_HALF_ANGLE),
                      tip.y - ARROW_LENGTH * math.sin(angle + ARROW_HALF_ANGLE))
        painter.drawPolygon(_polygon([tip, left, right]))

    def _paint_line(self, painter: QPainter, line, scene: Scene, selected: bool, scale: float) -> None:
        width = line.thickness or scene.edge_thickness
        painter.setPen(QPen(hex_to_qcolor(line.color), width, _pen_style(line.style)))
        painter.drawLine(_qpoint(line.start), _qpoint(line.end))
        if selected:
            radius = get_settings().settings.canvas.handles.line_handle_radius / scale / 2
            painter.setPen(QPen(SELECTION_COLOR, 1 / scale))
            painter.setBrush(QBrush(QColor(255, 255, 255)))
            for p in (line.start, line.end):
                painter.drawEllipse(_qpoint(p), radius, radius)

    def _paint_text_block(self, painter: QPainter, block, selected: bool, scale: float,
                          text_color: QColor) -> None:
        painter.save()
        painter.setOpacity(block.opacity)
        rect = QRectF(block.x, block.y, block.width, block.height)
        if block.border_width > 0:
            painter.setPen(QPen(hex_to_qcolor(block.border_color, "#64748b"), block.border_width,
                                _pen_style(block.border_style)))
        else:
            painter.setPen(QPen(Qt.PenStyle.NoPen))
        if block.show_background and block.fill_color:
            painter.setBrush(QBrush(hex_to_qcolor(block.fill_color)))
        else:
            painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRoundedRect(rect, 12, 12)

        font = QFont()
        font.setPixelSize(max(1, int(round(block.font_size))))
        weight = int(round(block.font_weight / 100.0)) * 100
        font.setWeight(QFont.Weight(min(900, max(100, weight))))
        painter.setFont(font)
        painter.setPen(QPen(hex_to_qcolor(block.color) if block.color else text_color))
        painter.drawText(rect.adjusted(14, 14, -14, -14),
                         TEXT_BLOCK_FLAGS,
                         block.text)
        painter.restore()
        if selected:
            size = get_settings().settings.canvas.handles.text_handle_size / scale
            painter.setPen(QPen(SELECTION_COLOR, 1.5 / scale, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(rect)
            painter.setBrush(QBrush(SELECTION_COLOR))
            painter.drawRect(QRectF(rect.right() - size, rect.bottom() - size, size, size))

    @staticmethod
    def _paint_grid_element(painter: QPainter, grid) -> None:
        painter.setPen(Qt.PenStyle.NoPen)
        size = grid.cell_size
        for row_index, row in enumerate(grid.data):
            for col_index, value in enumerate(row):
                color = hex_to_qcolor(grid.color_map.get(str(value)), "#000000")
                painter.fillRect(QRectF(grid.x + col_index * size, grid.y + row_index * size, size, size),
                                 color)

    # ----------------------------
    # Handles and gesture previews
    # ----------------------------

    def _anchor_nodes(self, scene: Scene, controller: GestureController) -> List[Node]:
        if isinstance(controller.state, (ConnectingEdge, RewiringEdge)) or controller.mode == Mode.SELECT:
            return list(scene.nodes)
        return []

    def _paint_anchors(self, painter: QPainter, scene: Scene, controller: GestureController,
                       scale: float) -> None:
        radius = get_settings().settings.canvas.handles.anchor_radius / scale / 2
        painter.setPen(QPen(QColor(255, 255, 255), 1 / scale))
        painter.setBrush(QBrush(ANCHOR_COLOR))
        for node in self._anchor_nodes(scene, controller):
            for anchor in self.resolver.connectable_points(node):
                painter.drawEllipse(_qpoint(anchor.point), radius, radius)

    def _paint_gesture(self, painter: QPainter, scene: Scene, controller: GestureController,
                       scale: float) -> None:
        state = controller.state
        pen = QPen(SELECTION_COLOR, 1.5 / scale, Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        if isinstance(state, MarqueeSelecting):
            painter.setBrush(QBrush(QColor(0, 120, 215, 40)))
            painter.drawRect(QRectF(_qpoint(state.origin), _qpoint(state.current)).normalized())
        elif isinstance(state, DrawingShape):
            if state.kind == Mode.LINE:
                painter.drawLine(_qpoint(state.origin), _qpoint(state.current))
            else:
                painter.drawRect(QRectF(_qpoint(state.origin), _qpoint(state.current)).normalized())
        elif isinstance(state, ConnectingEdge):
            source = scene.node_by_id(state.source_id)
            start = self.resolver.resolve(source, state.source_anchor) if source else None
            if start is not None:
                painter.drawLine(_qpoint(start), _qpoint(state.pointer))
        elif isinstance(state, RewiringEdge):
            edge = scene.edge_by_id(state.edge_id)
            if edge is None:
                return
            fixed = "target" if state.endpoint == "source" else "source"
            node_id, anchor = edge.endpoint(fixed)
            node = scene.node_by_id(node_id)
            start = self.resolver.resolve(node, anchor or "center") if node else None
            if start is not None:
                painter.drawLine(_qpoint(start), _qpoint(state.pointer))
