"""
hit_test.py

Picks the scene element under a screen point.

Categories are tested in a fixed priority order; inside a category the
last-painted (topmost) element wins. Pixel tolerances come from
settings and are divided by the camera scale so they stay constant on
screen at every zoom level.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from anchors import AnchorResolver
from camera import Camera
from geometry import (
    Point,
    distance,
    distance_to_polyline,
    distance_to_quadratic,
    point_in_ellipse,
    point_in_polygon,
    rotate_point,
)
from metrics import cylinder_metrics, node_bounds, node_dimensions
from models import ElementKind, Frame, Node, Scene, ShapeKind
from routing import EdgeGeometry, EdgeRouter
from settings import get_settings
from shapes.polygons import decision_vertices, diamond_vertices, triangle_vertices

FRAME_HANDLES = ("nw", "n", "ne", "e", "se", "s", "sw", "w")


class HitKind(Enum):
    ANCHOR = "anchor"
    LINE_HANDLE = "line-handle"
    LINE = "line"
    TEXT_HANDLE = "text-handle"
    TEXT_BLOCK = "text"
    MATRIX_GRID = "matrix"
    NODE = "node"
    EDGE = "edge"
    EDGE_LABEL = "edge-label"
    FRAME_HANDLE = "frame-handle"
    FRAME = "frame"


@dataclass(frozen=True)
class Hit:
    """Result of a pick.

    ``detail`` is the anchor name, line endpoint ("start"/"end") or
    frame handle ("nw" ... "w", or "move" for the frame body).
    """
    kind: HitKind
    element: Any
    detail: Optional[str] = None

    @property
    def element_id(self) -> Optional[str]:
        return getattr(self.element, "id", None)


def frame_handle_points(frame: Frame) -> List[Tuple[str, Point]]:
    x, y, w, h = frame.x, frame.y, frame.width, frame.height
    return [
        ("nw", Point(x, y)),
        ("n", Point(x + w / 2, y)),
        ("ne", Point(x + w, y)),
        ("e", Point(x + w, y + h / 2)),
        ("se", Point(x + w, y + h)),
        ("s", Point(x + w / 2, y + h)),
        ("sw", Point(x, y + h)),
        ("w", Point(x, y + h / 2)),
    ]


def label_size(text: str) -> Tuple[float, float]:
    """Estimated (width, height) in world px of an edge label."""
    hit = get_settings().settings.canvas.hit
    lines = text.split("\n") or [""]
    width = max(len(line) for line in lines) * hit.label_char_width
    return width, hit.label_height * len(lines)


def node_contains(node: Node, point: Point) -> bool:
    """Shape-accurate containment test; rotation is undone first."""
    rotation = math.radians((node.rotate or 0.0) + (node.border_rotate or 0.0))
    p = rotate_point(point, node.center, -rotation)
    hw, hh = node_dimensions(node)
    shape = node.shape
    if shape is ShapeKind.CIRCLE:
        return distance(p, node.center) <= hw
    if shape in (ShapeKind.ELLIPSE, ShapeKind.CLOUD):
        return point_in_ellipse(p, node.center, hw, hh)
    if shape is ShapeKind.DIAMOND:
        return point_in_polygon(p, diamond_vertices(node))
    if shape is ShapeKind.DECISION:
        return point_in_polygon(p, decision_vertices(node))
    if shape is ShapeKind.TRIANGLE:
        return point_in_polygon(p, list(triangle_vertices(node)))
    if shape is ShapeKind.SEMICIRCLE:
        base_y = node.y + hh
        return p.y <= base_y and point_in_ellipse(p, Point(node.x, base_y), hw, hh * 2)
    if shape is ShapeKind.CYLINDER:
        return _in_cylinder(node, p)
    if shape is ShapeKind.ROUNDED_RECTANGLE:
        return _in_rounded_rect(p, node_bounds(node), min(hw, hh))
    if shape is ShapeKind.RECTANGLE:
        return _in_rounded_rect(p, node_bounds(node), min(node.effective_corner_radius, hw, hh))
    return _in_rect(p, node_bounds(node))


def _in_cylinder(node: Node, p: Point) -> bool:
    m = cylinder_metrics(node)
    if abs(p.x - node.x) > m.rx:
        return False
    top = node.y - m.half_height + m.ry
    bottom = node.y + m.half_height - m.ry
    if top <= p.y <= bottom:
        return True
    # End caps are full ellipses centered on the body edges
    cap_y = top if p.y < top else bottom
    return point_in_ellipse(p, Point(node.x, cap_y), m.rx, m.ry)


def _in_rounded_rect(p: Point, rect: Sequence[float], radius: float) -> bool:
    if not _in_rect(p, rect):
        return False
    if radius <= 0:
        return True
    left, top, right, bottom = rect
    nearest = Point(min(max(p.x, left + radius), right - radius),
                    min(max(p.y, top + radius), bottom - radius))
    return distance(p, nearest) <= radius


def _in_rect(p: Point, rect: Sequence[float]) -> bool:
    left, top, right, bottom = rect
    return left <= p.x <= right and top <= p.y <= bottom


def _topmost(items: Sequence) -> Iterable:
    return reversed(items)


class HitTester:
    """Priority-ordered picking over a scene."""

    def __init__(self, resolver: AnchorResolver, router: EdgeRouter):
        self.resolver = resolver
        self.router = router

    # --- geometry helpers ---

    def edge_distance(self, geometry: EdgeGeometry, p: Point) -> float:
        if geometry.control is not None:
            samples = get_settings().settings.canvas.hit.curve_samples
            return distance_to_quadratic(p, geometry.start, geometry.control, geometry.end, samples)
        points = [geometry.segments[0][0]] + [b for _, b in geometry.segments]
        return distance_to_polyline(p, points)

    def label_rect(self, text: str, offset: Tuple[float, float], geometry: EdgeGeometry,
                   scale: float) -> Tuple[float, float, float, float]:
        """World rect (left, top, right, bottom) of an edge label, padding included.

        The text baseline sits 8 px above the label point; the box is
        centered horizontally on it.
        """
        hit = get_settings().settings.canvas.hit
        width, height = label_size(text)
        cx = geometry.label_point.x + offset[0]
        cy = geometry.label_point.y - 8 + offset[1]
        pad = hit.label_padding / scale
        return (cx - width / 2 - pad, cy - height - pad, cx + width / 2 + pad, cy + pad)

    # --- picking ---

    def pick_at(self, scene: Scene, camera: Camera, sx: float, sy: float,
                selection: Optional[Iterable[Tuple[str, str]]] = None) -> Optional[Hit]:
        """
        Return the element under screen point (sx, sy), or None.

        Args:
            selection: (kind, id) pairs; line endpoint handles are only
                live on selected lines
        """
        settings = get_settings().settings.canvas
        scale = camera.scale
        p = camera.screen_to_world(sx, sy)
        selected = set(selection or ())

        # 1. connectable anchor handles
        anchor_radius = settings.handles.anchor_radius * settings.handles.anchor_hitbox_factor / scale
        for node in _topmost(scene.nodes):
            for anchor in self.resolver.connectable_points(node):
                if distance(p, anchor.point) <= anchor_radius:
                    return Hit(HitKind.ANCHOR, node, anchor.name)

        # 2. free lines: handles of selected lines, then bodies
        handle_radius = settings.handles.line_handle_radius / scale
        for line in _topmost(scene.lines):
            if (ElementKind.LINE, line.id) not in selected:
                continue
            for endpoint, point in (("end", line.end), ("start", line.start)):
                if distance(p, point) <= handle_radius:
                    return Hit(HitKind.LINE_HANDLE, line, endpoint)
        line_tolerance = settings.hit.line_tolerance / scale
        for line in _topmost(scene.lines):
            if distance_to_polyline(p, [line.start, line.end]) <= line_tolerance:
                return Hit(HitKind.LINE, line)

        # 3-4. text blocks: resize handle, then body
        text_handle = settings.handles.text_handle_size * 1.5 / scale
        for block in _topmost(scene.text_blocks):
            left, top, right, bottom = block.bounds
            if not _in_rect(p, block.bounds):
                continue
            if right - p.x <= text_handle and bottom - p.y <= text_handle:
                return Hit(HitKind.TEXT_HANDLE, block, "se")
        for block in _topmost(scene.text_blocks):
            if _in_rect(p, block.bounds):
                return Hit(HitKind.TEXT_BLOCK, block)

        # 5. matrix grids
        for grid in _topmost(scene.matrix_grids):
            if grid.columns and _in_rect(p, grid.bounds):
                return Hit(HitKind.MATRIX_GRID, grid)

        # 6. node bodies
        for node in _topmost(scene.nodes):
            if node_contains(node, p):
                return Hit(HitKind.NODE, node)

        # 7-8. edges, then edge labels
        routed = [(edge, self.router.route(edge, scene)) for edge in scene.edges]
        routed = [(edge, geometry) for edge, geometry in routed if geometry is not None]
        edge_tolerance = settings.hit.edge_tolerance / scale
        for edge, geometry in reversed(routed):
            if self.edge_distance(geometry, p) <= edge_tolerance:
                return Hit(HitKind.EDGE, edge)
        for edge, geometry in reversed(routed):
            if edge.label is None or not edge.label.text:
                continue
            if _in_rect(p, self.label_rect(edge.label.text, edge.label.offset, geometry, scale)):
                return Hit(HitKind.EDGE_LABEL, edge)

        # 9-10. frame handles, then frame body
        frame = scene.frame
        if frame is not None:
            reach = (settings.hit.frame_handle_size / 2 + settings.hit.frame_hit_padding) / scale
            for name, point in frame_handle_points(frame):
                if abs(p.x - point.x) <= reach and abs(p.y - point.y) <= reach:
                    return Hit(HitKind.FRAME_HANDLE, frame, name)
            if _in_rect(p, (frame.x, frame.y, frame.x + frame.width, frame.y + frame.height)):
                return Hit(HitKind.FRAME, frame, "move")

        return None

    def nodes_in_rect(self, scene: Scene, rect: Tuple[float, float, float, float]) -> List[Node]:
        """Nodes whose bounds lie fully inside a world rect (any corner order)."""
        x1, y1, x2, y2 = rect
        left, right = min(x1, x2), max(x1, x2)
        top, bottom = min(y1, y2), max(y1, y2)
        result = []
        for node in scene.nodes:
            n_left, n_top, n_right, n_bottom = node_bounds(node)
            if n_left >= left and n_right <= right and n_top >= top and n_bottom <= bottom:
                result.append(node)
        return result
