"""
routing.py

Edge router: path geometry, tangent angles and label points for the
five routing kinds, plus their TikZ path operators.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from anchors import AnchorResolver
from geometry import Point, Segment, distance, midpoint, quadratic_point
from models import Edge, RoutingKind, Scene


@dataclass
class EdgeGeometry:
    """Computed path of one edge.

    Straight and orthogonal paths fill ``segments``; curved paths fill
    ``control``. Angles are radians in screen axes.
    """
    kind: RoutingKind
    start: Point
    end: Point
    segments: List[Segment] = field(default_factory=list)
    control: Optional[Point] = None
    elbow: Optional[Point] = None
    start_angle: float = 0.0
    end_angle: float = 0.0
    label_point: Point = Point(0.0, 0.0)


def straight_geometry(start: Point, end: Point) -> EdgeGeometry:
    angle = math.atan2(end.y - start.y, end.x - start.x)
    return EdgeGeometry(
        kind=RoutingKind.STRAIGHT,
        start=start,
        end=end,
        segments=[(start, end)],
        start_angle=angle,
        end_angle=angle,
        label_point=midpoint(start, end),
    )


def curve_control_point(start: Point, end: Point, kind: RoutingKind, bend: float) -> Point:
    """
    Control point of the quadratic curve.

    Offset from the chord midpoint along the chord normal (-dy, dx)/L by
    bend% of the chord length; right bends go along the normal, left
    bends against it.
    """
    dx = end.x - start.x
    dy = end.y - start.y
    length = math.hypot(dx, dy) or 1.0
    direction = 1 if kind is RoutingKind.CURVED_RIGHT else -1
    offset = direction * (bend / 100.0) * length
    mid = midpoint(start, end)
    return Point(mid.x + (-dy / length) * offset, mid.y + (dx / length) * offset)


def curved_geometry(start: Point, end: Point, kind: RoutingKind, bend: float) -> EdgeGeometry:
    control = curve_control_point(start, end, kind, bend)
    return EdgeGeometry(
        kind=kind,
        start=start,
        end=end,
        control=control,
        start_angle=math.atan2(control.y - start.y, control.x - start.x),
        end_angle=math.atan2(end.y - control.y, end.x - control.x),
        label_point=quadratic_point(start, control, end, 0.5),
    )


def _segment_angle(segments: List[Segment], from_start: bool) -> float:
    ordered = segments if from_start else list(reversed(segments))
    for a, b in ordered:
        dx = b.x - a.x
        dy = b.y - a.y
        if dx != 0 or dy != 0:
            return math.atan2(dy, dx)
    return 0.0


def _arc_length_midpoint(segments: List[Segment]) -> Point:
    total = sum(distance(a, b) for a, b in segments)
    if total == 0:
        return segments[0][0]
    halfway = total / 2
    accumulated = 0.0
    for a, b in segments:
        length = distance(a, b)
        if length == 0:
            continue
        if accumulated + length >= halfway:
            ratio = (halfway - accumulated) / length
            return Point(a.x + (b.x - a.x) * ratio, a.y + (b.y - a.y) * ratio)
        accumulated += length
    return segments[-1][1]


def orthogonal_geometry(start: Point, end: Point, kind: RoutingKind) -> EdgeGeometry:
    """
    Two-segment path through one elbow.

    Vertical-first goes to (start.x, end.y); horizontal-first goes to
    (end.x, start.y). Degenerate (zero-length) legs are skipped when
    picking the tangent angles.

    Raises:
        ValueError: *kind* is not an orthogonal routing kind
    """
    if kind is RoutingKind.ORTHOGONAL_VERTICAL:
        elbow = Point(start.x, end.y)
    elif kind is RoutingKind.ORTHOGONAL_HORIZONTAL:
        elbow = Point(end.x, start.y)
    else:
        raise ValueError(f"Unsupported orthogonal mode: {kind!r}")
    segments = [(start, elbow), (elbow, end)]
    return EdgeGeometry(
        kind=kind,
        start=start,
        end=end,
        segments=segments,
        elbow=elbow,
        start_angle=_segment_angle(segments, True),
        end_angle=_segment_angle(segments, False),
        label_point=_arc_length_midpoint(segments),
    )


def compute_geometry(start: Point, end: Point, kind: RoutingKind,
                     bend: float = 30.0) -> EdgeGeometry:
    if kind.is_curved:
        return curved_geometry(start, end, kind, bend)
    if kind.is_orthogonal:
        return orthogonal_geometry(start, end, kind)
    return straight_geometry(start, end)


def tikz_path(kind: RoutingKind, bend: float) -> str:
    """TikZ path operator between the two endpoint references."""
    if kind is RoutingKind.CURVED_LEFT:
        return f"to[bend left={_bend_text(bend)}]"
    if kind is RoutingKind.CURVED_RIGHT:
        return f"to[bend right={_bend_text(bend)}]"
    if kind is RoutingKind.ORTHOGONAL_VERTICAL:
        return "|-"
    if kind is RoutingKind.ORTHOGONAL_HORIZONTAL:
        return "-|"
    return "--"


def _bend_text(bend: float) -> str:
    return str(int(bend)) if float(bend).is_integer() else f"{bend:g}"


class EdgeRouter:
    """Routes scene edges between their resolved endpoint anchors."""

    def __init__(self, resolver: AnchorResolver):
        self.resolver = resolver

    def endpoints(self, edge: Edge, scene: Scene) -> Optional[Tuple[Point, Point]]:
        """
        World endpoints of *edge*.

        An endpoint without an anchor attaches at the cardinal anchor
        nearest the other node's center.
        """
        source = scene.node_by_id(edge.source)
        target = scene.node_by_id(edge.target)
        if source is None or target is None:
            return None
        source_anchor = edge.source_anchor or self.resolver.nearest_cardinal(source, target.center)
        target_anchor = edge.target_anchor or self.resolver.nearest_cardinal(target, source.center)
        start = self.resolver.resolve(source, source_anchor)
        end = self.resolver.resolve(target, target_anchor)
        if start is None or end is None:
            return None
        return start, end

    def route(self, edge: Edge, scene: Scene) -> Optional[EdgeGeometry]:
        """Geometry of *edge*, or None when an endpoint node is missing."""
        points = self.endpoints(edge, scene)
        if points is None:
            return None
        return compute_geometry(points[0], points[1], edge.routing, edge.bend)
