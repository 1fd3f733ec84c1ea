"""Tests for edge routing geometry and TikZ path operators."""
from __future__ import annotations

import math
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from anchors import AnchorResolver
from geometry import Point
from models import Edge, Node, RoutingKind, Scene, ShapeKind
from routing import (
    EdgeRouter,
    compute_geometry,
    curve_control_point,
    orthogonal_geometry,
    tikz_path,
)
from shapes import create_default_registry


@pytest.fixture(scope="module")
def router():
    return EdgeRouter(AnchorResolver(create_default_registry()))


def _two_circles(**edge_kwargs):
    scene = Scene()
    scene.add_node(Node(id="a", x=0, y=0, shape=ShapeKind.CIRCLE))
    scene.add_node(Node(id="b", x=100, y=0, shape=ShapeKind.CIRCLE))
    scene.add_edge(Edge(id="e", source="a", target="b", **edge_kwargs))
    return scene


# ---------------------------------------------------------------------------
# Straight
# ---------------------------------------------------------------------------

class TestStraight:
    def test_circles_route_between_facing_anchors(self, router):
        scene = _two_circles()
        geo = router.route(scene.edges[0], scene)
        assert geo.start.x == pytest.approx(32)
        assert geo.start.y == pytest.approx(0, abs=1e-9)
        assert geo.end.x == pytest.approx(68)
        assert geo.end.y == pytest.approx(0, abs=1e-9)
        assert geo.label_point.x == pytest.approx(50)
        assert geo.start_angle == pytest.approx(0)

    def test_explicit_anchors_win(self, router):
        scene = _two_circles(source_anchor="north", target_anchor="south")
        start, end = router.endpoints(scene.edges[0], scene)
        assert start.y == pytest.approx(-32)
        assert end.y == pytest.approx(32)

    def test_missing_node_gives_none(self, router):
        scene = _two_circles()
        scene.nodes.pop()
        assert router.route(scene.edges[0], scene) is None


# ---------------------------------------------------------------------------
# Curved
# ---------------------------------------------------------------------------

class TestCurved:
    def test_control_point_offsets(self):
        start, end = Point(0, 0), Point(100, 0)
        right = curve_control_point(start, end, RoutingKind.CURVED_RIGHT, 30)
        left = curve_control_point(start, end, RoutingKind.CURVED_LEFT, 30)
        assert right == Point(50, 30)
        assert left == Point(50, -30)

    def test_label_point_on_curve(self):
        geo = compute_geometry(Point(0, 0), Point(100, 0), RoutingKind.CURVED_RIGHT, 30)
        assert geo.label_point.x == pytest.approx(50)
        assert geo.label_point.y == pytest.approx(15)

    def test_tangent_angles_point_at_control(self):
        geo = compute_geometry(Point(0, 0), Point(100, 0), RoutingKind.CURVED_RIGHT, 30)
        assert geo.start_angle == pytest.approx(math.atan2(30, 50))
        assert geo.end_angle == pytest.approx(math.atan2(-30, 50))


# ---------------------------------------------------------------------------
# Orthogonal
# ---------------------------------------------------------------------------

class TestOrthogonal:
    def test_horizontal_first_elbow(self):
        geo = orthogonal_geometry(Point(0, 0), Point(100, 60), RoutingKind.ORTHOGONAL_HORIZONTAL)
        assert geo.elbow == Point(100, 0)
        assert geo.start_angle == pytest.approx(0)
        assert geo.end_angle == pytest.approx(math.pi / 2)

    def test_vertical_first_elbow(self):
        geo = orthogonal_geometry(Point(0, 0), Point(100, 60), RoutingKind.ORTHOGONAL_VERTICAL)
        assert geo.elbow == Point(0, 60)
        assert geo.start_angle == pytest.approx(math.pi / 2)
        assert geo.end_angle == pytest.approx(0)

    def test_label_at_half_arc_length(self):
        geo = orthogonal_geometry(Point(0, 0), Point(100, 60), RoutingKind.ORTHOGONAL_HORIZONTAL)
        assert geo.label_point == Point(80, 0)

    def test_vertical_first_label_at_half_arc_length(self):
        geo = orthogonal_geometry(Point(0, 0), Point(100, 60), RoutingKind.ORTHOGONAL_VERTICAL)
        assert geo.label_point.x == pytest.approx(20)
        assert geo.label_point.y == pytest.approx(60)

    def test_degenerate_leg_is_skipped_for_angles(self):
        geo = orthogonal_geometry(Point(0, 0), Point(0, 50), RoutingKind.ORTHOGONAL_HORIZONTAL)
        assert geo.start_angle == pytest.approx(math.pi / 2)
        assert geo.end_angle == pytest.approx(math.pi / 2)

    @pytest.mark.parametrize("end, elbow, angle, label", [
        # Same x: the elbow lands on the end point
        (Point(0, 50), Point(0, 50), math.pi / 2, Point(0, 25)),
        # Same y: the elbow stays on the start point
        (Point(100, 0), Point(0, 0), 0.0, Point(50, 0)),
        # Coincident endpoints
        (Point(0, 0), Point(0, 0), 0.0, Point(0, 0)),
    ])
    def test_vertical_first_degenerate_cases(self, end, elbow, angle, label):
        geo = orthogonal_geometry(Point(0, 0), end, RoutingKind.ORTHOGONAL_VERTICAL)
        assert geo.elbow == elbow
        assert geo.start_angle == pytest.approx(angle)
        assert geo.end_angle == pytest.approx(angle)
        assert geo.label_point.x == pytest.approx(label.x)
        assert geo.label_point.y == pytest.approx(label.y)

    @pytest.mark.parametrize("kind", [RoutingKind.ORTHOGONAL_HORIZONTAL, RoutingKind.ORTHOGONAL_VERTICAL])
    @pytest.mark.parametrize("start, end", [
        (Point(5, 5), Point(5, 5)),
        (Point(5, 5), Point(5, -40)),
        (Point(5, 5), Point(-40, 5)),
    ])
    def test_degenerate_geometry_is_finite(self, kind, start, end):
        geo = orthogonal_geometry(start, end, kind)
        values = [geo.start_angle, geo.end_angle, geo.label_point.x, geo.label_point.y]
        assert all(math.isfinite(v) for v in values)
        if start == end:
            assert geo.label_point == start

    def test_rejects_non_orthogonal_kind(self):
        with pytest.raises(ValueError):
            orthogonal_geometry(Point(0, 0), Point(1, 1), RoutingKind.STRAIGHT)


# ---------------------------------------------------------------------------
# TikZ operators
# ---------------------------------------------------------------------------

class TestTikzPath:
    @pytest.mark.parametrize("kind, expected", [
        (RoutingKind.STRAIGHT, "--"),
        (RoutingKind.CURVED_LEFT, "to[bend left=30]"),
        (RoutingKind.CURVED_RIGHT, "to[bend right=30]"),
        (RoutingKind.ORTHOGONAL_VERTICAL, "|-"),
        (RoutingKind.ORTHOGONAL_HORIZONTAL, "-|"),
    ])
    def test_operator(self, kind, expected):
        assert tikz_path(kind, 30) == expected

    def test_fractional_bend(self):
        assert tikz_path(RoutingKind.CURVED_LEFT, 12.5) == "to[bend left=12.5]"
