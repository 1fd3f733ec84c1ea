"""Tests for priority-ordered picking."""
from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from anchors import AnchorResolver
from camera import Camera
from geometry import Point
from hit_test import HitKind, HitTester, label_size, node_contains
from models import Edge, EdgeLabel, ElementKind, Frame, Line, MatrixGrid, Node, Scene, ShapeKind, TextBlock
from routing import EdgeRouter
from shapes import create_default_registry


@pytest.fixture(scope="module")
def tester():
    resolver = AnchorResolver(create_default_registry())
    return HitTester(resolver, EdgeRouter(resolver))


def _pick(tester, scene, x, y, camera=None, selection=None):
    return tester.pick_at(scene, camera or Camera(), x, y, selection)


# ---------------------------------------------------------------------------
# Shape-accurate containment
# ---------------------------------------------------------------------------

class TestNodeContains:
    def test_circle(self):
        node = Node(id="c", x=0, y=0, shape=ShapeKind.CIRCLE)
        assert node_contains(node, Point(20, 20))
        assert not node_contains(node, Point(28, 28))

    def test_diamond_corner_is_outside(self):
        node = Node(id="d", x=0, y=0, shape=ShapeKind.DIAMOND)
        assert node_contains(node, Point(20, 5))
        assert not node_contains(node, Point(50, 28))

    def test_rotated_rectangle(self):
        node = Node(id="r", x=0, y=0, shape=ShapeKind.RECTANGLE, rotate=90)
        # 112 x 64 turned upright becomes 64 x 112
        assert node_contains(node, Point(0, 50))
        assert not node_contains(node, Point(50, 0))

    def test_semicircle_flat_side_down(self):
        node = Node(id="s", x=0, y=0, shape=ShapeKind.SEMICIRCLE)
        assert node_contains(node, Point(0, 30))
        assert not node_contains(node, Point(0, 33))
        assert not node_contains(node, Point(54, -30))

    def test_cylinder_bounding_corners_are_outside(self):
        # Default cylinder: rx 56, ry 19.6, cap centers at y = -12 and 12
        node = Node(id="c", x=0, y=0, shape=ShapeKind.CYLINDER)
        assert node_contains(node, Point(0, -30))
        assert node_contains(node, Point(0, 30))
        assert node_contains(node, Point(55, 0))
        assert not node_contains(node, Point(55, -31))
        assert not node_contains(node, Point(-55, 31))

    def test_rounded_rectangle_corners_are_outside(self):
        node = Node(id="r", x=0, y=0, shape=ShapeKind.ROUNDED_RECTANGLE)
        assert node_contains(node, Point(40, 0))
        assert node_contains(node, Point(0, 31))
        assert not node_contains(node, Point(55, 31))

    def test_rectangle_corner_radius_is_respected(self):
        square = Node(id="a", x=0, y=0, shape=ShapeKind.RECTANGLE, corner_radius=0)
        rounded = Node(id="b", x=0, y=0, shape=ShapeKind.RECTANGLE, corner_radius=16)
        assert node_contains(square, Point(55, 31))
        assert not node_contains(rounded, Point(55, 31))
        assert node_contains(rounded, Point(50, 20))

    def test_label_size(self):
        assert label_size("demo") == (32, 18)
        assert label_size("ab\nlonger") == (48, 36)


# ---------------------------------------------------------------------------
# Priority order
# ---------------------------------------------------------------------------

class TestPickPriority:
    def test_anchor_beats_node(self, tester):
        scene = Scene(nodes=[Node(id="a", x=100, y=100, shape=ShapeKind.CIRCLE)])
        hit = _pick(tester, scene, 132, 100)
        assert hit.kind is HitKind.ANCHOR
        assert hit.element_id == "a"
        assert hit.detail == "east"

    def test_node_center_is_body(self, tester):
        scene = Scene(nodes=[Node(id="a", x=100, y=100, shape=ShapeKind.CIRCLE)])
        hit = _pick(tester, scene, 100, 100)
        assert hit.kind is HitKind.NODE

    def test_anchor_tolerance_is_constant_on_screen(self, tester):
        scene = Scene(nodes=[Node(id="a", x=100, y=100, shape=ShapeKind.CIRCLE)])
        assert _pick(tester, scene, 142, 100).kind is HitKind.ANCHOR
        zoomed = Camera(scale=2.0)
        s = zoomed.world_to_screen(142, 100)
        assert _pick(tester, scene, s.x, s.y, camera=zoomed) is None

    def test_topmost_node_wins(self, tester):
        scene = Scene(nodes=[
            Node(id="below", x=0, y=0, shape=ShapeKind.RECTANGLE),
            Node(id="above", x=10, y=0, shape=ShapeKind.RECTANGLE),
        ])
        assert _pick(tester, scene, 5, 0).element_id == "above"

    def test_line_handles_only_when_selected(self, tester):
        scene = Scene(lines=[Line(id="l", start=Point(0, 300), end=Point(200, 300))])
        assert _pick(tester, scene, 0, 300).kind is HitKind.LINE
        hit = _pick(tester, scene, 0, 300, selection=[(ElementKind.LINE, "l")])
        assert hit.kind is HitKind.LINE_HANDLE
        assert hit.detail == "start"

    def test_text_handle_then_body(self, tester):
        scene = Scene(text_blocks=[TextBlock(id="t", x=300, y=0)])
        hit = _pick(tester, scene, 555, 155)
        assert hit.kind is HitKind.TEXT_HANDLE
        assert hit.detail == "se"
        assert _pick(tester, scene, 350, 50).kind is HitKind.TEXT_BLOCK

    def test_text_block_beats_node(self, tester):
        scene = Scene(
            nodes=[Node(id="n", x=400, y=80, shape=ShapeKind.RECTANGLE)],
            text_blocks=[TextBlock(id="t", x=300, y=0)],
        )
        assert _pick(tester, scene, 400, 80).kind is HitKind.TEXT_BLOCK

    def test_matrix_grid(self, tester):
        grid = MatrixGrid(id="g", x=0, y=0, data=[["1", "0"], ["0", "1"]], cell_size=10)
        scene = Scene(matrix_grids=[grid])
        assert _pick(tester, scene, 15, 15).kind is HitKind.MATRIX_GRID
        assert _pick(tester, scene, 25, 15) is None

    def test_edge_and_label(self, tester):
        scene = Scene(nodes=[
            Node(id="a", x=0, y=0, shape=ShapeKind.CIRCLE),
            Node(id="b", x=200, y=0, shape=ShapeKind.CIRCLE),
        ])
        scene.add_edge(Edge(id="e", source="a", target="b", label=EdgeLabel(text="demo")))
        assert _pick(tester, scene, 100, 5).kind is HitKind.EDGE
        assert _pick(tester, scene, 100, -25).kind is HitKind.EDGE_LABEL
        assert _pick(tester, scene, 100, 50) is None

    def test_curved_edge_is_sampled(self, tester):
        scene = Scene(nodes=[
            Node(id="a", x=0, y=0, shape=ShapeKind.CIRCLE),
            Node(id="b", x=200, y=0, shape=ShapeKind.CIRCLE),
        ])
        scene.add_edge(Edge(id="e", source="a", target="b", routing="curved-right", bend=30))
        # Chord 32..168 (136 px); apex sits 0.5 * 0.3 * 136 below it
        hit = _pick(tester, scene, 100, 20.4)
        assert hit is not None and hit.kind is HitKind.EDGE
        assert _pick(tester, scene, 100, -3) is None

    def test_frame_handle_then_body(self, tester):
        scene = Scene(frame=Frame(0, 0, 400, 300))
        hit = _pick(tester, scene, 400, 300)
        assert hit.kind is HitKind.FRAME_HANDLE
        assert hit.detail == "se"
        hit = _pick(tester, scene, 200, 150)
        assert hit.kind is HitKind.FRAME
        assert hit.detail == "move"

    def test_node_beats_frame(self, tester):
        scene = Scene(nodes=[Node(id="n", x=200, y=150, shape=ShapeKind.CIRCLE)],
                      frame=Frame(0, 0, 400, 300))
        assert _pick(tester, scene, 200, 150).kind is HitKind.NODE

    def test_empty_scene(self, tester):
        assert _pick(tester, Scene(), 10, 10) is None


# ---------------------------------------------------------------------------
# Marquee
# ---------------------------------------------------------------------------

class TestNodesInRect:
    def test_full_containment_any_corner_order(self, tester):
        scene = Scene(nodes=[
            Node(id="in", x=100, y=100, shape=ShapeKind.CIRCLE),
            Node(id="partial", x=190, y=100, shape=ShapeKind.CIRCLE),
        ])
        ids = [n.id for n in tester.nodes_in_rect(scene, (200, 200, 0, 0))]
        assert ids == ["in"]
