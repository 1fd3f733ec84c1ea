"""Tests for the Qt pieces: undo stack bridge, painter and canvas widget."""
from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

pytest.importorskip("PyQt6.QtWidgets")

from PyQt6.QtGui import QImage, QPainter, QUndoStack

from anchors import AnchorResolver
from canvas import DiagramCanvas, ScenePainter, hex_to_qcolor, node_path
from geometry import Point
from hit_test import HitTester
from interaction import GestureController
from models import Edge, EdgeLabel, Frame, Line, MatrixGrid, Mode, Node, Scene, ShapeKind, TextBlock
from routing import EdgeRouter
from shapes import create_default_registry
from undo_commands import UndoStackHistory


@pytest.fixture()
def parts():
    resolver = AnchorResolver(create_default_registry())
    router = EdgeRouter(resolver)
    return resolver, router, HitTester(resolver, router)


def _full_scene():
    scene = Scene(frame=Frame(-100, -100, 600, 400))
    for i, shape in enumerate(ShapeKind):
        scene.add_node(Node(id=f"n{i}", x=i * 80, y=0, shape=shape, label=shape.value))
    scene.add_edge(Edge(id="e1", source="n0", target="n1", label=EdgeLabel(text="go")))
    scene.add_edge(Edge(id="e2", source="n1", target="n2", routing="curved-left"))
    scene.add_edge(Edge(id="e3", source="n2", target="n3", routing="orthogonal-vertical"))
    scene.add_line(Line(id="l", start=Point(0, 100), end=Point(100, 100)))
    scene.add_text_block(TextBlock(id="t", x=0, y=150, text="notes"))
    scene.add_matrix_grid(MatrixGrid(id="g", x=300, y=150, data=[["1", "0"], ["0", "1"]]))
    return scene


class TestPainterHelpers:
    def test_hex_to_qcolor(self, qapp):
        color = hex_to_qcolor("#ff8000")
        assert (color.red(), color.green(), color.blue()) == (255, 128, 0)

    def test_hex_to_qcolor_fallback(self, qapp):
        color = hex_to_qcolor("not-a-color", fallback="#000000", opacity=0.5)
        assert (color.red(), color.green(), color.blue()) == (0, 0, 0)
        assert color.alphaF() == pytest.approx(0.5, abs=0.01)

    @pytest.mark.parametrize("shape", list(ShapeKind))
    def test_node_path_covers_center(self, qapp, shape):
        node = Node(id="n", x=10, y=20, shape=shape)
        path = node_path(node)
        assert not path.isEmpty()
        rect = path.boundingRect()
        assert rect.width() > 0 and rect.height() > 0

    def test_paint_full_scene(self, qapp, parts):
        resolver, router, tester = parts
        scene = _full_scene()
        controller = GestureController(scene, resolver, tester, UndoStackHistory(scene, QUndoStack()))
        controller.select([("node", "n0"), ("edge", "e1"), ("frame", "frame")])
        image = QImage(640, 480, QImage.Format.Format_ARGB32)
        painter = QPainter(image)
        try:
            ScenePainter(resolver, router).paint(painter, scene, 640, 480, controller)
        finally:
            painter.end()
        assert not image.isNull()


class TestUndoStackHistory:
    def test_gesture_undo_redo(self, qapp, parts):
        resolver, _, tester = parts
        scene = Scene(nodes=[Node(id="a", x=100, y=100)])
        stack = QUndoStack()
        applied = []
        history = UndoStackHistory(scene, stack, lambda: applied.append(True))
        controller = GestureController(scene, resolver, tester, history)

        controller.press(100, 100)
        controller.release(150, 130)
        assert stack.count() == 1
        assert (scene.nodes[0].x, scene.nodes[0].y) == (150, 130)
        # Pushing does not re-apply the edit
        assert applied == []

        stack.undo()
        assert (scene.nodes[0].x, scene.nodes[0].y) == (100, 100)
        stack.redo()
        assert (scene.nodes[0].x, scene.nodes[0].y) == (150, 130)
        assert applied == [True, True]
        assert history.can_undo and not history.can_redo

    def test_undo_keeps_camera(self, qapp, parts):
        resolver, _, tester = parts
        scene = Scene(nodes=[Node(id="a", x=0, y=0)])
        stack = QUndoStack()
        controller = GestureController(scene, resolver, tester, UndoStackHistory(scene, stack))
        controller.select([("node", "a")])
        controller.delete_selection()
        scene.camera.pan_by(25, 0)
        stack.undo()
        assert [n.id for n in scene.nodes] == ["a"]
        assert scene.camera.offset_x == 25


class TestDiagramCanvas:
    def _canvas(self, parts, scene=None):
        resolver, router, tester = parts
        scene = scene or _full_scene()
        stack = QUndoStack()
        controller = GestureController(scene, resolver, tester, UndoStackHistory(scene, stack))
        canvas = DiagramCanvas(controller, ScenePainter(resolver, router))
        canvas.resize(800, 600)
        return canvas, controller

    def test_grab_renders(self, qapp, parts):
        canvas, controller = self._canvas(parts)
        controller.set_mode(Mode.NODE)
        controller.press(10, 10)
        controller.move(80, 60)
        pixmap = canvas.grab()
        assert not pixmap.isNull()
        assert pixmap.width() == 800

    def test_zoom_commands(self, qapp, parts):
        canvas, controller = self._canvas(parts)
        canvas.zoom_in()
        assert controller.camera.scale > 1.0
        canvas.zoom_reset()
        assert controller.camera.scale == pytest.approx(1.0)
        canvas.zoom_out()
        assert controller.camera.scale < 1.0

    def test_fit_frame(self, qapp, parts):
        canvas, controller = self._canvas(parts)
        canvas.zoom_fit_frame()
        frame = controller.scene.frame
        top_left = controller.camera.world_to_screen(frame.x, frame.y)
        bottom_right = controller.camera.world_to_screen(frame.x + frame.width, frame.y + frame.height)
        assert 0 <= top_left.x and bottom_right.x <= 800
        assert 0 <= top_left.y and bottom_right.y <= 600

    def test_edits_emit_scene_edited(self, qapp, parts):
        canvas, controller = self._canvas(parts, Scene(nodes=[Node(id="a", x=50, y=50)]))
        seen = []
        canvas.sceneEdited.connect(lambda: seen.append(True))
        controller.select([("node", "a")])
        assert controller.delete_selection()
        assert seen == [True]
