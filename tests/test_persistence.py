"""Tests for scene JSON load/save and snapshot history."""
from __future__ import annotations

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from anchors import AnchorResolver
from camera import Camera
from history import SnapshotHistory, apply_scene, capture_scene
from models import Edge, Node, RoutingKind, Scene, ShapeKind
from persistence import SceneLoadError, load_scene, save_scene, scene_from_dict, scene_to_dict
from shapes import create_default_registry
from tikz_export import TikzSerializer


# ---------------------------------------------------------------------------
# Normalization on load
# ---------------------------------------------------------------------------

class TestSceneFromDict:
    def test_legacy_node_style_keys(self):
        scene = scene_from_dict({"nodes": [
            {"id": "a", "x": 1, "y": 2, "color": "#ff0000", "borderColor": "#00ff00", "borderWidth": 0},
        ]})
        node = scene.nodes[0]
        assert node.fill == "#ff0000"
        assert node.border_color == "#00ff00"
        assert node.border_width == 0

    def test_unknown_shape_becomes_circle(self):
        scene = scene_from_dict({"nodes": [{"id": "a", "shape": "hexagon"}]})
        assert scene.nodes[0].shape is ShapeKind.CIRCLE

    def test_out_of_range_values_are_clamped(self):
        scene = scene_from_dict({"nodes": [
            {"id": "a", "shape": "rectangle", "size": {"width": 5000, "height": 1},
             "cornerRadius": 500, "opacity": 3},
        ]})
        node = scene.nodes[0]
        assert node.width == 720
        assert node.height == 20
        assert node.corner_radius == 64
        assert node.opacity is None

    def test_legacy_edge_spellings(self):
        scene = scene_from_dict({
            "nodes": [{"id": "a"}, {"id": "b"}],
            "edges": [
                {"id": "e1", "from": "a", "to": "b", "shape": "curva-direita"},
                {"id": "e2", "source": {"nodeId": "a", "portId": "northeast"},
                 "target": {"nodeId": "b"}, "routing": "90-vertical"},
                {"id": "e3", "source": "a", "target": "b", "routing": "bend left",
                 "label": "plain"},
            ],
        })
        e1, e2, e3 = scene.edges
        assert (e1.source, e1.target) == ("a", "b")
        assert e1.routing is RoutingKind.CURVED_RIGHT
        assert e2.source_anchor == "northeast"
        assert e2.routing is RoutingKind.ORTHOGONAL_VERTICAL
        assert e3.routing is RoutingKind.CURVED_LEFT
        assert e3.label.text == "plain"

    def test_dangling_edges_are_pruned(self):
        scene = scene_from_dict({
            "nodes": [{"id": "a"}],
            "edges": [{"id": "e", "source": "a", "target": "ghost"}],
        })
        assert scene.edges == []

    def test_duplicate_and_missing_ids_are_renamed(self):
        scene = scene_from_dict({"nodes": [{"id": "n"}, {"id": "n"}, {}]})
        ids = [n.id for n in scene.nodes]
        assert ids[0] == "n"
        assert len(set(ids)) == 3
        assert all(ids)

    def test_unsafe_node_ids_are_renamed_and_edges_follow(self):
        scene = scene_from_dict({
            "nodes": [{"id": "a.b"}, {"id": "c"}, {"id": "x}] (y"}],
            "edges": [{"id": "e", "source": "a.b", "target": "c"},
                      {"id": "f", "source": "c", "target": "x}] (y"}],
        })
        ids = [n.id for n in scene.nodes]
        assert ids[1] == "c"
        assert "a.b" not in ids and "x}] (y" not in ids
        assert [(e.source, e.target) for e in scene.edges] == [(ids[0], "c"), ("c", ids[2])]

        registry = create_default_registry()
        document = TikzSerializer(registry, AnchorResolver(registry)).serialize(scene)
        assert "(a.b)" not in document
        assert "x}]" not in document
        assert f"({ids[0]})" in document

    def test_bad_groups_are_ignored(self):
        scene = scene_from_dict({"nodes": "oops", "edges": [1, 2], "extra": True})
        assert scene.nodes == [] and scene.edges == []

    def test_document_defaults(self):
        scene = scene_from_dict({"edgeThickness": -1, "edgeLabelAlignment": "sideways"})
        assert scene.edge_thickness == 2.5
        assert scene.edge_label_alignment == "right"

    def test_invalid_frame_is_dropped(self):
        assert scene_from_dict({"frame": {"x": 0, "y": 0, "width": "wide"}}).frame is None
        frame = scene_from_dict({"frame": {"x": 0, "y": 0, "width": 10, "height": 500}}).frame
        assert frame.width == 64

    def test_not_an_object(self):
        with pytest.raises(SceneLoadError):
            scene_from_dict([1, 2, 3])


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

class TestFiles:
    def test_save_then_load(self, tmp_path):
        scene = Scene(camera=Camera(scale=2.0, offset_x=10, offset_y=-5))
        scene.add_node(Node(id="a", x=10, y=20, shape=ShapeKind.CYLINDER, label="db"))
        scene.add_node(Node(id="b", x=300, y=20))
        scene.add_edge(Edge(id="e", source="a", target="b", routing="orthogonal-horizontal"))
        path = tmp_path / "nested" / "scene.json"
        save_scene(scene, str(path))
        loaded = load_scene(str(path))
        assert scene_to_dict(loaded) == scene_to_dict(scene)

    def test_unknown_fields_survive_round_trip(self, tmp_path):
        path = tmp_path / "scene.json"
        path.write_text(json.dumps({"nodes": [{"id": "a", "note": "keep me"}]}), encoding="utf-8")
        scene = load_scene(str(path))
        assert scene_to_dict(scene)["nodes"][0]["note"] == "keep me"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SceneLoadError):
            load_scene(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SceneLoadError):
            load_scene(str(path))


# ---------------------------------------------------------------------------
# Snapshot history
# ---------------------------------------------------------------------------

class TestSnapshotHistory:
    def test_undo_redo(self):
        history = SnapshotHistory()
        history.push({"v": 1})
        history.push({"v": 2})
        assert history.undo({"v": 3}) == {"v": 2}
        assert history.can_redo
        assert history.redo({"v": 2}) == {"v": 3}
        assert not history.can_redo

    def test_push_clears_redo(self):
        history = SnapshotHistory()
        history.push({"v": 1})
        history.undo({"v": 2})
        history.push({"v": 9})
        assert not history.can_redo

    def test_limit_drops_oldest(self):
        history = SnapshotHistory(limit=2)
        for i in range(5):
            history.push({"v": i})
        assert len(history) == 2
        assert history.undo({}) == {"v": 4}
        assert history.undo({}) == {"v": 3}
        assert history.undo({}) is None

    def test_default_limit_from_settings(self):
        assert SnapshotHistory().limit == 100

    def test_apply_scene_restores_content_not_camera(self):
        scene = Scene()
        scene.add_node(Node(id="a", x=0, y=0))
        before = capture_scene(scene)
        scene.nodes[0].x = 500
        scene.camera.pan_by(40, 40)
        apply_scene(scene, before)
        assert scene.nodes[0].x == 0
        assert scene.camera.offset_x == 40

    @pytest.mark.parametrize("bend", [0, 12.5, 30, 100])
    def test_edge_bend_survives_capture_and_apply(self, bend):
        scene = Scene(nodes=[Node(id="a"), Node(id="b", x=200)])
        scene.add_edge(Edge(id="e", source="a", target="b", routing="curved-left", bend=bend))
        snapshot = capture_scene(scene)
        apply_scene(scene, snapshot)
        assert capture_scene(scene) == snapshot
        assert scene.edges[0].bend == (bend or 30)

    def test_capture_is_independent_copy(self):
        scene = Scene()
        scene.add_node(Node(id="a", x=0, y=0))
        snapshot = capture_scene(scene)
        scene.nodes[0].label = "changed"
        assert snapshot["nodes"][0]["label"] == ""
