"""
persistence.py

Scene JSON load/save.

Loading runs every record through the same normalization used when an
element is created on the canvas, so a malformed field falls back to
its default instead of rejecting the file. Only an unreadable file or a
document that is not a JSON object raises SceneLoadError.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any, Callable, Dict, List, Optional, Set

from camera import Camera
from debug_trace import trace, trace_call
from models import (
    LABEL_ALIGNMENTS,
    Edge,
    ElementKind,
    Frame,
    Line,
    MatrixGrid,
    Node,
    Scene,
    TextBlock,
)
from settings import get_settings
from utils import coerce_positive

SCENE_KEYS = (
    "nodes", "edges", "lines", "textBlocks", "matrixGrids",
    "frame", "camera", "edgeThickness", "edgeLabelAlignment",
)

# Ids become TikZ node names, so they must not contain separators or braces
SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class SceneLoadError(Exception):
    """Raised when a scene file cannot be read or is not a JSON object."""


def scene_to_dict(scene: Scene) -> Dict[str, Any]:
    """Plain JSON-compatible dict of the whole scene."""
    return {
        "nodes": [n.to_dict() for n in scene.nodes],
        "edges": [e.to_dict() for e in scene.edges],
        "lines": [ln.to_dict() for ln in scene.lines],
        "textBlocks": [b.to_dict() for b in scene.text_blocks],
        "matrixGrids": [g.to_dict() for g in scene.matrix_grids],
        "frame": scene.frame.to_dict() if scene.frame else None,
        "camera": scene.camera.to_dict(),
        "edgeThickness": scene.edge_thickness,
        "edgeLabelAlignment": scene.edge_label_alignment,
    }


def _records(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    raw = data.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        trace(f"Ignoring '{key}': expected a list, got {type(raw).__name__}", "WARN")
        return []
    records = [r for r in raw if isinstance(r, dict)]
    if len(records) != len(raw):
        trace(f"Ignoring {len(raw) - len(records)} non-object entries in '{key}'", "WARN")
    return records


def _load_group(scene: Scene, data: Dict[str, Any], key: str, prefix: str,
                factory: Callable[[Dict[str, Any]], Any], used: Set[str],
                renamed: Optional[Dict[str, str]] = None) -> List[Any]:
    """
    Build one element list, giving missing, duplicate or unsafe ids a fresh one.

    Unsafe ids are recorded in *renamed* (old id to new id) so references
    to them can follow the rename.
    """
    items = []
    for record in _records(data, key):
        item = factory(record)
        unsafe = bool(item.id) and not SAFE_ID_RE.match(item.id)
        if not item.id or item.id in used or unsafe:
            fresh = scene.next_id(prefix)
            while fresh in used:
                fresh = scene.next_id(prefix)
            if unsafe:
                trace(f"Id {item.id!r} in '{key}' is not a valid node name, renamed to {fresh!r}", "WARN")
                if renamed is not None:
                    renamed.setdefault(item.id, fresh)
            elif item.id:
                trace(f"Duplicate id {item.id!r} in '{key}' renamed to {fresh!r}", "WARN")
            item.id = fresh
        used.add(item.id)
        items.append(item)
    return items


def scene_from_dict(data: Any) -> Scene:
    """
    Build a normalized Scene from a decoded JSON document.

    Accepts the legacy spellings handled by the record ``from_dict``
    methods. Edges whose endpoints do not exist are dropped.

    Raises:
        SceneLoadError: *data* is not a JSON object
    """
    if not isinstance(data, dict):
        raise SceneLoadError(f"Scene file must contain a JSON object, not {type(data).__name__}")

    export = get_settings().settings.export
    thickness = coerce_positive(data.get("edgeThickness"), export.edge_thickness)
    alignment = data.get("edgeLabelAlignment")
    if alignment not in LABEL_ALIGNMENTS:
        alignment = export.edge_label_alignment

    scene = Scene(
        frame=Frame.from_dict(data.get("frame")),
        camera=Camera.from_dict(data.get("camera")),
        edge_thickness=thickness,
        edge_label_alignment=alignment,
    )
    used: Set[str] = set()
    renamed: Dict[str, str] = {}
    scene.nodes = _load_group(scene, data, "nodes", ElementKind.NODE, Node.from_dict, used, renamed)
    scene.edges = _load_group(scene, data, "edges", ElementKind.EDGE, Edge.from_dict, used)
    for edge in scene.edges:
        edge.source = renamed.get(edge.source, edge.source)
        edge.target = renamed.get(edge.target, edge.target)
    scene.lines = _load_group(scene, data, "lines", ElementKind.LINE, Line.from_dict, used)
    scene.text_blocks = _load_group(scene, data, "textBlocks", ElementKind.TEXT_BLOCK,
                                    TextBlock.from_dict, used)
    scene.matrix_grids = _load_group(scene, data, "matrixGrids", ElementKind.MATRIX_GRID,
                                     MatrixGrid.from_dict, used)
    scene.prune_edges()

    unknown = sorted(set(data) - set(SCENE_KEYS))
    if unknown:
        trace(f"Ignoring unknown scene keys: {', '.join(unknown)}", "WARN")
    return scene


@trace_call("IO")
def save_scene(scene: Scene, path: str) -> None:
    """Write *scene* to *path* as indented JSON. OSError propagates."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(scene_to_dict(scene), f, indent=2)
    trace(f"Saved scene to {path}", "IO")


@trace_call("IO")
def load_scene(path: str) -> Scene:
    """
    Read a scene file.

    Raises:
        SceneLoadError: the file is missing, unreadable or not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise SceneLoadError(f"Could not read {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SceneLoadError(f"{path} is not valid JSON: {e}") from e
    scene = scene_from_dict(data)
    trace(f"Loaded scene from {path} ({len(scene.nodes)} nodes, {len(scene.edges)} edges)", "IO")
    return scene
