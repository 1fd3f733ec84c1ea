"""
history.py

Snapshot-based undo history.

A snapshot is the plain dict produced by ``persistence.scene_to_dict``;
restoring one replaces the scene contents wholesale, so there is no
per-operation inverse to get wrong.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from debug_trace import trace
from persistence import scene_from_dict, scene_to_dict
from models import Scene
from settings import get_settings

Snapshot = Dict[str, Any]


def capture_scene(scene: Scene) -> Snapshot:
    return copy.deepcopy(scene_to_dict(scene))


def apply_scene(scene: Scene, snapshot: Snapshot) -> None:
    """Replace the contents of *scene* in place with *snapshot*.

    The camera is left alone; undo never moves the view.
    """
    restored = scene_from_dict(copy.deepcopy(snapshot))
    scene.nodes = restored.nodes
    scene.edges = restored.edges
    scene.lines = restored.lines
    scene.text_blocks = restored.text_blocks
    scene.matrix_grids = restored.matrix_grids
    scene.frame = restored.frame
    scene.edge_thickness = restored.edge_thickness
    scene.edge_label_alignment = restored.edge_label_alignment


class SnapshotHistory:
    """Bounded undo/redo stacks of scene snapshots."""

    def __init__(self, limit: Optional[int] = None):
        if limit is None:
            limit = get_settings().settings.history.limit
        self.limit = max(1, int(limit))
        self._undo: List[Snapshot] = []
        self._redo: List[Snapshot] = []

    def push(self, snapshot: Snapshot) -> None:
        """Record the state before a change; clears the redo branch."""
        self._undo.append(snapshot)
        if len(self._undo) > self.limit:
            del self._undo[0]
        self._redo.clear()

    def undo(self, current: Snapshot) -> Optional[Snapshot]:
        """Return the state to restore, saving *current* for redo."""
        if not self._undo:
            return None
        self._redo.append(current)
        trace(f"Undo ({len(self._undo) - 1} left)", "INFO")
        return self._undo.pop()

    def redo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self._redo:
            return None
        self._undo.append(current)
        return self._redo.pop()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def __len__(self) -> int:
        return len(self._undo)
