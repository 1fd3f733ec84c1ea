"""
undo_commands.py

QUndoCommand bridge between scene snapshots and the Qt undo stack.
"""

from __future__ import annotations

from typing import Callable, Optional

from PyQt6.QtGui import QUndoCommand, QUndoStack

from history import Snapshot, apply_scene, capture_scene
from models import Scene


class SceneSnapshotCommand(QUndoCommand):
    """Swap the scene between the states before and after one edit.

    The edit has already been applied when the command is pushed, so the
    first redo() (called by QUndoStack.push) does nothing.
    """

    def __init__(self, scene: Scene, before: Snapshot, after: Snapshot,
                 text: str = "Edit", on_applied: Optional[Callable[[], None]] = None,
                 parent=None):
        super().__init__(parent)
        self.scene = scene
        self.before = before
        self.after = after
        self.on_applied = on_applied
        self.setText(text)
        self._first_redo = True

    def _apply(self, snapshot: Snapshot):
        apply_scene(self.scene, snapshot)
        if self.on_applied:
            self.on_applied()

    def undo(self):
        self._apply(self.before)

    def redo(self):
        if self._first_redo:
            self._first_redo = False
            return
        self._apply(self.after)


class UndoStackHistory:
    """History adapter that records committed edits on a QUndoStack.

    Exposes the same ``push(snapshot)`` call as SnapshotHistory, so the
    gesture controller does not care which one it is given.
    """

    def __init__(self, scene: Scene, stack: QUndoStack,
                 on_applied: Optional[Callable[[], None]] = None):
        self.scene = scene
        self.stack = stack
        self.on_applied = on_applied

    def push(self, snapshot: Snapshot, text: str = "Edit") -> None:
        command = SceneSnapshotCommand(
            self.scene, snapshot, capture_scene(self.scene), text, self.on_applied
        )
        self.stack.push(command)

    @property
    def can_undo(self) -> bool:
        return self.stack.canUndo()

    @property
    def can_redo(self) -> bool:
        return self.stack.canRedo()

    def clear(self) -> None:
        self.stack.clear()
