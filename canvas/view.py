"""
canvas/view.py

QWidget hosting the diagram: forwards pointer and key events to the
gesture controller and paints the scene through the camera.
"""

from __future__ import annotations

from typing import Callable, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QWidget

from canvas.painter import ScenePainter
from debug_trace import trace
from interaction import MOD_PAN, MOD_SHIFT, GestureController
from models import Scene
from settings import get_settings


class DiagramCanvas(QWidget):
    """
    Pannable, zoomable diagram canvas.

    Mouse:
    - Left button runs the active tool (select/drag, draw, connect)
    - Middle button pans in any mode
    - Wheel zooms about the pointer

    Keys:
    - Escape cancels the gesture in progress
    - Delete/Backspace removes the selection
    """

    sceneEdited = pyqtSignal()
    selectionChanged = pyqtSignal()
    doubleClicked = pyqtSignal(str, str)

    def __init__(self, controller: GestureController, painter: ScenePainter, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.scene_painter = painter
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(False)
        self.setMinimumSize(320, 240)
        self._on_changed: Optional[Callable[[], None]] = controller.on_changed
        controller.on_changed = self._scene_changed

    @property
    def scene(self) -> Scene:
        return self.controller.scene

    def _scene_changed(self):
        if self._on_changed:
            self._on_changed()
        self.sceneEdited.emit()
        self.update()

    # ----------------------------
    # Painting
    # ----------------------------

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            self.scene_painter.paint(painter, self.scene, self.width(), self.height(), self.controller)
        finally:
            painter.end()

    # ----------------------------
    # Mouse
    # ----------------------------

    @staticmethod
    def _modifiers(event, pan: bool = False):
        mods = set()
        if event.modifiers() & Qt.KeyboardModifier.ShiftModifier:
            mods.add(MOD_SHIFT)
        if pan:
            mods.add(MOD_PAN)
        return mods

    def mousePressEvent(self, event):
        button = event.button()
        if button not in (Qt.MouseButton.LeftButton, Qt.MouseButton.MiddleButton):
            super().mousePressEvent(event)
            return
        pos = event.position()
        before = list(self.controller.selection)
        self.controller.press(pos.x(), pos.y(),
                              self._modifiers(event, button == Qt.MouseButton.MiddleButton))
        if self.controller.selection != before:
            self.selectionChanged.emit()
        self.update()
        event.accept()

    def mouseMoveEvent(self, event):
        pos = event.position()
        if self.controller.move(pos.x(), pos.y()):
            self.update()
        event.accept()

    def mouseReleaseEvent(self, event):
        pos = event.position()
        before = list(self.controller.selection)
        self.controller.release(pos.x(), pos.y())
        if self.controller.selection != before:
            self.selectionChanged.emit()
        self.update()
        event.accept()

    def mouseDoubleClickEvent(self, event):
        """Report the element under the pointer so the window can edit its text."""
        pos = event.position()
        hit = self.controller.tester.pick_at(self.scene, self.scene.camera, pos.x(), pos.y())
        if hit is not None and hit.element_id:
            kind = hit.kind.value
            if kind == "edge-label":
                kind = "edge"
            self.doubleClicked.emit(kind, hit.element_id)
        event.accept()

    def wheelEvent(self, event):
        """Zoom about the pointer."""
        delta = event.angleDelta().y()
        if delta == 0:
            return
        # Zoom factor from settings. Default: 1.15 (15% per scroll step)
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        factor = zoom_factor if delta > 0 else 1 / zoom_factor
        pos = event.position()
        if self.scene.camera.zoom_at(pos.x(), pos.y(), factor):
            trace(f"Zoom -> {self.scene.camera.scale:.3f}", "GESTURE")
            self.update()
        event.accept()

    # ----------------------------
    # Keys
    # ----------------------------

    def keyPressEvent(self, event):
        key = event.key()
        if key == Qt.Key.Key_Escape:
            if self.controller.cancel():
                self.update()
            event.accept()
            return
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            if self.controller.delete_selection():
                self.selectionChanged.emit()
            self.update()
            event.accept()
            return
        super().keyPressEvent(event)

    # ----------------------------
    # View commands
    # ----------------------------

    def zoom_in(self):
        """Zoom in by the configured factor about the widget center."""
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        self.scene.camera.zoom_at(self.width() / 2, self.height() / 2, zoom_factor)
        self.update()

    def zoom_out(self):
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        self.scene.camera.zoom_at(self.width() / 2, self.height() / 2, 1 / zoom_factor)
        self.update()

    def zoom_reset(self):
        """Reset zoom to 100% about the widget center."""
        self.scene.camera.set_scale(1.0, self.width() / 2, self.height() / 2)
        self.update()

    def zoom_fit_frame(self):
        """Fit the export frame (or the default frame size at the origin) in view."""
        frame = self.scene.frame
        if frame is None:
            return
        self.scene.camera.fit_rect(frame.x, frame.y, frame.width, frame.height,
                                   self.width(), self.height())
        self.update()
