"""
main.py

TikzCanvas - Main Application

PyQt6 application for drawing diagrams on a pannable, zoomable canvas and
exporting them as standalone TikZ documents:
- Drawing tools (shapes, free lines, text blocks, export frame)
- Anchor-to-anchor edges with straight, curved and orthogonal routing
- Live TikZ output, refreshed after every committed edit
- JSON scene save/load and QUndoStack-backed undo/redo

Usage:
    python main.py

Dependencies:
    pip install PyQt6 platformdirs tomli-w
"""

from __future__ import annotations

import os
import sys
import traceback
from typing import Dict, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QActionGroup, QFont, QKeySequence, QUndoStack
from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDockWidget,
    QDoubleSpinBox,
    QFileDialog,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QToolBar,
)

from anchors import AnchorResolver
from canvas import DiagramCanvas, ScenePainter
from debug_trace import close_log, set_trace_enabled, trace, trace_exception
from hit_test import HitTester
from interaction import GestureController
from models import LABEL_ALIGNMENTS, ElementKind, Mode, RoutingKind, Scene, ShapeKind
from persistence import SceneLoadError, load_scene, save_scene
from routing import EdgeRouter
from settings import SettingsManager, get_settings
from shapes import create_default_registry
from tikz_export import TikzSerializer, export_document
from undo_commands import UndoStackHistory

MODE_SHORTCUTS = (
    ("Select", Mode.SELECT, "V"),
    ("Node", Mode.NODE, "N"),
    ("Line", Mode.LINE, "L"),
    ("Text", Mode.TEXT, "T"),
    ("Frame", Mode.FRAME, "F"),
    ("Pan", Mode.PAN, "H"),
)

SCENE_FILTER = "Scene JSON (*.json)"
TIKZ_FILTER = "LaTeX (*.tex)"


class MainWindow(QMainWindow):
    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.settings_manager = settings_manager
        self.setWindowTitle("TikzCanvas")

        self.registry = create_default_registry()
        self.resolver = AnchorResolver(self.registry)
        self.router = EdgeRouter(self.resolver)
        self.tester = HitTester(self.resolver, self.router)
        self.serializer = TikzSerializer(self.registry, self.resolver)

        self.scene = Scene()
        self.current_path: Optional[str] = None

        self.undo_stack = QUndoStack(self)
        self.undo_stack.setUndoLimit(settings_manager.settings.history.limit)
        self.history = UndoStackHistory(self.scene, self.undo_stack, self._on_history_applied)

        self.controller = GestureController(self.scene, self.resolver, self.tester, self.history,
                                            on_changed=self._refresh_output)
        self.canvas = DiagramCanvas(self.controller, ScenePainter(self.resolver, self.router), self)
        self.canvas.doubleClicked.connect(self._edit_text)
        self.canvas.selectionChanged.connect(self._update_status)
        self.setCentralWidget(self.canvas)

        self.output = QPlainTextEdit()
        self.output.setReadOnly(True)
        self.output.setFont(QFont("Monospace", 10))
        dock = QDockWidget("TikZ", self)
        dock.setObjectName("TikzDock")
        dock.setWidget(self.output)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

        self._mode_actions: Dict[str, QAction] = {}
        self._build_menus()
        self._build_toolbar()
        self._refresh_output()
        self.statusBar().showMessage("Mode: select")

    # ----------------------------
    # Menus and toolbar
    # ----------------------------

    def _build_menus(self):
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        new_act = QAction("&New", self)
        new_act.setShortcut(QKeySequence.StandardKey.New)
        new_act.triggered.connect(self.new_scene)
        file_menu.addAction(new_act)

        open_act = QAction("&Open Scene...", self)
        open_act.setShortcut(QKeySequence.StandardKey.Open)
        open_act.triggered.connect(self.open_scene_dialog)
        file_menu.addAction(open_act)

        save_act = QAction("&Save Scene...", self)
        save_act.setShortcut(QKeySequence.StandardKey.Save)
        save_act.triggered.connect(self.save_scene_dialog)
        file_menu.addAction(save_act)

        export_act = QAction("&Export TikZ...", self)
        export_act.setShortcut(QKeySequence("Ctrl+E"))
        export_act.triggered.connect(self.export_tikz_dialog)
        file_menu.addAction(export_act)

        file_menu.addSeparator()
        exit_act = QAction("E&xit", self)
        exit_act.setShortcut(QKeySequence.StandardKey.Quit)
        exit_act.triggered.connect(self.close)
        file_menu.addAction(exit_act)

        edit_menu = menubar.addMenu("&Edit")
        undo_act = self.undo_stack.createUndoAction(self, "&Undo")
        undo_act.setShortcut(QKeySequence.StandardKey.Undo)
        edit_menu.addAction(undo_act)
        redo_act = self.undo_stack.createRedoAction(self, "&Redo")
        redo_act.setShortcut(QKeySequence.StandardKey.Redo)
        edit_menu.addAction(redo_act)
        edit_menu.addSeparator()
        delete_act = QAction("&Delete", self)
        delete_act.triggered.connect(self.delete_selection)
        edit_menu.addAction(delete_act)

        view_menu = menubar.addMenu("&View")
        zoom_in_act = QAction("Zoom &In", self)
        zoom_in_act.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in_act.triggered.connect(self.canvas.zoom_in)
        view_menu.addAction(zoom_in_act)

        zoom_out_act = QAction("Zoom &Out", self)
        zoom_out_act.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out_act.triggered.connect(self.canvas.zoom_out)
        view_menu.addAction(zoom_out_act)

        zoom_reset_act = QAction("&Reset Zoom", self)
        zoom_reset_act.setShortcut(QKeySequence("Ctrl+0"))
        zoom_reset_act.triggered.connect(self.canvas.zoom_reset)
        view_menu.addAction(zoom_reset_act)

        zoom_fit_act = QAction("&Fit Frame", self)
        zoom_fit_act.setShortcut(QKeySequence("Ctrl+9"))
        zoom_fit_act.triggered.connect(self.canvas.zoom_fit_frame)
        view_menu.addAction(zoom_fit_act)

    def _build_toolbar(self):
        tb = QToolBar("Tools")
        tb.setObjectName("ToolsToolbar")
        self.addToolBar(tb)

        group = QActionGroup(self)
        group.setExclusive(True)
        for text, mode, shortcut in MODE_SHORTCUTS:
            act = QAction(text, self)
            act.setCheckable(True)
            act.setShortcut(QKeySequence(shortcut))
            act.setToolTip(f"{text} ({shortcut})")
            act.triggered.connect(lambda _checked, m=mode: self.set_mode(m))
            group.addAction(act)
            tb.addAction(act)
            self._mode_actions[mode] = act
        self._mode_actions[Mode.SELECT].setChecked(True)

        tb.addSeparator()
        tb.addWidget(QLabel(" Shape: "))
        self.shape_combo = QComboBox()
        for kind in ShapeKind:
            self.shape_combo.addItem(kind.value, kind)
        self.shape_combo.currentIndexChanged.connect(self._on_shape_changed)
        tb.addWidget(self.shape_combo)

        tb.addWidget(QLabel(" Routing: "))
        self.routing_combo = QComboBox()
        for kind in RoutingKind:
            self.routing_combo.addItem(kind.value, kind)
        self.routing_combo.currentIndexChanged.connect(self._on_routing_changed)
        tb.addWidget(self.routing_combo)

        tb.addSeparator()
        tb.addWidget(QLabel(" Edge width: "))
        self.thickness_spin = QDoubleSpinBox()
        self.thickness_spin.setRange(0.5, 20.0)
        self.thickness_spin.setSingleStep(0.5)
        self.thickness_spin.setValue(self.scene.edge_thickness)
        self.thickness_spin.editingFinished.connect(self._on_thickness_changed)
        tb.addWidget(self.thickness_spin)

        tb.addWidget(QLabel(" Labels: "))
        self.alignment_combo = QComboBox()
        self.alignment_combo.addItems(list(LABEL_ALIGNMENTS))
        self.alignment_combo.setCurrentText(self.scene.edge_label_alignment)
        self.alignment_combo.currentTextChanged.connect(self._on_alignment_changed)
        tb.addWidget(self.alignment_combo)

    # ----------------------------
    # Mode / tool state
    # ----------------------------

    def set_mode(self, mode: str):
        self.controller.set_mode(mode)
        act = self._mode_actions.get(mode)
        if act is not None and not act.isChecked():
            act.setChecked(True)
        self.statusBar().showMessage(f"Mode: {mode}")
        self.canvas.update()

    def _on_shape_changed(self, index: int):
        self.controller.current_shape = self.shape_combo.itemData(index)

    def _on_routing_changed(self, index: int):
        self.controller.set_routing(self.routing_combo.itemData(index))
        self.canvas.update()

    def _on_thickness_changed(self):
        value = self.thickness_spin.value()

        def mutate(scene: Scene):
            scene.edge_thickness = value

        self.controller.edit(mutate)

    def _on_alignment_changed(self, text: str):
        def mutate(scene: Scene):
            scene.edge_label_alignment = text

        self.controller.edit(mutate)

    def _sync_document_controls(self):
        self.thickness_spin.blockSignals(True)
        self.thickness_spin.setValue(self.scene.edge_thickness)
        self.thickness_spin.blockSignals(False)
        self.alignment_combo.blockSignals(True)
        self.alignment_combo.setCurrentText(self.scene.edge_label_alignment)
        self.alignment_combo.blockSignals(False)

    # ----------------------------
    # Editing
    # ----------------------------

    def delete_selection(self):
        count = len(self.controller.selection)
        if self.controller.delete_selection():
            self.statusBar().showMessage(f"Deleted {count} item(s).")
        self.canvas.update()

    def _edit_text(self, kind: str, element_id: str):
        """Prompt for a new node label, edge label or text block text."""
        element = self.scene.element(kind, element_id)
        if element is None:
            return
        if kind == ElementKind.NODE:
            current = element.label
        elif kind == ElementKind.EDGE:
            current = element.label.text if element.label else ""
        elif kind == ElementKind.TEXT_BLOCK:
            current = element.text
        else:
            return
        text, ok = QInputDialog.getMultiLineText(self, "Edit Text", "Text:", current)
        if ok and text != current:
            self.controller.set_label(kind, element_id, text)
            self.canvas.update()

    def _on_history_applied(self):
        self._sync_document_controls()
        self.controller.clear_selection()
        self._refresh_output()
        self.canvas.update()

    def _refresh_output(self):
        """Re-serialize the scene into the TikZ pane."""
        self.output.setPlainText(self.serializer.serialize(self.scene))
        self._update_status()

    def _update_status(self):
        title = os.path.basename(self.current_path) if self.current_path else "untitled"
        self.setWindowTitle(f"TikzCanvas - {title}")

    # ----------------------------
    # Files
    # ----------------------------

    def _workspace_dir(self) -> str:
        return str(self.settings_manager.get_workspace_dir())

    def _set_scene(self, scene: Scene, path: Optional[str]):
        self.scene = scene
        self.current_path = path
        self.history.scene = scene
        self.controller.set_scene(scene)
        self.undo_stack.clear()
        self._sync_document_controls()
        self._refresh_output()
        self.canvas.update()

    def new_scene(self):
        self._set_scene(Scene(), None)
        self.statusBar().showMessage("New scene.")

    def open_scene_dialog(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Scene", self._workspace_dir(), SCENE_FILTER)
        if not path:
            return
        try:
            scene = load_scene(path)
        except SceneLoadError as e:
            trace_exception("Open failed")
            QMessageBox.critical(self, "Open failed", str(e))
            return
        self._set_scene(scene, path)
        self.statusBar().showMessage(f"Opened scene: {path}")

    def save_scene_dialog(self):
        start = self.current_path or os.path.join(self._workspace_dir(), "scene.json")
        path, _ = QFileDialog.getSaveFileName(self, "Save Scene", start, SCENE_FILTER)
        if not path:
            return
        if not path.lower().endswith(".json"):
            path += ".json"
        try:
            save_scene(self.scene, path)
        except OSError as e:
            trace_exception("Save failed")
            QMessageBox.critical(self, "Save failed", str(e))
            return
        self.current_path = path
        self._update_status()
        self.statusBar().showMessage(f"Saved scene: {path}")

    def export_tikz_dialog(self):
        base = os.path.splitext(self.current_path)[0] if self.current_path else \
            os.path.join(self._workspace_dir(), "diagram")
        path, _ = QFileDialog.getSaveFileName(self, "Export TikZ", base + ".tex", TIKZ_FILTER)
        if not path:
            return
        try:
            export_document(self.serializer.serialize(self.scene), path)
        except OSError as e:
            trace_exception("Export failed")
            QMessageBox.critical(self, "Export failed", str(e))
            return
        self.statusBar().showMessage(f"Exported TikZ: {path}")


def _excepthook(exc_type, exc_value, exc_tb):
    trace("UNCAUGHT EXCEPTION:", "ERROR")
    trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "ERROR")
    close_log()
    sys.__excepthook__(exc_type, exc_value, exc_tb)


def main():
    """Application entry point. Pass --trace to log to stderr."""
    if "--trace" in sys.argv[1:]:
        set_trace_enabled(True)
    sys.excepthook = _excepthook
    trace("Application starting", "INFO")
    app = QApplication(sys.argv)

    settings_manager = get_settings()
    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    def save_on_quit():
        trace("Saving settings on quit", "IO")
        settings_manager.save()
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    w = MainWindow(settings_manager)
    w.resize(1400, 900)
    w.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
