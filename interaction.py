"""
interaction.py

Pointer gesture state machine for the canvas.

Every gesture runs press -> move* -> release (or cancel). The press
captures a scene snapshot; every move recomputes the affected geometry
from the values recorded at press time plus the total pointer delta.
Release pushes the pre-gesture snapshot to history when the scene
changed. Cancel restores the snapshot exactly.

Coordinates passed in are screen pixels; the controller converts them
through the scene camera.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple, Union

from anchors import AnchorResolver
from debug_trace import trace
from geometry import Point, distance, midpoint
from history import Snapshot, apply_scene, capture_scene
from hit_test import Hit, HitKind, HitTester
from models import (
    FRAME_MIN_SIZE,
    Edge,
    EdgeLabel,
    ElementKind,
    Frame,
    Line,
    Mode,
    Node,
    RoutingKind,
    Scene,
    ShapeKind,
    TextBlock,
)

MOD_SHIFT = "shift"
MOD_PAN = "pan"

# Drags shorter than this (screen px) count as clicks
CLICK_THRESHOLD = 6.0
NODE_MIN_DRAG_SIZE = 20.0
FRAME_MIN_DRAW = 4.0
LINE_MIN_LENGTH = 6.0
DEFAULT_TEXT = "Text"

Selection = List[Tuple[str, str]]
FRAME_SELECTION = (ElementKind.FRAME, "frame")


# ----------------------------
# States
# ----------------------------

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class DraggingNodes:
    origin: Point
    initial_positions: Tuple[Tuple[str, Point], ...]


@dataclass(frozen=True)
class RewiringEdge:
    edge_id: str
    endpoint: str
    initial_anchor: Tuple[str, Optional[str]]
    pointer: Point


@dataclass(frozen=True)
class ConnectingEdge:
    source_id: str
    source_anchor: Optional[str]
    pointer: Point


@dataclass(frozen=True)
class ResizingFrame:
    handle: str
    origin: Point
    initial_frame: Frame


@dataclass(frozen=True)
class MovingFrame:
    origin: Point
    initial_frame: Frame


@dataclass(frozen=True)
class DrawingShape:
    kind: str
    origin: Point
    current: Point


@dataclass(frozen=True)
class MarqueeSelecting:
    origin: Point
    current: Point


@dataclass(frozen=True)
class DraggingLineEndpoint:
    line_id: str
    endpoint: str
    initial_point: Point


@dataclass(frozen=True)
class MovingElement:
    """Move of a line, text block, grid, or an edge label's offset."""
    kind: str
    element_id: str
    origin: Point
    initial: Tuple[float, ...]


@dataclass(frozen=True)
class ResizingTextBlock:
    block_id: str
    origin: Point
    initial_size: Tuple[float, float]


@dataclass(frozen=True)
class Panning:
    origin: Point
    initial_offset: Tuple[float, float]


GestureState = Union[
    Idle, DraggingNodes, RewiringEdge, ConnectingEdge, ResizingFrame, MovingFrame,
    DrawingShape, MarqueeSelecting, DraggingLineEndpoint, MovingElement,
    ResizingTextBlock, Panning,
]

IDLE = Idle()


def _content(snapshot: Optional[Snapshot]) -> Optional[Snapshot]:
    """Snapshot without the camera; view changes are not undoable edits."""
    if snapshot is None:
        return None
    return {k: v for k, v in snapshot.items() if k != "camera"}


class GestureController:
    """Drives scene edits from pointer and keyboard events.

    ``history`` is anything with ``push(snapshot)``: a SnapshotHistory,
    or the QUndoStack adapter used by the main window.
    """

    def __init__(self, scene: Scene, resolver: AnchorResolver, tester: HitTester, history,
                 on_changed: Optional[Callable[[], None]] = None):
        self.scene = scene
        self.resolver = resolver
        self.tester = tester
        self.history = history
        self.on_changed = on_changed
        self.mode = Mode.SELECT
        self.current_shape = ShapeKind.CIRCLE
        self.current_routing = RoutingKind.STRAIGHT
        self.selection: Selection = []
        self.state: GestureState = IDLE
        self._before: Optional[Snapshot] = None

    @property
    def camera(self):
        return self.scene.camera

    @property
    def idle(self) -> bool:
        return isinstance(self.state, Idle)

    def set_mode(self, mode: str) -> None:
        if not self.idle:
            self.cancel()
        self.mode = mode
        trace(f"Mode -> {mode}", "GESTURE")

    def set_scene(self, scene: Scene) -> None:
        """Switch to another scene (after File > Open)."""
        self.scene = scene
        self.selection = []
        self.state = IDLE
        self._before = None

    # ----------------------------
    # Selection
    # ----------------------------

    def is_selected(self, kind: str, element_id: str) -> bool:
        return (kind, element_id) in self.selection

    def select(self, items: Iterable[Tuple[str, str]], add: bool = False) -> None:
        if not add:
            self.selection = []
        for item in items:
            if item not in self.selection:
                self.selection.append(item)

    def clear_selection(self) -> None:
        self.selection = []

    def selected_ids(self, kind: str) -> List[str]:
        return [element_id for k, element_id in self.selection if k == kind]

    def _selected_edge_endpoint(self, node_id: str, anchor: str) -> Optional[Tuple[str, str]]:
        """(edge id, endpoint) of a selected edge attached at node.anchor.

        Anchors are matched by position, so aliases and anchors that share
        a point (east / mid east) count as the same endpoint.
        """
        node = self.scene.node_by_id(node_id)
        pressed = self.resolver.resolve(node, anchor) if node is not None else None
        if pressed is None:
            return None
        for edge_id in self.selected_ids(ElementKind.EDGE):
            edge = self.scene.edge_by_id(edge_id)
            if edge is None:
                continue
            for which in ("source", "target"):
                end_node, end_anchor = edge.endpoint(which)
                if end_node != node_id or end_anchor is None:
                    continue
                attached = self.resolver.resolve(node, end_anchor)
                if attached is not None and distance(attached, pressed) < 1e-6:
                    return edge.id, which
        return None

    # ----------------------------
    # Pointer events
    # ----------------------------

    def press(self, sx: float, sy: float, modifiers: Iterable[str] = ()) -> None:
        if not self.idle:
            self.cancel()
        mods = set(modifiers)
        shift = MOD_SHIFT in mods
        world = self.camera.screen_to_world(sx, sy)
        self._before = capture_scene(self.scene)

        if self.mode == Mode.PAN or MOD_PAN in mods:
            self.state = Panning(Point(sx, sy), (self.camera.offset_x, self.camera.offset_y))
            return
        if self.mode in (Mode.NODE, Mode.LINE, Mode.TEXT, Mode.FRAME):
            self.state = DrawingShape(self.mode, world, world)
            return

        hit = self.tester.pick_at(self.scene, self.camera, sx, sy, self.selection)
        if hit is None:
            if not shift:
                self.clear_selection()
            self.state = MarqueeSelecting(world, world)
            return
        self._press_hit(hit, world, shift)
        if self.idle:
            self._before = None
        trace(f"Press on {hit.kind.value} {hit.element_id or ''} -> {type(self.state).__name__}",
              "GESTURE")

    def _press_hit(self, hit: Hit, world: Point, shift: bool) -> None:
        element = hit.element
        kind = hit.kind

        if kind is HitKind.ANCHOR:
            rewire = self._selected_edge_endpoint(element.id, hit.detail)
            if rewire is not None:
                edge = self.scene.edge_by_id(rewire[0])
                self.state = RewiringEdge(rewire[0], rewire[1], edge.endpoint(rewire[1]), world)
            else:
                self.state = ConnectingEdge(element.id, hit.detail, world)
        elif kind is HitKind.LINE_HANDLE:
            point = element.start if hit.detail == "start" else element.end
            self.state = DraggingLineEndpoint(element.id, hit.detail, point)
        elif kind is HitKind.LINE:
            self.select([(ElementKind.LINE, element.id)], add=shift)
            self.state = MovingElement(ElementKind.LINE, element.id, world,
                                       (*element.start, *element.end))
        elif kind is HitKind.TEXT_HANDLE:
            self.select([(ElementKind.TEXT_BLOCK, element.id)])
            self.state = ResizingTextBlock(element.id, world, (element.width, element.height))
        elif kind is HitKind.TEXT_BLOCK:
            self.select([(ElementKind.TEXT_BLOCK, element.id)], add=shift)
            self.state = MovingElement(ElementKind.TEXT_BLOCK, element.id, world,
                                       (element.x, element.y))
        elif kind is HitKind.MATRIX_GRID:
            self.select([(ElementKind.MATRIX_GRID, element.id)], add=shift)
            self.state = MovingElement(ElementKind.MATRIX_GRID, element.id, world,
                                       (element.x, element.y))
        elif kind is HitKind.NODE:
            key = (ElementKind.NODE, element.id)
            if shift and key in self.selection:
                self.selection.remove(key)
                return
            if key not in self.selection:
                self.select([key], add=shift)
            positions = tuple(
                (node.id, node.center) for node in self.scene.nodes
                if self.is_selected(ElementKind.NODE, node.id)
            )
            self.state = DraggingNodes(world, positions)
        elif kind is HitKind.EDGE:
            self.select([(ElementKind.EDGE, element.id)], add=shift)
        elif kind is HitKind.EDGE_LABEL:
            self.select([(ElementKind.EDGE, element.id)], add=shift)
            self.state = MovingElement(ElementKind.EDGE, element.id, world, tuple(element.label.offset))
        elif kind is HitKind.FRAME_HANDLE:
            self.select([FRAME_SELECTION])
            self.state = ResizingFrame(hit.detail, world, replace(element))
        elif kind is HitKind.FRAME:
            if FRAME_SELECTION in self.selection and not shift:
                self.state = MovingFrame(world, replace(element))
            else:
                self.select([FRAME_SELECTION], add=shift)
                self.state = MarqueeSelecting(world, world)

    def move(self, sx: float, sy: float) -> bool:
        """Advance the active gesture. Returns True when a repaint is needed."""
        state = self.state
        if isinstance(state, Idle):
            return False
        if isinstance(state, Panning):
            self.camera.offset_x = state.initial_offset[0] + (sx - state.origin.x)
            self.camera.offset_y = state.initial_offset[1] + (sy - state.origin.y)
            return True

        world = self.camera.screen_to_world(sx, sy)
        if isinstance(state, (DrawingShape, MarqueeSelecting)):
            self.state = replace(state, current=world)
        elif isinstance(state, (RewiringEdge, ConnectingEdge)):
            self.state = replace(state, pointer=world)
        elif isinstance(state, DraggingNodes):
            dx, dy = world.x - state.origin.x, world.y - state.origin.y
            for node_id, start in state.initial_positions:
                node = self.scene.node_by_id(node_id)
                if node is not None:
                    node.x, node.y = start.x + dx, start.y + dy
        elif isinstance(state, ResizingFrame):
            self.scene.frame = state.initial_frame.resized(
                state.handle, world.x - state.origin.x, world.y - state.origin.y
            )
        elif isinstance(state, MovingFrame):
            self.scene.frame = state.initial_frame.moved(
                world.x - state.origin.x, world.y - state.origin.y
            )
        elif isinstance(state, DraggingLineEndpoint):
            line = self.scene.line_by_id(state.line_id)
            if line is not None:
                setattr(line, state.endpoint, world)
        elif isinstance(state, MovingElement):
            self._move_element(state, world.x - state.origin.x, world.y - state.origin.y)
        elif isinstance(state, ResizingTextBlock):
            block = self.scene.text_block_by_id(state.block_id)
            if block is not None:
                block.width = state.initial_size[0] + (world.x - state.origin.x)
                block.height = state.initial_size[1] + (world.y - state.origin.y)
                block.normalize()
        return True

    def _move_element(self, state: MovingElement, dx: float, dy: float) -> None:
        element = self.scene.element(state.kind, state.element_id)
        if element is None:
            return
        initial = state.initial
        if state.kind == ElementKind.LINE:
            element.start = Point(initial[0] + dx, initial[1] + dy)
            element.end = Point(initial[2] + dx, initial[3] + dy)
        elif state.kind == ElementKind.EDGE:
            if element.label is not None:
                element.label.offset = (initial[0] + dx, initial[1] + dy)
        else:
            element.x, element.y = initial[0] + dx, initial[1] + dy

    def release(self, sx: float, sy: float) -> bool:
        """Finish the gesture. Returns True when the scene changed."""
        if self.idle:
            return False
        self.move(sx, sy)
        state = self.state
        if isinstance(state, DrawingShape):
            self._finish_drawing(state)
        elif isinstance(state, MarqueeSelecting):
            self._finish_marquee(state)
        elif isinstance(state, ConnectingEdge):
            self._finish_connect(state, sx, sy)
        elif isinstance(state, RewiringEdge):
            self._finish_rewire(state, sx, sy)
        return self._commit()

    def cancel(self) -> bool:
        """Abort the active gesture, restoring the pre-gesture scene."""
        state = self.state
        if isinstance(state, Idle):
            return False
        if isinstance(state, Panning):
            self.camera.offset_x, self.camera.offset_y = state.initial_offset
        elif self._before is not None:
            apply_scene(self.scene, self._before)
        trace(f"Cancelled {type(state).__name__}", "GESTURE")
        self.state = IDLE
        self._before = None
        return True

    # ----------------------------
    # Gesture completion
    # ----------------------------

    def _anchor_target(self, sx: float, sy: float) -> Optional[Tuple[str, Optional[str]]]:
        hit = self.tester.pick_at(self.scene, self.camera, sx, sy)
        if hit is None:
            return None
        if hit.kind is HitKind.ANCHOR:
            return hit.element.id, hit.detail
        if hit.kind is HitKind.NODE:
            return hit.element.id, None
        return None

    def _finish_connect(self, state: ConnectingEdge, sx: float, sy: float) -> None:
        target = self._anchor_target(sx, sy)
        if target is None:
            return
        target_id, target_anchor = target
        if target_id == state.source_id and target_anchor in (None, state.source_anchor):
            return
        edge = Edge(
            id=self.scene.next_id(ElementKind.EDGE),
            source=state.source_id,
            target=target_id,
            source_anchor=state.source_anchor,
            target_anchor=target_anchor,
            routing=self.current_routing,
        )
        self.scene.add_edge(edge)
        self.select([(ElementKind.EDGE, edge.id)])

    def _finish_rewire(self, state: RewiringEdge, sx: float, sy: float) -> None:
        edge = self.scene.edge_by_id(state.edge_id)
        target = self._anchor_target(sx, sy)
        if edge is None or target is None:
            return
        node_id, anchor = target
        if state.endpoint == "source":
            edge.source, edge.source_anchor = node_id, anchor
        else:
            edge.target, edge.target_anchor = node_id, anchor

    def _finish_marquee(self, state: MarqueeSelecting) -> None:
        drag = distance(state.origin, state.current) * self.camera.scale
        if drag < CLICK_THRESHOLD:
            return
        rect = (state.origin.x, state.origin.y, state.current.x, state.current.y)
        nodes = self.tester.nodes_in_rect(self.scene, rect)
        self.select([(ElementKind.NODE, n.id) for n in nodes], add=True)

    def _finish_drawing(self, state: DrawingShape) -> None:
        origin, current = state.origin, state.current
        dx, dy = current.x - origin.x, current.y - origin.y
        if state.kind == Mode.NODE:
            self._place_node(origin, current)
        elif state.kind == Mode.LINE:
            if math.hypot(dx, dy) >= LINE_MIN_LENGTH:
                line = self.scene.add_line(Line(self.scene.next_id(ElementKind.LINE), origin, current))
                self.select([(ElementKind.LINE, line.id)])
        elif state.kind == Mode.TEXT:
            x, y = min(origin.x, current.x), min(origin.y, current.y)
            block = TextBlock(self.scene.next_id(ElementKind.TEXT_BLOCK), x, y, text=DEFAULT_TEXT)
            if distance(origin, current) * self.camera.scale >= CLICK_THRESHOLD:
                block.width, block.height = abs(dx), abs(dy)
                block.normalize()
            self.scene.add_text_block(block)
            self.select([(ElementKind.TEXT_BLOCK, block.id)])
        elif state.kind == Mode.FRAME:
            if abs(dx) >= FRAME_MIN_DRAW and abs(dy) >= FRAME_MIN_DRAW:
                self.scene.frame = Frame(
                    min(origin.x, current.x), min(origin.y, current.y),
                    max(FRAME_MIN_SIZE, abs(dx)), max(FRAME_MIN_SIZE, abs(dy)),
                )
                self.select([FRAME_SELECTION])

    def _place_node(self, origin: Point, current: Point) -> None:
        node = Node(self.scene.next_id(ElementKind.NODE), origin.x, origin.y, self.current_shape)
        if distance(origin, current) * self.camera.scale >= CLICK_THRESHOLD:
            node.x, node.y = midpoint(origin, current)
            width, height = abs(current.x - origin.x), abs(current.y - origin.y)
            if width >= NODE_MIN_DRAG_SIZE and height >= NODE_MIN_DRAG_SIZE:
                if node.shape is ShapeKind.CIRCLE:
                    width = height = max(width, height)
                node.width, node.height = width, height
                node.normalize()
        self.scene.add_node(node)
        self.select([(ElementKind.NODE, node.id)])

    def _commit(self) -> bool:
        """Push the pre-gesture snapshot when the scene content changed."""
        before = self._before
        self.state = IDLE
        self._before = None
        if before is None or _content(capture_scene(self.scene)) == _content(before):
            return False
        self.history.push(before)
        self._notify()
        return True

    def _notify(self) -> None:
        if self.on_changed:
            self.on_changed()

    # ----------------------------
    # Discrete edits
    # ----------------------------

    def edit(self, mutate: Callable[[Scene], None]) -> bool:
        """Apply *mutate* to the scene as one undoable step."""
        if not self.idle:
            self.cancel()
        self._before = capture_scene(self.scene)
        mutate(self.scene)
        return self._commit()

    def delete_selection(self) -> bool:
        """Remove every selected element; nodes take their edges with them."""
        if not self.selection:
            return False
        selection = list(self.selection)

        def mutate(scene: Scene) -> None:
            for kind, element_id in selection:
                scene.remove(kind, element_id)

        self.selection = []
        changed = self.edit(mutate)
        trace(f"Deleted {len(selection)} selected element(s)", "GESTURE")
        return changed

    def set_label(self, kind: str, element_id: str, text: str) -> bool:
        """Set a node label, an edge label or a text block's text."""
        def mutate(scene: Scene) -> None:
            element = scene.element(kind, element_id)
            if element is None:
                return
            if kind == ElementKind.NODE:
                element.label = text
            elif kind == ElementKind.EDGE:
                if not text:
                    element.label = None
                elif element.label is None:
                    element.label = EdgeLabel(text=text)
                else:
                    element.label.text = text
            elif kind == ElementKind.TEXT_BLOCK:
                element.text = text

        return self.edit(mutate)

    def set_routing(self, routing: RoutingKind) -> bool:
        """Use *routing* for new edges and apply it to the selected edges."""
        self.current_routing = routing
        edge_ids = self.selected_ids(ElementKind.EDGE)
        if not edge_ids:
            return False

        def mutate(scene: Scene) -> None:
            for edge_id in edge_ids:
                edge = scene.edge_by_id(edge_id)
                if edge is not None:
                    edge.routing = routing

        return self.edit(mutate)
