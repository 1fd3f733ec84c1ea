"""
shapes/registry.py

Shape registry: per-shape TikZ option factories and anchor sets.

A registry is built once by ``shapes.builtin.create_default_registry()``
and handed to the resolver and exporter; nothing here is global.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from geometry import Point
from models import Node, ShapeKind

# Registers a hex color and returns its TikZ name (None when invalid)
ColorRegistrar = Callable[[str], Optional[str]]

PointFunction = Callable[[Node], Point]


class RegistryError(ValueError):
    """Raised for an inconsistent shape or anchor registration."""


@dataclass
class ShapeOptions:
    """TikZ node options for one shape plus the libraries they need."""
    options: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)


ShapeFactory = Callable[[Node, ColorRegistrar], ShapeOptions]


@dataclass(frozen=True)
class AnchorDef:
    """Definition of one named connection point of a shape.

    Attributes:
        id: Canonical anchor name (e.g. "north east").
        point: Pure function of the node giving the unrotated world point.
        tikz: TikZ anchor name; defaults to ``id``.
        connectable: Whether edges may attach here.
        aliases: Extra names that resolve to this anchor.
    """
    id: str
    point: PointFunction
    tikz: Optional[str] = None
    connectable: bool = True
    aliases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AnchorRecord:
    """A registered anchor as returned by lookups.

    ``id`` is the name it was found under (possibly an alias);
    ``canonical_id`` is the definition's own id.
    """
    id: str
    canonical_id: str
    tikz: str
    connectable: bool
    aliases: Tuple[str, ...]
    point: PointFunction


def _anchor_name(name, shape: ShapeKind) -> str:
    if not isinstance(name, str) or not name.strip():
        raise RegistryError(f"Anchor names for {shape.value!r} must be non-empty strings")
    return name.strip()


class ShapeRegistry:
    """Maps each ShapeKind to its option factory and anchor table."""

    def __init__(self):
        self._factories: Dict[ShapeKind, ShapeFactory] = {}
        self._anchors: Dict[ShapeKind, Dict[str, AnchorRecord]] = {}
        self._canonical: Dict[ShapeKind, List[AnchorRecord]] = {}

    # --- factories ---

    def register(self, kind: ShapeKind, factory: ShapeFactory) -> None:
        if kind in self._factories:
            raise RegistryError(f"Shape {kind.value!r} is already registered")
        if not callable(factory):
            raise RegistryError(f"Factory for {kind.value!r} is not callable")
        self._factories[kind] = factory

    def list_shapes(self) -> List[ShapeKind]:
        return list(self._factories)

    def get_factory(self, kind: ShapeKind) -> Optional[ShapeFactory]:
        return self._factories.get(kind)

    # --- anchors ---

    def register_anchors(self, kind: ShapeKind, defs: Sequence[AnchorDef]) -> None:
        """
        Register the anchor set of a shape.

        Raises:
            RegistryError: empty set, missing point function, or an id or
                alias that collides with another name of the same shape
        """
        if kind in self._anchors:
            raise RegistryError(f"Anchors for {kind.value!r} are already registered")
        if not defs:
            raise RegistryError(f"Anchor set for {kind.value!r} is empty")

        table: Dict[str, AnchorRecord] = {}
        canonical: List[AnchorRecord] = []
        for anchor in defs:
            anchor_id = _anchor_name(anchor.id, kind)
            if not callable(anchor.point):
                raise RegistryError(f"Anchor {anchor_id!r} of {kind.value!r} has no point function")
            aliases = tuple(_anchor_name(a, kind) for a in anchor.aliases)
            tikz = _anchor_name(anchor.tikz or anchor_id, kind)
            for name in (anchor_id,) + aliases:
                if name in table:
                    raise RegistryError(
                        f"Duplicate anchor name {name!r} for {kind.value!r}; "
                        "anchor ids and aliases must be unique"
                    )
                table[name] = AnchorRecord(
                    id=name,
                    canonical_id=anchor_id,
                    tikz=tikz,
                    connectable=anchor.connectable,
                    aliases=aliases,
                    point=anchor.point,
                )
            canonical.append(table[anchor_id])

        self._anchors[kind] = table
        self._canonical[kind] = canonical

    def has_anchors(self, kind: ShapeKind) -> bool:
        return kind in self._anchors

    def find_anchor(self, kind: ShapeKind, name: Optional[str]) -> Optional[AnchorRecord]:
        if not isinstance(name, str):
            return None
        table = self._anchors.get(kind)
        if table is None:
            return None
        return table.get(name.strip())

    def anchors(self, kind: ShapeKind) -> List[AnchorRecord]:
        """Unique anchors of a shape in registration order."""
        return list(self._canonical.get(kind, []))

    # --- validation ---

    def verify_complete(self) -> None:
        """Raise RegistryError unless every ShapeKind has a factory and anchors."""
        missing = [
            kind.value for kind in ShapeKind
            if kind not in self._factories or kind not in self._anchors
        ]
        if missing:
            raise RegistryError(f"Shapes without a factory or anchor set: {', '.join(missing)}")
