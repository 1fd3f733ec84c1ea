"""
anchors.py

Anchor resolver: turns (node, anchor name) into a world point.

Lookups go through the shape registry; a shape without an anchor set, or
a name the shape does not know, falls back to a cardinal set derived from
the node's half extents. The node rotation and the border rotation are
applied together as one rotation about the node center.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from geometry import Point, is_finite_point, rotate_point
from metrics import node_dimensions
from models import Node
from shapes.registry import ShapeRegistry

# Legacy port names to TikZ anchor names
PORT_MAP: Dict[str, str] = {
    "north": "north",
    "south": "south",
    "east": "east",
    "west": "west",
    "northeast": "north east",
    "southeast": "south east",
    "southwest": "south west",
    "northwest": "north west",
}

CARDINALS = ("north", "south", "east", "west")

# name -> (sx, sy) in half-extent units, screen axes
_FALLBACK_RATIOS: Dict[str, Tuple[float, float]] = {
    "north": (0, -1), "n": (0, -1),
    "south": (0, 1), "s": (0, 1),
    "east": (1, 0), "e": (1, 0),
    "west": (-1, 0), "w": (-1, 0),
    "north east": (1, -1), "northeast": (1, -1),
    "north west": (-1, -1), "northwest": (-1, -1),
    "south east": (1, 1), "southeast": (1, 1),
    "south west": (-1, 1), "southwest": (-1, 1),
}


@dataclass(frozen=True)
class ResolvedAnchor:
    """An anchor with its rotated world point, for handle rendering."""
    name: str
    tikz: str
    connectable: bool
    point: Point


def fallback_point(node: Node, name: Optional[str]) -> Point:
    """Cardinal/diagonal point from the half extents; unknown names give the center."""
    ratios = _FALLBACK_RATIOS.get((name or "").strip())
    if ratios is None:
        return Point(node.x, node.y)
    hw, hh = node_dimensions(node)
    return Point(node.x + hw * ratios[0], node.y + hh * ratios[1])


class AnchorResolver:
    """Resolves named anchors on nodes through a ShapeRegistry."""

    def __init__(self, registry: ShapeRegistry):
        self.registry = registry

    @staticmethod
    def rotation(node: Node) -> float:
        """Total rotation of a node's outline in radians."""
        return math.radians((node.rotate or 0.0) + (node.border_rotate or 0.0))

    def _rotate(self, node: Node, point: Point) -> Point:
        return rotate_point(point, node.center, self.rotation(node))

    def resolve(self, node: Node, name: Optional[str]) -> Optional[Point]:
        """
        World position of anchor *name* on *node*.

        Returns:
            The rotated point, or None when the computation is not finite
        """
        record = self.registry.find_anchor(node.shape, name)
        point_fn: Callable[[Node], Point] = record.point if record else (
            lambda n: fallback_point(n, name)
        )
        try:
            base = point_fn(node)
        except (ArithmeticError, ValueError):
            base = None
        if not is_finite_point(base):
            return None
        resolved = self._rotate(node, Point(*base))
        return resolved if is_finite_point(resolved) else None

    def anchor_points(self, node: Node) -> List[ResolvedAnchor]:
        """Every unique anchor of the node with its resolved point."""
        records = self.registry.anchors(node.shape)
        result: List[ResolvedAnchor] = []
        if not records:
            for name in CARDINALS:
                point = self.resolve(node, name)
                if point is not None:
                    result.append(ResolvedAnchor(name, name, True, point))
            return result
        for record in records:
            point = self.resolve(node, record.canonical_id)
            if point is not None:
                result.append(ResolvedAnchor(record.canonical_id, record.tikz,
                                             record.connectable, point))
        return result

    def connectable_points(self, node: Node) -> List[ResolvedAnchor]:
        return [a for a in self.anchor_points(node) if a.connectable]

    def tikz_anchor(self, node: Node, name: Optional[str]) -> Optional[str]:
        """TikZ spelling of an anchor: registry record, then port map, then the name."""
        if not name:
            return None
        record = self.registry.find_anchor(node.shape, name)
        if record is not None:
            return record.tikz
        return PORT_MAP.get(name, name)

    def nearest_cardinal(self, node: Node, toward: Point) -> str:
        """The cardinal anchor of *node* closest to *toward*."""
        best_name = "east"
        best_distance = math.inf
        for name in CARDINALS:
            point = self.resolve(node, name)
            if point is None:
                continue
            d = math.hypot(point.x - toward.x, point.y - toward.y)
            if d < best_distance:
                best_name, best_distance = name, d
        return best_name
