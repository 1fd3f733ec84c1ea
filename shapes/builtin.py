"""
shapes/builtin.py

Registers the eleven built-in shapes.
"""

from __future__ import annotations

from debug_trace import trace
from shapes import circle, curved, cylinder, polygons, rectangles
from shapes.registry import ShapeRegistry


def create_default_registry() -> ShapeRegistry:
    """
    Build a registry holding every built-in shape.

    Raises:
        RegistryError: a ShapeKind is missing its factory or anchor set
    """
    registry = ShapeRegistry()
    for module in (circle, rectangles, polygons, curved, cylinder):
        module.register(registry)
    registry.verify_complete()
    trace(f"Shape registry ready ({len(registry.list_shapes())} shapes)", "INFO")
    return registry
