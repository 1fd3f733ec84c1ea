"""
shapes package

Shape registry, per-shape TikZ options and anchor sets.
"""

from shapes.registry import (
    AnchorDef,
    AnchorRecord,
    RegistryError,
    ShapeOptions,
    ShapeRegistry,
)
from shapes.builtin import create_default_registry

__all__ = [
    "AnchorDef",
    "AnchorRecord",
    "RegistryError",
    "ShapeOptions",
    "ShapeRegistry",
    "create_default_registry",
]
