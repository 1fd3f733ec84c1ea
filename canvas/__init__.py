"""
canvas package

PyQt6 widget and painter for the diagram canvas.
"""

from canvas.painter import ScenePainter, hex_to_qcolor, node_path
from canvas.view import DiagramCanvas

__all__ = [
    "DiagramCanvas",
    "ScenePainter",
    "hex_to_qcolor",
    "node_path",
]
