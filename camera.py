"""
camera.py

Pan/zoom transform between world space (scene pixels) and screen space
(widget pixels):

    screen = world * scale + offset
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from geometry import Point
from settings import get_settings
from utils import clamp, coerce_float


def _zoom_limits() -> Tuple[float, float]:
    zoom = get_settings().settings.canvas.zoom
    return zoom.min_scale, zoom.max_scale


@dataclass
class Camera:
    """Viewport camera.

    ``scale`` is kept inside the configured zoom limits (default 0.25-4.0).
    """
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        self.scale = self.clamp_scale(self.scale)

    @staticmethod
    def clamp_scale(scale: float) -> float:
        lo, hi = _zoom_limits()
        return clamp(scale, lo, hi)

    def world_to_screen(self, x: float, y: float) -> Point:
        return Point(x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def screen_to_world(self, sx: float, sy: float) -> Point:
        return Point((sx - self.offset_x) / self.scale, (sy - self.offset_y) / self.scale)

    def zoom_at(self, sx: float, sy: float, factor: float) -> bool:
        """
        Zoom by *factor* keeping the world point under (sx, sy) fixed.

        Returns:
            False when the clamped scale did not change (nothing moved)
        """
        new_scale = self.clamp_scale(self.scale * factor)
        if new_scale == self.scale:
            return False
        world = self.screen_to_world(sx, sy)
        self.scale = new_scale
        self.offset_x = sx - world.x * new_scale
        self.offset_y = sy - world.y * new_scale
        return True

    def set_scale(self, scale: float, sx: float = 0.0, sy: float = 0.0) -> bool:
        """Jump to an absolute scale, anchored at screen point (sx, sy)."""
        return self.zoom_at(sx, sy, scale / self.scale)

    def pan_by(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy

    def center_on(self, world: Point, viewport_w: float, viewport_h: float) -> None:
        self.offset_x = viewport_w / 2 - world.x * self.scale
        self.offset_y = viewport_h / 2 - world.y * self.scale

    def fit_rect(self, x: float, y: float, w: float, h: float,
                 viewport_w: float, viewport_h: float, padding: float = 64.0) -> None:
        """Scale and center so the world rect fits the viewport with *padding* px spare."""
        if w <= 0 or h <= 0 or viewport_w <= 0 or viewport_h <= 0:
            return
        avail_w = max(viewport_w - padding * 2, 1.0)
        avail_h = max(viewport_h - padding * 2, 1.0)
        self.scale = self.clamp_scale(min(avail_w / w, avail_h / h))
        self.center_on(Point(x + w / 2, y + h / 2), viewport_w, viewport_h)

    def visible_world_rect(self, viewport_w: float, viewport_h: float) -> Tuple[float, float, float, float]:
        """Return (left, top, right, bottom) of the world area on screen."""
        top_left = self.screen_to_world(0, 0)
        bottom_right = self.screen_to_world(viewport_w, viewport_h)
        return top_left.x, top_left.y, bottom_right.x, bottom_right.y

    def to_dict(self) -> Dict[str, Any]:
        return {"scale": self.scale, "offsetX": self.offset_x, "offsetY": self.offset_y}

    @classmethod
    def from_dict(cls, d: Any) -> "Camera":
        if not isinstance(d, dict):
            return cls()
        return cls(
            scale=coerce_float(d.get("scale"), 1.0) or 1.0,
            offset_x=coerce_float(d.get("offsetX"), 0.0),
            offset_y=coerce_float(d.get("offsetY"), 0.0),
        )
