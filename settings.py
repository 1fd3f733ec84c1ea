"""
settings.py

Persistent settings management for TikzCanvas.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/tikzcanvas/settings.toml
    - macOS: ~/Library/Application Support/tikzcanvas/settings.toml
    - Linux: ~/.config/tikzcanvas/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "tikzcanvas"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasHandleSettings:
    """Interactive handle settings (screen pixels).

    Defaults:
        anchor_radius: 8.0
        anchor_hitbox_factor: 1.75
        line_handle_radius: 12.0
        text_handle_size: 12.0
    """
    anchor_radius: float = 8.0           # Default: 8.0 pixels
    anchor_hitbox_factor: float = 1.75   # Default: 1.75x the drawn radius
    line_handle_radius: float = 12.0     # Default: 12.0 pixels
    text_handle_size: float = 12.0       # Default: 12.0 pixels


@dataclass
class CanvasHitSettings:
    """Pick tolerances, constant in screen pixels regardless of zoom.

    Defaults:
        edge_tolerance: 10.0
        line_tolerance: 10.0
        curve_samples: 24
        label_padding: 8.0
        label_char_width: 8.0
        label_height: 18.0
        frame_handle_size: 16.0
        frame_hit_padding: 12.0
    """
    edge_tolerance: float = 10.0      # Default: 10.0 pixels
    line_tolerance: float = 10.0      # Default: 10.0 pixels
    curve_samples: int = 24           # Default: 24 steps along a curved edge
    label_padding: float = 8.0        # Default: 8.0 pixels
    label_char_width: float = 8.0     # Default: 8.0 pixels per character
    label_height: float = 18.0        # Default: 18.0 pixels
    frame_handle_size: float = 16.0   # Default: 16.0 pixels
    frame_hit_padding: float = 12.0   # Default: 12.0 pixels


@dataclass
class CanvasZoomSettings:
    """Zoom behavior settings.

    Defaults:
        wheel_factor: 1.15
        min_scale: 0.25
        max_scale: 4.0
    """
    wheel_factor: float = 1.15  # Default: 1.15 (15% per scroll step)
    min_scale: float = 0.25     # Default: 0.25
    max_scale: float = 4.0      # Default: 4.0


@dataclass
class CanvasGridSettings:
    """Background grid settings.

    Defaults:
        spacing: 64
        visible: True
    """
    spacing: int = 64       # Default: 64 world pixels
    visible: bool = True    # Default: True


@dataclass
class CanvasSettings:
    """All canvas-related settings."""
    handles: CanvasHandleSettings = field(default_factory=CanvasHandleSettings)
    hit: CanvasHitSettings = field(default_factory=CanvasHitSettings)
    zoom: CanvasZoomSettings = field(default_factory=CanvasZoomSettings)
    grid: CanvasGridSettings = field(default_factory=CanvasGridSettings)


# =============================================================================
# Export Settings
# =============================================================================

@dataclass
class ExportSettings:
    """TikZ export defaults applied to new scenes.

    Defaults:
        edge_thickness: 2.5
        edge_label_alignment: "right"
    """
    edge_thickness: float = 2.5             # Default: 2.5 pixels
    edge_label_alignment: str = "right"     # Default: "right" (auto | left | center | right)


# =============================================================================
# History Settings
# =============================================================================

@dataclass
class HistorySettings:
    """Undo history settings.

    Defaults:
        limit: 100
    """
    limit: int = 100  # Default: 100 snapshots


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        theme: Canvas palette name ("dark" or "light").
        workspace_dir: Default directory for opening/saving scenes.
        canvas: Canvas-related settings.
        export: TikZ export defaults.
        history: Undo history settings.
    """
    # UI Settings
    theme: str = "dark"  # Default: "dark"

    # Workspace directory for scene save/load (empty = ~/Documents/TikzCanvas)
    workspace_dir: str = ""

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    history: HistorySettings = field(default_factory=HistorySettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Optional explicit directory (used by tests).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError, AttributeError, TypeError):
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        # General section
        general = data.get("general", {})
        settings.theme = general.get("theme", settings.theme)
        settings.workspace_dir = general.get("workspace_dir", settings.workspace_dir)

        # Canvas section
        canvas = data.get("canvas", {})
        if "handles" in canvas:
            h = canvas["handles"]
            settings.canvas.handles.anchor_radius = h.get("anchor_radius", settings.canvas.handles.anchor_radius)
            settings.canvas.handles.anchor_hitbox_factor = h.get("anchor_hitbox_factor", settings.canvas.handles.anchor_hitbox_factor)
            settings.canvas.handles.line_handle_radius = h.get("line_handle_radius", settings.canvas.handles.line_handle_radius)
            settings.canvas.handles.text_handle_size = h.get("text_handle_size", settings.canvas.handles.text_handle_size)
        if "hit" in canvas:
            ht = canvas["hit"]
            settings.canvas.hit.edge_tolerance = ht.get("edge_tolerance", settings.canvas.hit.edge_tolerance)
            settings.canvas.hit.line_tolerance = ht.get("line_tolerance", settings.canvas.hit.line_tolerance)
            settings.canvas.hit.curve_samples = ht.get("curve_samples", settings.canvas.hit.curve_samples)
            settings.canvas.hit.label_padding = ht.get("label_padding", settings.canvas.hit.label_padding)
            settings.canvas.hit.label_char_width = ht.get("label_char_width", settings.canvas.hit.label_char_width)
            settings.canvas.hit.label_height = ht.get("label_height", settings.canvas.hit.label_height)
            settings.canvas.hit.frame_handle_size = ht.get("frame_handle_size", settings.canvas.hit.frame_handle_size)
            settings.canvas.hit.frame_hit_padding = ht.get("frame_hit_padding", settings.canvas.hit.frame_hit_padding)
        if "zoom" in canvas:
            zm = canvas["zoom"]
            settings.canvas.zoom.wheel_factor = zm.get("wheel_factor", settings.canvas.zoom.wheel_factor)
            settings.canvas.zoom.min_scale = zm.get("min_scale", settings.canvas.zoom.min_scale)
            settings.canvas.zoom.max_scale = zm.get("max_scale", settings.canvas.zoom.max_scale)
        if "grid" in canvas:
            g = canvas["grid"]
            settings.canvas.grid.spacing = g.get("spacing", settings.canvas.grid.spacing)
            settings.canvas.grid.visible = g.get("visible", settings.canvas.grid.visible)

        # Export section
        export = data.get("export", {})
        settings.export.edge_thickness = export.get("edge_thickness", settings.export.edge_thickness)
        settings.export.edge_label_alignment = export.get("edge_label_alignment", settings.export.edge_label_alignment)

        # History section
        history = data.get("history", {})
        settings.history.limit = history.get("limit", settings.history.limit)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        # Ensure directory exists
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        # Convert settings to TOML structure
        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "theme": s.theme,
                "workspace_dir": s.workspace_dir,
            },
            "canvas": {
                "handles": {
                    "anchor_radius": s.canvas.handles.anchor_radius,
                    "anchor_hitbox_factor": s.canvas.handles.anchor_hitbox_factor,
                    "line_handle_radius": s.canvas.handles.line_handle_radius,
                    "text_handle_size": s.canvas.handles.text_handle_size,
                },
                "hit": {
                    "edge_tolerance": s.canvas.hit.edge_tolerance,
                    "line_tolerance": s.canvas.hit.line_tolerance,
                    "curve_samples": s.canvas.hit.curve_samples,
                    "label_padding": s.canvas.hit.label_padding,
                    "label_char_width": s.canvas.hit.label_char_width,
                    "label_height": s.canvas.hit.label_height,
                    "frame_handle_size": s.canvas.hit.frame_handle_size,
                    "frame_hit_padding": s.canvas.hit.frame_hit_padding,
                },
                "zoom": {
                    "wheel_factor": s.canvas.zoom.wheel_factor,
                    "min_scale": s.canvas.zoom.min_scale,
                    "max_scale": s.canvas.zoom.max_scale,
                },
                "grid": {
                    "spacing": s.canvas.grid.spacing,
                    "visible": s.canvas.grid.visible,
                },
            },
            "export": {
                "edge_thickness": s.export.edge_thickness,
                "edge_label_alignment": s.export.edge_label_alignment,
            },
            "history": {
                "limit": s.history.limit,
            },
        }

    def get_workspace_dir(self) -> Path:
        """Get the resolved workspace directory path.

        Returns:
            Path to workspace directory. Falls back to ~/Documents/TikzCanvas
            if workspace_dir setting is empty.
        """
        if self.settings.workspace_dir:
            return Path(self.settings.workspace_dir)
        return Path.home() / "Documents" / "TikzCanvas"
