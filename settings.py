"""
settings.py

Persistent settings management for ParkView.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/parkview/settings.toml
    - macOS: ~/Library/Application Support/parkview/settings.toml
    - Linux: ~/.config/parkview/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "parkview"

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
# Backend API Settings
# =============================================================================

@dataclass
class ApiSettings:
    """Backend connection settings.

    Defaults:
        base_url: "http://localhost:3000/api"
        timeout_s: 15.0
    """
    base_url: str = "http://localhost:3000/api"  # Default: local dev backend
    timeout_s: float = 15.0                      # Default: 15 seconds


# =============================================================================
# Session Settings
# =============================================================================

@dataclass
class SessionSettings:
    """Layout session polling and zoom settings.

    Defaults:
        poll_interval_ms: 10000
        min_zoom: 0.5
        max_zoom: 5.0
        wheel_factor: 1.15
    """
    poll_interval_ms: int = 10000   # Default: 10 seconds between occupancy polls
    min_zoom: float = 0.5           # Default: 0.5x
    max_zoom: float = 5.0           # Default: 5x
    wheel_factor: float = 1.15      # Default: 15% per scroll step

    def clamp_zoom(self, zoom: float) -> float:
        """Clamp a zoom factor into ``[min_zoom, max_zoom]``."""
        return max(self.min_zoom, min(self.max_zoom, zoom))


# =============================================================================
# Parser Settings
# =============================================================================

@dataclass
class ParserSettings:
    """Diagram parser heuristics.

    Defaults:
        default_viewbox: [0, 0, 276, 322]
        fallback_rect_size: 10.0
        text_match_tolerance: 20.0
        text_spot_width: 30.0
        text_spot_height: 20.0
        fallback_width_divisor: 5.0
        fallback_height_divisor: 10.0
    """
    default_viewbox: List[float] = field(default_factory=lambda: [0.0, 0.0, 276.0, 322.0])
    fallback_rect_size: float = 10.0       # Default: used when a rect omits width/height
    text_match_tolerance: float = 20.0     # Default: 20 units between text anchor and spot corner
    text_spot_width: float = 30.0          # Default: synthesized text spot width
    text_spot_height: float = 20.0         # Default: synthesized text spot height
    fallback_width_divisor: float = 5.0    # Default: group fallback box is viewBox width / 5
    fallback_height_divisor: float = 10.0  # Default: group fallback box is viewBox height / 10


# =============================================================================
# Color Settings
# =============================================================================

@dataclass
class ColorSettings:
    """Spot overlay colors as #RRGGBBAA.

    Defaults:
        owned: blue, occupied: red, reserved: amber,
        available: green, unknown: translucent gray
    """
    owned_fill: str = "#007AFF4D"
    owned_border: str = "#007AFFCC"
    occupied_fill: str = "#FF3B3033"
    occupied_border: str = "#FF3B3099"
    reserved_fill: str = "#FFCC004D"
    reserved_border: str = "#FFCC00CC"
    available_fill: str = "#34C75933"
    available_border: str = "#34C75999"
    unknown_fill: str = "#C8C8C81A"
    unknown_border: str = "#C8C8C866"

    def pair(self, state: str) -> Tuple[str, str]:
        """Return ``(fill, border)`` for a presentation state name."""
        fill = getattr(self, f"{state}_fill", self.unknown_fill)
        border = getattr(self, f"{state}_border", self.unknown_border)
        return fill, border


# =============================================================================
# Main Application Settings
# =============================================================================

@dataclass
class AppSettings:
    """Root settings container for all application settings."""
    api: ApiSettings = field(default_factory=ApiSettings)
    session: SessionSettings = field(default_factory=SessionSettings)
    parser: ParserSettings = field(default_factory=ParserSettings)
    colors: ColorSettings = field(default_factory=ColorSettings)


# =============================================================================
# Settings Manager
# =============================================================================

_COLOR_KEYS = (
    "owned_fill", "owned_border",
    "occupied_fill", "occupied_border",
    "reserved_fill", "reserved_border",
    "available_fill", "available_border",
    "unknown_fill", "unknown_border",
)


class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
    """

    def __init__(self, app_name: str = APP_NAME):
        self.settings_dir = Path(platformdirs.user_config_dir(app_name))
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
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError):
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

        api = data.get("api", {})
        settings.api.base_url = str(api.get("base_url", settings.api.base_url))
        settings.api.timeout_s = float(api.get("timeout_s", settings.api.timeout_s))

        session = data.get("session", {})
        settings.session.poll_interval_ms = int(session.get("poll_interval_ms", settings.session.poll_interval_ms))
        settings.session.min_zoom = float(session.get("min_zoom", settings.session.min_zoom))
        settings.session.max_zoom = float(session.get("max_zoom", settings.session.max_zoom))
        settings.session.wheel_factor = float(session.get("wheel_factor", settings.session.wheel_factor))

        parser = data.get("parser", {})
        vb = parser.get("default_viewbox", settings.parser.default_viewbox)
        if isinstance(vb, list) and len(vb) == 4:
            settings.parser.default_viewbox = [float(v) for v in vb]
        settings.parser.fallback_rect_size = float(parser.get("fallback_rect_size", settings.parser.fallback_rect_size))
        settings.parser.text_match_tolerance = float(parser.get("text_match_tolerance", settings.parser.text_match_tolerance))
        settings.parser.text_spot_width = float(parser.get("text_spot_width", settings.parser.text_spot_width))
        settings.parser.text_spot_height = float(parser.get("text_spot_height", settings.parser.text_spot_height))
        settings.parser.fallback_width_divisor = float(parser.get("fallback_width_divisor", settings.parser.fallback_width_divisor))
        settings.parser.fallback_height_divisor = float(parser.get("fallback_height_divisor", settings.parser.fallback_height_divisor))

        colors = data.get("colors", {})
        for key in _COLOR_KEYS:
            setattr(settings.colors, key, str(colors.get(key, getattr(settings.colors, key))))

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

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
            "api": {
                "base_url": s.api.base_url,
                "timeout_s": s.api.timeout_s,
            },
            "session": {
                "poll_interval_ms": s.session.poll_interval_ms,
                "min_zoom": s.session.min_zoom,
                "max_zoom": s.session.max_zoom,
                "wheel_factor": s.session.wheel_factor,
            },
            "parser": {
                "default_viewbox": list(s.parser.default_viewbox),
                "fallback_rect_size": s.parser.fallback_rect_size,
                "text_match_tolerance": s.parser.text_match_tolerance,
                "text_spot_width": s.parser.text_spot_width,
                "text_spot_height": s.parser.text_spot_height,
                "fallback_width_divisor": s.parser.fallback_width_divisor,
                "fallback_height_divisor": s.parser.fallback_height_divisor,
            },
            "colors": {key: getattr(s.colors, key) for key in _COLOR_KEYS},
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
