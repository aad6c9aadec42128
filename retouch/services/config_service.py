"""
Configuration service for the Retouch application.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/retouch/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from retouch.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "retouch"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    # Pencil defaults for new markups
    "stroke_color": "#ff2d55",
    "brush_size": 6,
    # Outline drawn under the selected markup
    "highlight_color": "#06b6d4",
    # Comment-count badge at the centre of each markup
    "badge_color": "#0d8dea",
    # Hit-test padding around markup bounding boxes, in image pixels
    "hit_padding": 4.0,
    # Ctrl+wheel zoom factor per wheel unit: exp(-deltaY * rate)
    "wheel_zoom_rate": 0.0015,
    # Where the local document store keeps one JSON file per image
    "store_dir": str(Path.home() / ".local" / "share" / "retouch" / "store"),
    # Single-key tool shortcuts
    "shortcuts": {
        "select": "v",
        "pan": "h",
        "draw": "b",
        "toggle_palette": "t",
    },
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/retouch/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = self._deep_copy_defaults()

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            # Loaded values override defaults
            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Save back so new default keys are persisted
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = self._deep_copy_defaults()
            self._save_to_file()

        except OSError as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_copy_defaults(self) -> Dict[str, Any]:
        return copy.deepcopy(DEFAULT_CONFIG)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except OSError as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Pencil Settings ──────────────────────────────────────────────────

    @property
    def stroke_color(self) -> str:
        return self.get("stroke_color", DEFAULT_CONFIG["stroke_color"])

    @property
    def brush_size(self) -> int:
        try:
            return max(1, int(self.get("brush_size", DEFAULT_CONFIG["brush_size"])))
        except (TypeError, ValueError):
            return DEFAULT_CONFIG["brush_size"]

    # ─── Canvas Settings ──────────────────────────────────────────────────

    @property
    def highlight_color(self) -> str:
        return self.get("highlight_color", DEFAULT_CONFIG["highlight_color"])

    @property
    def badge_color(self) -> str:
        return self.get("badge_color", DEFAULT_CONFIG["badge_color"])

    @property
    def hit_padding(self) -> float:
        return float(self.get("hit_padding", DEFAULT_CONFIG["hit_padding"]))

    @property
    def wheel_zoom_rate(self) -> float:
        return float(self.get("wheel_zoom_rate", DEFAULT_CONFIG["wheel_zoom_rate"]))

    # ─── Storage Settings ─────────────────────────────────────────────────

    @property
    def store_dir(self) -> Path:
        """Directory of the local JSON document store."""
        return Path(self.get("store_dir", DEFAULT_CONFIG["store_dir"])).expanduser()

    # ─── Shortcut Settings ────────────────────────────────────────────────

    @property
    def shortcuts(self) -> Dict[str, str]:
        """Get all single-key shortcuts (action name -> key)."""
        return self.get("shortcuts", DEFAULT_CONFIG["shortcuts"])

    def shortcut(self, action: str) -> str:
        """Get the key bound to an action, e.g. shortcut("draw") -> "b"."""
        shortcuts = self.shortcuts
        return shortcuts.get(action, DEFAULT_CONFIG["shortcuts"].get(action, ""))
