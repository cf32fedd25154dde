"""
Configuration management for Humantime.

This module handles user configuration, data directories, and settings.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, cast

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``overrides`` on a copy of ``defaults``."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manages Humantime configuration and data directories."""

    def __init__(self) -> None:
        """Initialize configuration manager."""
        self.app_name = "humantime"
        self.config_dir = Path(user_config_dir(self.app_name))
        self.data_dir = Path(user_data_dir(self.app_name))
        self.config_file = self.config_dir / "config.json"

        # Ensure directories exist
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Default configuration
        self.default_config: Dict[str, Any] = {
            "data_directory": str(self.data_dir),
            "owner": "local",
            "date_format": "%Y-%m-%d",
            "time_format": "%H:%M:%S",
            "log_level": "WARNING",
            "default_list_limit": 20,
            "note_separator": " - ",
            "colors": {
                "active": "green",
                "inactive": "dim",
                "duration": "cyan",
                "project": "bold",
                "task": "magenta",
                "tags": "yellow",
            },
            "display": {
                "show_seconds": True,
            },
        }

        # Load existing configuration
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, creating default if it doesn't exist."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    loaded_config = json.load(f)

                # Merge with defaults to ensure all keys exist
                return _merge(self.default_config, loaded_config)

            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Could not load config file {self.config_file}: {e}")
                logger.warning("Using default configuration")
                return copy.deepcopy(self.default_config)

        # Create default config file
        self._save_config(self.default_config)
        return copy.deepcopy(self.default_config)

    def _save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, "w") as f:
                json.dump(config, f, indent=2, sort_keys=True)
        except IOError as e:
            logger.warning(f"Could not save config file {self.config_file}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, with optional default."""
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dotted key and save."""
        keys = key.split(".")
        config = self._config

        # Navigate to the parent dictionary
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        self._save_config(self._config)

    def all(self) -> Dict[str, Any]:
        """Return a copy of the full configuration."""
        return copy.deepcopy(self._config)

    def get_data_dir(self) -> Path:
        """Get the data directory path."""
        data_dir_str = self.get("data_directory", str(self.data_dir))
        return Path(data_dir_str).expanduser()

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self.config_dir

    def get_owner(self) -> str:
        return cast(str, self.get("owner", "local"))

    def get_date_format(self) -> str:
        """Get the date format string."""
        return cast(str, self.get("date_format", "%Y-%m-%d"))

    def get_time_format(self) -> str:
        """Get the time format string."""
        return cast(str, self.get("time_format", "%H:%M:%S"))

    def get_log_level(self) -> str:
        return cast(str, self.get("log_level", "WARNING")).upper()

    def get_default_list_limit(self) -> int:
        """Get the number of blocks listed when no limit is given."""
        return cast(int, self.get("default_list_limit", 20))

    def get_note_separator(self) -> str:
        return cast(str, self.get("note_separator", " - "))

    def get_color(self, element: str) -> str:
        """Get color for a UI element."""
        return cast(str, self.get(f"colors.{element}", "white"))

    def show_seconds(self) -> bool:
        """Check if seconds should be shown in time displays."""
        return cast(bool, self.get("display.show_seconds", True))

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = copy.deepcopy(self.default_config)
        self._save_config(self._config)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
