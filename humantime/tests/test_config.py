"""
Tests for configuration management (humantime.utils.config).

This module tests configuration loading, merging, and persistence.
"""

import json
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from humantime.utils.config import ConfigManager, get_config_manager


@pytest.fixture
def config_paths(temp_dir: Path) -> Generator[Path, None, None]:
    """Point platformdirs at a temporary directory."""
    with (
        patch("humantime.utils.config.user_config_dir") as mock_config_dir,
        patch("humantime.utils.config.user_data_dir") as mock_data_dir,
    ):
        mock_config_dir.return_value = str(temp_dir / "config")
        mock_data_dir.return_value = str(temp_dir / "data")
        yield temp_dir


class TestConfigManager:
    """Test cases for ConfigManager class."""

    def test_init_creates_directories(self) -> None:
        """Test that ConfigManager creates config and data directories."""
        with tempfile.TemporaryDirectory() as temp_dir:
            with (
                patch("humantime.utils.config.user_config_dir") as mock_config_dir,
                patch("humantime.utils.config.user_data_dir") as mock_data_dir,
            ):
                mock_config_dir.return_value = str(Path(temp_dir) / "config")
                mock_data_dir.return_value = str(Path(temp_dir) / "data")

                # Act
                config_manager = ConfigManager()

                # Assert
                assert config_manager.config_dir.exists()
                assert config_manager.data_dir.exists()
                assert config_manager.config_file == config_manager.config_dir / "config.json"

    def test_fresh_install_writes_defaults(self, config_paths: Path) -> None:
        """Test default configuration is created on fresh install."""
        # Act
        config_manager = ConfigManager()

        # Assert
        assert config_manager.config_file.exists()
        assert config_manager.get("date_format") == "%Y-%m-%d"
        assert config_manager.get_owner() == "local"
        assert config_manager.get_log_level() == "WARNING"
        assert config_manager.get_default_list_limit() == 20
        assert config_manager.get_note_separator() == " - "
        assert config_manager.get_data_dir() == config_paths / "data"

    def test_existing_config_merged_with_defaults(self, config_paths: Path) -> None:
        """Test that a partial config file keeps nested defaults."""
        # Arrange
        config_dir = config_paths / "config"
        config_dir.mkdir(parents=True)
        with open(config_dir / "config.json", "w") as f:
            json.dump({"time_format": "%I:%M %p", "colors": {"project": "blue"}}, f)

        # Act
        config_manager = ConfigManager()

        # Assert
        assert config_manager.get_time_format() == "%I:%M %p"
        assert config_manager.get_color("project") == "blue"
        assert config_manager.get_color("active") == "green"
        assert config_manager.show_seconds() is True

    def test_invalid_json_falls_back_to_defaults(self, config_paths: Path) -> None:
        config_dir = config_paths / "config"
        config_dir.mkdir(parents=True)
        (config_dir / "config.json").write_text("{not json")

        config_manager = ConfigManager()

        assert config_manager.get_date_format() == "%Y-%m-%d"

    def test_set_persists_dotted_key(self, config_paths: Path) -> None:
        # Arrange
        config_manager = ConfigManager()

        # Act
        config_manager.set("display.show_seconds", False)
        reloaded = ConfigManager()

        # Assert
        assert reloaded.show_seconds() is False
        assert reloaded.get("display") == {"show_seconds": False}

    def test_get_missing_key_returns_default(self, config_paths: Path) -> None:
        config_manager = ConfigManager()

        assert config_manager.get("no.such.key") is None
        assert config_manager.get("no.such.key", 5) == 5
        assert config_manager.get_color("unknown") == "white"

    def test_log_level_is_upper_case(self, config_paths: Path) -> None:
        config_manager = ConfigManager()
        config_manager.set("log_level", "debug")

        assert config_manager.get_log_level() == "DEBUG"

    def test_all_returns_copy(self, config_paths: Path) -> None:
        config_manager = ConfigManager()

        snapshot = config_manager.all()
        snapshot["colors"]["project"] = "red"

        assert config_manager.get_color("project") == "bold"

    def test_reset_to_defaults(self, config_paths: Path) -> None:
        config_manager = ConfigManager()
        config_manager.set("owner", "someone")

        config_manager.reset_to_defaults()

        assert config_manager.get_owner() == "local"
        assert json.loads(config_manager.config_file.read_text())["owner"] == "local"


class TestGetConfigManager:
    """Test cases for the global configuration manager."""

    def test_returns_singleton(self, config_paths: Path) -> None:
        with patch("humantime.utils.config._config_manager", None):
            first = get_config_manager()
            second = get_config_manager()

            assert first is second
