"""
Tests for logging setup (humantime.utils.logging).
"""

import logging
from typing import Generator

import pytest
from rich.logging import RichHandler

from humantime.utils.logging import setup_logging


@pytest.fixture
def root_logger() -> Generator[logging.Logger, None, None]:
    """Restore the root logger's handlers and level after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_level_name(self, root_logger: logging.Logger) -> None:
        setup_logging("debug")

        assert root_logger.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in root_logger.handlers)

    def test_unknown_level_defaults_to_warning(self, root_logger: logging.Logger) -> None:
        setup_logging("chatty")

        assert root_logger.level == logging.WARNING

    def test_numeric_level(self, root_logger: logging.Logger) -> None:
        setup_logging(logging.INFO)

        assert root_logger.level == logging.INFO
