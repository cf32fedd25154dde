"""
Pytest configuration and fixtures for Humantime tests.

This module provides shared fixtures and configuration for all test modules.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator, List, Optional
from unittest.mock import Mock

import pytest

from humantime.core.time_tracker import TimeTracker
from humantime.db.models import Block
from humantime.db.repository import (
    BlockRepository,
    GoalRepository,
    ProjectRepository,
    SessionRepository,
    UndoRepository,
)
from humantime.db.schema import DatabaseManager
from humantime.utils.config import ConfigManager

# Fixed offset so tests do not depend on the machine's timezone.
TEST_TZ = timezone(timedelta(hours=1))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def test_db_path(temp_dir: Path) -> Path:
    """Provide a test database path."""
    return temp_dir / "test_humantime.db"


@pytest.fixture
def db_manager(test_db_path: Path) -> DatabaseManager:
    """Provide a test database manager."""
    manager = DatabaseManager(test_db_path)
    manager.initialize_database()
    return manager


@pytest.fixture
def block_repository(db_manager: DatabaseManager) -> BlockRepository:
    return BlockRepository(db_manager)


@pytest.fixture
def session_repository(db_manager: DatabaseManager) -> SessionRepository:
    return SessionRepository(db_manager)


@pytest.fixture
def undo_repository(db_manager: DatabaseManager) -> UndoRepository:
    return UndoRepository(db_manager)


@pytest.fixture
def goal_repository(db_manager: DatabaseManager) -> GoalRepository:
    return GoalRepository(db_manager)


@pytest.fixture
def project_repository(db_manager: DatabaseManager) -> ProjectRepository:
    return ProjectRepository(db_manager)


@pytest.fixture
def time_tracker(temp_dir: Path) -> TimeTracker:
    """Provide a test time tracker instance."""
    return TimeTracker(temp_dir)


@pytest.fixture
def now() -> datetime:
    """Reference instant: Monday 2024-01-15 12:00 at UTC+1."""
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=TEST_TZ)


@pytest.fixture
def make_block() -> Callable[..., Block]:
    """Provide a factory for blocks with sensible defaults."""

    def _make(
        project_sid: str = "alpha",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        task_sid: str = "",
        note: str = "",
        tags: Optional[List[str]] = None,
    ) -> Block:
        return Block(
            project_sid=project_sid,
            task_sid=task_sid,
            note=note,
            tags=tags or [],
            timestamp_start=start or datetime(2024, 1, 15, 9, 0, 0, tzinfo=TEST_TZ),
            timestamp_end=end,
        )

    return _make


@pytest.fixture
def sample_blocks(make_block: Callable[..., Block]) -> List[Block]:
    """alpha 09:00-10:00, beta 10:00-11:00, alpha 11:00-11:30 on 2024-01-15."""
    day = datetime(2024, 1, 15, tzinfo=TEST_TZ)
    return [
        make_block("alpha", day.replace(hour=9), day.replace(hour=10), tags=["Deep"]),
        make_block("beta", day.replace(hour=10), day.replace(hour=11)),
        make_block(
            "alpha", day.replace(hour=11), day.replace(hour=11, minute=30), task_sid="api"
        ),
    ]


@pytest.fixture
def mock_config_manager() -> Mock:
    """Provide a mocked configuration manager."""
    mock_config = Mock(spec=ConfigManager)
    mock_config.get_data_dir.return_value = Path("/tmp/test_humantime")
    mock_config.get_owner.return_value = "local"
    mock_config.get_date_format.return_value = "%Y-%m-%d"
    mock_config.get_time_format.return_value = "%H:%M:%S"
    mock_config.get_log_level.return_value = "WARNING"
    mock_config.get_default_list_limit.return_value = 20
    mock_config.get_note_separator.return_value = " - "
    mock_config.show_seconds.return_value = True
    mock_config.get_color.return_value = "white"
    return mock_config
