"""
Tests for database repositories (humantime.db.repository).

This module tests the key-value repositories against a real SQLite
database created in a temporary directory.
"""

import sqlite3
from datetime import datetime, timedelta
from typing import Callable

import pytest

from humantime.db.models import (
    KEY_ACTIVE_BLOCK,
    ActiveSessionRecord,
    Block,
    Goal,
    GoalType,
    UndoAction,
    UndoState,
)
from humantime.db.repository import (
    BlockRepository,
    GoalRepository,
    ProjectRepository,
    SessionRepository,
    UndoRepository,
)
from humantime.db.schema import SCHEMA_VERSION, DatabaseManager
from humantime.errors import NotFoundError

from .conftest import TEST_TZ


class TestDatabaseManager:
    """Test cases for DatabaseManager."""

    def test_initialize_creates_schema(self, db_manager: DatabaseManager) -> None:
        # Act
        with db_manager.get_connection() as conn:
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
            version = db_manager._get_schema_version(conn)

        # Assert
        assert {"records", "schema_version"} <= tables
        assert version == SCHEMA_VERSION

    def test_initialize_is_idempotent(self, db_manager: DatabaseManager) -> None:
        db_manager.initialize_database()

        with db_manager.get_connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
        assert count == 1

    def test_transaction_rolls_back_on_error(
        self,
        db_manager: DatabaseManager,
        block_repository: BlockRepository,
        make_block: Callable[..., Block],
    ) -> None:
        """Test that a failing transaction leaves no partial writes."""
        # Arrange
        block = make_block()

        # Act
        with pytest.raises(RuntimeError):
            with db_manager.transaction():
                block_repository.create(block)
                raise RuntimeError("boom")

        # Assert
        with pytest.raises(NotFoundError):
            block_repository.get(block.key)

    def test_nested_transactions_join_outer(
        self,
        db_manager: DatabaseManager,
        block_repository: BlockRepository,
        make_block: Callable[..., Block],
    ) -> None:
        first = make_block("alpha")
        second = make_block("beta")

        with pytest.raises(RuntimeError):
            with db_manager.transaction():
                block_repository.create(first)
                with db_manager.transaction():
                    block_repository.create(second)
                raise RuntimeError("boom")

        assert block_repository.list_all() == []

    def test_database_stats(
        self,
        db_manager: DatabaseManager,
        block_repository: BlockRepository,
        session_repository: SessionRepository,
        make_block: Callable[..., Block],
    ) -> None:
        # Arrange
        block_repository.create(make_block())
        block_repository.create(make_block())
        session_repository.set(ActiveSessionRecord())

        # Act
        stats = db_manager.get_database_stats()

        # Assert
        assert stats["total_records"] == 3
        assert stats["total_blocks"] == 2
        assert stats["database_size"] > 0


class TestBlockRepository:
    """Test cases for BlockRepository."""

    def test_create_and_get(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        # Arrange
        block = make_block("alpha", task_sid="api", note="hello", tags=["Deep"])

        # Act
        block_repository.create(block)
        retrieved = block_repository.get(block.key)

        # Assert
        assert retrieved == block
        assert retrieved.timestamp_start == block.timestamp_start

    def test_create_duplicate_key_fails(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        block = make_block()
        block_repository.create(block)

        with pytest.raises(sqlite3.IntegrityError):
            block_repository.create(block)

    def test_get_missing_raises(self, block_repository: BlockRepository) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            block_repository.get("block:missing")

        assert exc_info.value.kind == "block"

    def test_update(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        # Arrange
        block = make_block()
        block_repository.create(block)
        ended = block.model_copy(update={"timestamp_end": block.timestamp_start + timedelta(hours=1)})

        # Act
        block_repository.update(ended)

        # Assert
        assert block_repository.get(block.key).is_active is False

    def test_update_missing_raises(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        with pytest.raises(NotFoundError):
            block_repository.update(make_block())

    def test_restore_recreates_deleted_block(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        block = make_block()
        block_repository.create(block)
        block_repository.delete(block.key)

        block_repository.restore(block)

        assert block_repository.get(block.key) == block

    def test_delete(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        block = make_block()
        block_repository.create(block)

        assert block_repository.delete(block.key) is True
        assert block_repository.delete(block.key) is False

    def test_list_all_in_insertion_order(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        """Test that blocks come back in the order they were stored, not key order."""
        # Arrange
        blocks = [make_block(p) for p in ("alpha", "beta", "gamma", "delta")]
        for block in blocks:
            block_repository.create(block)

        # Act
        result = block_repository.list_all()

        # Assert
        assert [b.key for b in result] == [b.key for b in blocks]

    def test_list_all_ignores_other_records(
        self,
        block_repository: BlockRepository,
        session_repository: SessionRepository,
        make_block: Callable[..., Block],
    ) -> None:
        block_repository.create(make_block())
        session_repository.set(ActiveSessionRecord(active_block_key="block:x"))

        assert len(block_repository.list_all()) == 1

    def test_find_by_prefix(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        # Arrange
        block = make_block().model_copy(update={"key": "block:abc12345-0000"})
        other = make_block().model_copy(update={"key": "block:abd99999-0000"})
        block_repository.create(block)
        block_repository.create(other)

        # Act & Assert
        assert [b.key for b in block_repository.find_by_prefix("abc")] == [block.key]
        assert [b.key for b in block_repository.find_by_prefix("block:abc1")] == [block.key]
        assert len(block_repository.find_by_prefix("ab")) == 2
        assert block_repository.find_by_prefix("zzz") == []

    def test_prefix_with_like_wildcards_is_literal(
        self, block_repository: BlockRepository, make_block: Callable[..., Block]
    ) -> None:
        block_repository.create(make_block())

        assert block_repository.find_by_prefix("%") == []
        assert block_repository.find_by_prefix("_") == []


class TestSessionAndUndoRepositories:
    """Test cases for the singleton session and undo records."""

    def test_session_defaults_to_empty(self, session_repository: SessionRepository) -> None:
        assert session_repository.get() == ActiveSessionRecord()

    def test_session_set_overwrites(self, session_repository: SessionRepository) -> None:
        session_repository.set(ActiveSessionRecord(active_block_key="block:a"))
        session_repository.set(
            ActiveSessionRecord(active_block_key="block:b", previous_block_key="block:a")
        )

        record = session_repository.get()

        assert record.active_block_key == "block:b"
        assert record.previous_block_key == "block:a"

    def test_session_clear_keeps_record(
        self, db_manager: DatabaseManager, session_repository: SessionRepository
    ) -> None:
        """Test that clear empties the session without deleting its row."""
        # Arrange
        session_repository.set(
            ActiveSessionRecord(active_block_key="block:a", previous_block_key="block:b")
        )

        # Act
        session_repository.clear()

        # Assert
        assert session_repository.get() == ActiveSessionRecord()
        with db_manager.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM records WHERE key = ?", (KEY_ACTIVE_BLOCK,)
            ).fetchone()
        assert row is not None

    def test_undo_round_trip(
        self, undo_repository: UndoRepository, make_block: Callable[..., Block]
    ) -> None:
        # Arrange
        block = make_block()
        state = UndoState(action=UndoAction.DELETE, block_key=block.key, block_snapshot=block)

        # Act
        undo_repository.set(state)
        retrieved = undo_repository.get()

        # Assert
        assert retrieved is not None
        assert retrieved.action == UndoAction.DELETE
        assert retrieved.block_snapshot == block

    def test_undo_clear(self, undo_repository: UndoRepository) -> None:
        undo_repository.set(UndoState(action=UndoAction.START, block_key="block:a"))
        undo_repository.clear()

        assert undo_repository.get() is None


class TestGoalAndProjectRepositories:
    """Test cases for goals and projects."""

    def test_goal_set_get_delete(self, goal_repository: GoalRepository) -> None:
        # Arrange
        goal = Goal(project_sid="alpha", type=GoalType.DAILY, target=timedelta(hours=4))

        # Act
        goal_repository.set(goal)

        # Assert
        assert goal_repository.get("alpha") == goal
        assert goal_repository.get("beta") is None
        assert goal_repository.delete("alpha") is True
        assert goal_repository.delete("alpha") is False

    def test_goals_listed_by_project(self, goal_repository: GoalRepository) -> None:
        for sid in ("gamma", "alpha", "beta"):
            goal_repository.set(Goal(project_sid=sid, target=timedelta(hours=1)))

        assert [g.project_sid for g in goal_repository.list_all()] == ["alpha", "beta", "gamma"]

    def test_project_get_or_create(self, project_repository: ProjectRepository) -> None:
        # Act
        created = project_repository.get_or_create("alpha")
        again = project_repository.get_or_create("alpha", display_name="Ignored")

        # Assert
        assert created.display_name == "alpha"
        assert again.display_name == "alpha"
        assert [p.sid for p in project_repository.list_all()] == ["alpha"]

    def test_project_save_updates(self, project_repository: ProjectRepository) -> None:
        project = project_repository.get_or_create("alpha")
        project_repository.save(project.model_copy(update={"archived": True}))

        retrieved = project_repository.get("alpha")

        assert retrieved is not None
        assert retrieved.archived is True


def test_stored_timestamps_keep_offset(
    block_repository: BlockRepository, make_block: Callable[..., Block]
) -> None:
    """Test that stored instants come back with their UTC offset."""
    start = datetime(2024, 1, 15, 9, 0, tzinfo=TEST_TZ)
    block = make_block(start=start)
    block_repository.create(block)

    assert block_repository.get(block.key).timestamp_start.utcoffset() == timedelta(hours=1)
