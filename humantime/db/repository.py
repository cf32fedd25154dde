"""
Database repositories for Humantime.

Each repository owns one key prefix (or singleton key) in the records
table and converts between JSON values and the Pydantic models.
"""

import logging
import sqlite3
from typing import List, Optional, Tuple

from ..errors import NotFoundError
from .models import (
    KEY_ACTIVE_BLOCK,
    KEY_UNDO,
    PREFIX_BLOCK,
    PREFIX_GOAL,
    PREFIX_PROJECT,
    ActiveSessionRecord,
    Block,
    Goal,
    Project,
    UndoState,
)
from .schema import DatabaseManager

logger = logging.getLogger(__name__)


class KeyValueRepository:
    """Shared access to the ordered records table."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository with database manager."""
        self.db_manager = db_manager

    def _get_value(self, key: str) -> Optional[str]:
        with self.db_manager.get_connection() as conn:
            row = conn.execute("SELECT value FROM records WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def _insert_value(self, key: str, value: str) -> None:
        with self.db_manager.get_connection() as conn:
            conn.execute("INSERT INTO records (key, value) VALUES (?, ?)", (key, value))

    def _update_value(self, key: str, value: str) -> bool:
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute("UPDATE records SET value = ? WHERE key = ?", (value, key))
            return cursor.rowcount > 0

    def _put_value(self, key: str, value: str) -> None:
        with self.db_manager.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO records (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
                (key, value),
            )

    def _delete_key(self, key: str) -> bool:
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute("DELETE FROM records WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def _scan(self, prefix: str, by_key: bool = True) -> List[Tuple[str, str]]:
        """Return (key, value) pairs whose key starts with ``prefix``."""
        order = "key" if by_key else "rowid"
        with self.db_manager.get_connection() as conn:
            rows = conn.execute(
                f"SELECT key, value FROM records WHERE substr(key, 1, ?) = ? ORDER BY {order}",
                (len(prefix), prefix),
            ).fetchall()
        return [(row["key"], row["value"]) for row in rows]


class BlockRepository(KeyValueRepository):
    """Repository for time blocks."""

    def create(self, block: Block) -> Block:
        """Insert a new block. Its key must not exist yet."""
        self._insert_value(block.key, block.model_dump_json())
        logger.debug(f"Created block {block.key} ({block.project_sid})")
        return block

    def restore(self, block: Block) -> Block:
        """Write ``block`` under its own key, replacing anything stored there."""
        self._put_value(block.key, block.model_dump_json())
        logger.debug(f"Restored block {block.key}")
        return block

    def get(self, key: str) -> Block:
        """Get a block by key. Raises NotFoundError if it does not exist."""
        value = self._get_value(key)
        if value is None:
            raise NotFoundError("block", key)
        return Block.model_validate_json(value)

    def update(self, block: Block) -> Block:
        """Update an existing block. Raises NotFoundError if it does not exist."""
        if not self._update_value(block.key, block.model_dump_json()):
            raise NotFoundError("block", block.key)
        logger.debug(f"Updated block {block.key}")
        return block

    def delete(self, key: str) -> bool:
        """Delete a block by key. Returns True if deleted, False if not found."""
        deleted = self._delete_key(key)
        if deleted:
            logger.debug(f"Deleted block {key}")
        return deleted

    def list_all(self) -> List[Block]:
        """Get all blocks in insertion order."""
        return [
            Block.model_validate_json(value)
            for _, value in self._scan(f"{PREFIX_BLOCK}:", by_key=False)
        ]

    def find_by_prefix(self, prefix: str) -> List[Block]:
        """Find blocks whose key, or key without "block:", starts with ``prefix``."""
        if not prefix.startswith(f"{PREFIX_BLOCK}:"):
            prefix = f"{PREFIX_BLOCK}:{prefix}"
        return [Block.model_validate_json(value) for _, value in self._scan(prefix)]


class SessionRepository(KeyValueRepository):
    """Repository for the singleton active-session record."""

    def get(self) -> ActiveSessionRecord:
        """Get the session record; an empty record if none was saved."""
        value = self._get_value(KEY_ACTIVE_BLOCK)
        if value is None:
            return ActiveSessionRecord()
        return ActiveSessionRecord.model_validate_json(value)

    def set(self, record: ActiveSessionRecord) -> ActiveSessionRecord:
        self._put_value(KEY_ACTIVE_BLOCK, record.model_dump_json())
        logger.debug(
            f"Session active={record.active_block_key or '-'} "
            f"previous={record.previous_block_key or '-'}"
        )
        return record

    def clear(self) -> ActiveSessionRecord:
        """Reset the session to empty. The record itself is kept."""
        return self.set(ActiveSessionRecord())


class UndoRepository(KeyValueRepository):
    """Repository for the single level of undo state."""

    def get(self) -> Optional[UndoState]:
        value = self._get_value(KEY_UNDO)
        return UndoState.model_validate_json(value) if value is not None else None

    def set(self, state: UndoState) -> UndoState:
        """Save undo state, overwriting whatever was saved before."""
        self._put_value(KEY_UNDO, state.model_dump_json())
        logger.debug(f"Saved undo state for {state.action.value} of {state.block_key}")
        return state

    def clear(self) -> None:
        self._delete_key(KEY_UNDO)


class GoalRepository(KeyValueRepository):
    """Repository for per-project goals."""

    def get(self, project_sid: str) -> Optional[Goal]:
        value = self._get_value(f"{PREFIX_GOAL}:{project_sid}")
        return Goal.model_validate_json(value) if value is not None else None

    def set(self, goal: Goal) -> Goal:
        self._put_value(goal.key, goal.model_dump_json())
        logger.debug(f"Saved {goal.type.value} goal for {goal.project_sid}")
        return goal

    def delete(self, project_sid: str) -> bool:
        return self._delete_key(f"{PREFIX_GOAL}:{project_sid}")

    def list_all(self) -> List[Goal]:
        return [Goal.model_validate_json(value) for _, value in self._scan(f"{PREFIX_GOAL}:")]


class ProjectRepository(KeyValueRepository):
    """Repository for projects."""

    def get(self, sid: str) -> Optional[Project]:
        """Get a project by its SID."""
        value = self._get_value(f"{PREFIX_PROJECT}:{sid}")
        return Project.model_validate_json(value) if value is not None else None

    def save(self, project: Project) -> Project:
        self._put_value(project.key, project.model_dump_json())
        return project

    def get_or_create(self, sid: str, display_name: Optional[str] = None) -> Project:
        """Get a project, creating it on first use."""
        project = self.get(sid)
        if project is not None:
            return project

        project = Project(sid=sid, display_name=display_name or sid)
        try:
            self._insert_value(project.key, project.model_dump_json())
        except sqlite3.IntegrityError:
            # Created concurrently by another process.
            existing = self.get(sid)
            if existing is None:
                raise
            return existing
        logger.debug(f"Created project {sid}")
        return project

    def list_all(self) -> List[Project]:
        """Get all projects ordered by SID."""
        return [
            Project.model_validate_json(value) for _, value in self._scan(f"{PREFIX_PROJECT}:")
        ]
