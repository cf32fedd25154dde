"""
Core time tracking functionality for Humantime.

This module contains the main TimeTracker class that orchestrates the
active session, block storage and undo state. Each transition samples
"now" once and runs inside a single database transaction.
"""

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from ..db.models import (
    HEX_COLOR_PATTERN,
    MAX_DISPLAY_NAME_LENGTH,
    ActiveSessionRecord,
    Block,
    FilterCriteria,
    Goal,
    GoalProgress,
    GoalType,
    Project,
    StatsSummary,
    TimeRange,
    UndoAction,
    UndoState,
)
from ..db.repository import (
    BlockRepository,
    GoalRepository,
    ProjectRepository,
    SessionRepository,
    UndoRepository,
)
from ..db.schema import DatabaseManager
from ..errors import NotFoundError, StateError, ValidationError
from ..parser.sid import normalize_sid
from ..parser.timestamp import resolve_period
from . import aggregation, query
from .session import DEFAULT_NOTE_SEPARATOR, SessionState, close_block, reopen_block, state_of

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current local time with its UTC offset attached."""
    return datetime.now().astimezone()


def _check_display_name(name: str) -> str:
    name = name.strip()
    if not 0 < len(name) <= MAX_DISPLAY_NAME_LENGTH:
        raise ValidationError(
            "name", name, f"must be 1 to {MAX_DISPLAY_NAME_LENGTH} characters"
        )
    return name


def _check_color(color: Optional[str]) -> Optional[str]:
    """Validate a "#RRGGBB" color; empty means no color."""
    if not color:
        return None
    if not re.match(HEX_COLOR_PATTERN, color):
        raise ValidationError("color", color, "must be a hex color like #3366ff")
    return color


class TimeTracker:
    """Main time tracking service that coordinates blocks and the active session."""

    def __init__(
        self,
        data_dir: Path,
        owner: str = "local",
        note_separator: str = DEFAULT_NOTE_SEPARATOR,
    ):
        """
        Initialize TimeTracker with the given data directory.

        Args:
            data_dir: Directory where the database is stored
            owner: Owner key recorded on new blocks
            note_separator: Text placed between notes appended on stop
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.owner = owner
        self.note_separator = note_separator

        # Initialize database
        db_path = self.data_dir / "humantime.db"
        self.db_manager = DatabaseManager(db_path)
        self.db_manager.initialize_database()

        # Initialize repositories
        self.block_repo = BlockRepository(self.db_manager)
        self.session_repo = SessionRepository(self.db_manager)
        self.undo_repo = UndoRepository(self.db_manager)
        self.goal_repo = GoalRepository(self.db_manager)
        self.project_repo = ProjectRepository(self.db_manager)

    # Session transitions

    def start(
        self,
        project_sid: str,
        task_sid: str = "",
        note: str = "",
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Block:
        """
        Start tracking a new block.

        Any active block is closed at the new block's start. With an
        explicit ``end`` the new block is recorded as completed and the
        session is left idle.

        Args:
            project_sid: Project identifier (normalized if needed)
            task_sid: Optional task identifier
            note: Optional note
            tags: Optional tags
            now: Reference instant, sampled once when omitted
            start: Start instant, defaults to ``now``
            end: Optional end instant

        Returns:
            The created block

        Raises:
            ValidationError: If an identifier is invalid, end precedes start,
                or start precedes the active block's start
        """
        now = now or local_now()
        start = start or now
        project_sid = normalize_sid(project_sid, "project")
        task_sid = normalize_sid(task_sid, "task") if task_sid else ""
        if end is not None and end < start:
            raise ValidationError("end", end.isoformat(), "end time is before start time")

        with self.db_manager.transaction():
            session = self.session_repo.get()
            active = self._get_active(session)
            if active is not None and start < active.timestamp_start:
                raise ValidationError(
                    "start",
                    start.isoformat(),
                    f"start time is before the active block '{active.short_id}' started",
                )

            self.project_repo.get_or_create(project_sid)

            closed_snapshot = None
            if active is not None:
                closed_snapshot = active
                self.block_repo.update(close_block(active, start))
                logger.debug(f"Implicitly stopped {active.key} at {start.isoformat()}")

            block = Block(
                owner_key=self.owner,
                project_sid=project_sid,
                task_sid=task_sid,
                note=note.strip(),
                tags=tags or [],
                timestamp_start=start,
                timestamp_end=end,
            )
            self.block_repo.create(block)

            self.undo_repo.set(
                UndoState(
                    action=UndoAction.START,
                    block_key=block.key,
                    closed_block_snapshot=closed_snapshot,
                    session_snapshot=session,
                )
            )

            if end is None:
                self.session_repo.set(session.with_active(block.key))
            else:
                self.session_repo.set(session.with_active(block.key).cleared())

        logger.info(f"Started {block.key} on {project_sid}")
        return block

    def switch(
        self,
        project_sid: str,
        task_sid: str = "",
        note: str = "",
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Block:
        """Stop the active block and start a new one in one transaction."""
        return self.start(project_sid, task_sid, note, tags, now=now, start=start, end=end)

    def stop(
        self,
        note: str = "",
        now: Optional[datetime] = None,
        end: Optional[datetime] = None,
        block_key: Optional[str] = None,
    ) -> Optional[Block]:
        """
        Stop the active block, or a specific running block.

        The note is appended to the block's existing note. The previous
        block pointer is left unchanged.

        Args:
            note: Note to append
            now: Reference instant, sampled once when omitted
            end: End instant, defaults to ``now``
            block_key: Stop this block instead of the active one

        Returns:
            The stopped block, or None if nothing was being tracked

        Raises:
            NotFoundError: If ``block_key`` does not exist
            StateError: If ``block_key`` names a block that already ended
            ValidationError: If the end precedes the block's start
        """
        now = now or local_now()
        end = end or now

        with self.db_manager.transaction():
            session = self.session_repo.get()

            if block_key:
                block = self.block_repo.get(block_key)
                if not block.is_active:
                    raise StateError(f"block '{block.short_id}' is already stopped")
            else:
                block = self._get_active(session)
                if block is None:
                    logger.debug("Stop requested while idle")
                    return None

            if end < block.timestamp_start:
                raise ValidationError("end", end.isoformat(), "end time is before start time")

            self.undo_repo.set(
                UndoState(
                    action=UndoAction.STOP,
                    block_key=block.key,
                    block_snapshot=block,
                    session_snapshot=session,
                )
            )

            stopped = close_block(block, end, note.strip(), self.note_separator)
            self.block_repo.update(stopped)

            if session.active_block_key == block.key:
                self.session_repo.set(session.cleared())

        logger.info(f"Stopped {stopped.key}")
        return stopped

    def resume(self, now: Optional[datetime] = None) -> Optional[Block]:
        """
        Start a new block on the previous block's project and task.

        Returns:
            The new block, or None when there is no previous block

        Raises:
            StateError: If a block is already being tracked
        """
        now = now or local_now()

        with self.db_manager.transaction():
            session = self.session_repo.get()
            if session.is_tracking:
                raise StateError("already tracking; stop the active block before resuming")
            if not session.previous_block_key:
                return None

            try:
                previous = self.block_repo.get(session.previous_block_key)
            except NotFoundError:
                logger.warning(f"Previous block {session.previous_block_key} no longer exists")
                return None

            return self.start(previous.project_sid, previous.task_sid, now=now)

    def undo(self) -> Optional[UndoState]:
        """
        Revert the most recent start, stop or delete.

        Returns:
            The undo state that was replayed, or None if there was nothing to undo

        Raises:
            StateError: If reverting would leave two active blocks
        """
        with self.db_manager.transaction():
            state = self.undo_repo.get()
            if state is None:
                return None

            current = self.session_repo.get()

            if state.action == UndoAction.START:
                if not self.block_repo.delete(state.block_key):
                    logger.warning(f"Block {state.block_key} was already removed")
                if state.closed_block_snapshot is not None:
                    self.block_repo.restore(state.closed_block_snapshot)
                self.session_repo.set(state.session_snapshot)

            elif state.action == UndoAction.STOP:
                if current.is_tracking and current.active_block_key != state.block_key:
                    raise StateError("cannot undo stop while another block is active")
                if state.block_snapshot is not None:
                    self.block_repo.restore(state.block_snapshot)
                else:
                    self.block_repo.update(reopen_block(self.block_repo.get(state.block_key)))
                self.session_repo.set(state.session_snapshot)

            elif state.action == UndoAction.DELETE:
                was_active = state.session_snapshot.active_block_key == state.block_key
                if was_active and current.is_tracking:
                    raise StateError("cannot undo delete while another block is active")
                if state.block_snapshot is not None:
                    self.block_repo.restore(state.block_snapshot)
                if was_active:
                    self.session_repo.set(state.session_snapshot)

            self.undo_repo.clear()

        logger.info(f"Undid {state.action.value} of {state.block_key}")
        return state

    def log(
        self,
        project_sid: str,
        duration: timedelta,
        end: Optional[datetime] = None,
        task_sid: str = "",
        note: str = "",
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> Block:
        """
        Record a completed block of ``duration`` ending at ``end``.

        The active session is not touched. The entry can be undone like a
        start.

        Raises:
            ValidationError: If the duration is not positive, reaches before the
                earliest representable date, or an identifier is invalid
        """
        now = now or local_now()
        end = end or now
        if duration <= timedelta(0):
            raise ValidationError("duration", str(duration), "must be positive")
        try:
            start = end - duration
        except OverflowError:
            raise ValidationError(
                "duration", str(duration), "reaches before the earliest date"
            ) from None
        project_sid = normalize_sid(project_sid, "project")
        task_sid = normalize_sid(task_sid, "task") if task_sid else ""

        with self.db_manager.transaction():
            self.project_repo.get_or_create(project_sid)
            block = Block(
                owner_key=self.owner,
                project_sid=project_sid,
                task_sid=task_sid,
                note=note.strip(),
                tags=tags or [],
                timestamp_start=start,
                timestamp_end=end,
            )
            self.block_repo.create(block)
            self.undo_repo.set(
                UndoState(
                    action=UndoAction.START,
                    block_key=block.key,
                    session_snapshot=self.session_repo.get(),
                )
            )

        logger.info(f"Logged {block.key} on {project_sid}")
        return block

    # Session inspection

    def get_session(self) -> ActiveSessionRecord:
        """Get the active session record."""
        return self.session_repo.get()

    def get_state(self) -> SessionState:
        return state_of(self.session_repo.get())

    def get_active_block(self) -> Optional[Block]:
        """
        Get the currently active block.

        Returns:
            The active block, or None if nothing is being tracked
        """
        return self._get_active(self.session_repo.get())

    def get_previous_block(self) -> Optional[Block]:
        """Get the block that was active before the current one, if it still exists."""
        key = self.session_repo.get().previous_block_key
        if not key:
            return None
        try:
            return self.block_repo.get(key)
        except NotFoundError:
            return None

    def _get_active(self, session: ActiveSessionRecord) -> Optional[Block]:
        if not session.is_tracking:
            return None
        try:
            block = self.block_repo.get(session.active_block_key)
        except NotFoundError:
            logger.warning(f"Active block {session.active_block_key} no longer exists")
            return None
        return block if block.is_active else None

    # Block management

    def get_block(self, key: str) -> Block:
        """Get a block by its full key."""
        return self.block_repo.get(key)

    def find_block(self, prefix: str) -> Block:
        """
        Find a block by a prefix of its key, such as the short id shown in listings.

        Raises:
            NotFoundError: If no block matches
            ValidationError: If more than one block matches
        """
        matches = self.block_repo.find_by_prefix(prefix.strip())
        if not matches:
            raise NotFoundError("block", prefix)
        if len(matches) > 1:
            raise ValidationError("block", prefix, f"matches {len(matches)} blocks")
        return matches[0]

    def delete_block(self, key: str) -> Block:
        """
        Delete a block. Deleting the active block clears the active pointer.

        Returns:
            The deleted block

        Raises:
            NotFoundError: If the block does not exist
        """
        with self.db_manager.transaction():
            block = self.block_repo.get(key)
            session = self.session_repo.get()

            self.undo_repo.set(
                UndoState(
                    action=UndoAction.DELETE,
                    block_key=key,
                    block_snapshot=block,
                    session_snapshot=session,
                )
            )
            self.block_repo.delete(key)

            if session.active_block_key == key:
                self.session_repo.set(session.cleared())

        logger.info(f"Deleted {key}")
        return block

    def edit_block(
        self,
        key: str,
        project_sid: Optional[str] = None,
        task_sid: Optional[str] = None,
        note: Optional[str] = None,
        tags: Optional[List[str]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Block:
        """
        Update a block's fields. Fields left as None are unchanged.

        Setting an end on the active block stops it.

        Raises:
            NotFoundError: If the block does not exist
            ValidationError: If an identifier is invalid, end precedes start,
                or start precedes the active block's start
        """
        with self.db_manager.transaction():
            block = self.block_repo.get(key)
            updates = {}
            if project_sid is not None:
                updates["project_sid"] = normalize_sid(project_sid, "project")
                self.project_repo.get_or_create(updates["project_sid"])
            if task_sid is not None:
                updates["task_sid"] = normalize_sid(task_sid, "task") if task_sid else ""
            if note is not None:
                updates["note"] = note.strip()
            if tags is not None:
                updates["tags"] = tags
            if start is not None:
                updates["timestamp_start"] = start
            if end is not None:
                updates["timestamp_end"] = end

            edited = Block.model_validate({**block.model_dump(), **updates})
            if edited.timestamp_end is not None and edited.timestamp_end < edited.timestamp_start:
                raise ValidationError(
                    "end", edited.timestamp_end.isoformat(), "end time is before start time"
                )
            self.block_repo.update(edited)

            session = self.session_repo.get()
            if session.active_block_key == key and not edited.is_active:
                self.session_repo.set(session.cleared())

        logger.info(f"Edited {key}")
        return edited

    # Queries and summaries

    def list_blocks(self, criteria: Optional[FilterCriteria] = None) -> List[Block]:
        """List blocks matching ``criteria``, most recent first."""
        return query.list_blocks(self.block_repo.list_all(), criteria or FilterCriteria())

    def blocks_in_range(
        self, period: TimeRange, project_sid: str = "", tag: str = ""
    ) -> List[Block]:
        """Blocks that start inside ``period`` and, if closed, end before it does."""
        criteria = FilterCriteria(
            project_sid=project_sid,
            tag=tag,
            start_after=period.start,
            end_before=period.end,
        )
        return [b for b in self.list_blocks(criteria) if b.timestamp_start < period.end]

    def total_duration(
        self, criteria: Optional[FilterCriteria] = None, now: Optional[datetime] = None
    ) -> timedelta:
        return aggregation.total_duration(self.list_blocks(criteria), now or local_now())

    def stats(
        self,
        period: TimeRange,
        project_sid: str = "",
        tag: str = "",
        now: Optional[datetime] = None,
    ) -> StatsSummary:
        """
        Summarize a period by project and by day.

        Args:
            period: Range to summarize
            project_sid: Optional project filter
            tag: Optional tag filter
            now: Reference instant for active blocks

        Returns:
            StatsSummary for the period
        """
        now = now or local_now()
        blocks = self.blocks_in_range(period, project_sid, tag)
        return StatsSummary(
            period=period,
            total=aggregation.total_duration(blocks, now),
            block_count=len(blocks),
            projects=aggregation.aggregate_by_project(blocks, now),
            days=aggregation.aggregate_by_day(blocks, now),
        )

    # Goals

    def set_goal(self, project_sid: str, goal_type: GoalType, target: timedelta) -> Goal:
        """
        Set the daily or weekly goal for a project, replacing any existing one.

        Raises:
            ValidationError: If the project is invalid or the target is not positive
        """
        project_sid = normalize_sid(project_sid, "project")
        if target <= timedelta(0):
            raise ValidationError("target", str(target), "must be positive")
        with self.db_manager.transaction():
            self.project_repo.get_or_create(project_sid)
            goal = self.goal_repo.set(Goal(project_sid=project_sid, type=goal_type, target=target))
        return goal

    def get_goal(self, project_sid: str) -> Optional[Goal]:
        return self.goal_repo.get(project_sid)

    def delete_goal(self, project_sid: str) -> bool:
        return self.goal_repo.delete(project_sid)

    def list_goals(self) -> List[Goal]:
        return self.goal_repo.list_all()

    def goal_period(self, goal: Goal, now: Optional[datetime] = None) -> TimeRange:
        """Today for daily goals, this week for weekly goals."""
        name = "today" if goal.type == GoalType.DAILY else "this week"
        return resolve_period(name, now or local_now())

    def goal_progress(self, goal: Goal, now: Optional[datetime] = None) -> GoalProgress:
        """Progress toward ``goal`` within its current period."""
        now = now or local_now()
        blocks = self.blocks_in_range(self.goal_period(goal, now), goal.project_sid)
        return goal.calculate_progress(aggregation.total_duration(blocks, now))

    # Projects

    def get_project(self, sid: str) -> Optional[Project]:
        return self.project_repo.get(sid)

    def list_projects(self, include_archived: bool = True) -> List[Project]:
        projects = self.project_repo.list_all()
        if include_archived:
            return projects
        return [p for p in projects if not p.archived]

    def create_project(
        self, name: str, sid: Optional[str] = None, color: Optional[str] = None
    ) -> Project:
        """
        Create a project ahead of tracking time on it.

        Args:
            name: Display name; the SID is derived from it when ``sid`` is omitted
            sid: Explicit project identifier
            color: Optional "#RRGGBB" color

        Returns:
            The new project

        Raises:
            ValidationError: If the SID, name or color is invalid, or the
                project already exists
        """
        project = Project(
            sid=normalize_sid(sid or name, "project"),
            display_name=_check_display_name(name),
            color=_check_color(color),
        )

        with self.db_manager.transaction():
            if self.project_repo.get(project.sid) is not None:
                raise ValidationError("project", project.sid, "already exists")
            self.project_repo.save(project)

        logger.info(f"Created project {project.sid}")
        return project

    def edit_project(
        self, sid: str, display_name: Optional[str] = None, color: Optional[str] = None
    ) -> Project:
        """
        Update a project's display name or color. An empty color clears it.

        Raises:
            NotFoundError: If the project does not exist
            ValidationError: If nothing is updated or a value is invalid
        """
        if display_name is None and color is None:
            raise ValidationError("project", sid, "nothing to update (give a name or color)")

        updates: dict = {}
        if display_name is not None:
            updates["display_name"] = _check_display_name(display_name)
        if color is not None:
            updates["color"] = _check_color(color)

        with self.db_manager.transaction():
            project = self._require_project(sid).model_copy(update=updates)
            self.project_repo.save(project)

        logger.info(f"Edited project {project.sid}")
        return project

    def archive_project(self, sid: str) -> Project:
        """
        Hide a project from project listings. Its blocks and goal are kept.

        Raises:
            NotFoundError: If the project does not exist
            StateError: If the project is already archived
        """
        with self.db_manager.transaction():
            project = self._require_project(sid)
            if project.archived:
                raise StateError(f"project '{project.sid}' is already archived")
            project = project.model_copy(update={"archived": True})
            self.project_repo.save(project)

        logger.info(f"Archived project {project.sid}")
        return project

    def _require_project(self, sid: str) -> Project:
        project_sid = normalize_sid(sid, "project")
        project = self.project_repo.get(project_sid)
        if project is None:
            raise NotFoundError("project", project_sid)
        return project

    def get_database_stats(self) -> dict:
        """
        Get database statistics.

        Returns:
            Dictionary with database statistics
        """
        return self.db_manager.get_database_stats()
