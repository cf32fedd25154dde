"""
Database models for Humantime.

This module defines the Pydantic models for time blocks, the active session
record and the derived values produced by queries and aggregations.
"""

import math
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

# Key prefixes used in the key-value store.
PREFIX_BLOCK = "block"
PREFIX_PROJECT = "project"
PREFIX_GOAL = "goal"
KEY_ACTIVE_BLOCK = "activeblock"
KEY_UNDO = "undo"

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
MAX_DISPLAY_NAME_LENGTH = 64


def now_like(reference: datetime) -> datetime:
    """Return the current instant in the same timezone style as ``reference``."""
    if reference.tzinfo is None:
        return datetime.now()
    return datetime.now(reference.tzinfo)


def generate_block_key() -> str:
    """Generate a new block key."""
    return f"{PREFIX_BLOCK}:{uuid4()}"


class Block(BaseModel):
    """Model for one span of tracked time."""

    key: str = Field(default_factory=generate_block_key, description="Store key")
    owner_key: str = Field("", description="Owning user identifier")
    project_sid: str = Field(..., max_length=32, description="Project identifier")
    task_sid: str = Field("", max_length=32, description="Optional task identifier")
    note: str = Field("", max_length=65536, description="Free-text note")
    tags: List[str] = Field(default_factory=list, description="Tags, display case")
    timestamp_start: datetime = Field(..., description="Block start instant")
    timestamp_end: Optional[datetime] = Field(
        None, description="Block end instant (None for active blocks)"
    )

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        """Drop empty tags and case-insensitive duplicates, keeping order."""
        seen = set()
        result = []
        for tag in v:
            tag = tag.strip()
            if tag and tag.lower() not in seen:
                seen.add(tag.lower())
                result.append(tag)
        return result

    @property
    def is_active(self) -> bool:
        """True while the block has no end instant."""
        return self.timestamp_end is None

    @property
    def short_id(self) -> str:
        """First eight characters of the key's unique part."""
        return self.key.split(":", 1)[-1][:8]

    def duration(self, now: Optional[datetime] = None) -> timedelta:
        """Elapsed time; active blocks are measured up to ``now``."""
        if self.timestamp_end is not None:
            return self.timestamp_end - self.timestamp_start
        if now is None:
            now = now_like(self.timestamp_start)
        return now - self.timestamp_start

    def duration_seconds(self, now: Optional[datetime] = None) -> int:
        """Duration in whole seconds (floor)."""
        return math.floor(self.duration(now).total_seconds())

    def has_tag(self, tag: str) -> bool:
        """Check for a tag ignoring case."""
        if not tag:
            return False
        wanted = tag.lower()
        return any(t.lower() == wanted for t in self.tags)

    def to_output(self, now: Optional[datetime] = None) -> "BlockOutput":
        """Build the exported field set for this block."""
        return BlockOutput(
            key=self.key,
            project_sid=self.project_sid,
            task_sid=self.task_sid,
            note=self.note,
            tags=list(self.tags),
            timestamp_start=self.timestamp_start,
            timestamp_end=self.timestamp_end,
            is_active=self.is_active,
            duration_seconds=self.duration_seconds(now),
        )


class BlockOutput(BaseModel):
    """Flat representation of a block for JSON output and export."""

    key: str
    project_sid: str
    task_sid: str = ""
    note: str = ""
    tags: List[str] = Field(default_factory=list)
    timestamp_start: datetime
    timestamp_end: Optional[datetime] = None
    is_active: bool
    duration_seconds: int


class TimeRange(BaseModel):
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class FilterCriteria(BaseModel):
    """Criteria for selecting blocks. Unset fields do not filter."""

    project_sid: str = ""
    task_sid: str = ""
    tag: str = ""
    start_after: Optional[datetime] = Field(
        None, description="Inclusive lower bound on block start"
    )
    end_before: Optional[datetime] = Field(
        None, description="Exclusive upper bound on block end"
    )
    limit: int = Field(0, ge=0, description="Maximum results, 0 for unbounded")


class ProjectAggregate(BaseModel):
    """Summed duration and block count for one project."""

    project_sid: str
    duration: timedelta = timedelta(0)
    block_count: int = 0


class DailyTotal(BaseModel):
    """Summed duration and block count for one calendar day."""

    date: str = Field(..., description="Date in YYYY-MM-DD format")
    duration: timedelta = timedelta(0)
    block_count: int = 0


class StatsSummary(BaseModel):
    """Totals for a period, grouped by project and by day."""

    period: TimeRange
    total: timedelta
    block_count: int
    projects: List[ProjectAggregate] = Field(default_factory=list)
    days: List[DailyTotal] = Field(default_factory=list)


class GoalProgress(BaseModel):
    """Progress toward a target duration."""

    current: timedelta
    remaining: timedelta
    percentage: float
    is_complete: bool


class GoalType(str, Enum):
    """How often a goal's target resets."""

    DAILY = "daily"
    WEEKLY = "weekly"


class Goal(BaseModel):
    """Model for a time target on a project."""

    project_sid: str = Field(..., min_length=1, max_length=32)
    type: GoalType = GoalType.DAILY
    target: timedelta

    @property
    def key(self) -> str:
        return f"{PREFIX_GOAL}:{self.project_sid}"

    def calculate_progress(self, current: timedelta) -> GoalProgress:
        """Progress given the time tracked so far in the goal's period."""
        from ..core.aggregation import calculate_progress

        return calculate_progress(self.target, current)


class Project(BaseModel):
    """Model for project organization."""

    sid: str = Field(..., min_length=1, max_length=32)
    display_name: str = Field(..., min_length=1, max_length=MAX_DISPLAY_NAME_LENGTH)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    archived: bool = False

    @property
    def key(self) -> str:
        return f"{PREFIX_PROJECT}:{self.sid}"


class ActiveSessionRecord(BaseModel):
    """Singleton record of the active block and the block active before it."""

    active_block_key: str = ""
    previous_block_key: str = ""

    @property
    def is_tracking(self) -> bool:
        return self.active_block_key != ""

    def with_active(self, block_key: str) -> "ActiveSessionRecord":
        """Mark ``block_key`` active, moving the current one to previous."""
        previous = self.active_block_key or self.previous_block_key
        return ActiveSessionRecord(
            active_block_key=block_key, previous_block_key=previous
        )

    def cleared(self) -> "ActiveSessionRecord":
        """Drop the active pointer, keeping previous as it was."""
        return ActiveSessionRecord(
            active_block_key="", previous_block_key=self.previous_block_key
        )


class UndoAction(str, Enum):
    """Actions that can be reverted by undo."""

    START = "start"
    STOP = "stop"
    DELETE = "delete"


class UndoState(BaseModel):
    """Snapshot taken before the last undoable action."""

    action: UndoAction
    block_key: str
    block_snapshot: Optional[Block] = None
    closed_block_snapshot: Optional[Block] = None
    session_snapshot: ActiveSessionRecord = Field(
        default_factory=ActiveSessionRecord
    )
