"""
Active session states and the pure block transitions used by the tracker.

The session record itself is immutable: ``ActiveSessionRecord.with_active``
and ``ActiveSessionRecord.cleared`` return new records, and the tracker
persists whichever record a transition produces.
"""

from datetime import datetime
from enum import Enum

from ..db.models import ActiveSessionRecord, Block

DEFAULT_NOTE_SEPARATOR = " - "


class SessionState(str, Enum):
    """Whether a block is currently running."""

    IDLE = "idle"
    TRACKING = "tracking"


def state_of(record: ActiveSessionRecord) -> SessionState:
    return SessionState.TRACKING if record.is_tracking else SessionState.IDLE


def join_notes(existing: str, addition: str, separator: str = DEFAULT_NOTE_SEPARATOR) -> str:
    """Append ``addition`` to ``existing`` without overwriting it."""
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}{separator}{addition}"


def close_block(
    block: Block,
    end: datetime,
    note: str = "",
    separator: str = DEFAULT_NOTE_SEPARATOR,
) -> Block:
    """Return a copy of ``block`` ended at ``end`` with ``note`` appended."""
    return block.model_copy(
        update={
            "timestamp_end": end,
            "note": join_notes(block.note, note, separator),
        }
    )


def reopen_block(block: Block) -> Block:
    """Return a copy of ``block`` with its end cleared."""
    return block.model_copy(update={"timestamp_end": None})
