"""
Short identifier (SID) normalization for projects and tasks.
"""

import re
from typing import FrozenSet, Tuple

from ..errors import ValidationError

MAX_SID_LENGTH = 32

# Command names and sub-command verbs cannot be used as identifiers.
RESERVED_SIDS: FrozenSet[str] = frozenset(
    {
        "start",
        "stop",
        "resume",
        "switch",
        "undo",
        "log",
        "blocks",
        "stats",
        "goal",
        "status",
        "config",
        "project",
        "version",
        "edit",
        "create",
        "delete",
        "list",
        "show",
        "set",
    }
)

# Letters and digits in any script are kept; everything else is a separator.
_NON_ALNUM_RE = re.compile(r"[\W_]+")
_SID_RE = re.compile(r"^(?:[^\W_]|-)+$")


def is_reserved(text: str) -> bool:
    return text.lower() in RESERVED_SIDS


def normalize_sid(text: str, field: str = "sid") -> str:
    """
    Normalize free text into a SID.

    "My Project!" becomes "my-project". Runs of characters other than
    letters and digits collapse to one hyphen and the result is truncated to
    32 characters.

    Raises:
        ValidationError: If the result is empty or a reserved word
    """
    sid = _NON_ALNUM_RE.sub("-", text.lower()).strip("-")
    sid = sid[:MAX_SID_LENGTH].rstrip("-")
    if not sid:
        raise ValidationError(field, text, "must contain at least one letter or digit")
    if is_reserved(sid):
        raise ValidationError(field, text, "is a reserved word")
    return sid


def validate_sid(sid: str) -> bool:
    """Check that an already-normalized SID is well formed."""
    return (
        0 < len(sid) <= MAX_SID_LENGTH
        and sid == sid.lower()
        and bool(_SID_RE.match(sid))
        and not is_reserved(sid)
    )


def parse_project_task(path: str) -> Tuple[str, str]:
    """Split "project/task" on the first slash. The task may be empty."""
    project, _, task = path.partition("/")
    return project, task
