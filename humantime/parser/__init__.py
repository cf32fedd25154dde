"""Natural-language parsing for time phrases, durations and arguments."""

from .args import ParsedArgs, parse_args
from .duration import format_duration_compact, resolve_duration
from .sid import normalize_sid, parse_project_task, validate_sid
from .timestamp import is_period_phrase, resolve_instant, resolve_period

__all__ = [
    "ParsedArgs",
    "parse_args",
    "format_duration_compact",
    "resolve_duration",
    "normalize_sid",
    "parse_project_task",
    "validate_sid",
    "is_period_phrase",
    "resolve_instant",
    "resolve_period",
]
