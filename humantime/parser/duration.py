"""
Duration phrase parsing and compact formatting.
"""

import re
from datetime import timedelta
from typing import Dict

from ..errors import ParseError, duration_error

# Seconds per unit for duration segments.
DURATION_UNITS: Dict[str, int] = {
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
}

_SEGMENT_RE = re.compile(r"\s*(?P<num>-?(?:\d+(?:\.\d+)?|\.\d+))\s*(?P<unit>[a-zA-Z]+)\s*")


def resolve_duration(phrase: str) -> timedelta:
    """
    Parse a duration such as "1h30m", "90 minutes" or "2.5h".

    The phrase is one or more ``<number><unit>`` segments. Bare numbers,
    bare units and unknown units are rejected.

    Raises:
        ParseError: If the phrase is not a valid duration
    """
    text = phrase.strip()
    if not text:
        raise duration_error(phrase)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _SEGMENT_RE.match(text, pos)
        if not match:
            raise duration_error(phrase)
        seconds = DURATION_UNITS.get(match.group("unit").lower())
        if seconds is None:
            raise duration_error(phrase)
        total += float(match.group("num")) * seconds
        pos = match.end()

    try:
        return timedelta(seconds=total)
    except (OverflowError, ValueError):
        raise duration_error(phrase) from None


def is_duration_like(text: str) -> bool:
    """Check whether ``text`` parses as a duration."""
    try:
        resolve_duration(text)
    except ParseError:
        return False
    return True


def format_duration_compact(duration: timedelta) -> str:
    """
    Format a duration as "1h30m15s".

    Sub-second parts are dropped. Zero formats as "0s" and negative
    durations carry a sign on every segment so they parse back unchanged.
    """
    total = int(duration.total_seconds())
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if hours:
        parts.append(f"{sign}{hours}h")
    if minutes:
        parts.append(f"{sign}{minutes}m")
    if seconds:
        parts.append(f"{sign}{seconds}s")
    return "".join(parts) or "0s"
