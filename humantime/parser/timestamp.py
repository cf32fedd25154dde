"""
Natural-language instant and period resolution.

Every function takes the reference instant ``now`` from the caller, so a
single logical operation can resolve any number of phrases against one
sampled clock value.
"""

import re
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from ..db.models import TimeRange
from ..errors import ParseError, timestamp_error

# Seconds per unit for "<n> <unit> ago" phrases.
AGO_UNITS: Dict[str, int] = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
}

PERIOD_UNITS = ("hour", "day", "week", "month", "quarter", "year")

PERIOD_MODIFIERS: Dict[str, int] = {
    "this": 0,
    "current": 0,
    "last": -1,
    "previous": -1,
}

# Period name -> (unit, offset in units from the current one).
PERIODS: Dict[str, Tuple[str, int]] = {
    "today": ("day", 0),
    "yesterday": ("day", -1),
}
for _modifier, _offset in PERIOD_MODIFIERS.items():
    for _unit in PERIOD_UNITS:
        PERIODS[f"{_modifier} {_unit}"] = (_unit, _offset)

_AGO_RE = re.compile(r"^(?P<num>\d+(?:\.\d+)?|an?)\s*(?P<unit>[a-z]+)\s+ago$")
_CLOCK_24_RE = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})$")
_CLOCK_12_RE = re.compile(
    r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>am|pm)$"
)
_DAY_CLOCK_RE = re.compile(r"^(?P<day>yesterday|today)\s+(?:at\s+)?(?P<clock>.+)$")
_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def _normalize(phrase: str) -> str:
    return " ".join(phrase.split()).lower()


def midnight(now: datetime) -> datetime:
    """Local midnight at the start of ``now``'s calendar day."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _add_months(dt: datetime, months: int) -> datetime:
    # Only ever called on first-of-month instants.
    year, month = divmod(dt.year * 12 + dt.month - 1 + months, 12)
    return dt.replace(year=year, month=month + 1)


def _start_of(unit: str, now: datetime) -> datetime:
    if unit == "hour":
        return now.replace(minute=0, second=0, microsecond=0)
    day = midnight(now)
    if unit == "day":
        return day
    if unit == "week":
        return day - timedelta(days=now.weekday())
    if unit == "month":
        return day.replace(day=1)
    if unit == "quarter":
        return day.replace(month=(now.month - 1) // 3 * 3 + 1, day=1)
    return day.replace(month=1, day=1)


def _shift(unit: str, start: datetime, count: int) -> datetime:
    if unit == "hour":
        return start + timedelta(hours=count)
    if unit == "day":
        return start + timedelta(days=count)
    if unit == "week":
        return start + timedelta(days=7 * count)
    if unit == "month":
        return _add_months(start, count)
    if unit == "quarter":
        return _add_months(start, 3 * count)
    return _add_months(start, 12 * count)


def _period_range(unit: str, offset: int, now: datetime) -> TimeRange:
    start = _shift(unit, _start_of(unit, now), offset)
    return TimeRange(start=start, end=_shift(unit, start, 1))


def is_period_phrase(phrase: str) -> bool:
    """Check whether ``phrase`` names a calendar period."""
    return _normalize(phrase) in PERIODS


def resolve_period(name: str, now: datetime) -> TimeRange:
    """
    Resolve a period name to a half-open time range.

    Unrecognized names resolve to today.

    Args:
        name: Period phrase such as "today", "this week" or "last quarter"
        now: Reference instant

    Returns:
        TimeRange covering the period
    """
    unit, offset = PERIODS.get(_normalize(name), PERIODS["today"])
    return _period_range(unit, offset, now)


def _resolve_clock(text: str, day: datetime, original: str) -> Optional[datetime]:
    """Resolve a clock phrase on ``day``; None if ``text`` is not a clock."""
    match = _CLOCK_24_RE.match(text)
    if match:
        hour = int(match.group("hour"))
        minute = int(match.group("minute"))
        if hour > 23 or minute > 59:
            raise timestamp_error(original)
    else:
        match = _CLOCK_12_RE.match(text)
        if not match:
            return None
        hour = int(match.group("hour"))
        minute = int(match.group("minute") or 0)
        if not 1 <= hour <= 12 or minute > 59:
            raise timestamp_error(original)
        hour %= 12
        if match.group("meridiem") == "pm":
            hour += 12
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _resolve_iso(text: str, now: datetime, original: str) -> datetime:
    try:
        value = datetime.fromisoformat(text.upper().replace(" ", "T", 1))
    except ValueError:
        raise timestamp_error(original) from None
    if value.tzinfo is None and now.tzinfo is not None:
        value = value.replace(tzinfo=now.tzinfo)
    return value


def resolve_instant(phrase: str, now: datetime) -> datetime:
    """
    Resolve a natural-language phrase to an absolute instant.

    Supported forms, tried in order: empty or "now"; "<n> <unit> ago";
    "yesterday" and "today"; clock times ("14:30", "9am", "5:30 pm");
    "yesterday at 3pm"; period starts ("this week"); ISO dates.

    Args:
        phrase: The phrase to resolve
        now: Reference instant, sampled once by the caller

    Returns:
        The resolved instant

    Raises:
        ParseError: If the phrase is not recognized
    """
    text = _normalize(phrase)
    if text in ("", "now"):
        return now

    match = _AGO_RE.match(text)
    if match:
        unit = AGO_UNITS.get(match.group("unit"))
        if unit is None:
            raise timestamp_error(phrase)
        number = match.group("num")
        amount = 1.0 if number in ("a", "an") else float(number)
        try:
            return now - timedelta(seconds=amount * unit)
        except (OverflowError, ValueError):
            raise timestamp_error(phrase) from None

    if text == "yesterday":
        return midnight(now) - timedelta(days=1)
    if text == "today":
        return midnight(now)

    clock = _resolve_clock(text, now, phrase)
    if clock is not None:
        return clock

    match = _DAY_CLOCK_RE.match(text)
    if match:
        day = midnight(now)
        if match.group("day") == "yesterday":
            day -= timedelta(days=1)
        clock = _resolve_clock(match.group("clock"), day, phrase)
        if clock is not None:
            return clock
        raise timestamp_error(phrase)

    if text in PERIODS:
        return resolve_period(text, now).start

    if _ISO_RE.match(text):
        return _resolve_iso(text, now, phrase)

    raise timestamp_error(phrase)


__all__ = [
    "ParseError",
    "is_period_phrase",
    "midnight",
    "resolve_instant",
    "resolve_period",
]
