"""
Utility functions for formatting time and display elements.

This module provides consistent formatting for durations, dates, and other display elements.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from ..db.models import Block
from .config import get_config_manager


def format_duration(duration: timedelta, show_seconds: Optional[bool] = None) -> str:
    """
    Format a timedelta as a human-readable duration string.

    Args:
        duration: The timedelta to format
        show_seconds: Whether to show seconds (uses config default if None)

    Returns:
        Formatted duration string (e.g., "2h 30m 15s", "1h 45m")
    """
    if show_seconds is None:
        show_seconds = get_config_manager().show_seconds()

    total_seconds = int(duration.total_seconds())
    sign = "-" if total_seconds < 0 else ""
    total_seconds = abs(total_seconds)

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    parts = []

    if hours > 0:
        parts.append(f"{hours}h")

    if minutes > 0 or (hours > 0 and seconds > 0 and show_seconds):
        parts.append(f"{minutes}m")

    if show_seconds and (seconds > 0 or not parts):
        parts.append(f"{seconds}s")

    if not parts:
        return "0m"
    return sign + " ".join(parts)


def format_datetime(dt: datetime, include_date: bool = True, include_time: bool = True) -> str:
    """
    Format a datetime for display.

    Aware datetimes are shown in local time; naive ones are already local.

    Args:
        dt: The datetime to format
        include_date: Whether to include the date
        include_time: Whether to include the time

    Returns:
        Formatted datetime string
    """
    config = get_config_manager()

    local_dt = dt.astimezone() if dt.tzinfo is not None else dt

    parts = []

    if include_date:
        parts.append(local_dt.strftime(config.get_date_format()))

    if include_time:
        time_format = config.get_time_format()
        if not config.show_seconds():
            # Remove seconds from format if not showing them
            time_format = time_format.replace(":%S", "")
        parts.append(local_dt.strftime(time_format))

    return " ".join(parts)


def format_date(dt: datetime) -> str:
    """Format just the date portion of a datetime."""
    return format_datetime(dt, include_date=True, include_time=False)


def format_time(dt: datetime) -> str:
    """Format just the time portion of a datetime."""
    return format_datetime(dt, include_date=False, include_time=True)


def format_project_path(project_sid: str, task_sid: str = "") -> str:
    """Format "project/task", or just the project when there is no task."""
    return f"{project_sid}/{task_sid}" if task_sid else project_sid


def format_block_span(block: Block) -> str:
    """Format a block's start and end, e.g. "2024-01-15 09:00:00 - 11:30:00"."""
    start = format_datetime(block.timestamp_start)
    if block.timestamp_end is None:
        return f"{start} - now"
    if block.timestamp_end.date() == block.timestamp_start.date():
        return f"{start} - {format_time(block.timestamp_end)}"
    return f"{start} - {format_datetime(block.timestamp_end)}"


def format_bytes(size: float) -> str:
    """
    Format a byte size as a human-readable string.

    Args:
        size: Size in bytes

    Returns:
        Formatted size string (e.g., "1.2 KB", "3.4 MB")
    """
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_percentage(percentage: float) -> str:
    """
    Format a percentage value.

    Args:
        percentage: Percentage, already multiplied by 100

    Returns:
        Formatted percentage string (e.g., "75.0%")
    """
    if math.isinf(percentage):
        return "∞%"
    return f"{percentage:.1f}%"


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    """
    Return singular or plural form based on count.

    Args:
        count: The count
        singular: Singular form
        plural: Plural form (defaults to singular + 's')

    Returns:
        Properly pluralized string
    """
    if plural is None:
        plural = singular + "s"

    return singular if count == 1 else plural


def progress_bar(percentage: float, width: int = 20) -> str:
    """Render a text progress bar capped at full width."""
    if math.isinf(percentage):
        filled = width
    else:
        filled = max(0, min(width, int(percentage / 100 * width)))
    return "█" * filled + "░" * (width - filled)
