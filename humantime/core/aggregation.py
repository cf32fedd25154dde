"""
Duration totals, per-project and per-day grouping, and goal progress.

None of these functions raise on empty input.
"""

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ..db.models import Block, DailyTotal, GoalProgress, ProjectAggregate, now_like


def _reference_now(blocks: List[Block], now: Optional[datetime]) -> Optional[datetime]:
    # Sample the clock once for every active block in the call.
    if now is not None:
        return now
    for block in blocks:
        if block.is_active:
            return now_like(block.timestamp_start)
    return None


def total_duration(blocks: Iterable[Block], now: Optional[datetime] = None) -> timedelta:
    """Sum block durations; active blocks count up to ``now``."""
    blocks = list(blocks)
    now = _reference_now(blocks, now)
    return sum((block.duration(now) for block in blocks), timedelta(0))


def aggregate_by_project(
    blocks: Iterable[Block], now: Optional[datetime] = None
) -> List[ProjectAggregate]:
    """
    Group blocks by project.

    Groups are sorted by total duration, longest first. Projects with equal
    totals keep the order in which they first appear.
    """
    blocks = list(blocks)
    now = _reference_now(blocks, now)

    groups: Dict[str, ProjectAggregate] = {}
    for block in blocks:
        group = groups.get(block.project_sid)
        if group is None:
            group = groups[block.project_sid] = ProjectAggregate(project_sid=block.project_sid)
        group.duration += block.duration(now)
        group.block_count += 1

    return sorted(groups.values(), key=lambda g: g.duration, reverse=True)


def aggregate_by_day(
    blocks: Iterable[Block], now: Optional[datetime] = None
) -> List[DailyTotal]:
    """Group blocks by the calendar day they start on, oldest day first."""
    blocks = list(blocks)
    now = _reference_now(blocks, now)

    days: Dict[str, DailyTotal] = {}
    for block in blocks:
        date = block.timestamp_start.date().isoformat()
        day = days.get(date)
        if day is None:
            day = days[date] = DailyTotal(date=date)
        day.duration += block.duration(now)
        day.block_count += 1

    return [days[date] for date in sorted(days)]


def calculate_progress(target: timedelta, accumulated: timedelta) -> GoalProgress:
    """
    Compute progress toward ``target``.

    The percentage may exceed 100. A zero target gives 100 when nothing
    has accumulated and infinity otherwise.
    """
    if target:
        percentage = accumulated / target * 100
    else:
        percentage = 100.0 if not accumulated else math.inf

    return GoalProgress(
        current=accumulated,
        remaining=max(timedelta(0), target - accumulated),
        percentage=percentage,
        is_complete=accumulated >= target,
    )


def percentage_of(part: timedelta, total: timedelta) -> float:
    """Share of ``total`` taken by ``part``, 0.0 when total is zero."""
    if not total:
        return 0.0
    return part / total * 100
