"""
Block filtering and ordering.
"""

from typing import Iterable, List

from ..db.models import Block, FilterCriteria


def matches(block: Block, criteria: FilterCriteria) -> bool:
    """Check a single block against every clause of ``criteria``."""
    if criteria.project_sid:
        if block.project_sid != criteria.project_sid:
            return False
        # Task only narrows within a project.
        if criteria.task_sid and block.task_sid != criteria.task_sid:
            return False

    if criteria.tag and not block.has_tag(criteria.tag):
        return False

    if criteria.start_after is not None and block.timestamp_start < criteria.start_after:
        return False

    if (
        criteria.end_before is not None
        and block.timestamp_end is not None
        and block.timestamp_end >= criteria.end_before
    ):
        return False

    return True


def list_blocks(blocks: Iterable[Block], criteria: FilterCriteria) -> List[Block]:
    """
    Select blocks matching ``criteria``, most recent start first.

    Active blocks are never excluded by ``end_before`` alone. Ties on the
    start instant keep their input order. A non-zero limit keeps the most
    recent blocks.
    """
    result = [block for block in blocks if matches(block, criteria)]
    result.sort(key=lambda block: block.timestamp_start, reverse=True)
    if criteria.limit:
        result = result[: criteria.limit]
    return result
