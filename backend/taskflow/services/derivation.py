"""Field derivation engine.

Pure functions computing derived task fields from raw ones. No I/O and no
clock reads: ``now`` is always an argument, so redelivered webhooks recompute
exactly the same values.
"""
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional

from ..domain.enums import EventStatus, RelevanceUnit, TaskStatus
from ..domain.timeutil import is_time_specified, start_of_day, start_of_next_day


class MissingPreviousStatusError(ValueError):
    """No status transition applies and there is no status to keep."""


def calculate_start_time(start_date: Optional[datetime], due_date: Optional[datetime]) -> Optional[datetime]:
    """Start of the event.

    A start date with an explicit time is kept as is; a date-only start becomes
    midnight of that day. Without a start date, a date-only due date yields
    midnight of the due day (all-day event); otherwise there is no start.
    """
    if start_date is not None:
        return start_date if is_time_specified(start_date) else start_of_day(start_date)
    if due_date is not None and not is_time_specified(due_date):
        return start_of_day(due_date)
    return None


def calculate_end_time(due_date: Optional[datetime]) -> Optional[datetime]:
    """End of the event; a date-only due date ends at the following midnight."""
    if due_date is None:
        return None
    return due_date if is_time_specified(due_date) else start_of_next_day(due_date)


def calculate_status(start_time: Optional[datetime], end_time: Optional[datetime], now: datetime) -> EventStatus:
    if start_time is None and end_time is None:
        return EventStatus.NOT_SCHEDULED
    if end_time is not None and now >= end_time:
        return EventStatus.OCCURRED
    if start_time is not None and now >= start_time:
        return EventStatus.OCCURRING
    return EventStatus.UPCOMING


def relevance_interval(num: int, unit: RelevanceUnit) -> timedelta:
    return timedelta(days=num * unit.days)


def calculate_relevance_date(
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    num: Optional[int],
    unit: Optional[RelevanceUnit],
) -> Optional[datetime]:
    """Remind-by date: the anchor (start, else end) minus ``num`` units."""
    anchor = start_time if start_time is not None else end_time
    if anchor is None or num is None or unit is None:
        return None
    return anchor - relevance_interval(num, unit)


def calculate_task_status(
    start_date: Optional[datetime],
    due_date: Optional[datetime],
    previous_status: Optional[TaskStatus],
) -> TaskStatus:
    """Backlog <-> To do transition driven by date presence.

    Raises MissingPreviousStatusError when no transition applies and
    ``previous_status`` is None.
    """
    has_any_date = start_date is not None or due_date is not None
    if has_any_date and previous_status is TaskStatus.BACKLOG:
        return TaskStatus.TO_DO
    if not has_any_date and previous_status is not None and previous_status is not TaskStatus.BACKLOG:
        return TaskStatus.BACKLOG
    if previous_status is None:
        raise MissingPreviousStatusError("no previous status to keep")
    return previous_status
