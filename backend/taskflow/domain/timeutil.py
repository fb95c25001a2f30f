"""Timestamp helpers shared by the automation rules.

The task service transports every date as epoch milliseconds. Date-only values
are stored at 04:00 Asia/Jerusalem, which is how "no time entered" is detected.
"""
from __future__ import annotations
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

REFERENCE_TZ = ZoneInfo("Asia/Jerusalem")
DATE_ONLY_SENTINEL = time(4, 0)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def from_millis(millis: int) -> datetime:
    return _EPOCH + millis * _ONE_MS


def to_millis(value: datetime) -> int:
    return (value - _EPOCH) // _ONE_MS


def parse_timestamp(value: Any, now: Callable[[], datetime] = utcnow) -> Optional[datetime]:
    """Parse an epoch-millis value (int or numeric string).

    ``None`` stays ``None``. Anything unparseable falls back to the current
    time with a warning.
    """
    if value is None:
        return None
    try:
        if isinstance(value, bool):
            raise TypeError("boolean is not a timestamp")
        return from_millis(int(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        fallback = now()
        logger.warning("Could not parse timestamp %r, using current time %s", value, fallback)
        return fallback


def is_time_specified(value: datetime) -> bool:
    local = value.astimezone(REFERENCE_TZ)
    return not (local.hour == DATE_ONLY_SENTINEL.hour and local.minute == DATE_ONLY_SENTINEL.minute)


def start_of_day(value: datetime) -> datetime:
    """Midnight of ``value``'s calendar day in the reference timezone."""
    local_day = value.astimezone(REFERENCE_TZ).date()
    return datetime.combine(local_day, time(0, 0), tzinfo=REFERENCE_TZ)


def start_of_next_day(value: datetime) -> datetime:
    local_day = value.astimezone(REFERENCE_TZ).date() + timedelta(days=1)
    return datetime.combine(local_day, time(0, 0), tzinfo=REFERENCE_TZ)
