# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Journal key encoding.

Partition key: ``"{year}_{week}"`` of the UTC event time. Weeks start on
Sunday and January 1st is always in week 1, so a partition never holds more
than seven days of events and a calendar day never spans two partitions.

Order key: ``"{ticks:019d}_{event id without dashes}"``. Ticks count
100-nanosecond intervals since 0001-01-01T00:00Z; the fixed width makes
lexicographic order equal to chronological order. Range bounds are the bare
19-digit prefix, which sorts before every key sharing those ticks, so
``lower <= key < upper`` selects exactly the window ``[start, end)``.
"""

from datetime import date, datetime, time, timedelta, UTC

_EPOCH = datetime(1, 1, 1, tzinfo=UTC)
TICKS_WIDTH = 19


def _as_utc(moment: datetime | date) -> datetime:
    if not isinstance(moment, datetime):
        return datetime.combine(moment, time.min, tzinfo=UTC)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def to_ticks(moment: datetime | date) -> int:
    """Convert a moment to 100ns ticks since 0001-01-01 UTC."""
    delta = _as_utc(moment) - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


def week_of_year(day: date) -> int:
    """Week number with Sunday-first weeks and January 1st in week 1."""
    jan1 = date(day.year, 1, 1)
    jan1_offset = (jan1.weekday() + 1) % 7
    return (day.timetuple().tm_yday - 1 + jan1_offset) // 7 + 1


def day_of_week(day: date) -> int:
    """Day of week with Sunday = 0."""
    return (day.weekday() + 1) % 7


def partition_key_for(moment: datetime | date) -> str:
    day = _as_utc(moment).date()
    return f"{day.year}_{week_of_year(day)}"


def normalize_event_id(event_id: str) -> str:
    return event_id.replace("-", "")


def order_key_for(moment: datetime, event_id: str) -> str:
    return f"{to_ticks(moment):0{TICKS_WIDTH}d}_{normalize_event_id(event_id)}"


def order_bound(moment: datetime | date) -> str:
    """Range bound for order keys at ``moment``."""
    return f"{to_ticks(moment):0{TICKS_WIDTH}d}"


def day_bounds(day: date) -> tuple[str, str]:
    """Lower and upper order-key bounds covering ``[day 00:00, day+1 00:00)``."""
    return order_bound(day), order_bound(day + timedelta(days=1))
