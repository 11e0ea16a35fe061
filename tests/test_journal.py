# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Journal tests.

Covers key encoding, ordered paginated range scans, duplicate appends and
write failures.
"""

from datetime import date, datetime, timedelta, timezone, UTC

import pytest

from s3replay.events import BackupRef, CreatedEvent, DeletedEvent
from s3replay.exceptions import JournalWriteError
from s3replay.journal import (
    Journal,
    JournalEntry,
    day_bounds,
    order_key_for,
    partition_key_for,
    to_ticks,
    week_of_year,
)


async def collect(entries):
    return [entry async for entry in entries]


def created(event_id: str, moment: datetime, key: str = "a.txt") -> CreatedEvent:
    return CreatedEvent(id=event_id, url=f"s3://docs/{key}", event_time=moment, size=7)


# =============================================================================
# KEY ENCODING
# =============================================================================


def test_ticks_match_epoch_offsets():
    """Ticks count 100ns intervals since 0001-01-01 UTC."""
    assert to_ticks(datetime(1, 1, 1, tzinfo=UTC)) == 0
    assert to_ticks(datetime(1970, 1, 1, tzinfo=UTC)) == 621355968000000000
    assert to_ticks(datetime(1970, 1, 1, 0, 0, 0, 1, tzinfo=UTC)) == 621355968000000010


def test_order_key_is_fixed_width_and_strips_dashes():
    key = order_key_for(datetime(1970, 1, 1, tzinfo=UTC), "ab-cd-ef")
    assert key == "0621355968000000000_abcdef"


def test_order_keys_sort_chronologically():
    base = datetime(2024, 3, 5, 12, 0, tzinfo=UTC)
    keys = [
        order_key_for(base + timedelta(microseconds=offset), "zz")
        for offset in (0, 1, 999_999, 10_000_000)
    ]
    assert keys == sorted(keys)


def test_week_starts_on_sunday_and_jan_first_is_week_one():
    # 2022-01-01 is a Saturday
    assert week_of_year(date(2022, 1, 1)) == 1
    assert week_of_year(date(2022, 1, 2)) == 2
    # 2023-01-01 is a Sunday
    assert week_of_year(date(2023, 1, 1)) == 1
    assert week_of_year(date(2023, 1, 7)) == 1
    assert week_of_year(date(2023, 1, 8)) == 2


def test_partition_key_uses_utc_date():
    assert partition_key_for(datetime(2024, 1, 1, 10, tzinfo=UTC)) == "2024_1"
    # 23:30 on Dec 31st at UTC-5 is already Jan 1st in UTC
    late = datetime(2023, 12, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert partition_key_for(late) == "2024_1"


def test_day_bounds_select_half_open_window():
    day = date(2024, 6, 10)
    lower, upper = day_bounds(day)

    midnight = order_key_for(datetime(2024, 6, 10, tzinfo=UTC), "id")
    last_tick = order_key_for(
        datetime(2024, 6, 10, 23, 59, 59, 999_999, tzinfo=UTC), "id"
    )
    next_midnight = order_key_for(datetime(2024, 6, 11, tzinfo=UTC), "id")

    assert lower <= midnight < upper
    assert lower <= last_tick < upper
    assert not next_midnight < upper


# =============================================================================
# APPEND AND RANGE QUERIES
# =============================================================================


@pytest.mark.asyncio
async def test_entries_returned_once_in_order_across_pages(journal: Journal):
    """Appended entries come back exactly once, ascending, across store pages."""
    day = datetime(2024, 1, 3, tzinfo=UTC)
    offsets = [5, 1, 4, 2, 3]
    for minutes in offsets:
        await journal.append(
            JournalEntry.for_event(created(f"evt-{minutes}", day + timedelta(minutes=minutes)))
        )

    entries = await collect(journal.query_day(day.date()))

    assert [e.event.id for e in entries] == [f"evt-{m}" for m in sorted(offsets)]
    keys = [e.order_key for e in entries]
    assert keys == sorted(keys)


@pytest.mark.asyncio
async def test_query_day_excludes_neighbouring_days(journal: Journal):
    day = date(2024, 1, 3)
    for moment, event_id in [
        (datetime(2024, 1, 2, 23, 59, 59, tzinfo=UTC), "before"),
        (datetime(2024, 1, 3, 0, 0, tzinfo=UTC), "first"),
        (datetime(2024, 1, 3, 23, 59, 59, tzinfo=UTC), "last"),
        (datetime(2024, 1, 4, 0, 0, tzinfo=UTC), "after"),
    ]:
        await journal.append(JournalEntry.for_event(created(event_id, moment)))

    entries = await collect(journal.query_day(day))

    assert [e.event.id for e in entries] == ["first", "last"]


@pytest.mark.asyncio
async def test_range_can_be_iterated_again(journal: Journal):
    """Each iteration restarts from the first page."""
    moment = datetime(2024, 2, 1, 8, tzinfo=UTC)
    for i in range(3):
        await journal.append(
            JournalEntry.for_event(created(f"evt-{i}", moment + timedelta(seconds=i)))
        )

    entries = journal.query_day(moment.date())
    first = await collect(entries)
    second = await collect(entries)

    assert len(first) == 3
    assert [e.order_key for e in first] == [e.order_key for e in second]


@pytest.mark.asyncio
async def test_empty_day_yields_nothing(journal: Journal):
    assert await collect(journal.query_day(date(2030, 5, 5))) == []


@pytest.mark.asyncio
async def test_duplicate_append_keeps_first_entry(journal: Journal):
    """A redelivered notification does not create a second row."""
    moment = datetime(2024, 1, 3, 9, tzinfo=UTC)
    event = created("dup", moment)
    backup = BackupRef("backup-bucket", "2024/wk1/dy3/docs/a.txt.X", "docs", "a.txt", "op-1")

    await journal.append(JournalEntry.for_event(event, backup))
    await journal.append(JournalEntry.for_event(event, None))

    entries = await collect(journal.query_day(moment.date()))

    assert len(entries) == 1
    assert entries[0].backup_ref == backup


@pytest.mark.asyncio
async def test_entry_round_trips_event_and_backup_ref(journal: Journal):
    moment = datetime(2024, 4, 4, 4, 4, 4, 400, tzinfo=UTC)
    deleted = DeletedEvent(id="del-1", url="s3://docs/gone.txt", event_time=moment)
    await journal.append(JournalEntry.for_event(deleted))

    [entry] = await collect(journal.query_day(moment.date()))

    assert entry.event == deleted
    assert entry.backup_ref is None
    assert entry.partition_key == partition_key_for(moment)


def test_backup_ref_only_on_created_entries():
    deleted = DeletedEvent(
        id="d", url="s3://docs/a.txt", event_time=datetime(2024, 1, 1, tzinfo=UTC)
    )
    backup = BackupRef("backup-bucket", "k", "docs", "a.txt", "op")

    with pytest.raises(ValueError):
        JournalEntry.for_event(deleted, backup)


class BrokenStore:
    async def append(self, partition_key, order_key, record):
        raise OSError("disk full")

    async def query_page(self, partition_key, lower, upper, continuation, limit):
        raise OSError("disk full")


@pytest.mark.asyncio
async def test_rejected_append_raises_journal_write_error():
    journal = Journal(BrokenStore())
    entry = JournalEntry.for_event(created("x", datetime(2024, 1, 1, tzinfo=UTC)))

    with pytest.raises(JournalWriteError) as exc_info:
        await journal.append(entry)

    assert exc_info.value.details["order_key"] == entry.order_key
