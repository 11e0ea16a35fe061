# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Journal - Durable, time-partitioned log of change events.
"""

from s3replay.journal.keys import (
    day_bounds,
    day_of_week,
    order_bound,
    order_key_for,
    partition_key_for,
    to_ticks,
    week_of_year,
)
from s3replay.journal.log import Journal, JournalEntry, JournalRange
from s3replay.journal.store import (
    JournalPage,
    JournalRecord,
    JournalStore,
    SQLiteJournalStore,
    init_journal_db,
)

__all__ = [
    # Keys
    "day_bounds",
    "day_of_week",
    "order_bound",
    "order_key_for",
    "partition_key_for",
    "to_ticks",
    "week_of_year",
    # Journal
    "Journal",
    "JournalEntry",
    "JournalRange",
    # Store
    "JournalPage",
    "JournalRecord",
    "JournalStore",
    "SQLiteJournalStore",
    "init_journal_db",
]
