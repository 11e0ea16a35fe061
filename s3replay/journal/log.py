# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Journal - append-only, time-partitioned log of change events.

Range queries return a JournalRange: a lazy, finite async sequence that
follows store pagination on demand. Iterating it again restarts the scan
from the first page, so the same range can be replayed any number of times.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, AsyncIterator, Dict

import structlog

from s3replay.events import (
    BackupRef,
    ChangeEvent,
    EventKind,
    event_from_dict,
    event_to_dict,
)
from s3replay.exceptions import JournalWriteError, TransientIOError
from s3replay.journal.keys import day_bounds, order_key_for, partition_key_for
from s3replay.journal.store import JournalRecord, JournalStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class JournalEntry:
    """One immutable journal row."""

    partition_key: str
    order_key: str
    event: ChangeEvent
    backup_ref: BackupRef | None = None

    @classmethod
    def for_event(
        cls, event: ChangeEvent, backup_ref: BackupRef | None = None
    ) -> "JournalEntry":
        """Derive partition and order keys from the event time and id."""
        if backup_ref is not None and event.kind is not EventKind.CREATED:
            raise ValueError("Only Created entries carry a backup reference")
        return cls(
            partition_key=partition_key_for(event.event_time),
            order_key=order_key_for(event.event_time, event.id),
            event=event,
            backup_ref=backup_ref,
        )

    @classmethod
    def from_record(cls, record: JournalRecord) -> "JournalEntry":
        backup_ref = record.get("backup_ref")
        return cls(
            partition_key=record["partition_key"],
            order_key=record["order_key"],
            event=event_from_dict(record["event"]),
            backup_ref=BackupRef.from_dict(backup_ref) if backup_ref else None,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "event": event_to_dict(self.event),
            "backup_ref": self.backup_ref.to_dict() if self.backup_ref else None,
        }


class JournalRange:
    """Restartable lazy sequence of entries in one partition key range."""

    def __init__(
        self,
        store: JournalStore,
        partition_key: str,
        lower: str,
        upper: str,
        page_size: int,
    ):
        self.store = store
        self.partition_key = partition_key
        self.lower = lower
        self.upper = upper
        self.page_size = page_size

    def __aiter__(self) -> AsyncIterator[JournalEntry]:
        return self._scan()

    async def _scan(self) -> AsyncIterator[JournalEntry]:
        continuation: str | None = None
        pages = 0
        while True:
            page = await self.store.query_page(
                self.partition_key,
                self.lower,
                self.upper,
                continuation,
                self.page_size,
            )
            pages += 1
            for record in page.records:
                yield JournalEntry.from_record(record)

            continuation = page.continuation
            if continuation is None:
                break

        logger.debug(
            "journal_range_scanned",
            partition_key=self.partition_key,
            pages=pages,
        )


class Journal:
    """Append and range-query access to the change journal."""

    def __init__(self, store: JournalStore, page_size: int = 1000):
        self.store = store
        self.page_size = page_size

    async def append(self, entry: JournalEntry) -> None:
        """
        Append an entry.

        A key that already exists (a redelivered notification whose first
        append succeeded) counts as journaled; the stored row is kept.

        Raises:
            JournalWriteError: If the store rejects the write
        """
        try:
            inserted = await self.store.append(
                entry.partition_key, entry.order_key, entry.to_record()
            )
        except JournalWriteError:
            raise
        except TransientIOError as e:
            raise JournalWriteError(e.message, details=e.details) from e
        except Exception as e:
            raise JournalWriteError(
                f"Failed to append journal entry: {e}",
                details={"partition_key": entry.partition_key, "order_key": entry.order_key},
            ) from e

        if not inserted:
            logger.info(
                "journal_entry_exists",
                partition_key=entry.partition_key,
                order_key=entry.order_key,
            )

    def query_range(self, partition_key: str, lower: str, upper: str) -> JournalRange:
        """Entries with lower <= order_key < upper in one partition, ascending."""
        return JournalRange(self.store, partition_key, lower, upper, self.page_size)

    def query_day(self, day: date) -> JournalRange:
        """Entries with event time in [day 00:00, day+1 00:00) UTC."""
        lower, upper = day_bounds(day)
        return self.query_range(partition_key_for(day), lower, upper)
