# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Journal Store - SQLite key-range table backing the change journal.

Rows are addressed by (partition_key, order_key) and are never updated or
deleted. Range queries return one page at a time together with a
continuation token (the last order key of the page); callers follow the
token until it comes back as None.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, List, Protocol, TypedDict

import aiosqlite
import structlog

from s3replay.exceptions import JournalReadError, JournalWriteError

logger = structlog.get_logger()


class JournalRecord(TypedDict):
    """Stored journal row."""

    partition_key: str
    order_key: str
    event: Dict[str, Any]
    backup_ref: Dict[str, Any] | None
    recorded_at: str  # ISO 8601


@dataclass
class JournalPage:
    """One page of a range query."""

    records: List[JournalRecord] = field(default_factory=list)
    continuation: str | None = None


class JournalStore(Protocol):
    """Capability set of the key-range table holding the journal."""

    async def append(
        self, partition_key: str, order_key: str, record: Dict[str, Any]
    ) -> bool:
        """
        Store a record under a new key.

        Returns:
            False if the key already existed (record left untouched)
        """
        ...

    async def query_page(
        self,
        partition_key: str,
        lower: str,
        upper: str,
        continuation: str | None,
        limit: int,
    ) -> JournalPage:
        """Return rows with lower <= order_key < upper, ascending."""
        ...


async def init_journal_db(db_path: Path) -> None:
    """
    Initialize the journal database schema.

    Creates tables if they don't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS journal (
                    partition_key TEXT NOT NULL,
                    order_key TEXT NOT NULL,
                    event TEXT NOT NULL,
                    backup_ref TEXT,
                    recorded_at TEXT NOT NULL,
                    PRIMARY KEY (partition_key, order_key)
                ) WITHOUT ROWID
            """)
            await db.commit()

        logger.info("journal_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise JournalWriteError(
            f"Failed to initialize journal database: {e}",
            details={"db_path": str(db_path)},
        )


async def insert_record(
    db: aiosqlite.Connection,
    partition_key: str,
    order_key: str,
    event: Dict[str, Any],
    backup_ref: Dict[str, Any] | None,
) -> bool:
    """
    Insert a journal row.

    Returns:
        True if inserted, False if the key already existed
    """
    now = datetime.now(UTC).isoformat()

    cursor = await db.execute(
        """
        INSERT OR IGNORE INTO journal (partition_key, order_key, event, backup_ref, recorded_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            partition_key,
            order_key,
            json.dumps(event),
            json.dumps(backup_ref) if backup_ref is not None else None,
            now,
        ),
    )
    await db.commit()
    return cursor.rowcount == 1


async def select_page(
    db: aiosqlite.Connection,
    partition_key: str,
    lower: str,
    upper: str,
    continuation: str | None,
    limit: int,
) -> JournalPage:
    """
    Select one page of rows in [lower, upper), resuming after ``continuation``.
    """
    query = """
        SELECT partition_key, order_key, event, backup_ref, recorded_at
        FROM journal
        WHERE partition_key = ? AND order_key >= ? AND order_key < ?
    """
    params: List[Any] = [partition_key, lower, upper]

    if continuation is not None:
        query += " AND order_key > ?"
        params.append(continuation)

    query += " ORDER BY order_key ASC LIMIT ?"
    params.append(limit)

    records: List[JournalRecord] = []
    async with db.execute(query, params) as cursor:
        async for row in cursor:
            records.append(
                JournalRecord(
                    partition_key=row[0],
                    order_key=row[1],
                    event=json.loads(row[2]),
                    backup_ref=json.loads(row[3]) if row[3] else None,
                    recorded_at=row[4],
                )
            )

    next_token = records[-1]["order_key"] if len(records) == limit else None
    return JournalPage(records=records, continuation=next_token)


class SQLiteJournalStore:
    """JournalStore backed by a local SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    async def append(
        self, partition_key: str, order_key: str, record: Dict[str, Any]
    ) -> bool:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                return await insert_record(
                    db,
                    partition_key,
                    order_key,
                    record["event"],
                    record.get("backup_ref"),
                )
        except Exception as e:
            raise JournalWriteError(
                f"Failed to append journal entry: {e}",
                details={"partition_key": partition_key, "order_key": order_key},
            )

    async def query_page(
        self,
        partition_key: str,
        lower: str,
        upper: str,
        continuation: str | None,
        limit: int,
    ) -> JournalPage:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                return await select_page(db, partition_key, lower, upper, continuation, limit)
        except Exception as e:
            raise JournalReadError(
                f"Failed to query journal: {e}",
                details={"partition_key": partition_key, "lower": lower, "upper": upper},
            )
