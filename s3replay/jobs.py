# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Job Registry - SQLite-backed record of asynchronous restore runs.

Jobs are addressed by (partition_key, job_id) where the partition key is the
journal partition of the submission time and the id is a ULID.

Status only moves forward:

    Accepted -> Processing -> Completed
                           -> Exception

The guard lives in the UPDATE statements themselves, so a transition that does
not start from an allowed status touches no row and is rejected.

Claiming uses a lease: the dispatcher that moves a job to Processing owns it
until ``lease_expires_at``. Every checkpoint renews the lease. A Processing
job whose lease ran out is marked Exception on the next claim; it is never
picked up again.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple

import aiosqlite
import structlog
from ulid import ULID

from s3replay.exceptions import RegistryError
from s3replay.journal.keys import partition_key_for
from s3replay.restore.request import RestoreRequest, parse_restore_request

logger = structlog.get_logger()

LEASE_EXPIRED_MESSAGE = "lease expired"


class JobStatus(str, Enum):
    """Lifecycle status of a restore job."""

    ACCEPTED = "Accepted"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    EXCEPTION = "Exception"
    # Placeholder for lookups that found nothing; never stored
    UNKNOWN = "Unknown"


# Statuses a job may be in before moving to the key status
_ALLOWED_FROM: Dict[JobStatus, Tuple[JobStatus, ...]] = {
    JobStatus.PROCESSING: (JobStatus.ACCEPTED, JobStatus.PROCESSING),
    JobStatus.COMPLETED: (JobStatus.PROCESSING,),
    JobStatus.EXCEPTION: (JobStatus.PROCESSING,),
}


@dataclass(frozen=True)
class RestoreJob:
    """One persisted restore job."""

    id: str
    partition_key: str
    status: JobStatus
    request: RestoreRequest
    submitted_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    success_count: int = 0
    failure_count: int = 0
    error_message: str | None = None
    execution_time: str | None = None
    lease_expires_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.EXCEPTION)


def _timestamp(moment: datetime) -> str:
    # Fixed width so stored timestamps compare correctly as text
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


_COLUMNS = """
    job_id, partition_key, status, request, submitted_at, started_at,
    completed_at, success_count, failure_count, error_message,
    execution_time, lease_expires_at
"""


def _row_to_job(row: Any) -> RestoreJob:
    return RestoreJob(
        id=row[0],
        partition_key=row[1],
        status=JobStatus(row[2]),
        request=parse_restore_request(json.loads(row[3])),
        submitted_at=datetime.fromisoformat(row[4]),
        started_at=_parse_timestamp(row[5]),
        completed_at=_parse_timestamp(row[6]),
        success_count=row[7],
        failure_count=row[8],
        error_message=row[9],
        execution_time=row[10],
        lease_expires_at=_parse_timestamp(row[11]),
    )


async def init_jobs_db(db_path: Path) -> None:
    """
    Initialize the job registry schema.

    Creates tables if they don't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS restore_jobs (
                    partition_key TEXT NOT NULL,
                    job_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    request TEXT NOT NULL,
                    submitted_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    success_count INTEGER NOT NULL DEFAULT 0,
                    failure_count INTEGER NOT NULL DEFAULT 0,
                    error_message TEXT,
                    execution_time TEXT,
                    lease_expires_at TEXT,
                    PRIMARY KEY (partition_key, job_id)
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_restore_jobs_status
                ON restore_jobs(status, submitted_at)
            """)

            await db.commit()

        logger.info("jobs_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise RegistryError(
            f"Failed to initialize job registry database: {e}",
            details={"db_path": str(db_path)},
        )


async def insert_job(db: aiosqlite.Connection, job: RestoreJob) -> None:
    """Insert a new job row."""
    await db.execute(
        """
        INSERT INTO restore_jobs (
            partition_key, job_id, status, request, submitted_at,
            success_count, failure_count
        )
        VALUES (?, ?, ?, ?, ?, 0, 0)
        """,
        (
            job.partition_key,
            job.id,
            job.status.value,
            json.dumps(job.request.to_dict()),
            _timestamp(job.submitted_at),
        ),
    )
    await db.commit()


async def fetch_job(
    db: aiosqlite.Connection, partition_key: str, job_id: str
) -> RestoreJob | None:
    """
    Get one job.

    Returns:
        RestoreJob, or None if no job has that key
    """
    async with db.execute(
        f"SELECT {_COLUMNS} FROM restore_jobs WHERE partition_key = ? AND job_id = ?",
        (partition_key, job_id),
    ) as cursor:
        row = await cursor.fetchone()

    return _row_to_job(row) if row else None


async def count_jobs_by_status(db: aiosqlite.Connection) -> Dict[str, int]:
    """Number of jobs per status."""
    counts: Dict[str, int] = {}
    async with db.execute(
        "SELECT status, COUNT(*) FROM restore_jobs GROUP BY status"
    ) as cursor:
        async for row in cursor:
            counts[row[0]] = row[1]
    return counts


async def claim_next_job(
    db: aiosqlite.Connection,
    lease_seconds: int,
    now: datetime | None = None,
) -> RestoreJob | None:
    """
    Move the oldest Accepted job to Processing under a lease.

    Runs in one ``BEGIN IMMEDIATE`` transaction, so two dispatchers can never
    claim the same job. The connection must be in autocommit mode
    (``isolation_level=None``).

    Args:
        db: SQLite database connection
        lease_seconds: How long the claim is valid without a checkpoint
        now: Current time (defaults to the wall clock)

    Returns:
        The claimed job, or None if nothing was claimable
    """
    now = now or datetime.now(UTC)
    now_ts = _timestamp(now)
    lease_ts = _timestamp(now + timedelta(seconds=lease_seconds))

    await db.execute("BEGIN IMMEDIATE")
    try:
        cursor = await db.execute(
            """
            UPDATE restore_jobs
            SET status = ?, error_message = ?, completed_at = ?, lease_expires_at = NULL
            WHERE status = ? AND lease_expires_at <= ?
            """,
            (
                JobStatus.EXCEPTION.value,
                LEASE_EXPIRED_MESSAGE,
                now_ts,
                JobStatus.PROCESSING.value,
                now_ts,
            ),
        )
        if cursor.rowcount:
            logger.warning("restore_jobs_lease_expired", count=cursor.rowcount)

        async with db.execute(
            "SELECT job_id FROM restore_jobs WHERE status = ? AND lease_expires_at > ? LIMIT 1",
            (JobStatus.PROCESSING.value, now_ts),
        ) as cursor:
            active = await cursor.fetchone()

        if active:
            await db.execute("COMMIT")
            logger.debug("restore_job_claim_skipped", active_job_id=active[0])
            return None

        async with db.execute(
            """
            SELECT partition_key, job_id FROM restore_jobs
            WHERE status = ?
            ORDER BY submitted_at ASC, job_id ASC
            LIMIT 1
            """,
            (JobStatus.ACCEPTED.value,),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            await db.execute("COMMIT")
            return None

        partition_key, job_id = row
        await db.execute(
            """
            UPDATE restore_jobs
            SET status = ?, started_at = ?, lease_expires_at = ?
            WHERE partition_key = ? AND job_id = ? AND status = ?
            """,
            (
                JobStatus.PROCESSING.value,
                now_ts,
                lease_ts,
                partition_key,
                job_id,
                JobStatus.ACCEPTED.value,
            ),
        )
        await db.execute("COMMIT")
    except Exception:
        await db.execute("ROLLBACK")
        raise

    return await fetch_job(db, partition_key, job_id)


async def update_job(
    db: aiosqlite.Connection,
    partition_key: str,
    job_id: str,
    status: JobStatus,
    *,
    success_count: int,
    failure_count: int,
    error_message: str | None = None,
    execution_time: str | None = None,
    lease_seconds: int = 0,
    now: datetime | None = None,
) -> None:
    """
    Move a job to ``status`` with the given counts.

    Processing renews the lease by ``lease_seconds``; Completed and Exception
    stamp ``completed_at`` and drop the lease.

    Raises:
        RegistryError: If the job does not exist or the transition is not allowed
    """
    allowed = _ALLOWED_FROM.get(status)
    if allowed is None:
        raise RegistryError(
            f"Jobs cannot be moved to {status.value}",
            details={"job_id": job_id, "status": status.value},
        )

    now = now or datetime.now(UTC)
    placeholders = ", ".join("?" for _ in allowed)
    from_values = [s.value for s in allowed]

    if status is JobStatus.PROCESSING:
        cursor = await db.execute(
            f"""
            UPDATE restore_jobs
            SET status = ?, success_count = ?, failure_count = ?,
                started_at = COALESCE(started_at, ?), lease_expires_at = ?
            WHERE partition_key = ? AND job_id = ? AND status IN ({placeholders})
            """,
            (
                status.value,
                success_count,
                failure_count,
                _timestamp(now),
                _timestamp(now + timedelta(seconds=lease_seconds)),
                partition_key,
                job_id,
                *from_values,
            ),
        )
    else:
        cursor = await db.execute(
            f"""
            UPDATE restore_jobs
            SET status = ?, success_count = ?, failure_count = ?,
                error_message = ?, execution_time = ?, completed_at = ?,
                lease_expires_at = NULL
            WHERE partition_key = ? AND job_id = ? AND status IN ({placeholders})
            """,
            (
                status.value,
                success_count,
                failure_count,
                error_message,
                execution_time,
                _timestamp(now),
                partition_key,
                job_id,
                *from_values,
            ),
        )
    await db.commit()

    if cursor.rowcount == 0:
        current = await fetch_job(db, partition_key, job_id)
        raise RegistryError(
            f"Rejected transition of job {job_id} to {status.value}",
            details={
                "job_id": job_id,
                "partition_key": partition_key,
                "current_status": current.status.value if current else None,
                "requested_status": status.value,
            },
        )


class JobRegistry:
    """Job registry over a SQLite database file."""

    def __init__(self, db_path: Path, lease_seconds: int = 3600):
        self.db_path = db_path
        self.lease_seconds = lease_seconds

    def _connect(self) -> Any:
        return aiosqlite.connect(self.db_path, isolation_level=None)

    async def submit(
        self, request: RestoreRequest, now: datetime | None = None
    ) -> RestoreJob:
        """Register an Accepted job for ``request``."""
        submitted_at = now or datetime.now(UTC)
        job = RestoreJob(
            id=str(ULID()),
            partition_key=partition_key_for(submitted_at),
            status=JobStatus.ACCEPTED,
            request=request,
            submitted_at=submitted_at,
        )

        try:
            async with self._connect() as db:
                await insert_job(db, job)
        except Exception as e:
            raise RegistryError(
                f"Failed to register restore job: {e}",
                details={"job_id": job.id},
            )

        logger.info(
            "restore_job_accepted",
            job_id=job.id,
            partition_key=job.partition_key,
        )
        return job

    async def get(self, partition_key: str, job_id: str) -> RestoreJob | None:
        try:
            async with self._connect() as db:
                return await fetch_job(db, partition_key, job_id)
        except Exception as e:
            raise RegistryError(
                f"Failed to fetch restore job: {e}",
                details={"job_id": job_id, "partition_key": partition_key},
            )

    async def claim_next(self, now: datetime | None = None) -> RestoreJob | None:
        try:
            async with self._connect() as db:
                job = await claim_next_job(db, self.lease_seconds, now)
        except Exception as e:
            raise RegistryError(f"Failed to claim restore job: {e}")

        if job:
            logger.info(
                "restore_job_claimed",
                job_id=job.id,
                partition_key=job.partition_key,
                lease_expires_at=job.lease_expires_at.isoformat()
                if job.lease_expires_at
                else None,
            )
        return job

    async def update(
        self,
        job: RestoreJob,
        status: JobStatus,
        *,
        success_count: int = 0,
        failure_count: int = 0,
        error_message: str | None = None,
        execution_time: str | None = None,
    ) -> None:
        """
        Persist a status transition for ``job``.

        Raises:
            RegistryError: On a rejected transition or a database failure
        """
        try:
            async with self._connect() as db:
                await update_job(
                    db,
                    job.partition_key,
                    job.id,
                    status,
                    success_count=success_count,
                    failure_count=failure_count,
                    error_message=error_message,
                    execution_time=execution_time,
                    lease_seconds=self.lease_seconds,
                )
        except RegistryError:
            raise
        except Exception as e:
            raise RegistryError(
                f"Failed to update restore job: {e}",
                details={"job_id": job.id, "status": status.value},
            )

        logger.debug(
            "restore_job_updated",
            job_id=job.id,
            status=status.value,
            success_count=success_count,
            failure_count=failure_count,
        )

    async def counts(self) -> Dict[str, int]:
        try:
            async with self._connect() as db:
                return await count_jobs_by_status(db)
        except Exception as e:
            raise RegistryError(f"Failed to count restore jobs: {e}")
