# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Orchestrator - replays journal entries against a target store.

A restore run walks the requested window one calendar day at a time:
1. Validate the request (before any journal query)
2. Expand [start, end] into DayTasks, inclusive on both ends
3. Scan each day's journal range in order-key order
4. Filter entries by container and object name
5. Apply each surviving entry: Created copies the backup back to its
   original location, Deleted removes the object from the target
6. Count every applied action as a success and every caught error as a
   failure; one bad entry never stops the run

Replaying the same window twice converges on the same target state: copies
overwrite and deleting an absent object is a no-op.
"""

from dataclasses import dataclass, field
from time import monotonic
from datetime import date, datetime, timedelta, UTC
from typing import TYPE_CHECKING, Awaitable, Callable, List

import structlog
from ulid import ULID

from s3replay.events import EventKind, ObjectRef, parse_object_url
from s3replay.exceptions import FatalOrchestrationError, RestoreError
from s3replay.journal import Journal, JournalEntry, day_bounds, partition_key_for
from s3replay.restore.request import RestoreRequest, validate_restore_request
from s3replay.storage import ObjectStore

if TYPE_CHECKING:
    from s3replay.config import ReplayConfig
    from s3replay.jobs import JobRegistry, RestoreJob

logger = structlog.get_logger()

Checkpoint = Callable[[int, int], Awaitable[None]]


@dataclass(frozen=True)
class DayTask:
    """One calendar day of a restore window."""

    day: date
    partition_key: str
    lower: str
    upper: str


@dataclass
class RestoreResult:
    """Result of a restore run."""

    operation_id: str
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    scanned_count: int = 0
    days: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def expand_days(start: date, end: date) -> List[DayTask]:
    """One DayTask per calendar day in [start, end], ascending."""
    tasks: List[DayTask] = []
    day = start
    while day <= end:
        lower, upper = day_bounds(day)
        tasks.append(DayTask(day, partition_key_for(day), lower, upper))
        day += timedelta(days=1)
    return tasks


def format_execution_time(seconds: float) -> str:
    """Format a duration as ``HH:MM:SS.cc``."""
    centis = int(round(seconds * 100))
    hours, centis = divmod(centis, 360000)
    minutes, centis = divmod(centis, 6000)
    secs, centis = divmod(centis, 100)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{centis:02d}"


def _target_location(entry: JournalEntry) -> ObjectRef | None:
    if entry.event.kind is EventKind.CREATED:
        if entry.backup_ref is None:
            return None
        return entry.backup_ref.original
    return parse_object_url(entry.event.url)


def _should_replay(entry: JournalEntry, request: RestoreRequest) -> tuple[bool, str]:
    """
    Decide whether an entry is applied.

    Returns:
        Tuple of (replay, reason)
    """
    kind = entry.event.kind

    if kind is EventKind.CREATED and entry.backup_ref is None:
        return (False, "no_backup_ref")

    if kind is EventKind.DELETED and request.skip_deletes:
        return (False, "deletes_skipped")

    location = _target_location(entry)
    if location is None:
        return (False, "no_location")

    if request.container and location.bucket != request.container:
        return (False, f"container_mismatch={location.bucket}")

    if request.object_names and location.key not in request.object_names:
        return (False, f"name_mismatch={location.key}")

    return (True, "matched")


async def _replay_entry(entry: JournalEntry, target: ObjectStore) -> None:
    """
    Apply one entry to the target store.

    Raises:
        RestoreError: If the backup object is gone or the kind is unknown
        TransientIOError: If the target store call fails
    """
    kind = entry.event.kind

    if kind is EventKind.CREATED:
        backup_ref = entry.backup_ref
        if backup_ref is None:
            raise RestoreError("Created entry has no backup reference")

        if not await target.exists(backup_ref.backup):
            raise RestoreError(
                f"Backup object not found: {backup_ref.backup}",
                details={"order_key": entry.order_key},
            )
        await target.copy(backup_ref.backup, backup_ref.original)
        logger.debug(
            "restore_object_copied",
            source=str(backup_ref.backup),
            dest=str(backup_ref.original),
        )

    elif kind is EventKind.DELETED:
        location = parse_object_url(entry.event.url)
        existed = await target.delete(location)
        logger.debug("restore_object_deleted", object=str(location), existed=existed)

    else:
        raise RestoreError(f"Unhandled event kind: {kind}")


async def _checkpoint(checkpoint: Checkpoint, result: RestoreResult) -> None:
    try:
        await checkpoint(result.success_count, result.failure_count)
    except Exception as e:
        raise FatalOrchestrationError(
            f"Failed to checkpoint restore progress: {e}",
            details={
                "operation_id": result.operation_id,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
            },
        ) from e


async def run_restore(
    request: RestoreRequest,
    journal: Journal,
    target: ObjectStore,
    *,
    checkpoint: Checkpoint | None = None,
    checkpoint_every: int = 100,
    heartbeat_seconds: float | None = None,
    result: RestoreResult | None = None,
) -> RestoreResult:
    """
    Replay the journal over the request window.

    Args:
        request: Restore window and filters
        journal: Change journal
        target: Store that receives the replayed changes
        checkpoint: Called with (success, failure) after every
            ``checkpoint_every`` successes
        checkpoint_every: Checkpoint frequency
        heartbeat_seconds: Also checkpoint once this long has passed since the
            last one, and after every day, so a run with few successes still
            reports progress
        result: Result to accumulate into; the caller keeps partial counts
            if the run raises

    Returns:
        RestoreResult with per-outcome counts

    Raises:
        ValidationError: Before any journal query, on an invalid request
        FatalOrchestrationError: If a checkpoint cannot be persisted
    """
    validate_restore_request(request)

    start_time = datetime.now(UTC)
    result = result or RestoreResult(operation_id=str(ULID()))
    days = expand_days(request.start_date, request.end_date)
    result.days = len(days)
    last_checkpoint = monotonic()

    logger.info(
        "restore_run_started",
        operation_id=result.operation_id,
        start_date=request.start_date.isoformat(),
        end_date=request.end_date.isoformat(),
        container=request.container,
        object_names=sorted(request.object_names),
        skip_deletes=request.skip_deletes,
        days=len(days),
    )

    for task in days:
        logger.debug(
            "restore_day_started",
            operation_id=result.operation_id,
            day=task.day.isoformat(),
            partition_key=task.partition_key,
        )

        async for entry in journal.query_range(task.partition_key, task.lower, task.upper):
            result.scanned_count += 1
            applied = False

            try:
                replay, reason = _should_replay(entry, request)
                if replay:
                    await _replay_entry(entry, target)
                    applied = True
                else:
                    result.skipped_count += 1
                    logger.debug(
                        "restore_entry_skipped",
                        order_key=entry.order_key,
                        reason=reason,
                    )
            except Exception as e:
                result.failure_count += 1
                result.errors.append(f"{entry.order_key}: {e}")
                logger.error(
                    "restore_entry_failed",
                    operation_id=result.operation_id,
                    partition_key=entry.partition_key,
                    order_key=entry.order_key,
                    record=entry.to_record(),
                    error=str(e),
                )

            if applied:
                result.success_count += 1

            if checkpoint is None:
                continue

            due = applied and result.success_count % checkpoint_every == 0
            if not due and heartbeat_seconds is not None:
                due = monotonic() - last_checkpoint >= heartbeat_seconds
            if due:
                await _checkpoint(checkpoint, result)
                last_checkpoint = monotonic()

        if checkpoint is not None and heartbeat_seconds is not None:
            await _checkpoint(checkpoint, result)
            last_checkpoint = monotonic()

    result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "restore_run_completed",
        operation_id=result.operation_id,
        success=result.success_count,
        failure=result.failure_count,
        skipped=result.skipped_count,
        scanned=result.scanned_count,
        duration=result.duration_seconds,
    )
    return result


async def execute_restore_job(
    job: "RestoreJob",
    journal: Journal,
    target: ObjectStore,
    registry: "JobRegistry",
    config: "ReplayConfig",
) -> RestoreResult:
    """
    Run a claimed (Processing) job and record its terminal status.

    On success the job moves to Completed with its counts. Any error moves it
    to Exception with the error message and the counts reached so far.

    Raises:
        FatalOrchestrationError: If the terminal status cannot be persisted
    """
    from s3replay.jobs import JobStatus

    start_time = datetime.now(UTC)
    result = RestoreResult(operation_id=job.id)

    async def checkpoint(success: int, failure: int) -> None:
        await registry.update(
            job,
            JobStatus.PROCESSING,
            success_count=success,
            failure_count=failure,
        )
        logger.debug(
            "restore_job_checkpoint",
            job_id=job.id,
            success=success,
            failure=failure,
        )

    try:
        await run_restore(
            job.request,
            journal,
            target,
            checkpoint=checkpoint,
            checkpoint_every=config.progress_update_every,
            heartbeat_seconds=registry.lease_seconds / 3,
            result=result,
        )
        status = JobStatus.COMPLETED
        error_message = None
    except Exception as e:
        status = JobStatus.EXCEPTION
        error_message = str(e)
        logger.error("restore_job_failed", job_id=job.id, error=error_message)

    execution_time = format_execution_time(
        (datetime.now(UTC) - start_time).total_seconds()
    )

    try:
        await registry.update(
            job,
            status,
            success_count=result.success_count,
            failure_count=result.failure_count,
            error_message=error_message,
            execution_time=execution_time,
        )
    except Exception as e:
        logger.critical(
            "restore_job_status_lost",
            job_id=job.id,
            partition_key=job.partition_key,
            status=status.value,
            success=result.success_count,
            failure=result.failure_count,
            error=str(e),
        )
        raise FatalOrchestrationError(
            f"Failed to record restore job status: {e}",
            details={"job_id": job.id, "status": status.value},
        ) from e

    logger.info(
        "restore_job_finished",
        job_id=job.id,
        status=status.value,
        success=result.success_count,
        failure=result.failure_count,
        execution_time=execution_time,
    )
    return result
