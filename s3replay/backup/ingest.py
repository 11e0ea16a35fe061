# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Ingestion Worker - turns change notifications into journal entries.

For every delivered notification:
1. Created: copy the source object into a dated backup location (if it
   still exists) and remember where it went
2. Deleted: nothing to copy
3. Append the journal entry
4. Acknowledge the notification, only after the append succeeded

A failing message is logged and left in the queue for redelivery; it never
stops the rest of the batch.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import List

import structlog
from ulid import ULID

from s3replay.config import ReplayConfig
from s3replay.core import ReplayState
from s3replay.events import (
    BackupRef,
    CreatedEvent,
    EventKind,
    ObjectRef,
    parse_message,
    parse_object_url,
)
from s3replay.exceptions import MessageFormatError
from s3replay.journal import Journal, JournalEntry, day_of_week, week_of_year
from s3replay.queue import NotificationQueue, QueueMessage
from s3replay.storage import ObjectStore

logger = structlog.get_logger()

# Outcomes of a single message
COPIED = "copied"
SOURCE_MISSING = "source_missing"
DELETE_RECORDED = "delete_recorded"


@dataclass
class IngestResult:
    """Result of one ingestion batch."""

    operation_id: str
    received: int = 0
    journaled: int = 0
    copied: int = 0
    skipped_missing: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def backup_object_key(event_time: datetime, source: ObjectRef, suffix: str) -> str:
    """
    Backup location for a created object.

    ``{year}/wk{week}/dy{day of week}/{bucket}/{key}.{suffix}``; the suffix
    keeps repeated backups of the same object from colliding.
    """
    day = event_time.astimezone(UTC).date()
    return (
        f"{day.year}/wk{week_of_year(day)}/dy{day_of_week(day)}/"
        f"{source.bucket}/{source.key}.{suffix}"
    )


async def backup_created_object(
    event: CreatedEvent,
    store: ObjectStore,
    backup_bucket: str,
) -> BackupRef | None:
    """
    Copy a newly created object into the backup bucket.

    The copy is started and its operation id recorded; completion is not
    awaited.

    Returns:
        BackupRef, or None if the source no longer exists
    """
    source = parse_object_url(event.url)

    if not await store.exists(source):
        logger.info(
            "backup_source_missing",
            source=str(source),
            event_id=event.id,
        )
        return None

    dest = ObjectRef(backup_bucket, backup_object_key(event.event_time, source, str(ULID())))
    operation_id = await store.copy(source, dest)

    logger.info(
        "backup_copy_scheduled",
        source=str(source),
        dest=str(dest),
        operation_id=operation_id,
    )

    return BackupRef(
        backup_container=dest.bucket,
        backup_object_name=dest.key,
        original_container=source.bucket,
        original_object_name=source.key,
        copy_operation_id=operation_id,
    )


async def ingest_message(
    message: QueueMessage,
    queue: NotificationQueue,
    store: ObjectStore,
    journal: Journal,
    config: ReplayConfig,
) -> str:
    """
    Back up, journal and acknowledge one notification.

    Returns:
        One of COPIED, SOURCE_MISSING, DELETE_RECORDED

    Raises:
        Any collaborator error; the message is then left unacknowledged
    """
    event = parse_message(message.body)

    if event.kind is EventKind.CREATED:
        backup_ref = await backup_created_object(event, store, config.backup_bucket)
        outcome = COPIED if backup_ref else SOURCE_MISSING
    elif event.kind is EventKind.DELETED:
        backup_ref = None
        outcome = DELETE_RECORDED
    else:
        raise MessageFormatError(f"Unhandled event kind: {event.kind}")

    await journal.append(JournalEntry.for_event(event, backup_ref))

    # Acknowledge only after the journal append succeeded
    await queue.delete(message)
    return outcome


async def ingest_batch(
    queue: NotificationQueue,
    store: ObjectStore,
    journal: Journal,
    config: ReplayConfig,
) -> IngestResult:
    """
    Drain one bounded batch of notifications.

    Args:
        queue: Notification transport
        store: Primary/backup object store
        journal: Change journal
        config: Replay configuration

    Returns:
        IngestResult with per-outcome counts
    """
    start_time = datetime.now(UTC)
    result = IngestResult(operation_id=str(ULID()))

    messages = await queue.receive(
        config.queue_batch_size, config.queue_visibility_timeout_seconds
    )
    result.received = len(messages)

    logger.info(
        "ingest_batch_received",
        operation_id=result.operation_id,
        count=len(messages),
    )

    for message in messages:
        try:
            outcome = await ingest_message(message, queue, store, journal, config)
        except MessageFormatError as e:
            result.failed += 1
            result.errors.append(f"{message.message_id}: {e}")
            logger.warning(
                "ingest_message_unparseable",
                message_id=message.message_id,
                error=str(e),
                body=message.body,
            )
            continue
        except Exception as e:
            result.failed += 1
            result.errors.append(f"{message.message_id}: {e}")
            logger.error(
                "ingest_message_failed",
                message_id=message.message_id,
                error=str(e),
                body=message.body,
            )
            continue

        result.journaled += 1
        if outcome == COPIED:
            result.copied += 1
        elif outcome == SOURCE_MISSING:
            result.skipped_missing += 1

    result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "ingest_batch_completed",
        operation_id=result.operation_id,
        received=result.received,
        journaled=result.journaled,
        copied=result.copied,
        skipped_missing=result.skipped_missing,
        failed=result.failed,
        duration=result.duration_seconds,
    )
    return result


async def run_ingestion(config: ReplayConfig, state: ReplayState) -> IngestResult:
    """
    Run one ingestion batch with per-operation S3 and SQS clients.

    This is the entry point used by the scheduler and the HTTP front end.
    """
    from s3replay.queue import open_notification_queue
    from s3replay.storage import open_object_store

    try:
        async with open_notification_queue(config, state["session"]) as queue:
            async with open_object_store(config, state["session"]) as store:
                result = await ingest_batch(queue, store, state["journal"], config)
    except Exception as e:
        state["last_error"] = str(e)
        logger.error("ingest_run_failed", error=str(e))
        raise

    state["last_ingest_at"] = datetime.now(UTC)
    state["total_ingested"] += result.journaled
    return result
