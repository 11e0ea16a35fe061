# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Replay Core - runtime state shared by ingestion, restore and dispatch.

The state holds the databases, the aiobotocore session and running counters.
Object store and queue clients are not kept here; each operation opens its
own through ``open_object_store`` / ``open_notification_queue``.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, TypedDict

from s3replay.config import ReplayConfig


@dataclass
class ReplayMetrics:
    """Counters reported by the status endpoint."""

    total_ingested: int
    last_ingest_at: datetime | None
    total_restored: int
    total_dispatched: int
    last_dispatch_at: datetime | None
    jobs_by_status: Dict[str, int]
    journal_size_bytes: int
    last_error: str | None


class ReplayState(TypedDict):
    """Runtime state for ingestion and restore operations."""

    journal_db_path: Path
    jobs_db_path: Path
    data_path: Path
    session: Any  # aiobotocore session
    journal: Any  # s3replay.journal.Journal
    jobs: Any  # s3replay.jobs.JobRegistry
    scheduler: Any  # APScheduler AsyncIOScheduler, when scheduling is enabled
    last_ingest_at: datetime | None
    last_dispatch_at: datetime | None
    total_ingested: int
    total_restored: int
    total_dispatched: int
    last_error: str | None


async def initialize_state(config: ReplayConfig) -> ReplayState:
    """
    Initialize runtime state.

    Creates the data directory, initializes the journal and job databases
    and creates the aiobotocore session.

    Args:
        config: Replay configuration

    Returns:
        Initialized ReplayState dictionary
    """
    import structlog
    from aiobotocore.session import get_session

    from s3replay.jobs import JobRegistry, init_jobs_db
    from s3replay.journal import Journal, SQLiteJournalStore, init_journal_db

    logger = structlog.get_logger()

    config.data_path.mkdir(parents=True, exist_ok=True)

    await init_journal_db(config.journal_db_path)
    await init_jobs_db(config.jobs_db_path)

    journal = Journal(
        SQLiteJournalStore(config.journal_db_path),
        page_size=config.journal_page_size,
    )
    jobs = JobRegistry(config.jobs_db_path, lease_seconds=config.job_lease_seconds)

    logger.info("replay_state_initialized", data_path=str(config.data_path))

    return ReplayState(
        journal_db_path=config.journal_db_path,
        jobs_db_path=config.jobs_db_path,
        data_path=config.data_path,
        session=get_session(),
        journal=journal,
        jobs=jobs,
        scheduler=None,
        last_ingest_at=None,
        last_dispatch_at=None,
        total_ingested=0,
        total_restored=0,
        total_dispatched=0,
        last_error=None,
    )


async def get_metrics(state: ReplayState) -> ReplayMetrics:
    """Get current counters and job totals."""
    journal_size = (
        state["journal_db_path"].stat().st_size
        if state["journal_db_path"].exists()
        else 0
    )

    return ReplayMetrics(
        total_ingested=state["total_ingested"],
        last_ingest_at=state["last_ingest_at"],
        total_restored=state["total_restored"],
        total_dispatched=state["total_dispatched"],
        last_dispatch_at=state["last_dispatch_at"],
        jobs_by_status=await state["jobs"].counts(),
        journal_size_bytes=journal_size,
        last_error=state["last_error"],
    )


async def shutdown_state(state: ReplayState) -> None:
    """Cleanup resources."""
    import structlog

    logger = structlog.get_logger()

    scheduler = state["scheduler"]
    if scheduler is not None:
        try:
            scheduler.shutdown(wait=False)
        except Exception as e:
            logger.warning("scheduler_shutdown_failed", error=str(e))
        state["scheduler"] = None

    logger.info("replay_state_shutdown_complete")
