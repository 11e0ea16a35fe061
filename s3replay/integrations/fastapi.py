# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Replay FastAPI Integration - HTTP front end for backup and restore.

This module provides:
- Restore submission (Sync or Async) and job status polling
- On-demand ingestion and dispatch triggers
- Health, status and config endpoints
- Lifespan management with scheduled ingestion and dispatch
"""

from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, UTC
from typing import Any, Callable

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from s3replay.backup import run_ingestion
from s3replay.config import ReplayConfig
from s3replay.core import ReplayState, get_metrics, initialize_state, shutdown_state
from s3replay.dispatch import (
    build_rejected_response,
    get_restore_status,
    run_dispatch_tick,
    submit_restore,
)
from s3replay.exceptions import ValidationError
from s3replay.jobs import JobStatus
from s3replay.restore import parse_restore_request

logger = structlog.get_logger()

# Security
security = HTTPBearer(auto_error=False)

# HTTP status per restore outcome
_STATUS_CODES = {
    JobStatus.COMPLETED.value: 200,
    JobStatus.ACCEPTED.value: 202,
    JobStatus.EXCEPTION.value: 500,
}


def create_api_key_guard(config: ReplayConfig) -> Callable[..., Any]:
    """
    Build a dependency checking the bearer token against ``admin_api_key``.

    Requests must include: Authorization: Bearer <api_key>. Without a
    configured key every request is let through.
    """

    async def verify_api_key(
        credentials: HTTPAuthorizationCredentials | None = Depends(security),
    ) -> bool:
        if not config.admin_api_key:
            return True

        if not credentials:
            raise HTTPException(
                status_code=401,
                detail="Authorization header required",
            )

        if credentials.credentials != config.admin_api_key:
            raise HTTPException(
                status_code=403,
                detail="Invalid API key",
            )

        return True

    return verify_api_key


def _isoformat(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment else None


def register_s3replay_routes(
    app: FastAPI,
    config: ReplayConfig,
    state: ReplayState,
    prefix: str = "/api",
) -> None:
    """
    Register backup and restore endpoints on a FastAPI app.

    Args:
        app: FastAPI application
        config: Replay configuration
        state: Runtime state
        prefix: URL prefix for endpoints (default: /api)
    """
    guard = [Depends(create_api_key_guard(config))]

    @app.post(f"{prefix}/restore/blobs", dependencies=guard)
    async def restore_blobs(request: Request) -> JSONResponse:
        """
        Submit a restore request.

        Sync requests answer 200 with final counts (500 if the run failed).
        Async requests answer 202 with a StatusLocationUri to poll. Invalid
        requests answer 400 with the body echoed back and ExceptionMessage set.
        """
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                status_code=400,
                content=build_rejected_response(None, "Request body must be valid JSON"),
            )

        try:
            restore_request = parse_restore_request(body)
            response = await submit_restore(
                restore_request,
                config,
                state,
                base_url=str(request.base_url),
                prefix=prefix,
            )
        except ValidationError as e:
            logger.warning("restore_request_rejected", error=e.message)
            return JSONResponse(
                status_code=400, content=build_rejected_response(body, e.message)
            )

        return JSONResponse(
            status_code=_STATUS_CODES.get(response["Status"], 200),
            content=response,
        )

    @app.get(f"{prefix}/restore/{{date_bucket}}/{{job_id}}", dependencies=guard)
    async def restore_status(date_bucket: str, job_id: str) -> dict:
        """
        Status of an async restore job.

        Unknown ids answer with Status "Unknown" rather than an error.
        """
        return await get_restore_status(state, date_bucket, job_id)

    @app.post(f"{prefix}/backup/run", dependencies=guard)
    async def trigger_ingestion() -> dict:
        """Drain one batch of change notifications now."""
        result = await run_ingestion(config, state)
        return asdict(result)

    @app.post(f"{prefix}/restore/dispatch", dependencies=guard)
    async def trigger_dispatch() -> dict:
        """Claim and run one pending restore job now."""
        job = await run_dispatch_tick(config, state)
        if job is None:
            return {"dispatched": False}
        return {
            "dispatched": True,
            "JobId": job.id,
            "PartitionKey": job.partition_key,
            "Status": job.status.value,
        }

    @app.get(f"{prefix}/status", dependencies=guard)
    async def get_status() -> dict:
        """
        Get ingestion and restore counters.
        """
        metrics = await get_metrics(state)
        return {
            "total_ingested": metrics.total_ingested,
            "last_ingest_at": _isoformat(metrics.last_ingest_at),
            "total_restored": metrics.total_restored,
            "total_dispatched": metrics.total_dispatched,
            "last_dispatch_at": _isoformat(metrics.last_dispatch_at),
            "jobs_by_status": metrics.jobs_by_status,
            "journal_size_bytes": metrics.journal_size_bytes,
            "last_error": metrics.last_error,
        }

    @app.get(f"{prefix}/health", dependencies=guard)
    async def health_check() -> dict:
        """
        Health check endpoint.

        Verifies the local databases and backup bucket connectivity.
        """
        journal_ok = state["journal_db_path"].exists()
        jobs_ok = state["jobs_db_path"].exists()

        s3_ok = False
        s3_error = None
        try:
            async with state["session"].create_client(
                "s3",
                region_name=config.region,
                endpoint_url=config.endpoint_url,
            ) as s3_client:
                await s3_client.head_bucket(Bucket=config.backup_bucket)
                s3_ok = True
        except Exception as e:
            s3_error = str(e)

        status = "healthy"
        if not (journal_ok and jobs_ok) or not s3_ok:
            status = "degraded"
        if not (journal_ok and jobs_ok) and not s3_ok:
            status = "unhealthy"

        return {
            "status": status,
            "journal_accessible": journal_ok,
            "jobs_accessible": jobs_ok,
            "s3_reachable": s3_ok,
            "s3_error": s3_error,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get(f"{prefix}/config", dependencies=guard)
    async def get_config() -> dict:
        """
        Get current configuration (sensitive values redacted).
        """
        return {
            "backup_bucket": config.backup_bucket,
            "region": config.region,
            "endpoint_url": config.endpoint_url,
            "queue_url": config.queue_url,
            "queue_batch_size": config.queue_batch_size,
            "queue_visibility_timeout_seconds": config.queue_visibility_timeout_seconds,
            "journal_page_size": config.journal_page_size,
            "progress_update_every": config.progress_update_every,
            "ingest_interval_seconds": config.ingest_interval_seconds,
            "dispatch_interval_seconds": config.dispatch_interval_seconds,
            "job_lease_seconds": config.job_lease_seconds,
            "api_key_required": config.admin_api_key is not None,
        }


def _setup_scheduled_tasks(config: ReplayConfig, state: ReplayState) -> Any:
    """
    Set up APScheduler for periodic ingestion and dispatch.

    Each job runs at most once at a time; missed runs are coalesced.
    """
    from apscheduler.schedulers.asyncio import AsyncIOScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    scheduler = AsyncIOScheduler()

    async def scheduled_ingestion():
        try:
            result = await run_ingestion(config, state)
            logger.info(
                "scheduled_ingestion_completed",
                journaled=result.journaled,
                failed=result.failed,
            )
        except Exception as e:
            logger.error("scheduled_ingestion_failed", error=str(e))

    async def scheduled_dispatch():
        try:
            job = await run_dispatch_tick(config, state)
            if job:
                logger.info(
                    "scheduled_dispatch_completed",
                    job_id=job.id,
                    status=job.status.value,
                )
        except Exception as e:
            logger.error("scheduled_dispatch_failed", error=str(e))

    if config.queue_url:
        scheduler.add_job(
            scheduled_ingestion,
            trigger=IntervalTrigger(seconds=config.ingest_interval_seconds),
            id="s3replay_ingestion",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    scheduler.add_job(
        scheduled_dispatch,
        trigger=IntervalTrigger(seconds=config.dispatch_interval_seconds),
        id="s3replay_dispatch",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()

    logger.info(
        "scheduler_started",
        ingest_interval=config.ingest_interval_seconds if config.queue_url else None,
        dispatch_interval=config.dispatch_interval_seconds,
    )
    return scheduler


@asynccontextmanager
async def s3replay_lifespan(
    app: FastAPI,
    config: ReplayConfig,
    prefix: str = "/api",
    schedule: bool = True,
):
    """
    Lifespan context manager for FastAPI.

        app = FastAPI(lifespan=lambda app: s3replay_lifespan(app, config))

    Args:
        app: FastAPI application
        config: Replay configuration
        prefix: URL prefix for endpoints
        schedule: Start periodic ingestion and dispatch
    """
    logger.info("s3replay_lifespan_starting", backup_bucket=config.backup_bucket)

    state = await initialize_state(config)
    app.state.s3replay_state = state
    app.state.s3replay_config = config

    register_s3replay_routes(app, config, state, prefix)

    if schedule:
        try:
            state["scheduler"] = _setup_scheduled_tasks(config, state)
        except Exception as e:
            logger.error("scheduler_setup_failed", error=str(e))

    logger.info("s3replay_lifespan_started")

    try:
        yield
    finally:
        logger.info("s3replay_lifespan_stopping")
        await shutdown_state(state)
        logger.info("s3replay_lifespan_stopped")


def get_s3replay_state(app: FastAPI) -> ReplayState:
    """
    Get replay state from a FastAPI app.

    Raises:
        RuntimeError: If s3replay is not initialized
    """
    state = getattr(app.state, "s3replay_state", None)
    if not state:
        raise RuntimeError("s3replay not initialized. Use s3replay_lifespan first.")
    return state
