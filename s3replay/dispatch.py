# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dispatch - front door for restore requests and the periodic job dispatcher.

A Sync request is replayed inline and answered with its final counts. An
Async request is registered as an Accepted job and answered immediately with
a polling location; ``run_dispatch_tick`` later claims and runs it.
"""

from datetime import datetime, UTC
from typing import Any, Dict

import structlog

from s3replay.config import ReplayConfig
from s3replay.core import ReplayState
from s3replay.exceptions import FatalOrchestrationError, ValidationError
from s3replay.jobs import JobStatus, RestoreJob
from s3replay.restore import (
    RequestMode,
    RestoreRequest,
    RestoreResult,
    execute_restore_job,
    format_execution_time,
    run_restore,
)

logger = structlog.get_logger()


def status_location_uri(base_url: str, prefix: str, job: RestoreJob) -> str:
    """Polling location of an async job."""
    return f"{base_url.rstrip('/')}{prefix}/restore/{job.partition_key}/{job.id}"


def build_restore_response(
    request: RestoreRequest,
    status: JobStatus,
    *,
    success_count: int = 0,
    failure_count: int = 0,
    exception_message: str | None = None,
    execution_time: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    status_location_uri: str | None = None,
) -> Dict[str, Any]:
    """Restore response: the request echoed back plus run status and counts."""
    response = request.to_dict()
    response.update(
        {
            "Status": status.value,
            "StartTime": start_time.isoformat() if start_time else None,
            "EndTime": end_time.isoformat() if end_time else None,
            "TotalSuccessCount": success_count,
            "TotalFailureCount": failure_count,
            "ExceptionMessage": exception_message,
            "ExecutionTime": execution_time,
        }
    )
    if status_location_uri:
        response["StatusLocationUri"] = status_location_uri
    return response


def build_rejected_response(body: Any, message: str) -> Dict[str, Any]:
    """Response for a request that failed validation: the raw body echoed back."""
    response = dict(body) if isinstance(body, dict) else {}
    response.update(
        {
            "Status": JobStatus.EXCEPTION.value,
            "StartTime": None,
            "EndTime": None,
            "TotalSuccessCount": 0,
            "TotalFailureCount": 0,
            "ExceptionMessage": message,
            "ExecutionTime": None,
        }
    )
    return response


def job_to_response(job: RestoreJob, location: str | None = None) -> Dict[str, Any]:
    response = build_restore_response(
        job.request,
        job.status,
        success_count=job.success_count,
        failure_count=job.failure_count,
        exception_message=job.error_message,
        execution_time=job.execution_time,
        start_time=job.started_at,
        end_time=job.completed_at,
        status_location_uri=location,
    )
    response["JobId"] = job.id
    return response


async def _restore_inline(
    request: RestoreRequest, config: ReplayConfig, state: ReplayState
) -> Dict[str, Any]:
    from s3replay.storage import open_object_store

    start_time = datetime.now(UTC)
    result = RestoreResult(operation_id="inline")
    status = JobStatus.COMPLETED
    error_message = None

    try:
        async with open_object_store(config, state["session"]) as target:
            result = await run_restore(request, state["journal"], target, result=result)
    except ValidationError:
        raise
    except Exception as e:
        status = JobStatus.EXCEPTION
        error_message = str(e)
        state["last_error"] = error_message
        logger.error("restore_sync_failed", error=error_message)

    end_time = datetime.now(UTC)
    state["total_restored"] += result.success_count

    return build_restore_response(
        request,
        status,
        success_count=result.success_count,
        failure_count=result.failure_count,
        exception_message=error_message,
        execution_time=format_execution_time((end_time - start_time).total_seconds()),
        start_time=start_time,
        end_time=end_time,
    )


async def submit_restore(
    request: RestoreRequest,
    config: ReplayConfig,
    state: ReplayState,
    *,
    base_url: str = "",
    prefix: str = "/api",
) -> Dict[str, Any]:
    """
    Accept a restore request.

    Sync requests run to completion before returning (Status Completed or
    Exception). Async requests return at once with Status Accepted and a
    StatusLocationUri to poll.
    """
    logger.info(
        "restore_request_received",
        mode=request.mode.value,
        start_date=request.start_date.isoformat(),
        end_date=request.end_date.isoformat(),
    )

    if request.mode is RequestMode.SYNC:
        return await _restore_inline(request, config, state)

    job = await state["jobs"].submit(request)
    return job_to_response(job, status_location_uri(base_url, prefix, job))


async def get_restore_status(
    state: ReplayState, partition_key: str, job_id: str
) -> Dict[str, Any]:
    """Job view, or an Unknown placeholder when no such job exists."""
    job = await state["jobs"].get(partition_key, job_id)
    if job is None:
        return {"Status": JobStatus.UNKNOWN.value}
    return job_to_response(job)


async def run_dispatch_tick(
    config: ReplayConfig, state: ReplayState
) -> RestoreJob | None:
    """
    Claim one Accepted job and run it to a terminal status.

    Returns:
        The job as persisted after the run, or None if nothing was claimed

    Raises:
        FatalOrchestrationError: If the job's status could not be persisted
    """
    from s3replay.storage import open_object_store

    job = await state["jobs"].claim_next()
    if job is None:
        return None

    try:
        async with open_object_store(config, state["session"]) as target:
            result = await execute_restore_job(
                job, state["journal"], target, state["jobs"], config
            )
    except FatalOrchestrationError as e:
        state["last_error"] = str(e)
        raise
    except Exception as e:
        # The target store could not be opened; the run never started
        state["last_error"] = str(e)
        logger.error("restore_dispatch_failed", job_id=job.id, error=str(e))
        await state["jobs"].update(
            job,
            JobStatus.EXCEPTION,
            error_message=str(e),
            execution_time=format_execution_time(0),
        )
    else:
        state["total_restored"] += result.success_count

    state["total_dispatched"] += 1
    state["last_dispatch_at"] = datetime.now(UTC)
    return await state["jobs"].get(job.partition_key, job.id)
