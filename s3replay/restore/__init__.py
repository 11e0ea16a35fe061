# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Orchestrator - request parsing and journal replay.
"""

from s3replay.restore.request import (
    RequestMode,
    RestoreRequest,
    parse_restore_request,
    validate_restore_request,
)
from s3replay.restore.orchestrator import (
    DayTask,
    RestoreResult,
    execute_restore_job,
    expand_days,
    format_execution_time,
    run_restore,
)

__all__ = [
    "DayTask",
    "RequestMode",
    "RestoreRequest",
    "RestoreResult",
    "execute_restore_job",
    "expand_days",
    "format_execution_time",
    "parse_restore_request",
    "run_restore",
    "validate_restore_request",
]
