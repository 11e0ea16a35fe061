# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Replay - notification-driven object backup with point-in-time restore.

Change notifications are turned into dated backup copies and a
time-partitioned journal; any date window of that journal can be replayed
against a target bucket, inline or as a polled background job.
Package name: s3replay.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from s3replay.builder import create_config
from s3replay.env import create_config_from_env

# Runtime state
from s3replay.core import (
    get_metrics,
    initialize_state,
    shutdown_state,
)

# Operations
from s3replay.backup import run_ingestion
from s3replay.dispatch import get_restore_status, run_dispatch_tick, submit_restore
from s3replay.restore import parse_restore_request, run_restore

__all__ = [
    # Version
    "__version__",
    # Configuration creation
    "create_config",
    "create_config_from_env",
    # Runtime state
    "initialize_state",
    "get_metrics",
    "shutdown_state",
    # Operations
    "run_ingestion",
    "parse_restore_request",
    "run_restore",
    "submit_restore",
    "get_restore_status",
    "run_dispatch_tick",
]
