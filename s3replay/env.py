# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helper.

The environment is read exactly once, here, at process start. The resulting
ReplayConfig is passed explicitly to every collaborator afterwards.
"""

from __future__ import annotations

import os
from pathlib import Path

from s3replay.builder import create_config
from s3replay.config import ReplayConfig
from s3replay.errors import explain_invalid_int_env, explain_missing_backup_bucket_env
from s3replay.exceptions import ConfigurationError


def _parse_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_int_env(name, value)) from exc
    if parsed < 0:
        raise ConfigurationError(explain_invalid_int_env(name, value))
    return parsed


def create_config_from_env() -> ReplayConfig:
    """
    Create a ReplayConfig from environment variables.

    Required:
        - S3REPLAY_BACKUP_BUCKET: Bucket receiving backup copies

    Optional environment variables:
        - AWS_REGION: AWS region (default: us-east-1)
        - S3REPLAY_ENDPOINT_URL: Custom S3/SQS endpoint
        - S3REPLAY_QUEUE_URL: SQS queue delivering change notifications
        - S3REPLAY_DATA_PATH: Directory for journal.db/jobs.db (default: ./s3replay_data)
        - S3REPLAY_QUEUE_BATCH_SIZE: Messages per ingestion run (default: 32)
        - S3REPLAY_QUEUE_VISIBILITY_TIMEOUT: Seconds (default: 300)
        - S3REPLAY_UPDATE_FREQUENCY: Async progress checkpoint interval (default: 100)
        - S3REPLAY_INGEST_INTERVAL: Seconds between ingestion runs (default: 300)
        - S3REPLAY_DISPATCH_INTERVAL: Seconds between dispatcher ticks (default: 10)
        - S3REPLAY_JOB_LEASE: Seconds a claimed job's lease lasts (default: 3600)
        - S3REPLAY_ADMIN_API_KEY: Bearer token for the HTTP front end
    """

    bucket = os.getenv("S3REPLAY_BACKUP_BUCKET")
    if not bucket:
        raise ConfigurationError(explain_missing_backup_bucket_env())

    data_path_env = os.getenv("S3REPLAY_DATA_PATH")

    return create_config(
        backup_bucket=bucket,
        region=os.getenv("AWS_REGION", "us-east-1"),
        queue_url=os.getenv("S3REPLAY_QUEUE_URL"),
        data_path=Path(data_path_env) if data_path_env else None,
        endpoint_url=os.getenv("S3REPLAY_ENDPOINT_URL"),
        queue_batch_size=_parse_int("S3REPLAY_QUEUE_BATCH_SIZE", 32),
        queue_visibility_timeout_seconds=_parse_int("S3REPLAY_QUEUE_VISIBILITY_TIMEOUT", 300),
        progress_update_every=_parse_int("S3REPLAY_UPDATE_FREQUENCY", 100),
        ingest_interval_seconds=_parse_int("S3REPLAY_INGEST_INTERVAL", 300),
        dispatch_interval_seconds=_parse_int("S3REPLAY_DISPATCH_INTERVAL", 10),
        job_lease_seconds=_parse_int("S3REPLAY_JOB_LEASE", 3600),
        admin_api_key=os.getenv("S3REPLAY_ADMIN_API_KEY") or None,
    )
