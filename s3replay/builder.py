# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Replay Builder - Functional builder pattern for configuration.

This module provides pure functions for building ReplayConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict

from s3replay.config import ReplayConfig


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "backup_bucket": "",
        "region": "us-east-1",
        "endpoint_url": None,
        "queue_url": None,
        "data_path": Path("./s3replay_data"),
        "queue_batch_size": 32,
        "queue_visibility_timeout_seconds": 300,
        "queue_wait_seconds": 0,
        "journal_page_size": 1000,
        "progress_update_every": 100,
        "ingest_interval_seconds": 300,
        "dispatch_interval_seconds": 10,
        "job_lease_seconds": 3600,
        "admin_api_key": None,
    }


def with_backup_bucket(config: ConfigDict, bucket_name: str) -> ConfigDict:
    """
    Set the bucket receiving backup copies.

    Args:
        config: Current configuration dictionary
        bucket_name: Name of the backup bucket

    Returns:
        New configuration dictionary with the backup bucket set
    """
    return {**config, "backup_bucket": bucket_name}


def with_region(config: ConfigDict, region: str) -> ConfigDict:
    """Set the AWS region."""
    return {**config, "region": region}


def with_endpoint(config: ConfigDict, endpoint_url: str) -> ConfigDict:
    """Point S3 and SQS clients at a compatible endpoint (e.g. localstack)."""
    return {**config, "endpoint_url": endpoint_url}


def consume_queue(
    config: ConfigDict,
    queue_url: str,
    batch_size: int | None = None,
    visibility_timeout_seconds: int | None = None,
) -> ConfigDict:
    """
    Configure the notification queue drained by the ingestion worker.

    Args:
        config: Current configuration dictionary
        queue_url: SQS queue URL
        batch_size: Maximum messages per ingestion run
        visibility_timeout_seconds: How long received messages stay hidden

    Returns:
        New configuration dictionary with the queue configured
    """
    updated = {**config, "queue_url": queue_url}
    if batch_size is not None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        updated["queue_batch_size"] = batch_size
    if visibility_timeout_seconds is not None:
        updated["queue_visibility_timeout_seconds"] = visibility_timeout_seconds
    return updated


def store_data_in(config: ConfigDict, data_path: Path | str) -> ConfigDict:
    """Set the directory holding the journal and job databases."""
    path = Path(data_path) if isinstance(data_path, str) else data_path
    return {**config, "data_path": path}


def checkpoint_every(config: ConfigDict, successes: int) -> ConfigDict:
    """
    Set how often async restore progress is persisted.

    Args:
        config: Current configuration dictionary
        successes: Number of successful replays between checkpoints

    Returns:
        New configuration dictionary with the checkpoint interval set
    """
    if successes < 1:
        raise ValueError(f"checkpoint interval must be >= 1, got {successes}")
    return {**config, "progress_update_every": successes}


def run_ingestion_every(config: ConfigDict, seconds: int) -> ConfigDict:
    """Set the ingestion trigger interval."""
    if seconds < 1:
        raise ValueError(f"ingestion interval must be >= 1, got {seconds}")
    return {**config, "ingest_interval_seconds": seconds}


def require_api_key(config: ConfigDict, api_key: str) -> ConfigDict:
    """Protect the HTTP front end with a bearer token."""
    return {**config, "admin_api_key": api_key}


def build_config(config_dict: ConfigDict) -> ReplayConfig:
    """
    Validate and build an immutable ReplayConfig from a configuration dictionary.

    Raises:
        ConfigurationError: If validation fails
    """
    if not config_dict.get("backup_bucket"):
        from s3replay.exceptions import ConfigurationError

        raise ConfigurationError("backup_bucket is required")

    return ReplayConfig(**config_dict)


def build_from_steps(*steps: BuilderFunc) -> ReplayConfig:
    """
    Build config by applying a sequence of builder functions.

    Example:
        config = build_from_steps(
            lambda c: with_backup_bucket(c, "my-backups"),
            lambda c: consume_queue(c, "https://sqs.us-east-1.amazonaws.com/1/events"),
            lambda c: checkpoint_every(c, 50),
        )
    """
    config = create_empty_config()
    for step in steps:
        config = step(config)
    return build_config(config)


def create_config(
    backup_bucket: str,
    *,
    region: str = "us-east-1",
    queue_url: str | None = None,
    data_path: str | Path | None = None,
    endpoint_url: str | None = None,
    **kwargs: Any,
) -> ReplayConfig:
    """
    Create a ReplayConfig from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Args:
        backup_bucket: Bucket receiving backup copies (required)
        region: AWS region (default: "us-east-1")
        queue_url: SQS queue delivering change notifications
        data_path: Directory for journal.db and jobs.db
        endpoint_url: Custom S3/SQS endpoint
        **kwargs: Additional configuration options

    Example:
        config = create_config(
            backup_bucket="my-backups",
            queue_url="https://sqs.us-east-1.amazonaws.com/123456789012/blob-events",
            data_path="/var/lib/s3replay",
            progress_update_every=50,
        )
    """
    config_dict = with_backup_bucket(create_empty_config(), backup_bucket)

    if region:
        config_dict = with_region(config_dict, region)

    if queue_url:
        config_dict = consume_queue(config_dict, queue_url)

    if data_path:
        config_dict = store_data_in(config_dict, data_path)

    if endpoint_url:
        config_dict = with_endpoint(config_dict, endpoint_url)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
