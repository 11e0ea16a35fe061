# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration tests: validation, the functional builder and the environment.
"""

from pathlib import Path

import pytest

from s3replay.config import ReplayConfig
from s3replay.exceptions import ConfigurationError


def test_builder_fluent_api():
    """Test the fluent builder API."""
    from s3replay.builder import (
        build_config,
        checkpoint_every,
        consume_queue,
        create_empty_config,
        require_api_key,
        run_ingestion_every,
        store_data_in,
        with_backup_bucket,
        with_region,
    )

    config = build_config(
        require_api_key(
            run_ingestion_every(
                checkpoint_every(
                    store_data_in(
                        consume_queue(
                            with_region(
                                with_backup_bucket(create_empty_config(), "my-backups"),
                                "eu-west-1",
                            ),
                            "https://sqs.eu-west-1.amazonaws.com/1/events",
                            batch_size=50,
                        ),
                        "/tmp/s3replay",
                    ),
                    25,
                ),
                60,
            ),
            "secret",
        )
    )

    assert config.backup_bucket == "my-backups"
    assert config.region == "eu-west-1"
    assert config.queue_url == "https://sqs.eu-west-1.amazonaws.com/1/events"
    assert config.queue_batch_size == 50
    assert config.data_path == Path("/tmp/s3replay")
    assert config.progress_update_every == 25
    assert config.ingest_interval_seconds == 60
    assert config.admin_api_key == "secret"
    assert config.journal_db_path == Path("/tmp/s3replay/journal.db")
    assert config.dispatch_interval_seconds == 10  # Default


def test_build_from_steps_requires_backup_bucket():
    from s3replay.builder import build_from_steps, with_region

    with pytest.raises(ConfigurationError):
        build_from_steps(lambda c: with_region(c, "eu-west-1"))


def test_create_config_applies_known_kwargs():
    from s3replay.builder import create_config

    config = create_config("my-backups", data_path="/data", progress_update_every=10)

    assert config.data_path == Path("/data")
    assert config.progress_update_every == 10


def test_config_validation_collects_all_errors():
    with pytest.raises(ConfigurationError) as exc_info:
        ReplayConfig(
            backup_bucket="INVALID_BUCKET",  # Uppercase not allowed
            queue_batch_size=0,
            progress_update_every=0,
        )

    errors = exc_info.value.details["errors"]
    assert len(errors) == 3
    assert "Invalid backup bucket name" in str(exc_info.value)


def test_lease_must_outlast_dispatch_interval():
    with pytest.raises(ConfigurationError) as exc_info:
        ReplayConfig(backup_bucket="valid-bucket", dispatch_interval_seconds=30, job_lease_seconds=10)

    assert "job_lease_seconds" in str(exc_info.value)


def test_with_updates_returns_new_config():
    config = ReplayConfig(backup_bucket="valid-bucket")

    updated = config.with_updates(region="ap-south-1")

    assert updated.region == "ap-south-1"
    assert config.region == "us-east-1"


def test_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    from s3replay.env import create_config_from_env

    monkeypatch.setenv("S3REPLAY_BACKUP_BUCKET", "env-backups")
    monkeypatch.setenv("S3REPLAY_DATA_PATH", str(tmp_path))
    monkeypatch.setenv("S3REPLAY_UPDATE_FREQUENCY", "5")
    monkeypatch.setenv("S3REPLAY_ADMIN_API_KEY", "k")

    config = create_config_from_env()

    assert config.backup_bucket == "env-backups"
    assert config.data_path == tmp_path
    assert config.progress_update_every == 5
    assert config.admin_api_key == "k"


def test_config_from_env_rejects_bad_values(monkeypatch: pytest.MonkeyPatch):
    from s3replay.env import create_config_from_env

    monkeypatch.delenv("S3REPLAY_BACKUP_BUCKET", raising=False)
    with pytest.raises(ConfigurationError):
        create_config_from_env()

    monkeypatch.setenv("S3REPLAY_BACKUP_BUCKET", "env-backups")
    monkeypatch.setenv("S3REPLAY_QUEUE_BATCH_SIZE", "lots")
    with pytest.raises(ConfigurationError) as exc_info:
        create_config_from_env()

    assert "S3REPLAY_QUEUE_BATCH_SIZE" in str(exc_info.value)
