# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Replay Configuration - Immutable configuration data structures.

The configuration is built once at process start and passed explicitly to
every collaborator. It is frozen (immutable) after creation to prevent
accidental modification during runtime.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import re


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    # Must be lowercase letters, numbers, hyphens, or periods
    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    # No consecutive periods
    if ".." in bucket:
        return False

    # Not IP address format
    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


@dataclass(frozen=True)
class ReplayConfig:
    """
    Immutable configuration for backup ingestion and restore replay.
    """

    # Required: bucket receiving backup copies
    backup_bucket: str

    # AWS region (default: us-east-1)
    region: str = "us-east-1"

    # Custom endpoint for S3/SQS compatible services (localstack, minio)
    endpoint_url: str | None = None

    # SQS queue delivering change notifications
    queue_url: str | None = None

    # Directory holding journal.db and jobs.db
    data_path: Path = field(default_factory=lambda: Path("./s3replay_data"))

    # Maximum notifications drained per ingestion run
    queue_batch_size: int = 32

    # Seconds a received notification stays invisible to other consumers
    queue_visibility_timeout_seconds: int = 300

    # SQS long-poll wait (0 = short poll)
    queue_wait_seconds: int = 0

    # Journal rows fetched per store page
    journal_page_size: int = 1000

    # Persist async restore progress after every N successes
    progress_update_every: int = 100

    # Ingestion trigger interval
    ingest_interval_seconds: int = 300

    # Async restore dispatcher interval
    dispatch_interval_seconds: int = 10

    # Lease held by a claimed restore job, renewed on every checkpoint
    job_lease_seconds: int = 3600

    # Bearer token for the HTTP front end (None = open)
    admin_api_key: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not _validate_bucket_name(self.backup_bucket):
            errors.append(f"Invalid backup bucket name: {self.backup_bucket}")

        if not self.region:
            errors.append("region must not be empty")

        if self.queue_batch_size < 1:
            errors.append(f"queue_batch_size must be >= 1, got {self.queue_batch_size}")

        # SQS caps visibility timeout at 12 hours
        if not 0 <= self.queue_visibility_timeout_seconds <= 43200:
            errors.append(
                "queue_visibility_timeout_seconds must be 0-43200, "
                f"got {self.queue_visibility_timeout_seconds}"
            )

        if not 0 <= self.queue_wait_seconds <= 20:
            errors.append(f"queue_wait_seconds must be 0-20, got {self.queue_wait_seconds}")

        if self.journal_page_size < 1:
            errors.append(f"journal_page_size must be >= 1, got {self.journal_page_size}")

        if self.progress_update_every < 1:
            errors.append(
                f"progress_update_every must be >= 1, got {self.progress_update_every}"
            )

        if self.ingest_interval_seconds < 1:
            errors.append(
                f"ingest_interval_seconds must be >= 1, got {self.ingest_interval_seconds}"
            )

        if self.dispatch_interval_seconds < 1:
            errors.append(
                f"dispatch_interval_seconds must be >= 1, got {self.dispatch_interval_seconds}"
            )

        if self.job_lease_seconds < self.dispatch_interval_seconds:
            errors.append(
                "job_lease_seconds must be >= dispatch_interval_seconds, "
                f"got {self.job_lease_seconds}"
            )

        # Raise all errors at once
        if errors:
            from s3replay.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def journal_db_path(self) -> Path:
        return self.data_path / "journal.db"

    @property
    def jobs_db_path(self) -> Path:
        return self.data_path / "jobs.db"

    def with_updates(self, **kwargs) -> "ReplayConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return ReplayConfig(**current)
