# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - notification ingestion into the change journal.
"""

from s3replay.backup.ingest import (
    IngestResult,
    backup_created_object,
    backup_object_key,
    ingest_batch,
    ingest_message,
    run_ingestion,
)

__all__ = [
    "IngestResult",
    "backup_created_object",
    "backup_object_key",
    "ingest_batch",
    "ingest_message",
    "run_ingestion",
]
