# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example FastAPI Application with s3replay.

This example wires notification-driven backups and the restore API into a
FastAPI application, with scheduled ingestion and async job dispatch.

Run with:
    uvicorn examples.basic_app:app --reload

Environment variables:
    AWS_ACCESS_KEY_ID: AWS access key
    AWS_SECRET_ACCESS_KEY: AWS secret key
    S3REPLAY_BACKUP_BUCKET: Bucket receiving backup copies
    S3REPLAY_QUEUE_URL: SQS queue with object change notifications
    S3REPLAY_ADMIN_API_KEY: Bearer token for the API
"""

import os

from fastapi import FastAPI

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
from s3replay.integrations.fastapi import get_s3replay_state, s3replay_lifespan


def create_replay_config():
    """
    Create s3replay configuration from environment variables.

    This uses the functional builder pattern for clean, composable configuration.
    """
    config = create_empty_config()

    config = with_backup_bucket(config, os.getenv("S3REPLAY_BACKUP_BUCKET", "my-app-backups"))
    config = with_region(config, os.getenv("AWS_REGION", "us-east-1"))

    queue_url = os.getenv("S3REPLAY_QUEUE_URL")
    if queue_url:
        config = consume_queue(config, queue_url, batch_size=64)
        config = run_ingestion_every(config, 60)

    config = store_data_in(config, os.getenv("S3REPLAY_DATA_PATH", "/var/lib/s3replay"))

    # Persist async restore progress every 250 restored objects
    config = checkpoint_every(config, 250)

    api_key = os.getenv("S3REPLAY_ADMIN_API_KEY")
    if api_key:
        config = require_api_key(config, api_key)

    return build_config(config)


replay_config = create_replay_config()

app = FastAPI(
    title="My App with s3replay",
    description="Example application demonstrating S3 backup and point-in-time restore",
    version="1.0.0",
    lifespan=lambda app: s3replay_lifespan(app, replay_config),
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Backups running. Restore API under /api."}


@app.get("/backup-summary")
async def backup_summary():
    """Counters from the running backup worker."""
    state = get_s3replay_state(app)
    return {
        "total_ingested": state["total_ingested"],
        "last_ingest_at": (
            state["last_ingest_at"].isoformat() if state["last_ingest_at"] else None
        ),
        "last_error": state["last_error"],
    }
