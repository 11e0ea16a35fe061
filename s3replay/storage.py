# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Object Store - exists/copy/delete primitives over S3.

The ingestion worker and the restore orchestrator only depend on the
ObjectStore protocol; S3ObjectStore adapts an aiobotocore S3 client to it.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

import structlog
from botocore.exceptions import ClientError

from s3replay.config import ReplayConfig
from s3replay.events import ObjectRef
from s3replay.exceptions import S3OperationError

logger = structlog.get_logger()

_MISSING_CODES = ("404", "NoSuchKey", "NotFound", "NoSuchBucket")


class ObjectStore(Protocol):
    """Capability set of an object store."""

    async def exists(self, ref: ObjectRef) -> bool:
        ...

    async def copy(self, source: ObjectRef, dest: ObjectRef) -> str:
        """Copy ``source`` onto ``dest`` and return the copy operation id."""
        ...

    async def delete(self, ref: ObjectRef) -> bool:
        """Delete ``ref`` if present. Returns whether it existed."""
        ...


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStore:
    """ObjectStore over an aiobotocore S3 client."""

    def __init__(self, client: Any):
        self.client = client

    async def exists(self, ref: ObjectRef) -> bool:
        try:
            await self.client.head_object(Bucket=ref.bucket, Key=ref.key)
            return True
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise S3OperationError(
                f"Failed to check object: {e}",
                details={"object": str(ref)},
            )

    async def copy(self, source: ObjectRef, dest: ObjectRef) -> str:
        try:
            response = await self.client.copy_object(
                Bucket=dest.bucket,
                Key=dest.key,
                CopySource={"Bucket": source.bucket, "Key": source.key},
            )
        except ClientError as e:
            raise S3OperationError(
                f"Failed to copy object: {e}",
                details={"source": str(source), "dest": str(dest)},
            )

        operation_id = response.get("VersionId") or response.get(
            "CopyObjectResult", {}
        ).get("ETag", "")
        operation_id = operation_id.strip('"')

        logger.debug(
            "object_copied",
            source=str(source),
            dest=str(dest),
            operation_id=operation_id,
        )
        return operation_id

    async def delete(self, ref: ObjectRef) -> bool:
        existed = await self.exists(ref)
        if not existed:
            return False

        try:
            await self.client.delete_object(Bucket=ref.bucket, Key=ref.key)
        except ClientError as e:
            raise S3OperationError(
                f"Failed to delete object: {e}",
                details={"object": str(ref)},
            )
        return True


@asynccontextmanager
async def open_object_store(config: ReplayConfig, session: Any) -> AsyncIterator[S3ObjectStore]:
    """Create a per-operation S3 client wrapped as an ObjectStore."""
    async with session.create_client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
    ) as s3_client:
        yield S3ObjectStore(s3_client)
