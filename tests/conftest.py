# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for s3replay tests.

Provides in-memory object store and queue fakes, fake aiobotocore clients,
temporary databases and test configuration helpers.
"""

import json
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Set

import pytest
import pytest_asyncio
from botocore.exceptions import ClientError

from s3replay.events import ObjectRef
from s3replay.exceptions import S3OperationError
from s3replay.queue import QueueMessage

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/object-changes"


def make_notification(
    kind: str,
    url: str,
    event_time: datetime,
    event_id: str,
    size: int | None = None,
) -> str:
    """Notification body in the shape delivered by the queue."""
    data: Dict[str, Any] = {"url": url}
    if size is not None:
        data["contentLength"] = size
    return json.dumps(
        {
            "eventType": kind,
            "id": event_id,
            "eventTime": event_time.isoformat(),
            "data": data,
        }
    )


class MemoryObjectStore:
    """ObjectStore keeping objects in a dict."""

    def __init__(self):
        self.objects: Dict[ObjectRef, bytes] = {}
        self.copies: List[tuple[ObjectRef, ObjectRef]] = []
        self.deletes: List[ObjectRef] = []
        self.failing: Set[ObjectRef] = set()
        self._ops = 0

    def put(self, bucket: str, key: str, body: bytes = b"content") -> ObjectRef:
        ref = ObjectRef(bucket, key)
        self.objects[ref] = body
        return ref

    async def exists(self, ref: ObjectRef) -> bool:
        if ref in self.failing:
            raise S3OperationError("Simulated failure", details={"object": str(ref)})
        return ref in self.objects

    async def copy(self, source: ObjectRef, dest: ObjectRef) -> str:
        if source in self.failing or dest in self.failing:
            raise S3OperationError("Simulated failure", details={"object": str(dest)})
        self.objects[dest] = self.objects[source]
        self.copies.append((source, dest))
        self._ops += 1
        return f"op-{self._ops}"

    async def delete(self, ref: ObjectRef) -> bool:
        if ref in self.failing:
            raise S3OperationError("Simulated failure", details={"object": str(ref)})
        self.deletes.append(ref)
        return self.objects.pop(ref, None) is not None


class MemoryQueue:
    """NotificationQueue with visible and in-flight messages."""

    def __init__(self):
        self.visible: List[QueueMessage] = []
        self.in_flight: Dict[str, QueueMessage] = {}
        self.deleted: List[str] = []
        self._next = 0

    def send(self, body: str) -> QueueMessage:
        self._next += 1
        message = QueueMessage(
            message_id=f"msg-{self._next}",
            receipt_handle=f"rh-{self._next}",
            body=body,
        )
        self.visible.append(message)
        return message

    def expire_visibility(self) -> None:
        """Make every unacknowledged message visible again."""
        self.visible.extend(self.in_flight.values())
        self.in_flight.clear()

    async def receive(self, max_messages: int, visibility_timeout: int) -> List[QueueMessage]:
        batch = self.visible[:max_messages]
        self.visible = self.visible[max_messages:]
        for message in batch:
            self.in_flight[message.receipt_handle] = message
        return batch

    async def delete(self, message: QueueMessage) -> None:
        self.in_flight.pop(message.receipt_handle, None)
        self.deleted.append(message.message_id)


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """The subset of the aiobotocore S3 client used by S3ObjectStore."""

    def __init__(self):
        self.objects: Dict[tuple[str, str], bytes] = {}
        self.buckets: Set[str] = set()
        self._etag = 0

    def put(self, bucket: str, key: str, body: bytes = b"content") -> None:
        self.buckets.add(bucket)
        self.objects[(bucket, key)] = body

    async def head_bucket(self, Bucket: str) -> Dict[str, Any]:
        if Bucket not in self.buckets:
            raise _client_error("404", "HeadBucket")
        return {}

    async def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if (Bucket, Key) not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[(Bucket, Key)])}

    async def copy_object(self, Bucket: str, Key: str, CopySource: Dict[str, str]) -> Dict[str, Any]:
        source = (CopySource["Bucket"], CopySource["Key"])
        if source not in self.objects:
            raise _client_error("NoSuchKey", "CopyObject")
        self.buckets.add(Bucket)
        self.objects[(Bucket, Key)] = self.objects[source]
        self._etag += 1
        return {"CopyObjectResult": {"ETag": f'"etag-{self._etag}"'}}

    async def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self.objects.pop((Bucket, Key), None)
        return {}


class FakeSQSClient:
    """The subset of the aiobotocore SQS client used by SQSNotificationQueue."""

    def __init__(self):
        self.visible: List[Dict[str, str]] = []
        self.in_flight: Dict[str, Dict[str, str]] = {}
        self.receive_calls: List[int] = []
        self._next = 0

    def send(self, body: str) -> None:
        self._next += 1
        self.visible.append(
            {
                "MessageId": f"msg-{self._next}",
                "ReceiptHandle": f"rh-{self._next}",
                "Body": body,
            }
        )

    async def receive_message(
        self,
        QueueUrl: str,
        MaxNumberOfMessages: int,
        VisibilityTimeout: int,
        WaitTimeSeconds: int,
    ) -> Dict[str, Any]:
        if MaxNumberOfMessages > 10:
            raise _client_error("InvalidParameterValue", "ReceiveMessage")
        self.receive_calls.append(MaxNumberOfMessages)
        batch = self.visible[:MaxNumberOfMessages]
        self.visible = self.visible[MaxNumberOfMessages:]
        for raw in batch:
            self.in_flight[raw["ReceiptHandle"]] = raw
        return {"Messages": batch} if batch else {}

    async def delete_message(self, QueueUrl: str, ReceiptHandle: str) -> Dict[str, Any]:
        if ReceiptHandle not in self.in_flight:
            raise _client_error("ReceiptHandleIsInvalid", "DeleteMessage")
        del self.in_flight[ReceiptHandle]
        return {}


class FakeSession:
    """Stands in for the aiobotocore session in runtime state."""

    def __init__(self):
        self.s3 = FakeS3Client()
        self.sqs = FakeSQSClient()

    def create_client(self, service_name: str, **kwargs: Any):
        return self._client(self.s3 if service_name == "s3" else self.sqs)

    @staticmethod
    @asynccontextmanager
    async def _client(client: Any):
        yield client


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path):
    """Create a test configuration."""
    from s3replay.config import ReplayConfig

    return ReplayConfig(
        backup_bucket="backup-bucket",
        region="us-east-1",
        queue_url=QUEUE_URL,
        data_path=temp_dir / "data",
        queue_batch_size=25,
        journal_page_size=2,
        progress_update_every=2,
    )


@pytest_asyncio.fixture
async def journal(temp_dir: Path):
    """Journal over a temporary SQLite store with small pages."""
    from s3replay.journal import Journal, SQLiteJournalStore, init_journal_db

    db_path = temp_dir / "journal.db"
    await init_journal_db(db_path)
    return Journal(SQLiteJournalStore(db_path), page_size=2)


@pytest_asyncio.fixture
async def registry(temp_dir: Path):
    """Job registry over a temporary SQLite database."""
    from s3replay.jobs import JobRegistry, init_jobs_db

    db_path = temp_dir / "jobs.db"
    await init_jobs_db(db_path)
    return JobRegistry(db_path, lease_seconds=60)


@pytest.fixture
def memory_store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def memory_queue() -> MemoryQueue:
    return MemoryQueue()


@pytest_asyncio.fixture
async def replay_state(test_config):
    """Initialized runtime state wired to a fake aiobotocore session."""
    from s3replay.core import initialize_state, shutdown_state

    state = await initialize_state(test_config)
    state["session"] = FakeSession()
    yield state
    await shutdown_state(state)
