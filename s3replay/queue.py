# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Notification Queue - bounded batch consumer over SQS.

Messages are received with a visibility timeout and deleted only once the
caller acknowledges them. Anything not acknowledged becomes visible again and
is redelivered by the queue itself.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Protocol

import structlog
from botocore.exceptions import ClientError

from s3replay.config import ReplayConfig
from s3replay.exceptions import ConfigurationError, QueueError

logger = structlog.get_logger()

# SQS returns at most 10 messages per ReceiveMessage call
SQS_MAX_MESSAGES = 10


@dataclass(frozen=True)
class QueueMessage:
    """A received notification and the handle needed to acknowledge it."""

    message_id: str
    receipt_handle: str
    body: str


class NotificationQueue(Protocol):
    """Capability set of the notification transport."""

    async def receive(self, max_messages: int, visibility_timeout: int) -> List[QueueMessage]:
        ...

    async def delete(self, message: QueueMessage) -> None:
        ...


class SQSNotificationQueue:
    """NotificationQueue over an aiobotocore SQS client."""

    def __init__(self, client: Any, queue_url: str, wait_seconds: int = 0):
        self.client = client
        self.queue_url = queue_url
        self.wait_seconds = wait_seconds

    async def receive(self, max_messages: int, visibility_timeout: int) -> List[QueueMessage]:
        """
        Receive up to ``max_messages`` messages.

        Keeps calling ReceiveMessage until the batch is full or the queue
        returns nothing.
        """
        messages: List[QueueMessage] = []

        while len(messages) < max_messages:
            want = min(SQS_MAX_MESSAGES, max_messages - len(messages))
            try:
                response = await self.client.receive_message(
                    QueueUrl=self.queue_url,
                    MaxNumberOfMessages=want,
                    VisibilityTimeout=visibility_timeout,
                    WaitTimeSeconds=self.wait_seconds,
                )
            except ClientError as e:
                raise QueueError(
                    f"Failed to receive messages: {e}",
                    details={"queue_url": self.queue_url},
                )

            received = response.get("Messages", [])
            if not received:
                break

            for raw in received:
                messages.append(
                    QueueMessage(
                        message_id=raw.get("MessageId", ""),
                        receipt_handle=raw["ReceiptHandle"],
                        body=raw.get("Body", ""),
                    )
                )

        return messages

    async def delete(self, message: QueueMessage) -> None:
        try:
            await self.client.delete_message(
                QueueUrl=self.queue_url,
                ReceiptHandle=message.receipt_handle,
            )
        except ClientError as e:
            raise QueueError(
                f"Failed to delete message: {e}",
                details={"message_id": message.message_id},
            )


@asynccontextmanager
async def open_notification_queue(
    config: ReplayConfig, session: Any
) -> AsyncIterator[SQSNotificationQueue]:
    """Create a per-operation SQS client wrapped as a NotificationQueue."""
    if not config.queue_url:
        raise ConfigurationError("queue_url is required to drain notifications")

    async with session.create_client(
        "sqs",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
    ) as sqs_client:
        yield SQSNotificationQueue(sqs_client, config.queue_url, config.queue_wait_seconds)
