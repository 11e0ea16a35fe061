# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Change events - the tagged variant flowing from notifications into the journal.

A change event is either CreatedEvent or DeletedEvent. Both carry an explicit
``kind`` tag; ingestion and replay switch on the tag, never on the class.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Union
from urllib.parse import unquote, urlparse

from s3replay.exceptions import MessageFormatError


class EventKind(str, Enum):
    """Tag of a change event."""

    CREATED = "Created"
    DELETED = "Deleted"


# Notification type names mapped onto our tags
_CREATED_ALIASES = ("Created", "Microsoft.Storage.BlobCreated")
_DELETED_ALIASES = ("Deleted", "Microsoft.Storage.BlobDeleted")


@dataclass(frozen=True)
class ObjectRef:
    """Address of an object in a bucket."""

    bucket: str
    key: str

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class CreatedEvent:
    """An object was created (or overwritten) in the primary store."""

    id: str
    url: str
    event_time: datetime
    size: int | None = None
    kind: EventKind = field(default=EventKind.CREATED, init=False)


@dataclass(frozen=True)
class DeletedEvent:
    """An object was deleted from the primary store."""

    id: str
    url: str
    event_time: datetime
    kind: EventKind = field(default=EventKind.DELETED, init=False)


ChangeEvent = Union[CreatedEvent, DeletedEvent]


@dataclass(frozen=True)
class BackupRef:
    """Where a created object was copied to at backup time."""

    backup_container: str
    backup_object_name: str
    original_container: str
    original_object_name: str
    copy_operation_id: str

    @property
    def backup(self) -> ObjectRef:
        return ObjectRef(self.backup_container, self.backup_object_name)

    @property
    def original(self) -> ObjectRef:
        return ObjectRef(self.original_container, self.original_object_name)

    def to_dict(self) -> Dict[str, str]:
        return {
            "BackupContainer": self.backup_container,
            "BackupObjectName": self.backup_object_name,
            "OriginalContainer": self.original_container,
            "OriginalObjectName": self.original_object_name,
            "CopyOperationId": self.copy_operation_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupRef":
        return cls(
            backup_container=data["BackupContainer"],
            backup_object_name=data["BackupObjectName"],
            original_container=data["OriginalContainer"],
            original_object_name=data["OriginalObjectName"],
            copy_operation_id=data.get("CopyOperationId", ""),
        )


def parse_event_time(value: Any) -> datetime:
    """
    Parse an ISO 8601 event time into an aware UTC datetime.

    Naive timestamps are taken to be UTC.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value)
        except ValueError as exc:
            raise MessageFormatError(
                f"Unparseable eventTime: {value!r}", details={"eventTime": value}
            ) from exc
    else:
        raise MessageFormatError("eventTime is missing", details={"eventTime": value})

    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def parse_object_url(url: str) -> ObjectRef:
    """
    Resolve an object URL into bucket and key.

    Supported forms:
        s3://bucket/key
        https://bucket.s3.amazonaws.com/key (and regional variants)
        https://host/bucket/key (path style, S3 compatible services)
    """
    parsed = urlparse(url)
    host = parsed.hostname or ""
    path = unquote(parsed.path).lstrip("/")

    if parsed.scheme == "s3":
        bucket, key = host, path
    elif host.endswith(".amazonaws.com") and host.find(".s3") > 0:
        bucket, key = host[: host.find(".s3")], path
    else:
        bucket, _, key = path.partition("/")

    if not bucket or not key:
        raise MessageFormatError(
            f"Cannot resolve bucket and key from url: {url!r}", details={"url": url}
        )
    return ObjectRef(bucket, key)


def _resolve_kind(event_type: Any) -> EventKind:
    if not isinstance(event_type, str):
        raise MessageFormatError("eventType is missing", details={"eventType": event_type})
    if event_type in _CREATED_ALIASES or event_type.startswith("ObjectCreated:"):
        return EventKind.CREATED
    if event_type in _DELETED_ALIASES or event_type.startswith("ObjectRemoved:"):
        return EventKind.DELETED
    raise MessageFormatError(
        f"Unsupported event type: {event_type}. Only Created and Deleted events are handled.",
        details={"eventType": event_type},
    )


def event_from_dict(payload: Dict[str, Any]) -> ChangeEvent:
    """
    Build a change event from a decoded notification or journal record.

    Accepts ``{"eventType"|"kind", "id", "eventTime", "data": {"url",
    "contentLength"}}`` with a flat ``url``/``size`` allowed as well.
    """
    if not isinstance(payload, dict):
        raise MessageFormatError("Notification must be a JSON object")

    kind = _resolve_kind(payload.get("eventType", payload.get("kind")))
    data = payload.get("data") or {}
    url = data.get("url") or payload.get("url")
    event_id = payload.get("id")

    if not url or not isinstance(url, str):
        raise MessageFormatError("Notification has no object url", details={"id": event_id})
    if not event_id:
        raise MessageFormatError("Notification has no id", details={"url": url})

    event_time = parse_event_time(payload.get("eventTime"))

    if kind is EventKind.CREATED:
        size = data.get("contentLength", payload.get("size"))
        return CreatedEvent(
            id=str(event_id),
            url=url,
            event_time=event_time,
            size=int(size) if size is not None else None,
        )
    return DeletedEvent(id=str(event_id), url=url, event_time=event_time)


def parse_message(body: str) -> ChangeEvent:
    """
    Parse a raw notification body.

    The object url must resolve to a bucket and key for either kind, so an
    unresolvable notification never reaches the journal.

    Raises:
        MessageFormatError: If the body is not a supported change notification
    """
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise MessageFormatError(f"Notification is not valid JSON: {exc}") from exc
    event = event_from_dict(payload)
    parse_object_url(event.url)
    return event


def event_to_dict(event: ChangeEvent) -> Dict[str, Any]:
    """Serialize a change event for the journal record."""
    record: Dict[str, Any] = {
        "kind": event.kind.value,
        "id": event.id,
        "url": event.url,
        "eventTime": event.event_time.isoformat(),
    }
    if event.kind is EventKind.CREATED and event.size is not None:
        record["size"] = event.size
    return record
