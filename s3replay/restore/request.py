# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore requests - parsing and validation of the restore JSON body.

Wire shape (request)::

    {
        "StartDate": "2024-01-01",
        "EndDate": "01/07/2024",
        "ContainerName": "docs",           # optional
        "BlobNames": ["a.txt", "b.txt"],   # optional
        "BlobName": "c.txt",               # optional, merged into BlobNames
        "ReqType": "Sync" | "Async",       # optional, default Sync
        "SkipDeletes": true | "Yes"        # optional, default false
    }
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping

from s3replay.errors import (
    explain_invalid_blob_names,
    explain_invalid_request_type,
    explain_invalid_skip_deletes,
    explain_missing_dates,
    explain_name_filter_requires_container,
    explain_start_after_end,
    explain_unparseable_dates,
)
from s3replay.exceptions import ValidationError

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y")
_TRUE_FLAGS = ("yes", "y", "true", "1")
_FALSE_FLAGS = ("no", "n", "false", "0", "")


class RequestMode(str, Enum):
    """How a restore request is executed."""

    SYNC = "Sync"
    ASYNC = "Async"


@dataclass(frozen=True)
class RestoreRequest:
    """A validated restore window with optional filters."""

    start_date: date
    end_date: date
    container: str | None = None
    object_names: FrozenSet[str] = field(default_factory=frozenset)
    skip_deletes: bool = False
    mode: RequestMode = RequestMode.SYNC

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire field names."""
        return {
            "StartDate": self.start_date.isoformat(),
            "EndDate": self.end_date.isoformat(),
            "ContainerName": self.container,
            "BlobNames": sorted(self.object_names),
            "ReqType": self.mode.value,
            "SkipDeletes": self.skip_deletes,
        }


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _parse_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_FLAGS:
            return True
        if lowered in _FALSE_FLAGS:
            return False
    raise ValidationError(explain_invalid_skip_deletes(value), details={"SkipDeletes": value})


def _parse_mode(value: Any) -> RequestMode:
    if value is None or value == "":
        return RequestMode.SYNC
    if isinstance(value, str):
        for mode in RequestMode:
            if mode.value.lower() == value.strip().lower():
                return mode
    raise ValidationError(explain_invalid_request_type(value), details={"ReqType": value})


def _parse_names(body: Mapping[str, Any]) -> FrozenSet[str]:
    names = body.get("BlobNames")
    if names is None:
        names = []
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise ValidationError(explain_invalid_blob_names(names), details={"BlobNames": names})

    single = body.get("BlobName")
    if single:
        if not isinstance(single, str):
            raise ValidationError(explain_invalid_blob_names(single), details={"BlobName": single})
        names = [*names, single]

    return frozenset(n for n in names if n)


def validate_restore_request(request: RestoreRequest) -> None:
    """
    Check the window and filter rules.

    Raises:
        ValidationError: start after end, or a name filter without container
    """
    if request.start_date > request.end_date:
        raise ValidationError(
            explain_start_after_end(request.start_date, request.end_date),
            details={
                "StartDate": request.start_date.isoformat(),
                "EndDate": request.end_date.isoformat(),
            },
        )

    if request.object_names and not request.container:
        raise ValidationError(
            explain_name_filter_requires_container(sorted(request.object_names)),
            details={"BlobNames": sorted(request.object_names)},
        )


def parse_restore_request(body: Any) -> RestoreRequest:
    """
    Build a validated RestoreRequest from a decoded JSON body.

    Raises:
        ValidationError: On any missing, unparseable or inconsistent field
    """
    if not isinstance(body, Mapping):
        raise ValidationError("Restore request body must be a JSON object")

    raw_start = body.get("StartDate")
    raw_end = body.get("EndDate")
    if not raw_start or not raw_end:
        raise ValidationError(explain_missing_dates())

    start_date = _parse_date(raw_start)
    end_date = _parse_date(raw_end)
    if start_date is None or end_date is None:
        raise ValidationError(
            explain_unparseable_dates(raw_start, raw_end),
            details={"StartDate": raw_start, "EndDate": raw_end},
        )

    container = body.get("ContainerName") or None
    if container is not None and not isinstance(container, str):
        raise ValidationError(
            f"ContainerName must be a string, got {container!r}",
            details={"ContainerName": container},
        )

    request = RestoreRequest(
        start_date=start_date,
        end_date=end_date,
        container=container,
        object_names=_parse_names(body),
        skip_deletes=_parse_flag(body.get("SkipDeletes")),
        mode=_parse_mode(body.get("ReqType")),
    )
    validate_restore_request(request)
    return request
