# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore request parsing tests.
"""

from datetime import date

import pytest

from s3replay.exceptions import ValidationError
from s3replay.restore import RequestMode, parse_restore_request


def test_minimal_request_defaults_to_sync_without_filters():
    request = parse_restore_request({"StartDate": "2024-01-01", "EndDate": "2024-01-07"})

    assert request.start_date == date(2024, 1, 1)
    assert request.end_date == date(2024, 1, 7)
    assert request.container is None
    assert request.object_names == frozenset()
    assert request.skip_deletes is False
    assert request.mode is RequestMode.SYNC


def test_accepts_us_and_iso_datetime_formats():
    request = parse_restore_request(
        {"StartDate": "01/02/2024", "EndDate": "2024-01-03T18:45:00Z"}
    )

    assert request.start_date == date(2024, 1, 2)
    assert request.end_date == date(2024, 1, 3)


def test_single_name_merged_into_name_set():
    request = parse_restore_request(
        {
            "StartDate": "2024-01-01",
            "EndDate": "2024-01-01",
            "ContainerName": "docs",
            "BlobNames": ["a.txt", "b.txt"],
            "BlobName": "c.txt",
        }
    )

    assert request.object_names == frozenset({"a.txt", "b.txt", "c.txt"})


def test_mode_and_skip_deletes_are_case_insensitive():
    request = parse_restore_request(
        {
            "StartDate": "2024-01-01",
            "EndDate": "2024-01-01",
            "ReqType": "async",
            "SkipDeletes": "Yes",
        }
    )

    assert request.mode is RequestMode.ASYNC
    assert request.skip_deletes is True


@pytest.mark.parametrize(
    "body",
    [
        {"EndDate": "2024-01-01"},
        {"StartDate": "2024-01-01"},
        {"StartDate": "yesterday", "EndDate": "2024-01-01"},
        {"StartDate": "2024-01-05", "EndDate": "2024-01-01"},
        {"StartDate": "2024-01-01", "EndDate": "2024-01-01", "BlobNames": ["a.txt"]},
        {"StartDate": "2024-01-01", "EndDate": "2024-01-01", "ReqType": "Later"},
        {"StartDate": "2024-01-01", "EndDate": "2024-01-01", "SkipDeletes": "maybe"},
        {"StartDate": "2024-01-01", "EndDate": "2024-01-01", "BlobNames": "a.txt"},
        ["not", "an", "object"],
    ],
)
def test_invalid_requests_rejected(body):
    with pytest.raises(ValidationError):
        parse_restore_request(body)


def test_request_survives_wire_round_trip():
    original = parse_restore_request(
        {
            "StartDate": "2024-01-01",
            "EndDate": "2024-01-02",
            "ContainerName": "docs",
            "BlobNames": ["a.txt"],
            "ReqType": "Async",
            "SkipDeletes": True,
        }
    )

    assert parse_restore_request(original.to_dict()) == original
