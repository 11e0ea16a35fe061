# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for S3 Replay.

These helpers centralize wording for common configuration and restore
request errors so that the HTTP front end, the dispatcher and the
configuration layer present consistent, actionable messages.
"""


def explain_missing_backup_bucket_env() -> str:
    """
    Explain that the backup bucket environment variable is missing.
    """

    return (
        "Backup bucket is not configured. "
        "Set the S3REPLAY_BACKUP_BUCKET environment variable or pass "
        "backup_bucket=... to create_config()."
    )


def explain_invalid_int_env(name: str, value: str | None) -> str:
    """
    Explain that an integer environment variable is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "It must be a positive integer."
    )


def explain_missing_dates() -> str:
    """
    Explain that StartDate or EndDate is missing from a restore request.
    """

    return "Start and End dates are incorrect and/or missing!"


def explain_unparseable_dates(start: object, end: object) -> str:
    """
    Explain that StartDate or EndDate could not be parsed.
    """

    return (
        "Unable to parse start and end dates. "
        "Provide dates in YYYY-MM-DD or MM/DD/YYYY format. "
        f"Start date value {start!r}, End date value {end!r}."
    )


def explain_start_after_end(start: object, end: object) -> str:
    """
    Explain that the restore window is inverted.
    """

    return f"Start date {start} cannot be greater than End date {end}."


def explain_name_filter_requires_container(names: object) -> str:
    """
    Explain that an object name filter needs a container filter.
    """

    return f"To restore files {names}, ContainerName is required!"


def explain_invalid_request_type(value: object) -> str:
    """
    Explain that ReqType is not Sync or Async.
    """

    return (
        f"Request Type {value!r} is invalid. "
        "Value should be either 'Sync' or 'Async'!"
    )


def explain_invalid_skip_deletes(value: object) -> str:
    """
    Explain that SkipDeletes is not a recognised flag.
    """

    return (
        f"SkipDeletes value {value!r} is invalid. "
        "Use true/false or 'Yes'/'No'."
    )


def explain_invalid_blob_names(value: object) -> str:
    """
    Explain that BlobNames is not a list of strings.
    """

    return f"BlobNames must be a list of object names, got {value!r}."
