# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Replay Exceptions - Custom exceptions for the s3replay package.
"""


class S3ReplayError(Exception):
    """Base exception for all s3replay errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(S3ReplayError):
    """Raised when configuration is invalid."""

    pass


class ValidationError(S3ReplayError):
    """Raised when a restore request is invalid. Never retried."""

    pass


class MessageFormatError(ValidationError):
    """Raised when a change notification cannot be parsed."""

    pass


class TransientIOError(S3ReplayError):
    """Raised when a collaborator (object store, queue, journal) call fails."""

    pass


class S3OperationError(TransientIOError):
    """Raised when S3 operations fail."""

    pass


class QueueError(TransientIOError):
    """Raised when notification queue operations fail."""

    pass


class JournalWriteError(TransientIOError):
    """Raised when the journal store rejects an append."""

    pass


class JournalReadError(TransientIOError):
    """Raised when a journal range query fails."""

    pass


class RestoreError(S3ReplayError):
    """Raised when a replay action cannot be applied."""

    pass


class RegistryError(S3ReplayError):
    """Raised when restore job registry operations fail."""

    pass


class FatalOrchestrationError(S3ReplayError):
    """Raised when a restore job's status cannot be persisted."""

    pass
