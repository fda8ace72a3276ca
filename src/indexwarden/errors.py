"""Error types and classification for structured error handling.

Classifies exceptions by how the engine treats them:
- BENIGN: expected fall-through (backend disabled, unsupported file)
- RECOVERABLE: indexer/decoder failure, clear cache and use the fallback parser
- FATAL: storage unusable, checks report ``unchecked``
- DEGRADE: changeset unavailable, treat as empty
Nothing is retried automatically.
"""

from __future__ import annotations

import asyncio
import subprocess
from enum import Enum


class IndexWardenError(Exception):
    """Base class for all engine errors."""


class IndexerError(IndexWardenError):
    """External indexer exited non-zero, wrote nothing, or overflowed."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class IndexerTimeoutError(IndexerError):
    """External process exceeded its hard timeout and was killed."""


class DecodeError(IndexWardenError):
    """Binary index artifact could not be decoded."""


class StorageUnavailableError(IndexWardenError):
    """Knowledge storage could not be opened or queried."""


class ChangesetError(IndexWardenError):
    """Version-control changes could not be resolved."""


class InvalidArgumentError(IndexWardenError, ValueError):
    """Bad user input (CLI flags, formats)."""


class ErrorClass(Enum):
    BENIGN = "benign"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"
    DEGRADE = "degrade"
    UNKNOWN = "unknown"


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Typed engine errors first, then common stdlib failures seen at
    the subprocess and filesystem boundaries.
    """
    if isinstance(error, StorageUnavailableError):
        return ErrorClass.FATAL
    if isinstance(error, ChangesetError):
        return ErrorClass.DEGRADE
    if isinstance(error, (IndexerError, DecodeError)):
        return ErrorClass.RECOVERABLE
    if isinstance(error, InvalidArgumentError):
        return ErrorClass.FATAL

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.RECOVERABLE
    if isinstance(
        error,
        (OSError, subprocess.SubprocessError, ValueError),
    ):
        return ErrorClass.RECOVERABLE

    return ErrorClass.UNKNOWN


def describe_error(error: BaseException) -> str:
    """Short ``ClassName: message`` string for log records."""
    msg = str(error).strip()
    name = type(error).__name__
    return f"{name}: {msg}" if msg else name
