"""
Error taxonomy for the job data layer.

Every failure the services raise or report is a JobBoardError tagged with an
ErrorKind, so retry classification and user messaging are a match on the
kind rather than on message text.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    TRANSIENT = "transient-network"
    NOT_FOUND = "not-found"
    VALIDATION = "validation"
    DATA_INTEGRITY = "data-integrity"
    REMOTE = "remote"


class JobBoardError(Exception):
    """Base exception for the job data layer."""

    kind = ErrorKind.REMOTE
    default_code = "unknown"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(JobBoardError):
    """Bad input rejected before any network call. Message is user-facing."""

    kind = ErrorKind.VALIDATION
    default_code = "invalid-input"


class TransientStoreError(JobBoardError):
    """Store unavailable, deadline exceeded or network failure. Retryable."""

    kind = ErrorKind.TRANSIENT
    default_code = "unavailable"


class NotFoundError(JobBoardError):
    kind = ErrorKind.NOT_FOUND
    default_code = "not-found"


class DataIntegrityError(JobBoardError):
    """The store returned a payload that is not a well-formed record."""

    kind = ErrorKind.DATA_INTEGRITY
    default_code = "data-integrity"


class StoreError(JobBoardError):
    """Non-retryable failure reported by the remote store."""

    kind = ErrorKind.REMOTE
    default_code = "unknown"


class JobLoadError(JobBoardError):
    """
    User-safe failure raised by read paths once retries and stale cache
    fallback are exhausted. Internal detail lives on ``__cause__`` and in the
    error report, never in the message.
    """

    kind = ErrorKind.REMOTE
    default_code = "load-failed"


def error_code(error: BaseException) -> str:
    """Best-effort error code for any exception."""
    if isinstance(error, JobBoardError):
        return error.code
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code
    return type(error).__name__


def error_kind(error: BaseException) -> Optional[ErrorKind]:
    if isinstance(error, JobBoardError):
        return error.kind
    return None
