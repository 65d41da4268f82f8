"""Client-side data access for the job board: cached, retried job reads and writes."""

__version__ = "1.0.0"

from .cache import MISSING, TTLCache
from .config import ServiceConfig
from .errors import (
    DataIntegrityError,
    ErrorKind,
    JobBoardError,
    JobLoadError,
    NotFoundError,
    StoreError,
    TransientStoreError,
    ValidationError,
)
from .feed import JobFeed
from .identity import AuthenticatedUser
from .read import JobFilters, JobReadService
from .reporter import ErrorRecord, ErrorReporter
from .results import Result, capture
from .retry import RetryPolicy, with_retry
from .service import JobBoard
from .write import JobWriteService

__all__ = [
    "MISSING",
    "TTLCache",
    "ServiceConfig",
    "DataIntegrityError",
    "ErrorKind",
    "JobBoardError",
    "JobLoadError",
    "NotFoundError",
    "StoreError",
    "TransientStoreError",
    "ValidationError",
    "JobFeed",
    "AuthenticatedUser",
    "JobFilters",
    "JobReadService",
    "ErrorRecord",
    "ErrorReporter",
    "Result",
    "capture",
    "RetryPolicy",
    "with_retry",
    "JobBoard",
    "JobWriteService",
]
