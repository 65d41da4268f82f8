"""
Structured error reporting.

Every caught failure in the read and write services is passed through
ErrorReporter.report before the service falls back to cache or surfaces a
user-facing error. Reporting is purely observational.
"""

import platform
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional

from .errors import error_code, error_kind
from .logger import StructuredLogger, get_logger

MAX_RECENT_REPORTS = 100


def client_environment() -> str:
    return f"python/{platform.python_version()} ({platform.system() or 'unknown'})"


@dataclass
class ErrorRecord:
    operation: str
    message: str
    code: str
    kind: Optional[str]
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    client_environment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Sink = Callable[[ErrorRecord], Any]


class ErrorReporter:
    """
    Builds an ErrorRecord for a failure, logs it, counts it in the logger
    metrics and forwards it to any telemetry sinks.

    ``report`` never raises: a sink that fails is logged and skipped.
    """

    def __init__(
        self,
        logger: Optional[StructuredLogger] = None,
        sinks: Iterable[Sink] = (),
        environment: Optional[str] = None,
    ):
        self.logger = logger or get_logger()
        self.sinks: List[Sink] = list(sinks)
        self.environment = environment or client_environment()
        self._recent: Deque[ErrorRecord] = deque(maxlen=MAX_RECENT_REPORTS)

    def add_sink(self, sink: Sink) -> None:
        self.sinks.append(sink)

    def report(
        self,
        operation: str,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[ErrorRecord]:
        try:
            kind = error_kind(error)
            record = ErrorRecord(
                operation=operation,
                message=str(error),
                code=error_code(error),
                kind=kind.value if kind is not None else None,
                context=dict(context or {}),
                timestamp=datetime.now(timezone.utc).isoformat(),
                client_environment=self.environment,
            )
            self._recent.append(record)
            self.logger.record_error(record.code)
            self.logger.error(f"Job store error in {operation}", record=record.to_dict())
        except Exception as e:
            # Reporting must never change the caller's control flow
            self.logger.logger.exception(f"Failed to build error report for {operation}: {e}")
            return None

        for sink in self.sinks:
            try:
                sink(record)
            except Exception as e:
                self.logger.warning("Error report sink failed", operation=operation, error=str(e))

        return record

    def recent(self) -> List[ErrorRecord]:
        """Most recent reports, oldest first."""
        return list(self._recent)
