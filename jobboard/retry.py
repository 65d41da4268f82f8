"""
Retry logic for transient remote store failures.

Wraps any async store operation with a bounded number of retries and a fixed
delay between attempts. Only transient failures (store unavailable, deadline
exceeded, network errors) are retried; anything else propagates immediately.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from .errors import ErrorKind, JobBoardError
from .logger import StructuredLogger, get_logger

MAX_RETRIES = 2
RETRY_DELAY_SECONDS = 1.0

TRANSIENT_CODES = {"unavailable", "deadline-exceeded"}

Operation = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


def is_transient_error(exception: BaseException) -> bool:
    """
    Determine if an exception is transient and should be retried.

    Tagged errors are classified by kind. Untagged exceptions (from a store
    client that does not translate its errors) count as transient when they
    are connection/timeout errors, carry a transient store code, or mention
    a network failure.
    """
    if isinstance(exception, JobBoardError):
        return exception.kind is ErrorKind.TRANSIENT

    if isinstance(exception, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True

    if getattr(exception, "code", None) in TRANSIENT_CODES:
        return True

    return "network" in str(exception).lower()


async def with_retry(
    operation: Operation,
    retries_left: int = MAX_RETRIES,
    delay: float = RETRY_DELAY_SECONDS,
    sleep: Sleep = asyncio.sleep,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> Any:
    """
    Run ``operation`` and retry it on transient failure.

    Args:
        operation: Zero-argument callable returning an awaitable
        retries_left: Retries allowed after the first attempt
        delay: Fixed delay in seconds before each retry
        sleep: Awaitable sleep, injectable for tests
        on_retry: Optional callback(retries_left_after_this, exception)

    Returns:
        Whatever the operation returns

    Raises:
        The original exception once it is non-transient or retries run out
    """
    while True:
        try:
            return await operation()
        except Exception as e:
            if retries_left <= 0 or not is_transient_error(e):
                raise
            retries_left -= 1
            if on_retry:
                on_retry(retries_left, e)
            await sleep(delay)


class RetryPolicy:
    """Retry configuration bound to a logger, shared by the services."""

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        delay: float = RETRY_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
        logger: Optional[StructuredLogger] = None,
    ):
        self.max_retries = max_retries
        self.delay = delay
        self.sleep = sleep
        self.logger = logger or get_logger()

    async def run(self, operation: Operation, name: str = "operation") -> Any:
        def _on_retry(remaining: int, error: BaseException):
            self.logger.record_retry()
            self.logger.warning(
                f"Retrying {name}, {remaining + 1} attempts left",
                error=str(error),
                delay=self.delay,
            )

        return await with_retry(
            operation,
            retries_left=self.max_retries,
            delay=self.delay,
            sleep=self.sleep,
            on_retry=_on_retry,
        )
