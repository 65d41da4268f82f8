"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List

from jobboard.cache import TTLCache
from jobboard.logger import StructuredLogger
from jobboard.read import JobReadService
from jobboard.reporter import ErrorReporter
from jobboard.retry import RetryPolicy
from jobboard.store.base import StoreTimestamp
from jobboard.store.memory import InMemoryDocumentStore
from jobboard.write import JobWriteService


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Async sleep that returns immediately and records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(name="jobboard-test", level="DEBUG", enable_console=False)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def cache(clock, logger) -> TTLCache:
    return TTLCache(clock=clock, logger=logger)


@pytest.fixture
def reporter(logger) -> ErrorReporter:
    return ErrorReporter(logger=logger, environment="tests")


@pytest.fixture
def retry(sleep, logger) -> RetryPolicy:
    return RetryPolicy(sleep=sleep, logger=logger)


@pytest.fixture
def reader(store, cache, retry, reporter, logger) -> JobReadService:
    return JobReadService(store, cache=cache, retry=retry, reporter=reporter, logger=logger)


@pytest.fixture
def writer(store, retry, reporter, logger) -> JobWriteService:
    return JobWriteService(store, retry=retry, reporter=reporter, logger=logger)


@pytest.fixture
def valid_job_data() -> Dict[str, Any]:
    """A posting form submission that passes validation."""
    return {
        "date": "2024-03-15",
        "hospital": "  St. Mary's General  ",
        "location": "Springfield ",
        "position": " Staff Nurse",
        "salary": "1500",
        "schedule": "Night shift",
        "type": "permanent",
    }


def make_job(index: int, **overrides) -> Dict[str, Any]:
    """Stored job payload whose createdAt grows with ``index``."""
    created = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc) + timedelta(hours=index)
    job = {
        "position": f"Nurse {index}",
        "hospital": f"Hospital {index}",
        "location": "Springfield",
        "salary": 1000.0 + index,
        "schedule": "Day shift",
        "type": "permanent",
        "status": "active",
        "createdAt": StoreTimestamp.from_datetime(created),
        "createdBy": "Dr. Who",
        "createdById": "user-1",
    }
    job.update(overrides)
    return job


@pytest.fixture
def seed_jobs(store):
    """Seed ``count`` jobs with ids job-0..job-N and return the ids."""

    def _seed(count: int, collection: str = "jobs", **overrides) -> List[str]:
        ids = []
        for i in range(count):
            job_id = f"job-{i}"
            store.seed(collection, job_id, make_job(i, **overrides))
            ids.append(job_id)
        return ids

    return _seed
