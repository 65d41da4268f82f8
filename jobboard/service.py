"""
Job board data layer facade.

Wires one cache, retry policy and error reporter into the read and write
services and exposes the operations the app screens call. Build one per app
session (or per test); nothing here is module-level state.
"""

import asyncio
from typing import Any, Dict, List, Optional

from .cache import TTLCache
from .config import ServiceConfig
from .feed import JobFeed
from .identity import AuthenticatedUser
from .logger import StructuredLogger, get_logger
from .read import JobReadService
from .reporter import ErrorReporter
from .results import Result
from .retry import RetryPolicy, Sleep
from .store.base import DocumentStore
from .store.firestore import FirestoreRestStore
from .write import JobWriteService


class JobBoard:
    """
    Args:
        store: Remote document store
        config: Cache/retry/collection settings (defaults when omitted)
        logger: Structured logger (global instance by default)
        reporter: Error reporter (one logging to ``logger`` by default)
        sleep: Awaitable sleep used between retries
    """

    def __init__(
        self,
        store: DocumentStore,
        config: Optional[ServiceConfig] = None,
        logger: Optional[StructuredLogger] = None,
        reporter: Optional[ErrorReporter] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config or ServiceConfig()
        self.logger = logger or get_logger(level=self.config.log_level)
        self.store = store
        self.cache = TTLCache(
            ttl=self.config.cache_ttl_seconds,
            max_size=self.config.cache_max_size,
            logger=self.logger,
        )
        self.retry = RetryPolicy(
            max_retries=self.config.max_retries,
            delay=self.config.retry_delay_seconds,
            sleep=sleep,
            logger=self.logger,
        )
        self.reporter = reporter or ErrorReporter(logger=self.logger)
        self.reader = JobReadService(
            store,
            cache=self.cache,
            retry=self.retry,
            reporter=self.reporter,
            logger=self.logger,
            collection=self.config.collection,
        )
        self.writer = JobWriteService(
            store,
            retry=self.retry,
            reporter=self.reporter,
            logger=self.logger,
            collection=self.config.collection,
        )

    @classmethod
    def from_env(cls, id_token: Optional[str] = None, **kwargs) -> "JobBoard":
        """Connect to the hosted store using FIREBASE_* / JOBBOARD_* settings."""
        config = ServiceConfig.from_env()
        logger = get_logger(
            level=config.log_level,
            log_dir=config.log_dir,
            enable_file=config.log_dir is not None,
        )
        store = FirestoreRestStore(
            project_id=config.project_id,
            api_key=config.api_key,
            id_token=id_token,
            timeout=config.request_timeout,
            logger=logger,
        )
        return cls(store, config=config, logger=logger, **kwargs)

    # Reads

    async def fetch_all_jobs(self, use_cache: bool = True) -> List[Dict[str, Any]]:
        return await self.reader.fetch_all_jobs(use_cache)

    async def fetch_job_by_id(self, job_id: Any, use_cache: bool = True) -> Optional[Dict[str, Any]]:
        return await self.reader.fetch_job_by_id(job_id, use_cache)

    async def fetch_jobs_by_ids(self, job_ids: Any, use_cache: bool = True) -> List[Optional[Dict[str, Any]]]:
        return await self.reader.fetch_jobs_by_ids(job_ids, use_cache)

    async def fetch_jobs_with_filters(self, filters: Any = None, use_cache: bool = True) -> List[Dict[str, Any]]:
        return await self.reader.fetch_jobs_with_filters(filters, use_cache)

    def prefetch_jobs(self, job_ids: Any) -> Optional[asyncio.Task]:
        return self.reader.prefetch_jobs(job_ids)

    def feed(self) -> JobFeed:
        return JobFeed(self.reader, logger=self.logger)

    # Writes

    async def post_job(self, job_data: Any, user_id: Any, user_name: Any) -> Result:
        return await self.writer.post_job(job_data, user_id, user_name)

    async def post_job_as(self, job_data: Any, user: AuthenticatedUser) -> Result:
        return await self.writer.post_job_as(job_data, user)

    # Maintenance

    def clear_cache(self) -> int:
        return self.reader.clear_cache()

    def get_service_health(self) -> Dict[str, Any]:
        health = self.reader.health()
        health["posting"] = self.writer.health()
        health["recent_errors"] = len(self.reporter.recent())
        return health

    async def close(self) -> None:
        """Let in-flight prefetches finish (e.g. before the loop shuts down)."""
        await self.reader.background.drain()
