"""
Job list feed.

Backs the job list screen: serves the last loaded list straight away while it
is younger than the feed TTL, and once it is older than the staleness
threshold kicks off a background reload so the next read is fresh.
Pull-to-refresh bypasses every cache.
"""

import asyncio
from typing import Any, Dict, List, Optional

from .cache import MISSING, TTLCache
from .logger import StructuredLogger, get_logger
from .read import JobReadService
from .tasks import BackgroundTasks

FEED_TTL_SECONDS = 3 * 60
FEED_STALE_SECONDS = 60
FEED_KEY = "feed"


class JobFeed:
    def __init__(
        self,
        reader: JobReadService,
        ttl: float = FEED_TTL_SECONDS,
        stale_after: float = FEED_STALE_SECONDS,
        cache: Optional[TTLCache] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.reader = reader
        self.logger = logger or get_logger()
        if cache is None:
            cache = TTLCache(ttl=ttl, max_size=1, stale_after=stale_after, logger=self.logger)
        self.cache = cache
        self.background = BackgroundTasks(logger=self.logger)
        self._refresh_task: Optional[asyncio.Task] = None
        self.jobs: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self.loading = False
        self.refreshing = False

    def _store(self, jobs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.cache.put(FEED_KEY, jobs)
        self.jobs = jobs
        self.error = None
        return jobs

    async def load(self, use_cache: bool = True) -> List[Dict[str, Any]]:
        """Current job list; cached lists are returned without waiting on the network."""
        if use_cache:
            cached = self.cache.get(FEED_KEY)
            if cached is not MISSING:
                self.jobs = cached
                self.error = None
                if self.cache.is_stale(FEED_KEY):
                    self._start_background_refresh()
                return cached

        self.loading = True
        self.error = None
        try:
            return self._store(await self.reader.fetch_all_jobs())
        except Exception as e:
            self.error = str(e)
            self.logger.error("Error loading jobs", error=str(e))
            raise
        finally:
            self.loading = False

    def _start_background_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = self.background.spawn(self._background_refresh(), "feed_refresh")

    async def _background_refresh(self) -> None:
        try:
            self._store(await self.reader.fetch_all_jobs())
        except Exception as e:
            # Background failures never replace what the user is looking at
            self.logger.error("Background refresh failed", error=str(e))

    async def refresh(self) -> List[Dict[str, Any]]:
        """Force a remote reload, ignoring every cache."""
        self.refreshing = True
        self.error = None
        try:
            return self._store(await self.reader.fetch_all_jobs(use_cache=False))
        except Exception as e:
            self.error = str(e)
            raise
        finally:
            self.refreshing = False

    def clear(self) -> None:
        """Forget the list, e.g. on sign-out."""
        self.cache.clear()
        self.jobs = []
