"""
Job read service.

Every read goes cache first, then the remote store under the retry policy.
Fetched jobs are normalized (ISO timestamps) and written through to the
cache, including each job under its own id so later point lookups hit.
When the store keeps failing, the service reports the error and serves the
last cached copy even if it has expired; only when there is nothing cached
does the caller get a JobLoadError.
"""

import asyncio
import copy
import functools
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from .cache import MISSING, TTLCache
from .errors import DataIntegrityError, JobLoadError, ValidationError
from .logger import StructuredLogger, get_logger
from .normalize import is_job_payload, normalize_job
from .reporter import ErrorReporter
from .retry import RetryPolicy
from .schema import ensure_valid_job_id
from .store.base import ASCENDING, DESCENDING, MAX_IN_QUERY, DocumentStore, Query
from .tasks import BackgroundTasks

ALL_JOBS_KEY = "all_jobs_sorted"
FILTERED_KEY_PREFIX = "jobs_filtered_"
DEFAULT_PAGE_SIZE = 50

LOAD_JOBS_MESSAGE = "Unable to load jobs. Please check your connection and try again."
LOAD_JOB_MESSAGE = "Unable to load job details. Please check your connection and try again."
LOAD_BATCH_MESSAGE = "Unable to load some job details. Please try again."

# Filter option spellings accepted from callers
_FILTER_ALIASES = {
    "limit": "limit",
    "status": "status",
    "category": "category",
    "startAfter": "start_after",
    "start_after": "start_after",
    "orderByField": "order_by_field",
    "order_by_field": "order_by_field",
    "orderDirection": "order_direction",
    "order_direction": "order_direction",
}


def job_key(job_id: str) -> str:
    return f"job_{job_id}"


def clean_ids(job_ids: Any) -> List[str]:
    """Trimmed, non-empty string ids in caller order. Anything else is dropped."""
    if not isinstance(job_ids, (list, tuple)):
        return []
    return [i.strip() for i in job_ids if isinstance(i, str) and i.strip()]


def chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


@dataclass(frozen=True)
class JobFilters:
    limit: int = DEFAULT_PAGE_SIZE
    status: Optional[str] = None
    category: Optional[str] = None
    start_after: Optional[str] = None
    order_by_field: str = "createdAt"
    order_direction: str = DESCENDING

    def __post_init__(self):
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ValidationError("limit must be a positive integer")
        if self.order_direction not in (ASCENDING, DESCENDING):
            raise ValidationError('orderDirection must be "asc" or "desc"')
        if not isinstance(self.order_by_field, str) or not self.order_by_field.strip():
            raise ValidationError("orderByField must be a field name")

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "JobFilters":
        """Build from camelCase or snake_case options. Unknown keys are ignored."""
        if options is not None and not isinstance(options, Mapping):
            raise ValidationError("filters must be a mapping of options")
        kwargs = {}
        for key, value in (options or {}).items():
            name = _FILTER_ALIASES.get(key)
            if name is not None and value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    def cache_key(self) -> str:
        return FILTERED_KEY_PREFIX + json.dumps(asdict(self), sort_keys=True, default=str)


class JobReadService:
    """
    Cached, retried reads of job records.

    Args:
        store: Remote document store
        cache: Cache shared with other services (a fresh one by default)
        retry: Retry policy for remote calls
        reporter: Error reporter for every caught failure
        collection: Collection holding the jobs
        chunk_size: Ids per membership query, capped at the store limit
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: Optional[TTLCache] = None,
        retry: Optional[RetryPolicy] = None,
        reporter: Optional[ErrorReporter] = None,
        logger: Optional[StructuredLogger] = None,
        collection: str = "jobs",
        chunk_size: int = MAX_IN_QUERY,
    ):
        self.store = store
        self.logger = logger or get_logger()
        self.cache = cache if cache is not None else TTLCache(logger=self.logger)
        self.retry = retry or RetryPolicy(logger=self.logger)
        self.reporter = reporter or ErrorReporter(logger=self.logger)
        self.collection = collection
        self.chunk_size = max(1, min(chunk_size, MAX_IN_QUERY))
        self.background = BackgroundTasks(logger=self.logger)

    # Cache helpers

    def _lookup(self, key: str, use_cache: bool) -> Tuple[Any, Any]:
        """Return (fresh value, stale snapshot), either may be MISSING.

        The snapshot is taken before ``get`` lazily drops an expired entry, so
        it stays available for the stale fallback.
        """
        if not use_cache:
            return MISSING, MISSING
        snapshot = self.cache.get_stale(key)
        value = self.cache.get(key)
        if value is MISSING:
            self.logger.record_cache_miss()
            return MISSING, snapshot
        self.logger.record_cache_hit()
        # Callers get their own copy; the cached value is never handed out
        return copy.deepcopy(value), snapshot

    def _store(self, key: str, value: Any) -> None:
        self.cache.put(key, copy.deepcopy(value))

    def _write_through(self, jobs: List[Dict[str, Any]]) -> None:
        for job in jobs:
            self._store(job_key(job["id"]), job)

    def _fallback(
        self,
        operation: str,
        key: str,
        snapshot: Any,
        error: BaseException,
        message: str,
        context: Dict[str, Any],
        use_cache: bool,
    ) -> Any:
        self.reporter.report(operation, error, context)
        if use_cache:
            stale = self.cache.get_stale(key)
            if stale is MISSING:
                stale = snapshot
            if stale is not MISSING:
                self.logger.warning("Returning stale cached data due to error", operation=operation, key=key)
                self.logger.record_stale_fallback()
                return copy.deepcopy(stale)
        raise JobLoadError(message) from error

    # Remote helpers

    async def _remote(self, operation: Callable[[], Awaitable[Any]], name: str) -> Any:
        async def attempt():
            self.logger.record_remote_call()
            return await operation()

        return await self.retry.run(attempt, name=name)

    def _jobs_query(self) -> Query:
        return self.store.collection(self.collection)

    async def _run_query(self, query: Query) -> List[Dict[str, Any]]:
        docs = await self.store.query(query)
        jobs = []
        for doc in docs:
            if not is_job_payload(doc.data):
                self.logger.warning("Skipping malformed job document", job_id=doc.id)
                continue
            jobs.append(normalize_job(doc))
        return jobs

    async def _load_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        doc = await self.store.get(self.collection, job_id)
        if doc is None:
            return None
        if not is_job_payload(doc.data):
            raise DataIntegrityError("Invalid job data received", details={"job_id": job_id})
        return normalize_job(doc)

    async def _load_chunk(self, chunk: List[str]) -> Dict[str, Optional[Dict[str, Any]]]:
        docs = await self.store.query(self._jobs_query().where_id_in(chunk))
        found: Dict[str, Optional[Dict[str, Any]]] = {job_id: None for job_id in chunk}
        for doc in docs:
            if doc.id not in found:
                continue
            if not is_job_payload(doc.data):
                self.logger.warning("Skipping malformed job document", job_id=doc.id)
                continue
            found[doc.id] = normalize_job(doc)
        return found

    # Public API

    async def fetch_all_jobs(self, use_cache: bool = True) -> List[Dict[str, Any]]:
        """All jobs, latest first."""
        cached, snapshot = self._lookup(ALL_JOBS_KEY, use_cache)
        if cached is not MISSING:
            return cached

        query = self._jobs_query().order_by("createdAt", DESCENDING)
        try:
            jobs = await self._remote(lambda: self._run_query(query), "fetch_all_jobs")
        except Exception as e:
            return self._fallback(
                "fetch_all_jobs", ALL_JOBS_KEY, snapshot, e, LOAD_JOBS_MESSAGE,
                {"use_cache": use_cache}, use_cache,
            )

        self._write_through(jobs)
        self._store(ALL_JOBS_KEY, jobs)
        self.logger.debug("Fetched jobs", count=len(jobs))
        return jobs

    async def fetch_job_by_id(self, job_id: Any, use_cache: bool = True) -> Optional[Dict[str, Any]]:
        """
        One job by id, or None when it does not exist.

        Raises:
            ValidationError: If job_id is not a non-empty string (no network call)
            JobLoadError: If the store fails and nothing is cached
        """
        clean_id = ensure_valid_job_id(job_id)
        key = job_key(clean_id)

        cached, snapshot = self._lookup(key, use_cache)
        if cached is not MISSING:
            return cached

        try:
            job = await self._remote(lambda: self._load_job(clean_id), "fetch_job_by_id")
        except Exception as e:
            return self._fallback(
                "fetch_job_by_id", key, snapshot, e, LOAD_JOB_MESSAGE,
                {"job_id": clean_id, "use_cache": use_cache}, use_cache,
            )

        # None is cached too: a known miss is a valid hit next time
        self._store(key, job)
        return job

    async def fetch_jobs_by_ids(self, job_ids: Any, use_cache: bool = True) -> List[Optional[Dict[str, Any]]]:
        """
        Jobs for a list of ids, in the caller's order, None where not found.

        Cache misses are fetched with membership queries of at most
        ``chunk_size`` ids, dispatched concurrently.
        """
        valid = clean_ids(job_ids)
        if not valid:
            return []

        resolved: Dict[str, Any] = {}
        snapshots: Dict[str, Any] = {}
        missing: List[str] = []
        for job_id in dict.fromkeys(valid):
            cached, snapshot = self._lookup(job_key(job_id), use_cache)
            snapshots[job_id] = snapshot
            if cached is MISSING:
                missing.append(job_id)
            else:
                resolved[job_id] = cached

        if not missing:
            return [resolved[job_id] for job_id in valid]

        chunks = chunked(missing, self.chunk_size)
        outcomes = await asyncio.gather(
            *(self._remote(functools.partial(self._load_chunk, chunk), "fetch_jobs_by_ids") for chunk in chunks),
            return_exceptions=True,
        )

        failures: List[BaseException] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                failures.append(outcome)
                continue
            for job_id, job in outcome.items():
                self._store(job_key(job_id), job)
                resolved[job_id] = job

        if failures:
            self.reporter.report(
                "fetch_jobs_by_ids",
                failures[0],
                {
                    "id_count": len(valid),
                    "chunk_count": len(chunks),
                    "failed_chunks": len(failures),
                    "use_cache": use_cache,
                },
            )
            return self._batch_fallback(valid, resolved, snapshots, failures[0], use_cache)

        return [resolved.get(job_id) for job_id in valid]

    def _batch_fallback(
        self,
        valid: List[str],
        resolved: Dict[str, Any],
        snapshots: Dict[str, Any],
        error: BaseException,
        use_cache: bool,
    ) -> List[Optional[Dict[str, Any]]]:
        results = []
        for job_id in valid:
            value = resolved.get(job_id, MISSING)
            # Stale entries stand in only for reads that allow the cache
            if value is MISSING and use_cache:
                value = self.cache.get_stale(job_key(job_id))
                if value is MISSING:
                    value = snapshots.get(job_id, MISSING)
                value = copy.deepcopy(value)
            results.append(None if value is MISSING else value)

        if any(job is not None for job in results):
            self.logger.warning(
                "Returning cached jobs after batch failure",
                resolved=sum(1 for job in results if job is not None),
                requested=len(results),
            )
            self.logger.record_stale_fallback()
            return results

        raise JobLoadError(LOAD_BATCH_MESSAGE) from error

    def build_filtered_query(self, filters: JobFilters) -> Query:
        """Order, then equality filters, then limit, then cursor."""
        query = self._jobs_query().order_by(filters.order_by_field, filters.order_direction)
        if filters.status is not None:
            query = query.where("status", filters.status)
        if filters.category is not None:
            query = query.where("category", filters.category)
        query = query.limit(filters.limit)
        if filters.start_after is not None:
            query = query.start_after(filters.start_after)
        return query

    async def fetch_jobs_with_filters(
        self,
        filters: Optional[Any] = None,
        use_cache: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        A page of jobs matching ``filters`` (a JobFilters or a mapping of
        limit/status/category/startAfter/orderByField/orderDirection).
        Each distinct filter combination is cached separately.
        """
        options = filters if isinstance(filters, JobFilters) else JobFilters.from_mapping(filters)
        key = options.cache_key()

        cached, snapshot = self._lookup(key, use_cache)
        if cached is not MISSING:
            return cached

        query = self.build_filtered_query(options)
        try:
            jobs = await self._remote(lambda: self._run_query(query), "fetch_jobs_with_filters")
        except Exception as e:
            return self._fallback(
                "fetch_jobs_with_filters", key, snapshot, e, LOAD_JOBS_MESSAGE,
                {"filters": asdict(options), "use_cache": use_cache}, use_cache,
            )

        self._write_through(jobs)
        self._store(key, jobs)
        return jobs

    def prefetch_jobs(self, job_ids: Any) -> Optional[asyncio.Task]:
        """
        Warm the cache for ids that are not fresh yet. Fire-and-forget: the
        returned task never needs awaiting and its failures are only logged.
        """
        try:
            uncached = [
                job_id for job_id in dict.fromkeys(clean_ids(job_ids))
                if not self.cache.is_fresh(job_key(job_id))
            ]
            if not uncached:
                return None
            return self.background.spawn(self._prefetch(uncached), "prefetch_jobs")
        except Exception as e:
            self.logger.warning("Prefetch error", error=str(e))
            return None

    async def _prefetch(self, job_ids: List[str]) -> None:
        try:
            await self.fetch_jobs_by_ids(job_ids)
        except Exception as e:
            self.logger.warning("Prefetch failed", error=str(e), id_count=len(job_ids))

    def clear_cache(self) -> int:
        return self.cache.clear()

    def health(self) -> Dict[str, Any]:
        cache = self.cache.health()
        cache["ttl_minutes"] = cache["ttl_seconds"] / 60
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache": cache,
            "config": {
                "max_retries": self.retry.max_retries,
                "retry_delay_seconds": self.retry.delay,
                "cache_enabled": True,
                "chunk_size": self.chunk_size,
                "sort_order": "createdAt desc (latest first)",
            },
            "metrics": self.logger.get_metrics(),
        }
