"""
Remote document store contract.

The services talk to the hosted document database only through
DocumentStore: point lookups by id, ordered/filtered queries (including an
"id is one of N" membership filter capped at MAX_IN_QUERY ids) and inserts
with store-assigned ids and timestamps.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..errors import StoreError

# Width limit of the store's membership ("in") query
MAX_IN_QUERY = 10

ASCENDING = "asc"
DESCENDING = "desc"

_RFC3339 = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True, order=True)
class StoreTimestamp:
    """Store-native timestamp: seconds since the epoch plus nanoseconds."""

    seconds: int
    nanos: int = 0

    @classmethod
    def from_datetime(cls, dt: datetime) -> "StoreTimestamp":
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delta = dt - datetime(1970, 1, 1, tzinfo=timezone.utc)
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds=seconds, nanos=delta.microseconds * 1000)

    @classmethod
    def now(cls) -> "StoreTimestamp":
        return cls.from_datetime(datetime.now(timezone.utc))

    @classmethod
    def from_rfc3339(cls, value: str) -> "StoreTimestamp":
        m = _RFC3339.match(value)
        if not m:
            raise ValueError(f"Not an RFC 3339 timestamp: {value!r}")
        tz = m.group("tz")
        base = datetime.fromisoformat(m.group("base") + ("+00:00" if tz == "Z" else tz))
        nanos = int((m.group("frac") or "0").ljust(9, "0"))
        return cls(seconds=cls.from_datetime(base).seconds, nanos=nanos)

    def to_datetime(self) -> datetime:
        dt = datetime.fromtimestamp(self.seconds, tz=timezone.utc)
        return dt.replace(microsecond=self.nanos // 1000)

    def to_rfc3339(self) -> str:
        base = datetime.fromtimestamp(self.seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
        if self.nanos:
            return f"{base}.{self.nanos:09d}Z"
        return f"{base}Z"


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


# Placeholder asking the store to fill in its own clock on write
SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass
class Document:
    """A stored document. ``data`` is the raw payload as returned by the store."""

    id: str
    data: Any


@dataclass(frozen=True)
class Query:
    """
    Immutable query description. Each builder method returns a new Query, so
    callers compose order, filters, limit and cursor step by step.
    """

    collection: str
    order_field: Optional[str] = None
    direction: str = DESCENDING
    filters: Tuple[Tuple[str, Any], ...] = ()
    id_in: Tuple[str, ...] = ()
    max_results: Optional[int] = None
    cursor: Optional[str] = None
    steps: Tuple[str, ...] = field(default=(), compare=False)

    def order_by(self, field_name: str, direction: str = DESCENDING) -> "Query":
        if direction not in (ASCENDING, DESCENDING):
            raise StoreError(f"Unknown order direction: {direction}", code="invalid-argument")
        return replace(self, order_field=field_name, direction=direction, steps=self.steps + ("order_by",))

    def where(self, field_name: str, value: Any) -> "Query":
        return replace(self, filters=self.filters + ((field_name, value),), steps=self.steps + ("where",))

    def where_id_in(self, ids: List[str]) -> "Query":
        ids = tuple(ids)
        if not ids:
            raise StoreError("Membership query needs at least one id", code="invalid-argument")
        if len(ids) > MAX_IN_QUERY:
            raise StoreError(
                f"Membership query accepts at most {MAX_IN_QUERY} ids, got {len(ids)}",
                code="invalid-argument",
            )
        return replace(self, id_in=ids, steps=self.steps + ("where_id_in",))

    def limit(self, count: int) -> "Query":
        return replace(self, max_results=count, steps=self.steps + ("limit",))

    def start_after(self, document_id: str) -> "Query":
        """Resume after the document with this id (last item of the previous page)."""
        return replace(self, cursor=document_id, steps=self.steps + ("start_after",))


class DocumentStore(ABC):
    """Async client for the remote document store."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Point lookup. Returns None when the document does not exist."""

    @abstractmethod
    async def query(self, query: Query) -> List[Document]:
        """Run a query and return matching documents in order."""

    @abstractmethod
    async def add(self, collection: str, record: Dict[str, Any]) -> str:
        """Insert a record and return the store-assigned id."""

    def collection(self, name: str) -> Query:
        return Query(collection=name)
