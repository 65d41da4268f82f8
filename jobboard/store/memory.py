"""
In-memory document store.

Emulates the hosted store closely enough for local development and tests:
auto-generated ids, server timestamps, ordering, equality filters, id
membership queries with the width cap, cursor pagination, injectable
failures and a call log.
"""

import asyncio
import copy
import secrets
import string
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..errors import StoreError
from .base import ASCENDING, SERVER_TIMESTAMP, Document, DocumentStore, Query, StoreTimestamp

_ID_ALPHABET = string.ascii_letters + string.digits
AUTO_ID_LENGTH = 20


def auto_id() -> str:
    """Random 20-character document id, as the hosted store generates."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(AUTO_ID_LENGTH))


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Missing values sort first, timestamps compare as datetimes
    if value is None:
        return (0, 0)
    if isinstance(value, StoreTimestamp):
        return (1, value.to_datetime())
    if isinstance(value, datetime):
        return (1, value)
    if isinstance(value, bool):
        return (2, value)
    if isinstance(value, (int, float)):
        return (3, value)
    return (4, str(value))


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Any]] = []
        self._failures: Deque[BaseException] = deque()

    # Test and emulator helpers

    def seed(self, collection: str, doc_id: str, data: Any) -> None:
        """Store a raw payload under a fixed id, bypassing add()."""
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def fail_next(self, error: BaseException, times: int = 1) -> None:
        """Make the next ``times`` operations raise ``error``."""
        for _ in range(times):
            self._failures.append(error)

    def calls_of(self, operation: str) -> List[Any]:
        return [arg for name, arg in self.calls if name == operation]

    async def _enter(self, operation: str, arg: Any) -> None:
        self.calls.append((operation, arg))
        if self.latency:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)
        if self._failures:
            raise self._failures.popleft()

    # DocumentStore

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        await self._enter("get", (collection, doc_id))
        docs = self.collections.get(collection, {})
        if doc_id not in docs:
            return None
        return Document(id=doc_id, data=copy.deepcopy(docs[doc_id]))

    async def query(self, query: Query) -> List[Document]:
        await self._enter("query", query)
        docs = self.collections.get(query.collection, {})
        matches = list(docs.items())

        if query.id_in:
            wanted = set(query.id_in)
            matches = [(doc_id, data) for doc_id, data in matches if doc_id in wanted]

        for field_name, value in query.filters:
            matches = [
                (doc_id, data) for doc_id, data in matches
                if isinstance(data, dict) and data.get(field_name) == value
            ]

        if query.order_field:
            field_name = query.order_field
            matches.sort(
                key=lambda item: (
                    _sort_key(item[1].get(field_name) if isinstance(item[1], dict) else None),
                    item[0],
                ),
                reverse=query.direction != ASCENDING,
            )

        if query.cursor is not None:
            ids = [doc_id for doc_id, _ in matches]
            if query.cursor not in ids:
                raise StoreError(
                    f"Cursor document {query.cursor!r} is not part of the result set",
                    code="invalid-argument",
                )
            matches = matches[ids.index(query.cursor) + 1:]

        if query.max_results is not None:
            matches = matches[:query.max_results]

        return [Document(id=doc_id, data=copy.deepcopy(data)) for doc_id, data in matches]

    async def add(self, collection: str, record: Dict[str, Any]) -> str:
        await self._enter("add", (collection, record))
        doc_id = auto_id()
        now = StoreTimestamp.now()
        stored = {
            key: (now if value is SERVER_TIMESTAMP else copy.deepcopy(value))
            for key, value in record.items()
        }
        self.collections.setdefault(collection, {})[doc_id] = stored
        return doc_id
