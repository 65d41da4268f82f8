from .base import (
    ASCENDING,
    DESCENDING,
    MAX_IN_QUERY,
    SERVER_TIMESTAMP,
    Document,
    DocumentStore,
    Query,
    StoreTimestamp,
)
from .memory import InMemoryDocumentStore
from .firestore import FirestoreRestStore

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "MAX_IN_QUERY",
    "SERVER_TIMESTAMP",
    "Document",
    "DocumentStore",
    "Query",
    "StoreTimestamp",
    "InMemoryDocumentStore",
    "FirestoreRestStore",
]
