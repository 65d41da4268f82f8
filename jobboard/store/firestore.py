"""
Hosted document database client over its REST API.

Uses a ``requests`` session for the HTTP calls and runs each call in a worker
thread so the event loop never blocks. HTTP and network failures are
translated into the tagged error types: 503 and connection errors become
``unavailable``, 504 and timeouts become ``deadline-exceeded`` (both
retryable); everything else is a non-retryable StoreError.
"""

import asyncio
import base64
from typing import Any, Dict, List, Optional

import requests

from ..errors import NotFoundError, StoreError, TransientStoreError
from ..logger import StructuredLogger, get_logger
from .base import ASCENDING, SERVER_TIMESTAMP, Document, DocumentStore, Query, StoreTimestamp
from .memory import auto_id

FIRESTORE_ENDPOINT = "https://firestore.googleapis.com/v1"
DEFAULT_DATABASE = "(default)"

# Canonical status names from the error body, mapped to store error codes
_STATUS_CODES = {
    "UNAVAILABLE": "unavailable",
    "DEADLINE_EXCEEDED": "deadline-exceeded",
    "NOT_FOUND": "not-found",
    "PERMISSION_DENIED": "permission-denied",
    "UNAUTHENTICATED": "unauthenticated",
    "INVALID_ARGUMENT": "invalid-argument",
    "FAILED_PRECONDITION": "failed-precondition",
    "RESOURCE_EXHAUSTED": "resource-exhausted",
    "ALREADY_EXISTS": "already-exists",
    "INTERNAL": "internal",
}

_HTTP_CODES = {
    400: "invalid-argument",
    401: "unauthenticated",
    403: "permission-denied",
    404: "not-found",
    409: "already-exists",
    429: "resource-exhausted",
    500: "internal",
    503: "unavailable",
    504: "deadline-exceeded",
}


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a Python value as a REST ``Value`` object."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, StoreTimestamp):
        return {"timestampValue": value.to_rfc3339()}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise StoreError(f"Cannot store value of type {type(value).__name__}", code="invalid-argument")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    """Decode a REST ``Value`` object. Timestamps become StoreTimestamp."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return StoreTimestamp.from_rfc3339(value["timestampValue"])
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    raise StoreError(f"Unknown value type: {sorted(value)}", code="data-loss")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


def _error_from_response(resp: requests.Response) -> Exception:
    status = None
    message = f"Store request failed ({resp.status_code})"
    try:
        body = resp.json()
        error = body.get("error", {}) if isinstance(body, dict) else {}
        status = error.get("status")
        message = error.get("message") or message
    except ValueError:
        pass

    code = _STATUS_CODES.get(status) or _HTTP_CODES.get(resp.status_code, "unknown")
    if code in ("unavailable", "deadline-exceeded"):
        return TransientStoreError(message, code=code, details={"http_status": resp.status_code})
    if code == "not-found":
        return NotFoundError(message, code=code, details={"http_status": resp.status_code})
    return StoreError(message, code=code, details={"http_status": resp.status_code})


class FirestoreRestStore(DocumentStore):
    """
    Document store backed by the hosted database's REST API.

    Args:
        project_id: Cloud project id
        api_key: Web API key appended to every request
        id_token: Optional ID token of the signed-in user (Bearer auth)
        database: Database id
        timeout: Per-request timeout in seconds
        session: Optional requests.Session (injectable for tests)
    """

    def __init__(
        self,
        project_id: str,
        api_key: Optional[str] = None,
        id_token: Optional[str] = None,
        database: str = DEFAULT_DATABASE,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
        endpoint: str = FIRESTORE_ENDPOINT,
        logger: Optional[StructuredLogger] = None,
    ):
        if not project_id:
            raise ValueError("Missing project id. Set FIREBASE_PROJECT_ID or pass project_id.")
        self.project_id = project_id
        self.api_key = api_key
        self.id_token = id_token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or get_logger()
        self.database_path = f"projects/{project_id}/databases/{database}"
        self.documents_path = f"{self.database_path}/documents"
        self.base_url = f"{endpoint.rstrip('/')}/{self.documents_path}"

    def set_id_token(self, id_token: Optional[str]) -> None:
        """Swap credentials when the signed-in user changes."""
        self.id_token = id_token

    def document_name(self, collection: str, doc_id: str) -> str:
        return f"{self.documents_path}/{collection}/{doc_id}"

    # HTTP plumbing

    def _request(self, method: str, url: str, payload: Optional[dict] = None) -> requests.Response:
        params = {"key": self.api_key} if self.api_key else None
        headers = {"Authorization": f"Bearer {self.id_token}"} if self.id_token else None
        self.logger.debug("Store request", method=method, url=url)
        try:
            return self.session.request(
                method, url, params=params, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise TransientStoreError(f"Store request timed out: {e}", code="deadline-exceeded") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientStoreError(f"Store network error: {e}", code="unavailable") from e
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Store request error: {e}", code="unknown") from e

    def _json(self, resp: requests.Response) -> Any:
        if resp.status_code >= 400:
            raise _error_from_response(resp)
        try:
            return resp.json()
        except ValueError as e:
            raise StoreError("Store returned a non-JSON response", code="data-loss") from e

    def _to_document(self, raw: Dict[str, Any]) -> Document:
        doc_id = raw["name"].rsplit("/", 1)[-1]
        fields = raw.get("fields", {})
        # Non-map payloads are passed through for the caller's integrity check
        data = decode_fields(fields) if isinstance(fields, dict) else fields
        return Document(id=doc_id, data=data)

    # Sync operations, run in a worker thread

    def _get_sync(self, collection: str, doc_id: str) -> Optional[Document]:
        resp = self._request("GET", f"{self.base_url}/{collection}/{doc_id}")
        if resp.status_code == 404:
            return None
        return self._to_document(self._json(resp))

    def _structured_query(self, query: Query) -> Dict[str, Any]:
        structured: Dict[str, Any] = {"from": [{"collectionId": query.collection}]}

        filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": field_name},
                    "op": "EQUAL",
                    "value": encode_value(value),
                }
            }
            for field_name, value in query.filters
        ]
        if query.id_in:
            filters.append({
                "fieldFilter": {
                    "field": {"fieldPath": "__name__"},
                    "op": "IN",
                    "value": {"arrayValue": {"values": [
                        {"referenceValue": self.document_name(query.collection, doc_id)}
                        for doc_id in query.id_in
                    ]}},
                }
            })
        if len(filters) == 1:
            structured["where"] = filters[0]
        elif filters:
            structured["where"] = {"compositeFilter": {"op": "AND", "filters": filters}}

        direction = "ASCENDING" if query.direction == ASCENDING else "DESCENDING"
        if query.order_field:
            structured["orderBy"] = [{"field": {"fieldPath": query.order_field}, "direction": direction}]

        if query.cursor is not None:
            cursor_doc = self._get_sync(query.collection, query.cursor)
            if cursor_doc is None:
                raise StoreError(f"Cursor document {query.cursor!r} does not exist", code="invalid-argument")
            values = []
            if query.order_field:
                values.append(encode_value((cursor_doc.data or {}).get(query.order_field)))
            # Document name breaks ties between equal order values
            structured.setdefault("orderBy", []).append(
                {"field": {"fieldPath": "__name__"}, "direction": direction}
            )
            values.append({"referenceValue": self.document_name(query.collection, query.cursor)})
            structured["startAt"] = {"values": values, "before": False}

        if query.max_results is not None:
            structured["limit"] = query.max_results

        return structured

    def _query_sync(self, query: Query) -> List[Document]:
        payload = {"structuredQuery": self._structured_query(query)}
        rows = self._json(self._request("POST", f"{self.base_url}:runQuery", payload))
        return [self._to_document(row["document"]) for row in rows if "document" in row]

    def _add_sync(self, collection: str, record: Dict[str, Any]) -> str:
        doc_id = auto_id()
        fields = {key: value for key, value in record.items() if value is not SERVER_TIMESTAMP}
        transforms = [
            {"fieldPath": key, "setToServerValue": "REQUEST_TIME"}
            for key, value in record.items() if value is SERVER_TIMESTAMP
        ]
        write: Dict[str, Any] = {
            "update": {"name": self.document_name(collection, doc_id), "fields": encode_fields(fields)},
            "currentDocument": {"exists": False},
        }
        if transforms:
            write["updateTransforms"] = transforms
        self._json(self._request("POST", f"{self.base_url}:commit", {"writes": [write]}))
        return doc_id

    # DocumentStore

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await asyncio.to_thread(self._get_sync, collection, doc_id)

    async def query(self, query: Query) -> List[Document]:
        return await asyncio.to_thread(self._query_sync, query)

    async def add(self, collection: str, record: Dict[str, Any]) -> str:
        return await asyncio.to_thread(self._add_sync, collection, record)
