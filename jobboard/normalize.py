from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from .store.base import Document

TIMESTAMP_FIELDS = ("createdAt", "updatedAt")
TEXT_FIELDS = ("hospital", "location", "position", "schedule", "type")


def format_iso(dt: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return format_iso(datetime.now(timezone.utc))


def normalize_timestamp(value: Any) -> Any:
    """Convert a store-native timestamp to an ISO string; pass anything else through."""
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return format_iso(to_datetime())
    if isinstance(value, datetime):
        return format_iso(value)
    return value


def is_job_payload(data: Any) -> bool:
    return isinstance(data, Mapping)


def normalize_job(doc: Document) -> Dict[str, Any]:
    """Flatten a stored document into a job dict with ISO timestamps.

    The document id always wins over an ``id`` field inside the payload.
    """
    job = dict(doc.data)
    for field in TIMESTAMP_FIELDS:
        if field in job:
            job[field] = normalize_timestamp(job[field])
    job["id"] = doc.id
    return job


def parse_salary(value: Any) -> float:
    """Numeric salary from a number or numeric string. Raises ValueError."""
    if isinstance(value, bool):
        raise ValueError("salary must be numeric")
    if isinstance(value, (int, float)):
        return float(value)
    return float(str(value).strip())


def sanitize_job(job_data: Mapping[str, Any]) -> Dict[str, Any]:
    """Trimmed strings and numeric salary for an already validated submission."""
    clean: Dict[str, Any] = {}
    for field in TEXT_FIELDS:
        clean[field] = str(job_data[field]).strip()
    date = job_data["date"]
    clean["date"] = date.strip() if isinstance(date, str) else date.isoformat()
    clean["salary"] = parse_salary(job_data["salary"])
    return clean
