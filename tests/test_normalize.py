"""
Tests for read-time normalization and write-time sanitizing.
"""

from datetime import date, datetime, timezone

from jobboard.normalize import (
    format_iso,
    is_job_payload,
    normalize_job,
    normalize_timestamp,
    sanitize_job,
)
from jobboard.store.base import Document, StoreTimestamp


class TestTimestamps:
    """Store-native timestamps become ISO strings."""

    def test_store_timestamp(self):
        ts = StoreTimestamp.from_datetime(datetime(2024, 3, 1, 10, 0, 5, 123000, tzinfo=timezone.utc))
        assert normalize_timestamp(ts) == "2024-03-01T10:00:05.123Z"

    def test_aware_datetime_converted_to_utc(self):
        dt = datetime.fromisoformat("2024-03-01T12:00:00+02:00")
        assert normalize_timestamp(dt) == "2024-03-01T10:00:00.000Z"

    def test_naive_datetime_treated_as_utc(self):
        assert format_iso(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"

    def test_raw_values_pass_through(self):
        for raw in ("2024-03-01", None, 1709287200, {"seconds": 1}):
            assert normalize_timestamp(raw) == raw


class TestNormalizeJob:
    """Documents flatten into job dicts."""

    def test_adds_id_and_converts_timestamps(self):
        ts = StoreTimestamp.from_datetime(datetime(2024, 3, 1, tzinfo=timezone.utc))
        doc = Document(id="abc", data={"position": "Nurse", "createdAt": ts, "updatedAt": "raw"})

        job = normalize_job(doc)

        assert job == {
            "id": "abc",
            "position": "Nurse",
            "createdAt": "2024-03-01T00:00:00.000Z",
            "updatedAt": "raw",
        }

    def test_document_id_wins(self):
        doc = Document(id="real", data={"id": "spoofed"})
        assert normalize_job(doc)["id"] == "real"

    def test_does_not_mutate_document(self):
        data = {"createdAt": StoreTimestamp(seconds=0)}
        normalize_job(Document(id="x", data=data))
        assert isinstance(data["createdAt"], StoreTimestamp)

    def test_payload_check(self):
        assert is_job_payload({})
        assert not is_job_payload(None)
        assert not is_job_payload("job")
        assert not is_job_payload(["a"])


class TestSanitize:
    """Form submissions are trimmed and typed."""

    def test_trims_and_parses_salary(self, valid_job_data):
        clean = sanitize_job(valid_job_data)

        assert clean == {
            "hospital": "St. Mary's General",
            "location": "Springfield",
            "position": "Staff Nurse",
            "schedule": "Night shift",
            "type": "permanent",
            "date": "2024-03-15",
            "salary": 1500.0,
        }

    def test_date_object_serialized(self, valid_job_data):
        valid_job_data["date"] = date(2024, 3, 15)
        assert sanitize_job(valid_job_data)["date"] == "2024-03-15"

    def test_ignores_extra_fields(self, valid_job_data):
        valid_job_data["status"] = "closed"
        assert "status" not in sanitize_job(valid_job_data)
