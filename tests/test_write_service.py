"""
Tests for job posting.
"""

import pytest

from jobboard.errors import StoreError, TransientStoreError
from jobboard.identity import AuthenticatedUser
from jobboard.store.base import StoreTimestamp
from jobboard.write import POST_FAILURE_MESSAGE, POST_SUCCESS_MESSAGE


class TestPostJob:
    """Successful submissions."""

    @pytest.mark.asyncio
    async def test_valid_post(self, writer, store, valid_job_data):
        result = await writer.post_job(valid_job_data, "u1", "Alice")

        assert result.success
        assert result.message == POST_SUCCESS_MESSAGE
        data = result.data
        assert data["hospital"] == "St. Mary's General"
        assert data["location"] == "Springfield"
        assert data["position"] == "Staff Nurse"
        assert data["salary"] == 1500.0
        assert data["status"] == "active"
        assert data["createdBy"] == "Alice"
        assert data["createdById"] == "u1"
        assert data["createdAt"].endswith("Z")

        stored = store.collections["jobs"][data["id"]]
        assert isinstance(stored["createdAt"], StoreTimestamp)
        assert isinstance(stored["updatedAt"], StoreTimestamp)
        assert stored["salary"] == 1500.0

    @pytest.mark.asyncio
    async def test_post_as_authenticated_user(self, writer, valid_job_data):
        user = AuthenticatedUser(id="u7", display_name="Dr. Grey")

        result = await writer.post_job_as(valid_job_data, user)

        assert result.data["createdById"] == "u7"
        assert result.data["createdBy"] == "Dr. Grey"

    @pytest.mark.asyncio
    async def test_round_trip_through_reader(self, writer, reader, valid_job_data):
        result = await writer.post_job(valid_job_data, "u1", "Alice")

        job = await reader.fetch_job_by_id(result.data["id"], use_cache=False)

        assert job["id"] == result.data["id"]
        assert job["position"] == "Staff Nurse"
        assert job["hospital"] == "St. Mary's General"
        assert job["location"] == "Springfield"
        assert job["schedule"] == "Night shift"
        assert job["type"] == "permanent"
        assert job["salary"] == 1500.0
        assert job["date"] == "2024-03-15"
        assert job["createdBy"] == "Alice"
        assert job["createdById"] == "u1"
        assert job["status"] == "active"
        assert job["createdAt"].endswith("Z")
        assert job["updatedAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_does_not_touch_read_cache(self, writer, reader, store, seed_jobs, valid_job_data):
        seed_jobs(1)
        before = await reader.fetch_all_jobs()

        await writer.post_job(valid_job_data, "u1", "Alice")

        assert await reader.fetch_all_jobs() == before
        assert len(await reader.fetch_all_jobs(use_cache=False)) == 2

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, writer, store, sleep, valid_job_data):
        store.fail_next(TransientStoreError("down", code="unavailable"))

        result = await writer.post_job(valid_job_data, "u1", "Alice")

        assert result.success
        assert sleep.delays == [1.0]
        assert len(store.calls_of("add")) == 2


class TestPostJobValidation:
    """Submissions rejected before any network call."""

    @pytest.mark.asyncio
    async def test_negative_salary(self, writer, store, valid_job_data):
        valid_job_data["salary"] = "-5"

        result = await writer.post_job(valid_job_data, "u1", "Alice")

        assert not result.success
        assert result.message == "Salary must be a positive number"
        assert result.error == "invalid-input"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_missing_user_id(self, writer, store, valid_job_data):
        result = await writer.post_job(valid_job_data, "", "Alice")

        assert result.message == "User ID is required"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_non_dict_data(self, writer, store, reporter):
        result = await writer.post_job("not a job", "u1", "Alice")

        assert result.message == "Job data is required"
        assert reporter.recent()[-1].context["job_data_keys"] is None
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_invalid_type(self, writer, valid_job_data):
        valid_job_data["type"] = "locum"

        result = await writer.post_job(valid_job_data, "u1", "Alice")

        assert result.message == 'Job type must be either "permanent" or "relieving"'


class TestPostJobFailures:
    """Remote failures come back as a Result."""

    @pytest.mark.asyncio
    async def test_permanent_failure(self, writer, store, reporter, valid_job_data):
        store.fail_next(StoreError("denied", code="permission-denied"))

        result = await writer.post_job(valid_job_data, "u1", "Alice")

        assert not result.success
        assert result.message == POST_FAILURE_MESSAGE
        assert result.error == "permission-denied"
        assert len(store.calls_of("add")) == 1

        record = reporter.recent()[-1]
        assert record.operation == "post_job"
        assert record.context == {
            "user_id": "u1",
            "user_name": "Alice",
            "job_data_keys": list(valid_job_data),
        }

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, writer, store, valid_job_data):
        store.fail_next(TransientStoreError("down"), times=3)

        result = await writer.post_job(valid_job_data, "u1", "Alice")

        assert not result.success
        assert result.error == "unavailable"
        assert len(store.calls_of("add")) == 3
        assert "jobs" not in store.collections


def test_health(writer):
    health = writer.health()

    assert health["service"] == "job-posting"
    assert health["config"] == {"max_retries": 2, "collection": "jobs"}
