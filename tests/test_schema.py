"""
Tests for job submission validation.
"""

import pytest
from datetime import date

from jobboard.errors import ValidationError
from jobboard.schema import (
    ensure_valid_job_id,
    ensure_valid_submission,
    is_valid_date,
    validate_job,
    validate_user,
)


class TestValidateJob:
    """Test the field checks."""

    def test_valid_job(self, valid_job_data):
        """Valid submission should have no errors."""
        assert validate_job(valid_job_data) == []

    def test_missing_required_field(self, valid_job_data):
        del valid_job_data["hospital"]
        errors = validate_job(valid_job_data)
        assert errors == ["hospital is required"]

    def test_blank_field(self, valid_job_data):
        valid_job_data["schedule"] = "   "
        assert validate_job(valid_job_data) == ["schedule cannot be empty"]

    def test_negative_salary(self, valid_job_data):
        valid_job_data["salary"] = "-5"
        assert validate_job(valid_job_data) == ["Salary must be a positive number"]

    def test_non_numeric_salary(self, valid_job_data):
        valid_job_data["salary"] = "lots"
        assert "Salary must be a positive number" in validate_job(valid_job_data)

    def test_zero_and_nan_salary(self, valid_job_data):
        for bad in (0, "0", "nan", float("inf"), True):
            valid_job_data["salary"] = bad
            assert "Salary must be a positive number" in validate_job(valid_job_data)

    def test_numeric_salary_forms(self, valid_job_data):
        for good in (1500, 1500.5, " 2000 ", "1e3"):
            valid_job_data["salary"] = good
            assert validate_job(valid_job_data) == []

    def test_invalid_type(self, valid_job_data):
        valid_job_data["type"] = "temporary"
        assert validate_job(valid_job_data) == ['Job type must be either "permanent" or "relieving"']

    def test_relieving_type(self, valid_job_data):
        valid_job_data["type"] = "relieving"
        assert validate_job(valid_job_data) == []

    def test_invalid_date(self, valid_job_data):
        valid_job_data["date"] = "someday"
        assert validate_job(valid_job_data) == ["Invalid date format"]

    def test_non_mapping(self):
        assert validate_job(None) == ["Job data is required"]
        assert validate_job(["not", "a", "dict"]) == ["Job data is required"]

    def test_reports_every_problem(self):
        errors = validate_job({"salary": "-1", "type": "x"})
        assert "date is required" in errors
        assert "Salary must be a positive number" in errors
        assert any("Job type" in e for e in errors)


class TestDates:
    """Test accepted date spellings."""

    @pytest.mark.parametrize("value", [
        "2024-03-15",
        "2024-03-15T08:30:00",
        "2024-03-15T08:30:00Z",
        "15/03/2024",
        "2024/03/15",
        "15 Mar 2024",
        "March 15, 2024",
    ])
    def test_accepted(self, value):
        assert is_valid_date(value)

    @pytest.mark.parametrize("value", ["", "tomorrow", "2024-13-45", "31/02/2024", 20240315])
    def test_rejected(self, value):
        assert not is_valid_date(value)

    def test_date_object(self):
        assert is_valid_date(date(2024, 3, 15))


class TestUserAndIds:
    """Test identity and id checks."""

    def test_validate_user(self):
        assert validate_user("u1", "Alice") == []
        assert validate_user("", "Alice") == ["User ID is required"]
        assert validate_user("u1", "   ") == ["User name is required"]
        assert validate_user(None, None) == ["User ID is required", "User name is required"]

    def test_ensure_valid_submission_raises_first_error(self, valid_job_data):
        valid_job_data["salary"] = "-5"
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid_submission(valid_job_data, "", "Alice")

        assert exc_info.value.message == "User ID is required"
        assert exc_info.value.details["errors"] == [
            "User ID is required",
            "Salary must be a positive number",
        ]

    def test_ensure_valid_submission_passes(self, valid_job_data):
        ensure_valid_submission(valid_job_data, "u1", "Alice")

    def test_job_id(self):
        assert ensure_valid_job_id("  abc ") == "abc"
        for bad in ("", "   ", None, 42):
            with pytest.raises(ValidationError, match="valid job ID"):
                ensure_valid_job_id(bad)
