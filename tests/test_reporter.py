"""
Tests for structured error reporting.
"""

from jobboard.errors import TransientStoreError, ValidationError
from jobboard.reporter import MAX_RECENT_REPORTS, ErrorReporter


class TestReport:
    """Test the record built for a failure."""

    def test_record_fields(self, reporter):
        error = TransientStoreError("Service down", code="unavailable")

        record = reporter.report("fetch_all_jobs", error, {"use_cache": True})

        assert record.operation == "fetch_all_jobs"
        assert record.message == "Service down"
        assert record.code == "unavailable"
        assert record.kind == "transient-network"
        assert record.context == {"use_cache": True}
        assert record.client_environment == "tests"
        assert record.timestamp.endswith("+00:00")

    def test_untagged_error(self, reporter):
        record = reporter.report("post_job", KeyError("salary"))

        assert record.code == "KeyError"
        assert record.kind is None
        assert record.context == {}

    def test_record_is_logged(self, reporter, caplog):
        error = TransientStoreError("Service down", code="unavailable")

        with caplog.at_level("ERROR", logger="jobboard-test"):
            record = reporter.report("fetch_all_jobs", error, {"use_cache": True})

        assert record is not None
        assert "Job store error in fetch_all_jobs | Context:" in caplog.text
        assert '"message": "Service down"' in caplog.text
        assert '"code": "unavailable"' in caplog.text
        assert "Failed to build error report" not in caplog.text

    def test_counts_error_codes(self, reporter, logger):
        reporter.report("a", ValidationError("bad"))
        reporter.report("b", ValidationError("bad"))

        assert logger.metrics["errors_by_code"] == {"invalid-input": 2}

    def test_default_environment(self, logger):
        record = ErrorReporter(logger=logger).report("op", ValueError("x"))
        assert record.client_environment.startswith("python/")

    def test_to_dict(self, reporter):
        record = reporter.report("op", ValueError("x"), {"id_count": 3})
        data = record.to_dict()

        assert set(data) == {
            "operation", "message", "code", "kind", "context", "timestamp", "client_environment",
        }
        assert data["context"] == {"id_count": 3}


class TestSinks:
    """Telemetry hooks."""

    def test_sinks_receive_records(self, reporter):
        received = []
        reporter.add_sink(received.append)

        record = reporter.report("op", ValueError("x"))

        assert received == [record]

    def test_failing_sink_never_raises(self, logger):
        def broken(record):
            raise RuntimeError("telemetry offline")

        received = []
        reporter = ErrorReporter(logger=logger, sinks=[broken, received.append])

        record = reporter.report("op", ValueError("x"))

        assert record is not None
        assert received == [record]


class TestRecent:
    def test_recent_is_bounded(self, reporter):
        for i in range(MAX_RECENT_REPORTS + 5):
            reporter.report(f"op{i}", ValueError("x"))

        recent = reporter.recent()

        assert len(recent) == MAX_RECENT_REPORTS
        assert recent[0].operation == "op5"
        assert recent[-1].operation == f"op{MAX_RECENT_REPORTS + 4}"
