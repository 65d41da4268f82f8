"""
Job write service.

Validates a posting form submission, sanitizes it, stamps creator and
server-side timestamps, and submits it under the retry policy. Returns a
Result instead of raising so callers can show the message directly.

Posting does not touch the read cache: a new job shows up in the list on the
next forced refresh.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .errors import ValidationError, error_code
from .identity import AuthenticatedUser
from .logger import StructuredLogger, get_logger
from .normalize import sanitize_job, utc_now_iso
from .reporter import ErrorReporter
from .results import Result
from .retry import RetryPolicy
from .schema import ensure_valid_submission
from .store.base import SERVER_TIMESTAMP, DocumentStore

POST_SUCCESS_MESSAGE = "Job posted successfully"
POST_FAILURE_MESSAGE = "Failed to post job. Please check your connection and try again."
DEFAULT_STATUS = "active"


class JobWriteService:
    def __init__(
        self,
        store: DocumentStore,
        retry: Optional[RetryPolicy] = None,
        reporter: Optional[ErrorReporter] = None,
        logger: Optional[StructuredLogger] = None,
        collection: str = "jobs",
    ):
        self.store = store
        self.logger = logger or get_logger()
        self.retry = retry or RetryPolicy(logger=self.logger)
        self.reporter = reporter or ErrorReporter(logger=self.logger)
        self.collection = collection

    def build_record(self, job_data: Dict[str, Any], user_id: str, user_name: str) -> Dict[str, Any]:
        """Sanitized record plus creator fields and server-assigned timestamps."""
        record = sanitize_job(job_data)
        record.update(
            {
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
                "createdBy": user_name.strip(),
                "createdById": user_id.strip(),
                "status": DEFAULT_STATUS,
            }
        )
        return record

    async def post_job(self, job_data: Any, user_id: Any, user_name: Any) -> Result:
        """
        Validate and submit a new job.

        Returns:
            Result with ``data`` set to the stored record (with its new id) on
            success, or ``message`` explaining the failure
        """
        try:
            ensure_valid_submission(job_data, user_id, user_name)
            record = self.build_record(job_data, user_id, user_name)

            async def submit():
                self.logger.record_remote_call()
                return await self.store.add(self.collection, record)

            job_id = await self.retry.run(submit, name="post_job")
        except Exception as e:
            self.reporter.report(
                "post_job",
                e,
                {
                    "user_id": user_id,
                    "user_name": user_name,
                    "job_data_keys": list(job_data) if isinstance(job_data, dict) else None,
                },
            )
            if isinstance(e, ValidationError):
                return Result.fail(e.message, error=e.code)
            return Result.fail(POST_FAILURE_MESSAGE, error=error_code(e))

        # Server timestamps are not known until read back; show the client clock meanwhile
        now = utc_now_iso()
        data = {
            "id": job_id,
            **{key: (now if value is SERVER_TIMESTAMP else value) for key, value in record.items()},
        }
        self.logger.info("Job posted", job_id=job_id, created_by_id=data["createdById"])
        return Result.ok(data, message=POST_SUCCESS_MESSAGE)

    async def post_job_as(self, job_data: Any, user: AuthenticatedUser) -> Result:
        return await self.post_job(job_data, user.id, user.display_name)

    def health(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "job-posting",
            "config": {
                "max_retries": self.retry.max_retries,
                "collection": self.collection,
            },
            "status": "healthy",
        }
