import math
from datetime import date, datetime
from typing import Any, List, Mapping

from .errors import ValidationError
from .normalize import parse_salary

REQUIRED_FIELDS = [
    "date",
    "hospital",
    "location",
    "position",
    "salary",
    "schedule",
    "type",
]
JOB_TYPES = ("permanent", "relieving")

# Non-ISO date spellings accepted from the posting form
DATE_FORMATS = [
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
]


def _is_blank(v: Any) -> bool:
    return isinstance(v, str) and v.strip() == ""


def is_valid_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    try:
        datetime.fromisoformat(text.replace("Z", "+00:00"))
        return True
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
            return True
        except ValueError:
            continue
    return False


def validate_job(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Messages are shown to the user as-is.
    """
    if not isinstance(data, Mapping):
        return ["Job data is required"]

    errors: List[str] = []

    for f in REQUIRED_FIELDS:
        value = data.get(f)
        if value is None or value == "":
            errors.append(f"{f} is required")
        elif _is_blank(value):
            errors.append(f"{f} cannot be empty")

    salary = data.get("salary")
    if salary is not None and salary != "" and not _is_blank(salary):
        try:
            amount = parse_salary(salary)
        except (TypeError, ValueError):
            amount = None
        if amount is None or not math.isfinite(amount) or amount <= 0:
            errors.append("Salary must be a positive number")

    job_type = data.get("type")
    if job_type and not _is_blank(job_type) and job_type not in JOB_TYPES:
        errors.append('Job type must be either "permanent" or "relieving"')

    job_date = data.get("date")
    if job_date and not _is_blank(job_date) and not is_valid_date(job_date):
        errors.append("Invalid date format")

    return errors


def validate_user(user_id: Any, user_name: Any) -> List[str]:
    errors: List[str] = []
    if not isinstance(user_id, str) or not user_id.strip():
        errors.append("User ID is required")
    if not isinstance(user_name, str) or not user_name.strip():
        errors.append("User name is required")
    return errors


def ensure_valid_submission(data: Any, user_id: Any, user_name: Any) -> None:
    """
    Raise ValidationError with the first problem found.

    The full list is attached as ``details["errors"]``.
    """
    if not isinstance(data, Mapping):
        errors = ["Job data is required"]
    else:
        errors = validate_user(user_id, user_name) + validate_job(data)
    if errors:
        raise ValidationError(errors[0], details={"errors": errors})


def ensure_valid_job_id(job_id: Any) -> str:
    """Trimmed job id, or ValidationError when it is not a non-empty string."""
    if not isinstance(job_id, str) or not job_id.strip():
        raise ValidationError("Please provide a valid job ID")
    return job_id.strip()
