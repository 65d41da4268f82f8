"""
Success/failure result shape shared by the write path and, through
``capture``, by any read path.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional

from .errors import JobBoardError, JobLoadError, ValidationError

GENERIC_FAILURE = "Something went wrong. Please check your connection and try again."


@dataclass
class Result:
    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "Result":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str, error: Optional[str] = None) -> "Result":
        return cls(success=False, message=message, error=error)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.success:
            out["data"] = self.data
        else:
            out["error"] = self.error
        if self.message is not None:
            out["message"] = self.message
        return out


def user_message(error: BaseException) -> str:
    """Message safe to show to the user for a failure."""
    if isinstance(error, (ValidationError, JobLoadError)):
        return error.message
    return GENERIC_FAILURE


async def capture(awaitable: Awaitable[Any]) -> Result:
    """Await a service call and fold its outcome into a Result."""
    try:
        return Result.ok(await awaitable)
    except JobBoardError as e:
        return Result.fail(user_message(e), error=e.code)
