"""Error hierarchy for the task store.

Every error raised or surfaced by the store inherits from TaskIndexError,
which carries a machine-readable error_code for the UI notification layer.
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Standardized error codes surfaced to the UI."""

    NOT_FOUND = "NOT_FOUND"
    """Update/complete addressed an id that is not loaded."""

    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"
    """The remote store failed or could not be reached."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    """A draft or patch was rejected before touching the indexes."""


class FieldError(BaseModel):
    """One validation failure."""

    field: str
    message: str


class TaskIndexError(Exception):
    """Base exception for all task store errors."""

    error_code: ErrorCode

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TaskNotFoundError(TaskIndexError):
    """Raised when a task id is not present in the store."""

    error_code = ErrorCode.NOT_FOUND

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class RemoteUnavailableError(TaskIndexError):
    """Raised or surfaced when a remote call fails."""

    error_code = ErrorCode.REMOTE_UNAVAILABLE

    def __init__(
        self,
        operation: str,
        cause: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        detail = message or (str(cause) if cause else "remote store unavailable")
        super().__init__(f"Remote {operation} failed: {detail}")
        self.operation = operation
        self.cause = cause


class ValidationFailedError(TaskIndexError):
    """Raised when a draft or patch is malformed."""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, errors: list[FieldError]) -> None:
        summary = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Validation failed: {summary}")
        self.errors = errors
