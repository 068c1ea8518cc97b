"""Error classification for service and storage errors."""

from enum import Enum

from pydantic import BaseModel

from src.core.db_client import DatabaseError, RecordNotFoundError


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Lookup errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_COMPLETION_NOT_FOUND = "ERR_COMPLETION_NOT_FOUND"

    # Permission errors
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"

    # Input errors
    ERR_INVALID_TASK = "ERR_INVALID_TASK"
    ERR_INVALID_DATE_RANGE = "ERR_INVALID_DATE_RANGE"

    # Storage errors
    ERR_STORAGE = "ERR_STORAGE"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    http_status: int = 500


_DATE_RANGE_PHRASES = ("start_date", "end_date", "limit must be")


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    error_str = str(exception).lower()

    if isinstance(exception, RecordNotFoundError) and "completion not found" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_COMPLETION_NOT_FOUND,
            message="That task was not completed on that date.",
            suggestion="Check the completion history for the dates you completed it.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if isinstance(exception, RecordNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="Task not found.",
            suggestion="List your tasks to see their IDs.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if isinstance(exception, PermissionError) or "does not belong to" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="You can only change your own tasks.",
            severity=ErrorSeverity.MEDIUM,
            http_status=403,
        )

    if isinstance(exception, ValueError) and any(phrase in error_str for phrase in _DATE_RANGE_PHRASES):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_DATE_RANGE,
            message="Invalid date range or limit.",
            suggestion="Keep start_date on or before end_date, within the allowed range length and limit.",
            severity=ErrorSeverity.LOW,
            http_status=400,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_TASK,
            message="Invalid task definition.",
            suggestion="A title is required, and a date_specific task needs a due_date.",
            severity=ErrorSeverity.LOW,
            http_status=422,
        )

    if isinstance(exception, DatabaseError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE,
            message="The task store is unavailable.",
            suggestion="Please try again later. If the problem persists, check the database.",
            severity=ErrorSeverity.HIGH,
            http_status=503,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
