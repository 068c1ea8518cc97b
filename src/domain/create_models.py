"""Pydantic models for creating records in database."""

from datetime import date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domain.task import RecurrenceMode, TaskPriority


def validate_timezone_name(v: str | None) -> str | None:
    """Validate an IANA timezone name."""
    if v is None:
        return v
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError) as e:
        msg = f"Unknown timezone: {v}"
        raise ValueError(msg) from e
    return v


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    title: str = Field(..., min_length=1, description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    recurrence: RecurrenceMode = Field(default=RecurrenceMode.DAILY, description="daily or date_specific")
    due_date: date | None = Field(default=None, description="Due date (date_specific tasks only)")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="low, medium or high")
    timezone: str | None = Field(default=None, description="IANA timezone; defaults to the configured zone")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Reject titles that are only whitespace."""
        if not v.strip():
            msg = "Title is required"
            raise ValueError(msg)
        return v.strip()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Validate timezone is a known IANA zone."""
        return validate_timezone_name(v)

    @model_validator(mode="after")
    def due_date_matches_recurrence(self) -> "TaskCreate":
        """A date-specific task needs a due date."""
        if self.recurrence == RecurrenceMode.DATE_SPECIFIC and self.due_date is None:
            msg = "A date_specific task requires a due_date"
            raise ValueError(msg)
        return self
