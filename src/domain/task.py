"""Task domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class RecurrenceMode(StrEnum):
    """When a task is due."""

    DAILY = "daily"  # Every calendar day
    DATE_SPECIFIC = "date_specific"  # Only on its due date


class TaskPriority(StrEnum):
    """How important a task is to its owner."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    created: str | None = Field(default=None, description="Creation timestamp")
    updated: str | None = Field(default=None, description="Last update timestamp")
    user_id: str = Field(..., description="Owning user ID")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    recurrence: RecurrenceMode = Field(default=RecurrenceMode.DAILY, description="daily or date_specific")
    due_date: date | None = Field(default=None, description="Due date for date_specific tasks")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="low, medium or high")
    active: bool = Field(default=True, description="Inactive tasks are never due")
    timezone: str = Field(default="UTC", description="IANA timezone completion dates are recorded in")

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date_is_none(cls, v: object) -> object:
        """Storage may hand back an empty string for an unset due date."""
        if v == "":
            return None
        return v
