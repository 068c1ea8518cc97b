"""Update models for database operations."""

from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domain.create_models import validate_timezone_name
from src.domain.task import RecurrenceMode, TaskPriority


# Columns that may be cleared with an explicit null
_NULLABLE_FIELDS = {"description", "due_date"}


class TaskUpdate(BaseModel):
    """Partial update of a task. Only fields that were explicitly set are written."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    recurrence: RecurrenceMode | None = None
    due_date: date | None = None
    priority: TaskPriority | None = None
    active: bool | None = None
    timezone: str | None = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Validate timezone is a known IANA zone."""
        return validate_timezone_name(v)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "TaskUpdate":
        """Only description and due_date can be cleared."""
        for field_name in self.model_fields_set - _NULLABLE_FIELDS:
            if getattr(self, field_name) is None:
                msg = f"{field_name} cannot be null"
                raise ValueError(msg)
        return self

    def to_record_data(self) -> dict:
        """Return the explicitly set fields in storage form."""
        data = self.model_dump(exclude_unset=True)
        if "due_date" in data and data["due_date"] is not None:
            data["due_date"] = data["due_date"].isoformat()
        if "recurrence" in data and data["recurrence"] is not None:
            data["recurrence"] = str(data["recurrence"])
        if "priority" in data and data["priority"] is not None:
            data["priority"] = str(data["priority"])
        return data
