"""Completion record and streak state models."""

from datetime import date

from pydantic import BaseModel, Field, model_validator


class CompletionRecord(BaseModel):
    """A task marked done on one calendar date. At most one per (task, date)."""

    id: str = Field(..., description="Unique completion ID from database")
    created: str | None = Field(default=None, description="Creation timestamp")
    updated: str | None = Field(default=None, description="Last update timestamp")
    task_id: str = Field(..., description="Completed task ID")
    user_id: str = Field(..., description="Owning user ID")
    completion_date: date = Field(..., description="Calendar date the task was completed for")
    completed_at: str = Field(..., description="When the completion was recorded (ISO format)")
    notes: str | None = Field(default=None, description="Optional notes")


class StreakState(BaseModel):
    """Streak figures derived from a task's full completion history."""

    task_id: str | None = Field(default=None, description="Task the streak belongs to")
    current_streak: int = Field(default=0, ge=0, description="Run of consecutive days ending at the last completion")
    longest_streak: int = Field(default=0, ge=0, description="Longest run in the whole history")
    last_completion_date: date | None = Field(default=None, description="Most recent completion date")
    streak_start_date: date | None = Field(default=None, description="First day of the current run")

    @model_validator(mode="after")
    def longest_covers_current(self) -> "StreakState":
        """The longest run can never be shorter than the current one."""
        if self.longest_streak < self.current_streak:
            msg = f"longest_streak ({self.longest_streak}) < current_streak ({self.current_streak})"
            raise ValueError(msg)
        return self
