"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from datetime import date

from pydantic import BaseModel

from src.domain.task import Task


class DailyStatisticsSnapshot(BaseModel):
    """Statistics for one user on one calendar date. Always recomputed, never trusted from storage."""

    user_id: str
    stat_date: date
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    active_streaks: int
    longest_streak: int


class WeeklyTotals(BaseModel):
    """Totals over a date range."""

    total_tasks: int
    total_completed: int
    average_completion_rate: float


class WeeklyStatistics(BaseModel):
    """Per-day snapshots for an inclusive date range plus their totals."""

    user_id: str
    start_date: date
    end_date: date
    per_day: list[DailyStatisticsSnapshot]
    totals: WeeklyTotals


class TaskForDate(BaseModel):
    """A task due on a given date, with its completion status for that date."""

    task: Task
    on_date: date
    completed: bool
    current_streak: int
    longest_streak: int


class CompletionHistoryEntry(BaseModel):
    """Completion record enriched with the task title."""

    id: str
    task_id: str
    task_title: str | None = None
    completion_date: date
    completed_at: str
    notes: str | None = None


class MissedTasks(BaseModel):
    """Tasks a user left undone on a date they were due."""

    user_id: str
    on_date: date
    tasks: list[Task]
