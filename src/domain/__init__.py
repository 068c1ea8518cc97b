"""Domain models and DTOs."""

from src.domain.completion import CompletionRecord, StreakState
from src.domain.create_models import TaskCreate
from src.domain.task import RecurrenceMode, Task, TaskPriority
from src.domain.update_models import TaskUpdate


__all__ = [
    "CompletionRecord",
    "RecurrenceMode",
    "StreakState",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskUpdate",
]
