"""Occurrence rule: is a task due on a given calendar date?

Both the per-date task listing and the statistics aggregator go through
``is_due`` so they can never disagree about what was due on a day.
"""

from collections.abc import Iterable
from datetime import date

from src.domain.task import RecurrenceMode, Task


def is_due(task: Task, on_date: date) -> bool:
    """Return True if ``task`` is due on ``on_date``.

    Inactive tasks are never due. Daily tasks are due on every date, including
    dates before the task was created. Date-specific tasks are due only on
    their due date, and never when the due date is unset.
    """
    if not task.active:
        return False

    if task.recurrence == RecurrenceMode.DAILY:
        return True

    if task.due_date is None:
        return False
    return task.due_date == on_date


def filter_due_tasks(tasks: Iterable[Task], on_date: date) -> list[Task]:
    """Return the tasks that are due on ``on_date``, preserving order."""
    return [task for task in tasks if is_due(task, on_date)]
