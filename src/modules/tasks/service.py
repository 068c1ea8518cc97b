"""Task service for CRUD operations and the per-date task list."""

import logging
from datetime import date
from typing import Any

from src.core import db_client
from src.core.config import settings
from src.core.logging import log_with_user_context, span
from src.domain.completion import StreakState
from src.domain.create_models import TaskCreate
from src.domain.task import RecurrenceMode, Task, TaskPriority
from src.domain.update_models import TaskUpdate
from src.models.service_models import TaskForDate
from src.modules.tasks import ledger, streaks
from src.modules.tasks.occurrence import filter_due_tasks


logger = logging.getLogger(__name__)


async def create_task(*, user_id: str, task: TaskCreate) -> Task:
    """Create a task for a user and give it an empty streak.

    Args:
        user_id: Owning user ID
        task: Validated task fields

    Returns:
        Created task

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    with span("task_service.create_task"):
        task_data: dict[str, Any] = {
            "user_id": user_id,
            "title": task.title,
            "description": task.description,
            "recurrence": str(task.recurrence),
            "due_date": task.due_date.isoformat() if task.due_date else None,
            "priority": str(task.priority),
            "active": True,
            "timezone": task.timezone or settings.default_timezone,
        }

        record = await db_client.create_record(collection="tasks", data=task_data)
        await streaks.store_streak(task_id=record["id"], user_id=user_id, state=StreakState())

        log_with_user_context(logger, "info", "Created task", user_id=user_id, task_id=record["id"])
        return Task(**record)


async def get_task(*, task_id: str, user_id: str | None = None) -> Task:
    """Get a task by ID.

    Raises:
        db_client.RecordNotFoundError: If the task does not exist
        PermissionError: If ``user_id`` is given and does not own the task
    """
    record = await db_client.get_record(collection="tasks", record_id=task_id)
    if user_id is not None and record["user_id"] != user_id:
        raise PermissionError(f"Task {task_id} does not belong to {user_id}")
    return Task(**record)


async def list_tasks(
    *,
    user_id: str,
    active: bool | None = None,
    recurrence: RecurrenceMode | None = None,
    priority: TaskPriority | None = None,
) -> list[Task]:
    """List a user's tasks, newest first.

    Args:
        user_id: Owning user ID
        active: Filter by active flag (None for all)
        recurrence: Filter by recurrence mode (None for all)
        priority: Filter by priority (None for all)
    """
    filters: dict[str, Any] = {"user_id": user_id}
    if active is not None:
        filters["active"] = active
    if recurrence is not None:
        filters["recurrence"] = str(recurrence)
    if priority is not None:
        filters["priority"] = str(priority)

    records = await db_client.list_all_records(
        collection="tasks",
        filters=filters,
        sort="-created,-id",
    )
    return [Task(**record) for record in records]


async def update_task(*, task_id: str, user_id: str, update: TaskUpdate) -> Task:
    """Apply a partial update to a task.

    Raises:
        ValueError: If the update sets nothing, or leaves a date_specific task without a due date
        db_client.RecordNotFoundError: If the task does not exist
        PermissionError: If the task belongs to another user
    """
    with span("task_service.update_task"):
        current = await get_task(task_id=task_id, user_id=user_id)

        data = update.to_record_data()
        if not data:
            msg = "No fields to update"
            raise ValueError(msg)

        recurrence = update.recurrence if "recurrence" in data else current.recurrence
        due_date = update.due_date if "due_date" in data else current.due_date
        if recurrence == RecurrenceMode.DATE_SPECIFIC and due_date is None:
            msg = "A date_specific task requires a due_date"
            raise ValueError(msg)

        record = await db_client.update_record(collection="tasks", record_id=task_id, data=data)
        log_with_user_context(logger, "info", "Updated task", user_id=user_id, task_id=task_id, fields=sorted(data))
        return Task(**record)


async def delete_task(*, task_id: str, user_id: str) -> None:
    """Delete a task with its completions and streak.

    Raises:
        db_client.RecordNotFoundError: If the task does not exist
        PermissionError: If the task belongs to another user
    """
    with span("task_service.delete_task"):
        await get_task(task_id=task_id, user_id=user_id)

        removed = await ledger.delete_task_completions(task_id=task_id)
        await db_client.delete_records(collection="task_streaks", filters={"task_id": task_id})
        await db_client.delete_record(collection="tasks", record_id=task_id)

        log_with_user_context(
            logger,
            "info",
            "Deleted task",
            user_id=user_id,
            task_id=task_id,
            completions_removed=removed,
        )


async def list_tasks_for_date(*, user_id: str, on_date: date) -> list[TaskForDate]:
    """List the tasks due on a date with completion status and streak figures."""
    with span("task_service.list_tasks_for_date"):
        tasks = await list_tasks(user_id=user_id, active=True)
        due = filter_due_tasks(tasks, on_date)

        completed_ids = await ledger.completed_task_ids(user_id=user_id, on_date=on_date)
        streak_map = await streaks.get_streaks_for_user(user_id=user_id)

        result = []
        for task in due:
            streak = streak_map.get(task.id, StreakState())
            result.append(
                TaskForDate(
                    task=task,
                    on_date=on_date,
                    completed=task.id in completed_ids,
                    current_streak=streak.current_streak,
                    longest_streak=streak.longest_streak,
                )
            )
        return result
