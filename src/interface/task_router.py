"""HTTP routes for tasks, completions and streaks."""

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from src.core.config import constants
from src.core.dates import today_in_timezone
from src.domain.completion import CompletionRecord, StreakState
from src.domain.create_models import TaskCreate
from src.domain.task import RecurrenceMode, Task, TaskPriority
from src.domain.update_models import TaskUpdate
from src.interface.dependencies import UserId
from src.models.service_models import CompletionHistoryEntry, TaskForDate
from src.modules.tasks import ledger, service, streaks


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class CompleteRequest(BaseModel):
    """Body of a completion request. The date defaults to today in the task's timezone."""

    on_date: date | None = Field(default=None, alias="date")
    notes: str | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, user_id: UserId) -> Task:
    return await service.create_task(user_id=user_id, task=task)


@router.get("")
async def list_tasks(
    user_id: UserId,
    active: bool | None = None,
    recurrence: RecurrenceMode | None = None,
    priority: TaskPriority | None = None,
) -> list[Task]:
    return await service.list_tasks(user_id=user_id, active=active, recurrence=recurrence, priority=priority)


@router.get("/for-date")
async def list_tasks_for_date(
    user_id: UserId,
    on_date: Annotated[date | None, Query(alias="date")] = None,
) -> list[TaskForDate]:
    """Tasks due on a date (default: today) with completion status and streaks."""
    return await service.list_tasks_for_date(user_id=user_id, on_date=on_date or today_in_timezone())


@router.get("/history")
async def get_completion_history(
    user_id: UserId,
    task_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = constants.HISTORY_DEFAULT_LIMIT,
) -> list[CompletionHistoryEntry]:
    return await ledger.get_completion_history(
        user_id=user_id,
        task_id=task_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )


@router.get("/{task_id}")
async def get_task(task_id: str, user_id: UserId) -> Task:
    return await service.get_task(task_id=task_id, user_id=user_id)


@router.patch("/{task_id}")
async def update_task(task_id: str, update: TaskUpdate, user_id: UserId) -> Task:
    return await service.update_task(task_id=task_id, user_id=user_id, update=update)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, user_id: UserId) -> Response:
    await service.delete_task(task_id=task_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/complete")
async def complete_task(task_id: str, body: CompleteRequest, user_id: UserId) -> CompletionRecord:
    on_date = body.on_date
    if on_date is None:
        task = await service.get_task(task_id=task_id, user_id=user_id)
        on_date = today_in_timezone(task.timezone)
    return await ledger.complete(task_id=task_id, on_date=on_date, notes=body.notes, user_id=user_id)


@router.delete("/{task_id}/complete", status_code=status.HTTP_204_NO_CONTENT)
async def uncomplete_task(
    task_id: str,
    user_id: UserId,
    on_date: Annotated[date | None, Query(alias="date")] = None,
) -> Response:
    if on_date is None:
        task = await service.get_task(task_id=task_id, user_id=user_id)
        on_date = today_in_timezone(task.timezone)
    await ledger.uncomplete(task_id=task_id, on_date=on_date, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{task_id}/streak")
async def get_streak(task_id: str, user_id: UserId) -> StreakState:
    await service.get_task(task_id=task_id, user_id=user_id)
    return await streaks.get_streak(task_id=task_id)


@router.post("/{task_id}/streak/recompute")
async def recompute_streak(task_id: str, user_id: UserId) -> StreakState:
    """Rebuild the streak from the full completion history."""
    await service.get_task(task_id=task_id, user_id=user_id)
    state = await streaks.recompute(task_id=task_id)
    logger.info("Streak recomputed on request", extra={"task_id": task_id, "user_id": user_id})
    return state
