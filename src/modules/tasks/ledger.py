"""Completion ledger: which tasks were done on which calendar dates.

Every mutation runs inside a per-task lock together with the streak
recompute it triggers, so a concurrent complete and uncomplete on the same
task cannot leave the streak computed from a half-updated history.
"""

import asyncio
import logging
import weakref
from datetime import UTC, date, datetime
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.db_client import RecordNotFoundError
from src.core.logging import log_with_user_context, span
from src.domain.completion import CompletionRecord
from src.models.service_models import CompletionHistoryEntry
from src.modules.tasks import streaks


logger = logging.getLogger(__name__)

_task_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def task_lock(task_id: str) -> asyncio.Lock:
    """Return the lock guarding completion changes and streak recompute for a task."""
    lock = _task_locks.get(task_id)
    if lock is None:
        lock = asyncio.Lock()
        _task_locks[task_id] = lock
    return lock


def _key(task_id: str, on_date: date) -> dict[str, Any]:
    return {"task_id": task_id, "completion_date": on_date.isoformat()}


async def _get_owned_task(*, task_id: str, user_id: str | None) -> dict[str, Any]:
    task = await db_client.get_record(collection="tasks", record_id=task_id)
    if user_id is not None and str(task["user_id"]) != str(user_id):
        raise PermissionError(f"Task {task_id} does not belong to {user_id}")
    return task


async def complete(
    *,
    task_id: str,
    on_date: date,
    notes: str | None = None,
    user_id: str | None = None,
) -> CompletionRecord:
    """Mark a task done on a date and recompute its streak.

    Completing an already completed date refreshes the completion timestamp
    and replaces the notes only when new notes are given.

    Args:
        task_id: Task ID
        on_date: Calendar date, already resolved to the task's timezone
        notes: Optional notes
        user_id: When given, the task must belong to this user

    Returns:
        The stored completion record

    Raises:
        RecordNotFoundError: If the task does not exist
        PermissionError: If the task belongs to another user
    """
    with span("ledger.complete"):
        task = await _get_owned_task(task_id=task_id, user_id=user_id)
        owner_id = str(task["user_id"])

        async with task_lock(task_id):
            existing = await db_client.get_first_record(collection="task_completions", filters=_key(task_id, on_date))
            stored_notes = notes or (existing.get("notes") if existing else None)

            record = await db_client.upsert_record(
                collection="task_completions",
                keys=_key(task_id, on_date),
                data={
                    "user_id": owner_id,
                    "completed_at": datetime.now(UTC).isoformat(timespec="microseconds"),
                    "notes": stored_notes,
                },
            )
            await streaks.recompute_unlocked(task_id=task_id, user_id=owner_id)

        log_with_user_context(
            logger,
            "info",
            "Task completed",
            user_id=owner_id,
            task_id=task_id,
            completion_date=on_date.isoformat(),
            already_completed=existing is not None,
        )
        return CompletionRecord(**record)


async def uncomplete(*, task_id: str, on_date: date, user_id: str | None = None) -> None:
    """Remove the completion of a task on a date and recompute its streak.

    Raises:
        RecordNotFoundError: If the task does not exist or was not completed on that date
        PermissionError: If the task belongs to another user
    """
    with span("ledger.uncomplete"):
        task = await _get_owned_task(task_id=task_id, user_id=user_id)
        owner_id = str(task["user_id"])

        async with task_lock(task_id):
            removed = await db_client.delete_records(collection="task_completions", filters=_key(task_id, on_date))
            if removed == 0:
                raise RecordNotFoundError(f"Completion not found for task {task_id} on {on_date.isoformat()}")
            await streaks.recompute_unlocked(task_id=task_id, user_id=owner_id)

        log_with_user_context(
            logger,
            "info",
            "Task uncompleted",
            user_id=owner_id,
            task_id=task_id,
            completion_date=on_date.isoformat(),
        )


async def list_dates(*, task_id: str) -> list[date]:
    """Return every date the task was completed on, oldest first."""
    records = await db_client.list_all_records(
        collection="task_completions",
        filters={"task_id": task_id},
        sort="+completion_date",
    )
    return [date.fromisoformat(str(record["completion_date"])) for record in records]


async def get_completion(*, task_id: str, on_date: date) -> CompletionRecord | None:
    """Return the completion record for a task on a date, or None."""
    record = await db_client.get_first_record(collection="task_completions", filters=_key(task_id, on_date))
    return CompletionRecord(**record) if record else None


async def is_completed(*, task_id: str, on_date: date) -> bool:
    """Return True if the task has a completion record for the date."""
    return await get_completion(task_id=task_id, on_date=on_date) is not None


async def completed_task_ids(*, user_id: str, on_date: date) -> set[str]:
    """Return the IDs of a user's tasks that have a completion record for the date."""
    records = await db_client.list_all_records(
        collection="task_completions",
        filters={"user_id": user_id, "completion_date": on_date.isoformat()},
    )
    return {str(record["task_id"]) for record in records}


async def delete_task_completions(*, task_id: str) -> int:
    """Remove every completion of a task. Used when the task itself is deleted."""
    async with task_lock(task_id):
        return await db_client.delete_records(collection="task_completions", filters={"task_id": task_id})


async def get_completion_history(
    *,
    user_id: str,
    task_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = constants.HISTORY_DEFAULT_LIMIT,
) -> list[CompletionHistoryEntry]:
    """Return a user's completions, most recent first, enriched with task titles.

    Args:
        user_id: Owning user ID
        task_id: Restrict to one task
        start_date: Inclusive lower bound on completion date
        end_date: Inclusive upper bound on completion date
        limit: Maximum number of entries (1..HISTORY_MAX_LIMIT)

    Raises:
        ValueError: If limit is out of range or the window is inverted
    """
    if not 1 <= limit <= constants.HISTORY_MAX_LIMIT:
        msg = f"limit must be between 1 and {constants.HISTORY_MAX_LIMIT}"
        raise ValueError(msg)
    if start_date and end_date and start_date > end_date:
        msg = "start_date must not be after end_date"
        raise ValueError(msg)

    with span("ledger.get_completion_history"):
        filters: dict[str, Any] = {"user_id": user_id}
        if task_id:
            filters["task_id"] = task_id

        ranges = {}
        if start_date or end_date:
            ranges["completion_date"] = (
                start_date.isoformat() if start_date else None,
                end_date.isoformat() if end_date else None,
            )

        records = await db_client.list_records(
            collection="task_completions",
            filters=filters,
            ranges=ranges,
            sort="-completion_date,-completed_at",
            per_page=limit,
        )

        tasks = await db_client.list_all_records(
            collection="tasks",
            filters={"user_id": user_id},
        )
        titles = {task["id"]: task["title"] for task in tasks}

        return [
            CompletionHistoryEntry(
                id=record["id"],
                task_id=record["task_id"],
                task_title=titles.get(record["task_id"]),
                completion_date=record["completion_date"],
                completed_at=record["completed_at"],
                notes=record.get("notes"),
            )
            for record in records
        ]
