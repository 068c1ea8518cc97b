"""Streak calculation from a task's completion history.

A streak is a maximal run of calendar-consecutive completion dates. The
stored streak row for a task is always rebuilt from the full history, so it
stays correct when completions are added or removed at any position.
"""

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from src.core import db_client
from src.core.logging import span
from src.domain.completion import StreakState
from src.modules.tasks import ledger


logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def compute_streak(completion_dates: Iterable[date]) -> StreakState:
    """Derive current and longest streak from completion dates in any order.

    Dates are walked most recent first in a single pass that tracks the
    longest run seen, the length of the run in progress, and the run anchored
    at the most recent date. Only a gap of exactly one day continues a run;
    a repeated date breaks it like any other gap.

    Examples:
        Jan 1, 2, 3        -> current 3 (from Jan 1), longest 3
        Jan 1, 2, 5        -> current 1 (from Jan 5), longest 2
        (no completions)   -> current 0, longest 0, no dates
    """
    ordered = sorted(completion_dates, reverse=True)
    if not ordered:
        return StreakState()

    longest = 0
    run_length = 0
    trailing_run: int | None = None
    trailing_start: date | None = None
    previous: date | None = None

    for current in ordered:
        if previous is not None and previous - current == ONE_DAY:
            run_length += 1
        else:
            # The first break closes the run anchored at the most recent date
            if previous is not None and trailing_run is None:
                trailing_run = run_length
                trailing_start = previous
            run_length = 1
        longest = max(longest, run_length)
        previous = current

    if trailing_run is None:
        trailing_run = run_length
        trailing_start = previous

    return StreakState(
        current_streak=trailing_run,
        longest_streak=longest,
        last_completion_date=ordered[0],
        streak_start_date=trailing_start,
    )


def _record_to_streak(record: dict[str, Any]) -> StreakState:
    return StreakState(
        task_id=record["task_id"],
        current_streak=record.get("current_streak") or 0,
        longest_streak=record.get("longest_streak") or 0,
        last_completion_date=record.get("last_completion_date") or None,
        streak_start_date=record.get("streak_start_date") or None,
    )


async def store_streak(*, task_id: str, user_id: str, state: StreakState) -> StreakState:
    """Persist a streak row for a task, replacing whatever was there."""
    record = await db_client.upsert_record(
        collection="task_streaks",
        keys={"task_id": task_id},
        data={
            "user_id": user_id,
            "current_streak": state.current_streak,
            "longest_streak": state.longest_streak,
            "last_completion_date": state.last_completion_date,
            "streak_start_date": state.streak_start_date,
        },
    )
    return _record_to_streak(record)


async def recompute_unlocked(*, task_id: str, user_id: str) -> StreakState:
    """Rebuild and store the streak of a task. Caller must hold the task lock."""
    with span("streaks.recompute"):
        dates = await ledger.list_dates(task_id=task_id)
        state = compute_streak(dates)
        stored = await store_streak(task_id=task_id, user_id=user_id, state=state)

        logger.info(
            "Recomputed streak for task %s: current=%d longest=%d",
            task_id,
            stored.current_streak,
            stored.longest_streak,
        )
        return stored


async def recompute(*, task_id: str) -> StreakState:
    """Rebuild a task's streak from its full completion history.

    Usable on its own for repair or backfill; completion changes trigger it
    automatically.

    Raises:
        db_client.RecordNotFoundError: If the task does not exist
    """
    task = await db_client.get_record(collection="tasks", record_id=task_id)
    async with ledger.task_lock(task_id):
        return await recompute_unlocked(task_id=task_id, user_id=task["user_id"])


async def get_streak(*, task_id: str) -> StreakState:
    """Return the stored streak for a task, or a zero streak if none is stored."""
    record = await db_client.get_first_record(collection="task_streaks", filters={"task_id": task_id})
    if record is None:
        return StreakState(task_id=task_id)
    return _record_to_streak(record)


async def get_streaks_for_user(*, user_id: str) -> dict[str, StreakState]:
    """Return the stored streaks of every task a user owns, keyed by task ID."""
    records = await db_client.list_all_records(
        collection="task_streaks",
        filters={"user_id": user_id},
    )
    return {record["task_id"]: _record_to_streak(record) for record in records}

