"""Statistics aggregation over a user's tasks, completions and streaks.

This module provides functions for:
- Daily statistics for one user and date (due, completed, rate, streaks)
- Weekly statistics over an inclusive date range
- Missed-task detection for a date across all users
- Snapshot refresh and snapshot history

Key Concepts:
- Due: decided by ``occurrence.is_due``, the same rule the per-date task
  listing uses. Only due tasks count towards total and completed.
- Orphaned completions: a completion on a date the task is no longer due
  (after its recurrence or due date changed) is ignored.
- Snapshots: every daily computation is upserted into ``daily_statistics``.
  Snapshots are never read back to answer a statistics query, because
  editing a completion can change a past date's figures.
"""

import logging
from collections import defaultdict
from datetime import date

from src.core import db_client
from src.core.config import constants
from src.core.dates import date_range, days_before, today_in_timezone
from src.core.logging import span
from src.domain.task import Task
from src.models.service_models import (
    DailyStatisticsSnapshot,
    MissedTasks,
    WeeklyStatistics,
    WeeklyTotals,
)
from src.modules.tasks import ledger, service, streaks
from src.modules.tasks.occurrence import filter_due_tasks


logger = logging.getLogger(__name__)


def completion_rate(completed: int, total: int) -> float:
    """Return completed/total as a percentage, 0 when nothing was due."""
    if total <= 0:
        return 0.0
    return round(completed / total * 100, constants.COMPLETION_RATE_PRECISION)


async def _store_snapshot(snapshot: DailyStatisticsSnapshot) -> None:
    await db_client.upsert_record(
        collection="daily_statistics",
        keys={"user_id": snapshot.user_id, "stat_date": snapshot.stat_date.isoformat()},
        data={
            "total_tasks": snapshot.total_tasks,
            "completed_tasks": snapshot.completed_tasks,
            "completion_rate": snapshot.completion_rate,
            "active_streaks": snapshot.active_streaks,
            "longest_streak": snapshot.longest_streak,
        },
    )


async def daily_statistics(*, user_id: str, stat_date: date) -> DailyStatisticsSnapshot:
    """Compute a user's statistics for one date and store the result as a snapshot.

    Active streaks and longest streak cover all of the user's tasks, not only
    those due on ``stat_date``. A user with no tasks gets an all-zero snapshot.

    Args:
        user_id: User ID
        stat_date: Calendar date

    Returns:
        Freshly computed snapshot
    """
    with span("analytics.daily_statistics"):
        tasks = await service.list_tasks(user_id=user_id)
        due = filter_due_tasks(tasks, stat_date)

        completed_ids = await ledger.completed_task_ids(user_id=user_id, on_date=stat_date)
        completed = sum(1 for task in due if task.id in completed_ids)

        streak_map = await streaks.get_streaks_for_user(user_id=user_id)
        user_streaks = [streak_map[task.id] for task in tasks if task.id in streak_map]

        snapshot = DailyStatisticsSnapshot(
            user_id=user_id,
            stat_date=stat_date,
            total_tasks=len(due),
            completed_tasks=completed,
            completion_rate=completion_rate(completed, len(due)),
            active_streaks=sum(1 for streak in user_streaks if streak.current_streak > 0),
            longest_streak=max((streak.longest_streak for streak in user_streaks), default=0),
        )

        await _store_snapshot(snapshot)

        logger.debug(
            "Computed daily statistics",
            extra={
                "user_id": user_id,
                "stat_date": stat_date.isoformat(),
                "total_tasks": snapshot.total_tasks,
                "completed_tasks": snapshot.completed_tasks,
            },
        )
        return snapshot


async def weekly_statistics(
    *,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
) -> WeeklyStatistics:
    """Compute daily statistics for every date in a range and total them.

    The average completion rate is the plain mean of the per-day rates, so a
    day with one due task weighs as much as a day with ten.

    Args:
        user_id: User ID
        start_date: First date (default: six days before ``end_date``)
        end_date: Last date, inclusive (default: today in the configured zone)

    Raises:
        ValueError: If start_date is after end_date or the range is longer than MAX_STATISTICS_RANGE_DAYS
    """
    end = end_date or today_in_timezone()
    start = start_date or days_before(end, constants.WEEKLY_WINDOW_DAYS - 1)
    if start > end:
        msg = f"start_date ({start}) must not be after end_date ({end})"
        raise ValueError(msg)
    if (end - start).days + 1 > constants.MAX_STATISTICS_RANGE_DAYS:
        msg = f"start_date to end_date may cover at most {constants.MAX_STATISTICS_RANGE_DAYS} days"
        raise ValueError(msg)

    with span("analytics.weekly_statistics"):
        per_day = [await daily_statistics(user_id=user_id, stat_date=day) for day in date_range(start, end)]

        average = sum(day.completion_rate for day in per_day) / len(per_day)
        totals = WeeklyTotals(
            total_tasks=sum(day.total_tasks for day in per_day),
            total_completed=sum(day.completed_tasks for day in per_day),
            average_completion_rate=round(average, constants.COMPLETION_RATE_PRECISION),
        )
        return WeeklyStatistics(user_id=user_id, start_date=start, end_date=end, per_day=per_day, totals=totals)


async def _all_active_tasks() -> list[Task]:
    records = await db_client.list_all_records(
        collection="tasks",
        filters={"active": True},
        sort="+user_id,+id",
    )
    return [Task(**record) for record in records]


async def find_missed_tasks(*, on_date: date) -> list[MissedTasks]:
    """Find tasks that were due on a date but never completed, grouped per user."""
    with span("analytics.find_missed_tasks"):
        due = filter_due_tasks(await _all_active_tasks(), on_date)

        missed: dict[str, list[Task]] = defaultdict(list)
        for task in due:
            if not await ledger.is_completed(task_id=task.id, on_date=on_date):
                missed[task.user_id].append(task)

        return [MissedTasks(user_id=user_id, on_date=on_date, tasks=tasks) for user_id, tasks in missed.items()]


async def refresh_snapshots(*, stat_date: date) -> int:
    """Recompute the snapshot of every user who owns a task. Returns the number of users refreshed."""
    with span("analytics.refresh_snapshots"):
        records = await db_client.list_all_records(
            collection="tasks",
            sort="+user_id",
        )
        user_ids = sorted({record["user_id"] for record in records})

        for user_id in user_ids:
            await daily_statistics(user_id=user_id, stat_date=stat_date)

        logger.info("Refreshed %d statistics snapshots for %s", len(user_ids), stat_date.isoformat())
        return len(user_ids)


async def get_snapshot_history(
    *,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[DailyStatisticsSnapshot]:
    """Return stored snapshots for a user, oldest first. For reporting only."""
    ranges = {}
    if start_date or end_date:
        ranges["stat_date"] = (
            start_date.isoformat() if start_date else None,
            end_date.isoformat() if end_date else None,
        )

    records = await db_client.list_all_records(
        collection="daily_statistics",
        filters={"user_id": user_id},
        ranges=ranges,
        sort="+stat_date",
    )
    return [
        DailyStatisticsSnapshot(
            user_id=record["user_id"],
            stat_date=record["stat_date"],
            total_tasks=record["total_tasks"],
            completed_tasks=record["completed_tasks"],
            completion_rate=record["completion_rate"],
            active_streaks=record["active_streaks"],
            longest_streak=record["longest_streak"],
        )
        for record in records
    ]
