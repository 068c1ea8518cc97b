"""Scheduled jobs for tasks module.

This module provides scheduled jobs for:
- Nightly statistics snapshot refresh for the previous day
- Missed-task sweep for the previous day
"""

import logging
from datetime import timedelta

from src.core.config import settings
from src.core.dates import today_in_timezone
from src.core.module import ScheduledJob
from src.core.scheduler_tracker import retry_job_with_backoff
from src.modules.tasks import analytics


logger = logging.getLogger(__name__)


async def refresh_yesterday_snapshots() -> None:
    """Recompute yesterday's statistics snapshot for every user with tasks."""
    yesterday = today_in_timezone() - timedelta(days=1)
    logger.info("Running snapshot refresh job for %s", yesterday.isoformat())

    count = await analytics.refresh_snapshots(stat_date=yesterday)
    logger.info("Completed snapshot refresh job: %d users", count)


async def sweep_missed_tasks() -> None:
    """Report tasks that were due yesterday and never completed.

    Only logs the result; delivering reminders is up to whoever consumes the logs.
    """
    yesterday = today_in_timezone() - timedelta(days=1)
    logger.info("Running missed-task sweep for %s", yesterday.isoformat())

    missed = await analytics.find_missed_tasks(on_date=yesterday)
    for entry in missed:
        logger.info(
            "User %s missed %d task(s) on %s",
            entry.user_id,
            len(entry.tasks),
            yesterday.isoformat(),
            extra={"user_id": entry.user_id, "task_ids": [task.id for task in entry.tasks]},
        )

    logger.info("Completed missed-task sweep: %d users with missed tasks", len(missed))


def get_scheduled_jobs() -> list[ScheduledJob]:
    """Return scheduled jobs for tasks module.

    Returns:
        List of ScheduledJob definitions
    """
    return [
        ScheduledJob(
            id="snapshot_refresh",
            name="Refresh Daily Statistics Snapshots",
            cron=f"5 {settings.snapshot_refresh_hour} * * *",
            func=lambda: retry_job_with_backoff(refresh_yesterday_snapshots, "snapshot_refresh"),
        ),
        ScheduledJob(
            id="missed_task_sweep",
            name="Sweep Missed Tasks",
            cron=f"0 {settings.missed_task_sweep_hour} * * *",
            func=lambda: retry_job_with_backoff(sweep_missed_tasks, "missed_task_sweep"),
        ),
    ]
