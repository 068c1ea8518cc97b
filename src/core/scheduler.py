"""Scheduler for automated jobs declared by feature modules."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core import module_registry
from src.core.config import settings
from src.core.scheduler_tracker import job_tracker


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=settings.default_timezone)


def register_jobs() -> list[str]:
    """Add every module's scheduled jobs to the scheduler. Returns the job IDs."""
    job_ids = []
    for job in module_registry.get_all_scheduled_jobs():
        scheduler.add_job(
            job.func,
            trigger=CronTrigger.from_crontab(job.cron, timezone=settings.default_timezone),
            id=job.id,
            name=job.name,
            replace_existing=True,
        )
        logger.info("Scheduled %s job: %s", job.id, job.cron)
        job_ids.append(job.id)
    return job_ids


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup, after the modules are registered.
    """
    logger.info("Starting scheduler")
    register_jobs()
    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    """Return the scheduler state with the tracked status of every registered job."""
    jobs = []
    for job in scheduler.get_jobs():
        status = job_tracker.get_job_status(job.id)
        jobs.append(
            {
                **status.model_dump(),
                "name": job.name,
                "currently_running": status.currently_running,
                "next_run_time": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            }
        )

    failing = [job["job_name"] for job in jobs if job["consecutive_failures"] > 0]
    return {
        "running": scheduler.running,
        "status": "degraded" if failing else "healthy",
        "failing_jobs": failing,
        "jobs": jobs,
        "dead_letter_queue": [item.model_dump() for item in job_tracker.get_dead_letter_queue()],
    }
