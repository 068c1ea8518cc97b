"""Execution tracking and retry for scheduled jobs."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from pydantic import BaseModel

from src.core.config import constants


logger = logging.getLogger(__name__)

# Consecutive failures after which a job lands in the dead letter queue
DEAD_LETTER_THRESHOLD = 3


class JobStatus(BaseModel):
    """Execution history of one scheduled job since process start."""

    job_name: str
    last_success: str | None = None
    last_failure: str | None = None
    last_error: str | None = None
    consecutive_failures: int = 0
    success_count: int = 0
    failure_count: int = 0
    current_run_started: str | None = None

    @property
    def currently_running(self) -> bool:
        return self.current_run_started is not None


class DeadLetter(BaseModel):
    job_name: str
    error: str
    context: str
    timestamp: str


class JobTracker:
    """Track job execution history and health status in process memory."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobStatus] = {}
        self._dead_letter_queue: deque[DeadLetter] = deque(maxlen=constants.TRACKER_DEAD_LETTER_QUEUE_MAXLEN)

    def _status(self, job_name: str) -> JobStatus:
        if job_name not in self._jobs:
            self._jobs[job_name] = JobStatus(job_name=job_name)
        return self._jobs[job_name]

    def record_job_start(self, job_name: str) -> None:
        self._status(job_name).current_run_started = datetime.now(UTC).isoformat()

    def record_job_success(self, job_name: str) -> None:
        status = self._status(job_name)
        status.last_success = datetime.now(UTC).isoformat()
        status.consecutive_failures = 0
        status.success_count += 1
        status.current_run_started = None

    def record_job_failure(self, job_name: str, error: str) -> int:
        """Record a failed run and return the number of consecutive failures."""
        status = self._status(job_name)
        status.last_failure = datetime.now(UTC).isoformat()
        status.last_error = error[:500]  # Truncate long errors
        status.consecutive_failures += 1
        status.failure_count += 1
        status.current_run_started = None
        return status.consecutive_failures

    def get_job_status(self, job_name: str) -> JobStatus:
        return self._jobs.get(job_name, JobStatus(job_name=job_name))

    def add_to_dead_letter_queue(self, job_name: str, error: str, context: str) -> None:
        """Add persistently failed job to dead letter queue."""
        item = DeadLetter(job_name=job_name, error=error, context=context, timestamp=datetime.now(UTC).isoformat())
        self._dead_letter_queue.append(item)

        logger.error(
            "Job added to dead letter queue",
            extra={"job_name": job_name, "error": error, "context": context, "timestamp": item.timestamp},
        )

    def get_dead_letter_queue(self) -> list[DeadLetter]:
        return list(self._dead_letter_queue)

    def reset(self) -> None:
        self._jobs.clear()
        self._dead_letter_queue.clear()


# Global job tracker instance
job_tracker = JobTracker()


async def retry_job_with_backoff(
    job_func: Callable[[], Awaitable[object]],
    job_name: str,
    max_retries: int = constants.JOB_MAX_RETRIES,
    base_delay: float = constants.JOB_RETRY_BASE_DELAY_SECONDS,
) -> bool:
    """Execute job with retry logic and exponential backoff.

    Args:
        job_func: Async function to execute
        job_name: Name of the job for tracking
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds for exponential backoff

    Returns:
        True if an attempt succeeded, False once all attempts failed
    """
    job_tracker.record_job_start(job_name)

    last_error = None
    for attempt in range(max_retries):
        try:
            logger.info("Executing %s (attempt %d/%d)", job_name, attempt + 1, max_retries)
            await job_func()

            job_tracker.record_job_success(job_name)
            logger.info("%s completed successfully", job_name)
            return True

        except Exception as e:
            last_error = str(e)
            logger.error("%s failed on attempt %d/%d: %s", job_name, attempt + 1, max_retries, last_error)

            if attempt < max_retries - 1:
                delay = base_delay**attempt
                logger.info("Retrying %s in %.1fs", job_name, delay)
                await asyncio.sleep(delay)

    error_msg = f"Failed after {max_retries} attempts: {last_error}"
    consecutive_failures = job_tracker.record_job_failure(job_name, error_msg)

    logger.error(
        f"{job_name} failed after all retry attempts",
        extra={"error": error_msg, "consecutive_failures": consecutive_failures},
    )

    if consecutive_failures >= DEAD_LETTER_THRESHOLD:
        job_tracker.add_to_dead_letter_queue(
            job_name=job_name,
            error=last_error or "Unknown error",
            context=f"Failed {consecutive_failures} consecutive times",
        )
    return False
