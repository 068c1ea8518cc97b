"""dailystreak - daily task tracking with streaks and statistics."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.scheduler import get_scheduler_status, start_scheduler, stop_scheduler
from src.domain.create_models import validate_timezone_name
from src.interface.dependencies import register_error_handlers
from src.interface.statistics_router import router as statistics_router
from src.interface.task_router import router as task_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Fail fast on configuration the application cannot run with.

    Raises:
        ValueError: If the default timezone is unknown, or the Logfire token is missing in production
    """
    validate_timezone_name(settings.default_timezone)
    if settings.environment == "production":
        settings.require_credential("logfire_token", "Logfire")
    logger.info("startup_validation_complete", extra={"status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()
    validate_startup_configuration()

    await init_db()
    logger.info("Database initialized", extra={"db_path": settings.sqlite_db_path})

    if settings.enable_scheduler:
        start_scheduler()
    else:
        logger.info("Scheduler disabled")
    yield
    # Shutdown
    stop_scheduler()
    await close_connection()


app = FastAPI(
    title="dailystreak",
    description="Daily task tracking with streaks and statistics",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_error_handlers(app)

# Register routers
app.include_router(task_router)
app.include_router(statistics_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job statuses."""
    status = get_scheduler_status()

    overall_status = status["status"]
    if status["dead_letter_queue"]:
        overall_status = "critical"
    status["status"] = overall_status

    return JSONResponse(content=status, status_code=200 if overall_status == "healthy" else 503)
