"""HTTP routes for daily and weekly statistics."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from src.core.dates import today_in_timezone
from src.interface.dependencies import UserId
from src.models.service_models import DailyStatisticsSnapshot, WeeklyStatistics
from src.modules.tasks import analytics


router = APIRouter(prefix="/api/statistics", tags=["statistics"])


@router.get("/daily")
async def get_daily_statistics(
    user_id: UserId,
    on_date: Annotated[date | None, Query(alias="date")] = None,
) -> DailyStatisticsSnapshot:
    return await analytics.daily_statistics(user_id=user_id, stat_date=on_date or today_in_timezone())


@router.get("/weekly")
async def get_weekly_statistics(
    user_id: UserId,
    start_date: date | None = None,
    end_date: date | None = None,
) -> WeeklyStatistics:
    """Per-day statistics for an inclusive range (default: the last seven days)."""
    return await analytics.weekly_statistics(user_id=user_id, start_date=start_date, end_date=end_date)


@router.get("/snapshots")
async def get_snapshot_history(
    user_id: UserId,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[DailyStatisticsSnapshot]:
    """Previously stored snapshots. Use /daily for current figures."""
    return await analytics.get_snapshot_history(user_id=user_id, start_date=start_date, end_date=end_date)
