"""Calendar date helpers."""

from collections.abc import Iterator
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from src.core.config import settings


def today_in_timezone(tz_name: str | None = None) -> date:
    """Return today's calendar date in the given IANA zone (default: configured zone)."""
    return datetime.now(ZoneInfo(tz_name or settings.default_timezone)).date()


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        if current == date.max:
            return
        current += timedelta(days=1)


def days_before(day: date, days: int) -> date:
    """Return the date ``days`` before ``day``, clamped to ``date.min``."""
    return day - timedelta(days=min(days, (day - date.min).days))
