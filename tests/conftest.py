"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.scheduler_tracker import job_tracker


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """Point the real database client at a fresh SQLite file with the schema applied."""
    db_path = str(tmp_path / "dailystreak_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db(db_path=db_path)
    yield db_path
    await db_client.close_connection(db_path=db_path)


@pytest.fixture
def clean_job_tracker():
    """Reset the global job tracker around a test."""
    job_tracker.reset()
    yield job_tracker
    job_tracker.reset()
