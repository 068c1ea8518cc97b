"""Pytest configuration and fixtures for unit tests."""

from datetime import date

import pytest

from src.domain.create_models import TaskCreate
from src.domain.task import RecurrenceMode, Task
from src.modules.tasks import service
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    for name in (
        "create_record",
        "get_record",
        "update_record",
        "delete_record",
        "delete_records",
        "list_records",
        "get_first_record",
        "upsert_record",
    ):
        monkeypatch.setattr(f"src.core.db_client.{name}", getattr(in_memory_db, name))

    return in_memory_db


@pytest.fixture
def task_factory(patched_db):
    """Factory for creating tasks through the service layer.

    Usage:
        task = await task_factory(user_id="alice", title="Read", active=False)
    """

    async def _create_task(
        *,
        user_id: str = "alice",
        title: str = "Read 20 pages",
        recurrence: RecurrenceMode = RecurrenceMode.DAILY,
        due_date: date | None = None,
        active: bool = True,
        timezone: str | None = None,
    ) -> Task:
        task = await service.create_task(
            user_id=user_id,
            task=TaskCreate(title=title, recurrence=recurrence, due_date=due_date, timezone=timezone),
        )
        if not active:
            await patched_db.update_record(collection="tasks", record_id=task.id, data={"active": False})
            task = await service.get_task(task_id=task.id)
        return task

    return _create_task
