"""Tests for the completion ledger."""

import asyncio
from datetime import date

import pytest

from src.core.db_client import RecordNotFoundError
from src.modules.tasks import ledger, streaks


DAY_1 = date(2024, 1, 1)
DAY_2 = date(2024, 1, 2)
DAY_3 = date(2024, 1, 3)


@pytest.mark.unit
class TestComplete:
    """Tests for ledger.complete."""

    async def test_complete_records_date_and_updates_streak(self, patched_db, task_factory):
        task = await task_factory()

        record = await ledger.complete(task_id=task.id, on_date=DAY_1, notes="felt good")

        assert record.task_id == task.id
        assert record.user_id == task.user_id
        assert record.completion_date == DAY_1
        assert record.notes == "felt good"
        assert await ledger.is_completed(task_id=task.id, on_date=DAY_1)
        assert (await streaks.get_streak(task_id=task.id)).current_streak == 1

    async def test_complete_twice_keeps_one_record(self, patched_db, task_factory):
        task = await task_factory()

        first = await ledger.complete(task_id=task.id, on_date=DAY_1)
        second = await ledger.complete(task_id=task.id, on_date=DAY_1)

        assert first.id == second.id
        assert await ledger.list_dates(task_id=task.id) == [DAY_1]
        assert (await streaks.get_streak(task_id=task.id)).current_streak == 1

    async def test_complete_again_keeps_notes_unless_replaced(self, patched_db, task_factory):
        task = await task_factory()
        await ledger.complete(task_id=task.id, on_date=DAY_1, notes="first")

        kept = await ledger.complete(task_id=task.id, on_date=DAY_1)
        assert kept.notes == "first"

        replaced = await ledger.complete(task_id=task.id, on_date=DAY_1, notes="second")
        assert replaced.notes == "second"

    async def test_complete_unknown_task_raises(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await ledger.complete(task_id="9999", on_date=DAY_1)

    async def test_complete_other_users_task_raises(self, patched_db, task_factory):
        task = await task_factory(user_id="alice")

        with pytest.raises(PermissionError):
            await ledger.complete(task_id=task.id, on_date=DAY_1, user_id="mallory")

        assert not await ledger.is_completed(task_id=task.id, on_date=DAY_1)

    async def test_out_of_order_completions(self, patched_db, task_factory):
        task = await task_factory()

        for day in (DAY_3, DAY_1, DAY_2):
            await ledger.complete(task_id=task.id, on_date=day)

        state = await streaks.get_streak(task_id=task.id)
        assert state.current_streak == 3
        assert state.streak_start_date == DAY_1
        assert await ledger.list_dates(task_id=task.id) == [DAY_1, DAY_2, DAY_3]

    async def test_concurrent_completions_end_consistent(self, patched_db, task_factory):
        task = await task_factory()
        days = [date(2024, 1, day) for day in range(1, 11)]

        await asyncio.gather(*(ledger.complete(task_id=task.id, on_date=day) for day in days))

        state = await streaks.get_streak(task_id=task.id)
        assert state.current_streak == 10
        assert state.longest_streak == 10


@pytest.mark.unit
class TestUncomplete:
    """Tests for ledger.uncomplete."""

    async def test_complete_then_uncomplete_restores_state(self, patched_db, task_factory):
        task = await task_factory()
        await ledger.complete(task_id=task.id, on_date=DAY_1)
        before = await streaks.get_streak(task_id=task.id)

        await ledger.complete(task_id=task.id, on_date=DAY_2)
        await ledger.uncomplete(task_id=task.id, on_date=DAY_2)

        assert await ledger.list_dates(task_id=task.id) == [DAY_1]
        assert await streaks.get_streak(task_id=task.id) == before

    async def test_uncomplete_middle_day_splits_run(self, patched_db, task_factory):
        task = await task_factory()
        for day in (DAY_1, DAY_2, DAY_3):
            await ledger.complete(task_id=task.id, on_date=day)

        await ledger.uncomplete(task_id=task.id, on_date=DAY_2)

        state = await streaks.get_streak(task_id=task.id)
        assert state.current_streak == 1
        assert state.longest_streak == 1
        assert state.last_completion_date == DAY_3

    async def test_uncomplete_absent_completion_raises(self, patched_db, task_factory):
        task = await task_factory()
        await ledger.complete(task_id=task.id, on_date=DAY_1)

        with pytest.raises(RecordNotFoundError, match="Completion not found"):
            await ledger.uncomplete(task_id=task.id, on_date=DAY_2)

        assert (await streaks.get_streak(task_id=task.id)).current_streak == 1

    async def test_uncomplete_other_users_task_raises(self, patched_db, task_factory):
        task = await task_factory(user_id="alice")
        await ledger.complete(task_id=task.id, on_date=DAY_1)

        with pytest.raises(PermissionError):
            await ledger.uncomplete(task_id=task.id, on_date=DAY_1, user_id="mallory")

        assert await ledger.is_completed(task_id=task.id, on_date=DAY_1)


@pytest.mark.unit
class TestQueries:
    """Tests for ledger lookups and history."""

    async def test_get_completion_absent_is_none(self, patched_db, task_factory):
        task = await task_factory()

        assert await ledger.get_completion(task_id=task.id, on_date=DAY_1) is None
        assert not await ledger.is_completed(task_id=task.id, on_date=DAY_1)

    async def test_completed_task_ids_scoped_to_user_and_date(self, patched_db, task_factory):
        mine = await task_factory(user_id="alice")
        theirs = await task_factory(user_id="bob")
        await ledger.complete(task_id=mine.id, on_date=DAY_1)
        await ledger.complete(task_id=mine.id, on_date=DAY_2)
        await ledger.complete(task_id=theirs.id, on_date=DAY_1)

        assert await ledger.completed_task_ids(user_id="alice", on_date=DAY_1) == {mine.id}
        assert await ledger.completed_task_ids(user_id="alice", on_date=DAY_3) == set()

    async def test_history_most_recent_first_with_titles(self, patched_db, task_factory):
        read = await task_factory(title="Read")
        walk = await task_factory(title="Walk")
        await ledger.complete(task_id=read.id, on_date=DAY_1)
        await ledger.complete(task_id=walk.id, on_date=DAY_3)
        await ledger.complete(task_id=read.id, on_date=DAY_2)

        history = await ledger.get_completion_history(user_id="alice")

        assert [(entry.task_title, entry.completion_date) for entry in history] == [
            ("Walk", DAY_3),
            ("Read", DAY_2),
            ("Read", DAY_1),
        ]

    async def test_history_same_date_newest_timestamp_first(self, patched_db, task_factory):
        read = await task_factory(title="Read")
        walk = await task_factory(title="Walk")
        await ledger.complete(task_id=read.id, on_date=DAY_1)
        await asyncio.sleep(0.002)
        await ledger.complete(task_id=walk.id, on_date=DAY_1)

        history = await ledger.get_completion_history(user_id="alice")

        assert [entry.task_title for entry in history] == ["Walk", "Read"]

    async def test_history_filters(self, patched_db, task_factory):
        read = await task_factory(title="Read")
        walk = await task_factory(title="Walk")
        for day in (DAY_1, DAY_2, DAY_3):
            await ledger.complete(task_id=read.id, on_date=day)
        await ledger.complete(task_id=walk.id, on_date=DAY_2)

        only_read = await ledger.get_completion_history(user_id="alice", task_id=read.id)
        window = await ledger.get_completion_history(user_id="alice", start_date=DAY_2, end_date=DAY_2)
        limited = await ledger.get_completion_history(user_id="alice", limit=2)

        assert {entry.task_id for entry in only_read} == {read.id}
        assert len(only_read) == 3
        assert {entry.completion_date for entry in window} == {DAY_2}
        assert len(window) == 2
        assert len(limited) == 2

    async def test_history_other_user_sees_nothing(self, patched_db, task_factory):
        task = await task_factory(user_id="alice")
        await ledger.complete(task_id=task.id, on_date=DAY_1)

        assert await ledger.get_completion_history(user_id="bob") == []

    @pytest.mark.parametrize("limit", [0, 501])
    async def test_history_limit_out_of_range(self, patched_db, limit):
        with pytest.raises(ValueError, match="limit"):
            await ledger.get_completion_history(user_id="alice", limit=limit)

    async def test_history_inverted_window(self, patched_db):
        with pytest.raises(ValueError, match="start_date"):
            await ledger.get_completion_history(user_id="alice", start_date=DAY_3, end_date=DAY_1)
