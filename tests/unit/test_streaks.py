"""Tests for streak calculation."""

import random
from datetime import date, timedelta

import pytest

from src.core.config import constants
from src.core.db_client import RecordNotFoundError
from src.domain.completion import StreakState
from src.modules.tasks import ledger, streaks
from src.modules.tasks.streaks import compute_streak


def _brute_force(dates: list[date]) -> tuple[int, int, date | None, date | None]:
    """Independent streak computation by walking back from every date."""
    days = set(dates)
    if not days:
        return 0, 0, None, None

    def run_ending_at(day: date) -> int:
        length = 0
        while day - timedelta(days=length) in days:
            length += 1
        return length

    last = max(days)
    current = run_ending_at(last)
    longest = max(run_ending_at(day) for day in days)
    return current, longest, last, last - timedelta(days=current - 1)


@pytest.mark.unit
class TestComputeStreak:
    """Tests for the pure streak fold."""

    def test_consecutive_run(self):
        state = compute_streak([date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)])

        assert state.current_streak == 3
        assert state.longest_streak == 3
        assert state.streak_start_date == date(2024, 1, 1)
        assert state.last_completion_date == date(2024, 1, 3)

    def test_isolated_latest_completion(self):
        state = compute_streak([date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 5)])

        assert state.current_streak == 1
        assert state.longest_streak == 2
        assert state.last_completion_date == date(2024, 1, 5)
        assert state.streak_start_date == date(2024, 1, 5)

    def test_no_completions(self):
        state = compute_streak([])

        assert state == StreakState()
        assert state.last_completion_date is None
        assert state.streak_start_date is None

    def test_single_completion(self):
        state = compute_streak([date(2024, 2, 29)])

        assert state.current_streak == 1
        assert state.longest_streak == 1
        assert state.streak_start_date == state.last_completion_date == date(2024, 2, 29)

    def test_order_of_input_does_not_matter(self):
        dates = [date(2024, 1, 3), date(2024, 1, 1), date(2024, 1, 2)]

        assert compute_streak(dates) == compute_streak(sorted(dates))

    def test_older_run_counts_towards_longest_only(self):
        older = [date(2024, 1, 1) + timedelta(days=i) for i in range(5)]
        recent = [date(2024, 2, 1), date(2024, 2, 2)]

        state = compute_streak(older + recent)

        assert state.current_streak == 2
        assert state.longest_streak == 5
        assert state.streak_start_date == date(2024, 2, 1)

    def test_run_across_month_and_year_boundary(self):
        dates = [date(2023, 12, 30), date(2023, 12, 31), date(2024, 1, 1)]

        state = compute_streak(dates)

        assert state.current_streak == 3
        assert state.streak_start_date == date(2023, 12, 30)

    def test_repeated_date_breaks_run(self):
        dates = [date(2024, 1, 3), date(2024, 1, 3), date(2024, 1, 2)]

        state = compute_streak(dates)

        assert state.current_streak == 1
        assert state.longest_streak == 2
        assert state.streak_start_date == date(2024, 1, 3)

    @pytest.mark.parametrize("seed", range(50))
    def test_matches_brute_force(self, seed):
        rng = random.Random(seed)
        origin = date(2024, 1, 1)
        offsets = rng.sample(range(60), rng.randint(0, 40))
        dates = [origin + timedelta(days=offset) for offset in offsets]

        state = compute_streak(dates)

        current, longest, last, start = _brute_force(dates)
        assert state.current_streak == current
        assert state.longest_streak == longest
        assert state.last_completion_date == last
        assert state.streak_start_date == start
        assert state.longest_streak >= state.current_streak


@pytest.mark.unit
class TestStreakStorage:
    """Tests for recompute and the stored streak row."""

    async def test_recompute_rebuilds_from_history(self, patched_db, task_factory):
        task = await task_factory()
        for day in (1, 2, 3):
            await patched_db.create_record(
                collection="task_completions",
                data={
                    "task_id": task.id,
                    "user_id": task.user_id,
                    "completion_date": date(2024, 1, day),
                    "completed_at": "2024-01-03T10:00:00+00:00",
                },
            )

        state = await streaks.recompute(task_id=task.id)

        assert state.task_id == task.id
        assert state.current_streak == 3
        assert state.longest_streak == 3
        assert await streaks.get_streak(task_id=task.id) == state

    async def test_recompute_missing_task_raises(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await streaks.recompute(task_id="9999")

    async def test_get_streak_without_row_is_zero(self, patched_db):
        state = await streaks.get_streak(task_id="4242")

        assert state.current_streak == 0
        assert state.longest_streak == 0
        assert state.task_id == "4242"

    async def test_new_task_has_zero_streak_row(self, patched_db, task_factory):
        task = await task_factory()

        rows = await patched_db.list_records(collection="task_streaks", filters={"task_id": task.id})

        assert len(rows) == 1
        assert rows[0]["current_streak"] == 0
        assert rows[0]["longest_streak"] == 0

    async def test_emptied_history_resets_longest(self, patched_db, task_factory):
        task = await task_factory()
        await ledger.complete(task_id=task.id, on_date=date(2024, 1, 1))
        await ledger.complete(task_id=task.id, on_date=date(2024, 1, 2))

        await ledger.uncomplete(task_id=task.id, on_date=date(2024, 1, 1))
        await ledger.uncomplete(task_id=task.id, on_date=date(2024, 1, 2))

        state = await streaks.get_streak(task_id=task.id)
        assert state == StreakState(task_id=task.id)

    async def test_streaks_for_user_keyed_by_task(self, patched_db, task_factory):
        first = await task_factory(user_id="alice")
        second = await task_factory(user_id="alice", title="Walk")
        await task_factory(user_id="bob")
        await ledger.complete(task_id=first.id, on_date=date(2024, 1, 1))

        by_task = await streaks.get_streaks_for_user(user_id="alice")

        assert set(by_task) == {first.id, second.id}
        assert by_task[first.id].current_streak == 1
        assert by_task[second.id].current_streak == 0

    async def test_recompute_reads_history_past_first_page(self, patched_db, task_factory):
        task = await task_factory()
        origin = date(2020, 1, 1)
        total = constants.DEFAULT_PER_PAGE_LIMIT * 2 + 5
        for offset in range(total):
            await patched_db.create_record(
                collection="task_completions",
                data={
                    "task_id": task.id,
                    "user_id": task.user_id,
                    "completion_date": origin + timedelta(days=offset),
                    "completed_at": "2020-01-01T10:00:00+00:00",
                },
            )

        dates = await ledger.list_dates(task_id=task.id)
        state = await streaks.recompute(task_id=task.id)

        assert len(dates) == total
        assert dates[-1] == origin + timedelta(days=total - 1)
        assert state.current_streak == total
        assert state.longest_streak == total
        assert state.last_completion_date == origin + timedelta(days=total - 1)
        assert state.streak_start_date == origin
