"""Tasks module for daily task tracking."""

from src.core.module import ScheduledJob


class TasksModule:
    """Tasks module for daily and date-specific tasks.

    Provides:
    - Task CRUD operations and the per-date task list
    - Completion ledger with per-task streaks
    - Daily and weekly statistics with stored snapshots
    - Scheduled snapshot refresh and missed-task sweep
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "tasks"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Daily task tracking with completions, streaks and statistics"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        recurrence TEXT NOT NULL DEFAULT 'daily'
            CHECK (recurrence IN ('daily', 'date_specific')),
        due_date TEXT,
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high')),
        active INTEGER NOT NULL DEFAULT 1,
        timezone TEXT NOT NULL DEFAULT 'UTC'
    )""",
            "task_completions": """CREATE TABLE IF NOT EXISTS task_completions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL,
        completion_date TEXT NOT NULL,
        completed_at TEXT NOT NULL,
        notes TEXT,
        UNIQUE(task_id, completion_date)
    )""",
            "task_streaks": """CREATE TABLE IF NOT EXISTS task_streaks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        task_id INTEGER NOT NULL UNIQUE REFERENCES tasks(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL,
        current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
        longest_streak INTEGER NOT NULL DEFAULT 0 CHECK (longest_streak >= current_streak),
        last_completion_date TEXT,
        streak_start_date TEXT
    )""",
            "daily_statistics": """CREATE TABLE IF NOT EXISTS daily_statistics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        user_id TEXT NOT NULL,
        stat_date TEXT NOT NULL,
        total_tasks INTEGER NOT NULL DEFAULT 0,
        completed_tasks INTEGER NOT NULL DEFAULT 0,
        completion_rate REAL NOT NULL DEFAULT 0,
        active_streaks INTEGER NOT NULL DEFAULT 0,
        longest_streak INTEGER NOT NULL DEFAULT 0,
        UNIQUE(user_id, stat_date)
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks (user_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_active ON tasks (active)",
            "CREATE INDEX IF NOT EXISTS idx_task_completions_task_id ON task_completions (task_id)",
            "CREATE INDEX IF NOT EXISTS idx_task_completions_user_date ON task_completions (user_id, completion_date)",
            "CREATE INDEX IF NOT EXISTS idx_task_streaks_user_id ON task_streaks (user_id)",
            "CREATE INDEX IF NOT EXISTS idx_daily_statistics_user_id ON daily_statistics (user_id)",
        ]

    def get_scheduled_jobs(self) -> list[ScheduledJob]:
        """Return scheduled jobs for this module."""
        import src.modules.tasks.scheduler_jobs  # noqa: PLC0415

        return src.modules.tasks.scheduler_jobs.get_scheduled_jobs()
