"""Configuration management for dailystreak."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/dailystreak.db", description="SQLite database file path")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment reported to Logfire")

    # Calendar Configuration
    default_timezone: str = Field(
        default="UTC",
        description="IANA timezone used to resolve 'today' when a caller does not supply a date",
    )

    # Scheduler Configuration
    enable_scheduler: bool = Field(default=True, description="Start the job scheduler with the application")
    missed_task_sweep_hour: int = Field(default=9, ge=0, le=23, description="Hour of the daily missed-task sweep")
    snapshot_refresh_hour: int = Field(
        default=0, ge=0, le=23, description="Hour of the nightly statistics snapshot refresh"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Statistics
    COMPLETION_RATE_PRECISION: int = 2  # Decimal places for completion rates
    WEEKLY_WINDOW_DAYS: int = 7  # Default window for weekly statistics
    MAX_STATISTICS_RANGE_DAYS: int = 366  # Longest range one weekly statistics request may cover

    # Completion History
    HISTORY_DEFAULT_LIMIT: int = 30
    HISTORY_MAX_LIMIT: int = 500

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Page size when a caller needs every row of a collection

    # Job Retry Configuration
    JOB_MAX_RETRIES: int = 3
    JOB_RETRY_BASE_DELAY_SECONDS: float = 2.0
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100  # Max items in dead letter queue

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
