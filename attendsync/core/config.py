# attendsync/core/config.py
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and cover:
    - DB connection
    - Discord bot credentials used for invites and reminders
    - Internal API key
    - Availability / scheduling tunables
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "AttendSync"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./attendsync.db",
        description="SQLAlchemy-compatible async database URL",
    )
    DB_CREATE_ON_STARTUP: bool = Field(
        default=True,
        description="Create missing tables when the API starts.",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    TIMEZONE: str = Field(
        default="UTC",
        description=(
            "IANA timezone used to decide calendar days and time-of-day when "
            "building heatmaps and materializing meeting times."
        ),
    )

    LOG_LEVEL: str = Field(default="INFO", description="Root log level.")
    LOG_FORMAT: str = Field(
        default="standard",
        description="Console log format: 'standard' (text) or 'json'.",
    )

    # --- Discord ---
    DISCORD_BOT_TOKEN: str | None = Field(
        default=None,
        description="Bot token used to send invite / reminder DMs.",
    )
    DISCORD_API_BASE_URL: AnyHttpUrl | None = Field(
        default=None,
        description="Override for the Discord REST base URL (defaults to v10).",
    )

    # --- Availability / scheduling ---
    AVAILABILITY_LOOKBACK_DAYS: int = Field(
        default=30,
        ge=7,
        le=120,
        description="Days of attendance history used to infer availability.",
    )
    AVAILABILITY_SLOT_MINUTES: int = Field(
        default=60,
        description="Heatmap resolution in minutes; must divide 1440.",
    )
    MEETING_SUGGESTION_LIMIT: int = Field(
        default=3,
        ge=1,
        le=4,
        description="Maximum number of suggested windows shown to the organizer.",
    )
    INTERACTION_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="How long each interactive step waits for the organizer.",
    )
    MEETING_REMINDER_LEAD_MINUTES: int = Field(
        default=10,
        ge=1,
        description="How many minutes before the start a reminder is sent.",
    )

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Settings are read and validated only once per process.
    """
    return Settings()
