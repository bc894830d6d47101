import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./dailyout.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Auth tokens
    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_EXPIRES_DAYS: int = 7

    # HTTP
    CORS_ORIGIN: Optional[str] = None  # comma-separated; defaults per ENV

    # Calendar-day policy: None = server-local day, else an IANA zone name
    DAY_TIMEZONE: Optional[str] = None

    # Completion workflow
    NOTE_MAX_LENGTH: int = 2000
    NOTE_EDIT_WINDOW_HOURS: int = 24

    # Public wins feed
    WIN_MAX_LENGTH: int = 280
    WIN_POSTS_PER_MINUTE: int = 1
    WIN_LIKES_PER_MINUTE: int = 10

    # Journal / progress
    JOURNAL_MAX_LENGTH: int = 5000
    HISTORY_DAYS: int = 365

    # Assignment engine; unset = OS entropy
    ASSIGNMENT_RANDOM_SEED: Optional[int] = None

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        if self.ENV.lower() == "test" and self.TEST_DATABASE_URL:
            return self.TEST_DATABASE_URL
        return self.DATABASE_URL

    @property
    def cors_origins(self) -> list[str]:
        if self.CORS_ORIGIN:
            return [o.strip() for o in self.CORS_ORIGIN.split(",") if o.strip()]
        if self.ENV.lower() == "production":
            return ["https://out.madsens.dev"]
        return ["http://localhost:5173"]


def validate_config(settings_obj: Settings, strict: Optional[bool] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are never logged, only the names of offending keys.
    """
    log = logger or logging.getLogger("dailyout")
    strict_mode = strict if strict is not None else settings_obj.CONFIG_STRICT

    problems = []
    if settings_obj.ENV.lower() == "production" and settings_obj.JWT_SECRET == DEFAULT_JWT_SECRET:
        problems.append("JWT_SECRET is using the development default")
    if settings_obj.ENV.lower() == "production" and settings_obj.DATABASE_URL.startswith("sqlite"):
        problems.append("DATABASE_URL points at SQLite in production")
    if settings_obj.NOTE_EDIT_WINDOW_HOURS <= 0:
        problems.append("NOTE_EDIT_WINDOW_HOURS must be positive")

    if settings_obj.DAY_TIMEZONE:
        try:
            ZoneInfo(settings_obj.DAY_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            raise RuntimeError(f"Unknown DAY_TIMEZONE: {settings_obj.DAY_TIMEZONE}")

    if problems:
        message = "Configuration problems: " + "; ".join(problems)
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
