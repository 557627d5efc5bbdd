# backend/courtbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    load_dotenv(env_path)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = "development"
    log_level: str = Field(default="INFO", description="Root log level")

    # Database
    database_url: str = Field(
        default="sqlite:///./courtbook.db",
        description="SQLAlchemy URL (PostgreSQL in production, SQLite locally)",
    )
    database_echo: bool = False
    sqlite_busy_timeout_seconds: float = Field(
        default=30.0,
        description="How long a SQLite writer waits for the database lock",
    )

    # Redis advisory locks (optional; fail open when unset)
    redis_url: Optional[str] = None
    lock_namespace: str = "courtbook"
    lock_ttl_seconds: int = 30

    # Facility
    facility_timezone: str = Field(
        default="Asia/Phnom_Penh",
        description="Fixed local zone of the facility; all slot math happens here",
    )
    opening_hour: int = Field(default=6, ge=0, le=23)
    closing_hour: int = Field(default=22, ge=1, le=24)

    # Booking rules
    min_duration_hours: int = 1
    max_duration_hours: int = 5
    advance_buffer_minutes: int = 30
    modification_buffer_minutes: int = 120
    modification_lockout_minutes: int = 120
    max_modifications: int = 2
    booking_horizon_days: int = 30
    pending_transfer_ttl_minutes: int = Field(
        default=60,
        description="Bank-transfer bookings without proof are released after this long",
    )

    # Points
    points_per_booked_hour: int = 10
    task_cooldown_hours: int = Field(
        default=24,
        description="A points task can be completed once per user within this window",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    @model_validator(mode="after")
    def _validate_hours(self) -> "Settings":
        if self.opening_hour >= self.closing_hour:
            raise ValueError("opening_hour must be before closing_hour")
        if self.min_duration_hours < 1 or self.max_duration_hours < self.min_duration_hours:
            raise ValueError("invalid booking duration bounds")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
logger.info(
    "[CONFIG] facility_timezone=%s hours=%02d:00-%02d:00 environment=%s",
    settings.facility_timezone,
    settings.opening_hour,
    settings.closing_hour,
    settings.environment,
)
