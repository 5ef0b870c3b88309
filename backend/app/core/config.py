# backend/app/core/config.py
import logging
import os
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        default="sqlite:///./scheduling.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Resource locks (per participant / per course)
    lock_backend: Literal["memory", "redis"] = Field(
        default="memory",
        alias="LOCK_BACKEND",
        description="memory = in-process locks (single worker), redis = distributed locks",
    )
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    lock_namespace: str = Field(default="scheduling", alias="LOCK_NAMESPACE")
    lock_ttl_seconds: int = Field(default=30, ge=1, alias="LOCK_TTL_SECONDS")
    lock_wait_seconds: float = Field(default=10.0, ge=0, alias="LOCK_WAIT_SECONDS")

    # Scheduling defaults
    booking_buffer_minutes: int = Field(
        default=0,
        ge=0,
        le=240,
        alias="BOOKING_BUFFER_MINUTES",
        description="Gap enforced around existing lessons when confirming a booking",
    )
    default_step_minutes: int = Field(default=15, ge=5, le=240, alias="DEFAULT_STEP_MINUTES")
    default_suggestion_days: int = Field(default=7, ge=1, alias="DEFAULT_SUGGESTION_DAYS")
    max_suggestion_days: int = Field(default=60, ge=1, alias="MAX_SUGGESTION_DAYS")
    max_suggestions_limit: int = Field(default=50, ge=1, alias="MAX_SUGGESTIONS_LIMIT")
    scheduling_log_enabled: bool = Field(default=True, alias="SCHEDULING_LOG_ENABLED")

    # Organisation-wide opening hours applied to every resolved window
    business_open_hour: int = Field(default=0, ge=0, le=23, alias="BUSINESS_OPEN_HOUR")
    business_close_hour: int = Field(default=24, ge=1, le=24, alias="BUSINESS_CLOSE_HOUR")
    business_days_open: List[int] = Field(
        default_factory=lambda: [0, 1, 2, 3, 4, 5, 6],
        alias="BUSINESS_DAYS_OPEN",
        description="Open days of week, 0=Sunday..6=Saturday",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("business_days_open", mode="before")
    @classmethod
    def _parse_days(cls, value: object) -> object:
        if isinstance(value, str):
            return [int(part) for part in value.split(",") if part.strip()]
        return value

    @field_validator("business_days_open")
    @classmethod
    def _check_days(cls, value: List[int]) -> List[int]:
        for day in value:
            if day < 0 or day > 6:
                raise ValueError("business_days_open entries must be 0..6")
        return sorted(set(value))

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.business_close_hour <= self.business_open_hour:
            raise ValueError("BUSINESS_CLOSE_HOUR must be after BUSINESS_OPEN_HOUR")
        if self.lock_backend == "redis" and not self.redis_url:
            raise ValueError("LOCK_BACKEND=redis requires REDIS_URL")
        return self


settings = Settings()
logger.info(
    "[CONFIG] %s scheduling: environment=%s lock_backend=%s",
    BRAND_NAME,
    settings.environment,
    settings.lock_backend,
)
