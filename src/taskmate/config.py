from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from taskmate.services.scheduling import WorkingHours


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    user_timezone: str = "UTC"
    log_level: str = "INFO"

    # Sentry error tracking
    sentry_dsn: str = ""
    sentry_environment: str = "production"

    # Working day used by the slot planner
    work_start_hour: int = Field(default=9, ge=0, le=23)
    work_end_hour: int = Field(default=18, ge=1, le=24)
    break_minutes: int = Field(default=15, ge=0)
    default_duration_minutes: int = Field(default=60, gt=0)
    max_suggestions: int = Field(default=5, gt=0)

    # next-available search: 96 probes of 15 minutes covers 24 hours
    probe_step_minutes: int = Field(default=15, gt=0)
    probe_count: int = Field(default=96, gt=0)

    # Optional YAML file overriding the quick-add word tables
    vocabulary_file: str = ""

    @model_validator(mode="after")
    def _check_working_window(self) -> Settings:
        if self.work_start_hour >= self.work_end_hour:
            raise ValueError(
                f"work_start_hour ({self.work_start_hour}) must be before "
                f"work_end_hour ({self.work_end_hour})"
            )
        return self

    @property
    def has_sentry(self) -> bool:
        return bool(self.sentry_dsn)

    @property
    def has_vocabulary_file(self) -> bool:
        return bool(self.vocabulary_file)

    @property
    def working_hours(self) -> WorkingHours:
        from taskmate.services.scheduling import WorkingHours

        return WorkingHours(
            start_hour=self.work_start_hour,
            end_hour=self.work_end_hour,
            break_minutes=self.break_minutes,
        )


settings = Settings()
