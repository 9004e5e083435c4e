"""Pydantic schemas for the YAML configuration file."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devbytes.fetch.config import FetchConfig
from devbytes.scheduler.backoff import BackoffPolicy
from devbytes.scheduler.models import ConflictPolicy, ScheduleConstraints


LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class StoreConfig(BaseModel):
    """Where the SQLite cache lives."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Annotated[str, Field(min_length=1)] = "state/devbytes.sqlite"


class RefreshConfig(BaseModel):
    """Refresh pipeline settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    fetch_timeout_seconds: Annotated[float, Field(gt=0.0, le=600.0)] = 60.0
    record_history: bool = True


class ScheduleConfig(BaseModel):
    """The recurring refresh registered at startup.

    Defaults mirror a daily refresh that only runs on an unmetered network
    while the device is charging, idle and not low on battery.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    name: Annotated[str, Field(min_length=1, max_length=200)] = "RefreshDataWorker"
    period_hours: Annotated[float, Field(gt=0.0, le=24.0 * 30)] = 24.0
    initial_delay_seconds: Annotated[float, Field(ge=0.0)] = 0.0
    on_conflict: ConflictPolicy = ConflictPolicy.KEEP
    constraint_recheck_minutes: Annotated[float, Field(gt=0.0, le=24.0 * 60)] = 15.0
    constraints: ScheduleConstraints = Field(
        default_factory=lambda: ScheduleConstraints(
            requires_unmetered_network=True,
            requires_battery_not_low=True,
            requires_charging=True,
            requires_device_idle=True,
        )
    )
    backoff: BackoffPolicy = Field(default_factory=BackoffPolicy)

    @field_validator("on_conflict", mode="before")
    @classmethod
    def coerce_on_conflict(cls, v: object) -> object:
        """Accept lower-case policy names."""
        if isinstance(v, str):
            return v.upper()
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate the level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return level


class AppConfig(BaseModel):
    """Complete application configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    store: StoreConfig = Field(default_factory=StoreConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
