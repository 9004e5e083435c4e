"""Configuration schemas and loader."""

from devbytes.config.loader import ConfigLoader, ConfigValidationError
from devbytes.config.schemas import (
    AppConfig,
    LoggingConfig,
    RefreshConfig,
    ScheduleConfig,
    StoreConfig,
)


__all__ = [
    "AppConfig",
    "ConfigLoader",
    "ConfigValidationError",
    "LoggingConfig",
    "RefreshConfig",
    "ScheduleConfig",
    "StoreConfig",
]
