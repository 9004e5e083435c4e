"""Environment overrides powered by Pydantic BaseSettings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from devbytes.config.schemas import AppConfig, LoggingConfig, StoreConfig
from devbytes.fetch.config import FetchConfig


class AppSettings(BaseSettings):
    """Environment configuration (``DEVBYTES_*`` variables or ``.env``)."""

    model_config = SettingsConfigDict(
        env_prefix="DEVBYTES_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: str | None = None
    state_path: str | None = None
    playlist_url: str | None = None
    log_level: str | None = None
    json_logs: bool | None = None

    def apply(self, config: AppConfig) -> AppConfig:
        """Return ``config`` with every set override applied and re-validated."""
        update: dict[str, object] = {}
        if self.state_path:
            update["store"] = StoreConfig(path=self.state_path)
        if self.playlist_url:
            update["fetch"] = FetchConfig.model_validate(
                {**config.fetch.model_dump(), "playlist_url": self.playlist_url}
            )
        if self.log_level is not None or self.json_logs is not None:
            update["logging"] = LoggingConfig(
                level=self.log_level or config.logging.level,
                json_format=(
                    self.json_logs if self.json_logs is not None else config.logging.json_format
                ),
            )
        if not update:
            return config
        return config.model_copy(update=update)


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
