"""Unit tests for configuration schemas, loader and environment settings."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from pydantic import ValidationError

from devbytes.config.loader import ConfigLoader, ConfigValidationError
from devbytes.config.schemas import AppConfig, LoggingConfig, ScheduleConfig
from devbytes.fetch.constants import DEFAULT_PLAYLIST_URL
from devbytes.scheduler.backoff import BackoffKind
from devbytes.scheduler.models import ConflictPolicy
from devbytes.settings import AppSettings


VALID_YAML = """
store:
  path: /tmp/devbytes-test.sqlite
fetch:
  playlist_url: https://example.com/devbytes
  timeout_seconds: 5
refresh:
  fetch_timeout_seconds: 10
schedule:
  name: RefreshDataWorker
  period_hours: 12
  on_conflict: replace
  constraints:
    requires_unmetered_network: true
    requires_charging: false
  backoff:
    kind: LINEAR
    base_delay_seconds: 60
logging:
  level: debug
  json_format: false
"""


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_config(directory: Path, content: str) -> Path:
    """Write YAML content to a config file."""
    path = directory / "devbytes.yaml"
    path.write_text(content)
    return path


class TestAppConfigDefaults:
    """Tests for default configuration."""

    @pytest.mark.unit
    def test_defaults(self) -> None:
        """Test the daily constrained refresh defaults."""
        config = AppConfig()
        assert config.fetch.playlist_url == DEFAULT_PLAYLIST_URL
        assert config.schedule.name == "RefreshDataWorker"
        assert config.schedule.period_hours == 24.0
        assert config.schedule.on_conflict == ConflictPolicy.KEEP
        assert config.schedule.constraints.required == [
            "requires_unmetered_network",
            "requires_battery_not_low",
            "requires_charging",
            "requires_device_idle",
        ]
        assert config.logging.level == "INFO"

    @pytest.mark.unit
    def test_invalid_log_level(self) -> None:
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    @pytest.mark.unit
    def test_period_must_be_positive(self) -> None:
        """Test that a zero period is rejected."""
        with pytest.raises(ValidationError):
            ScheduleConfig(period_hours=0)


class TestConfigLoader:
    """Tests for ConfigLoader."""

    @pytest.mark.unit
    def test_load_none_returns_defaults(self) -> None:
        """Test that no path means defaults."""
        loader = ConfigLoader()
        assert loader.load(None) == AppConfig()
        assert loader.checksum is None

    @pytest.mark.unit
    def test_load_valid_file(self, temp_dir: Path) -> None:
        """Test loading every section from YAML."""
        loader = ConfigLoader()
        config = loader.load(write_config(temp_dir, VALID_YAML))

        assert config.store.path == "/tmp/devbytes-test.sqlite"
        assert config.fetch.playlist_url == "https://example.com/devbytes"
        assert config.refresh.fetch_timeout_seconds == 10.0
        assert config.schedule.period_hours == 12.0
        assert config.schedule.on_conflict == ConflictPolicy.REPLACE
        assert config.schedule.constraints.requires_unmetered_network is True
        assert config.schedule.constraints.requires_charging is False
        assert config.schedule.backoff.kind == BackoffKind.LINEAR
        assert config.logging.level == "DEBUG"
        assert loader.checksum is not None
        assert len(loader.checksum) == 64

    @pytest.mark.unit
    def test_empty_file_returns_defaults(self, temp_dir: Path) -> None:
        """Test that an empty file validates to defaults."""
        config = ConfigLoader().load(write_config(temp_dir, ""))
        assert config == AppConfig()

    @pytest.mark.unit
    def test_unknown_key_rejected(self, temp_dir: Path) -> None:
        """Test that misspelled keys are reported with their location."""
        path = write_config(temp_dir, "schedule:\n  perod_hours: 3\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(path)
        assert exc_info.value.file_path == str(path)
        assert any(error["loc"] == "schedule.perod_hours" for error in exc_info.value.errors)

    @pytest.mark.unit
    def test_invalid_yaml(self, temp_dir: Path) -> None:
        """Test that malformed YAML is a validation error."""
        path = write_config(temp_dir, "store: [unclosed\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(path)
        assert exc_info.value.errors[0]["type"] == "yaml_error"

    @pytest.mark.unit
    def test_non_mapping_document(self, temp_dir: Path) -> None:
        """Test that a top-level list is rejected."""
        path = write_config(temp_dir, "- a\n- b\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(path)
        assert exc_info.value.errors[0]["type"] == "type_error"

    @pytest.mark.unit
    def test_missing_file(self, temp_dir: Path) -> None:
        """Test that an unreadable file is a validation error."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(temp_dir / "missing.yaml")
        assert exc_info.value.errors[0]["type"] == "io_error"

    @pytest.mark.unit
    def test_plain_http_scheme_required(self, temp_dir: Path) -> None:
        """Test that non-http playlist URLs are rejected."""
        path = write_config(temp_dir, "fetch:\n  playlist_url: ftp://example.com/x\n")
        with pytest.raises(ConfigValidationError):
            ConfigLoader().load(path)


class TestAppSettings:
    """Tests for environment overrides."""

    @pytest.mark.unit
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that DEVBYTES_ variables are read."""
        monkeypatch.setenv("DEVBYTES_STATE_PATH", "/var/lib/devbytes.sqlite")
        monkeypatch.setenv("DEVBYTES_JSON_LOGS", "false")
        settings = AppSettings(_env_file=None)  # type: ignore[call-arg]
        assert settings.state_path == "/var/lib/devbytes.sqlite"
        assert settings.json_logs is False

    @pytest.mark.unit
    def test_apply_overrides(self) -> None:
        """Test that set overrides replace config values."""
        settings = AppSettings(
            _env_file=None,  # type: ignore[call-arg]
            state_path="/data/cache.sqlite",
            playlist_url="https://mirror.example.com/devbytes",
            log_level="warning",
        )
        config = settings.apply(AppConfig())
        assert config.store.path == "/data/cache.sqlite"
        assert config.fetch.playlist_url == "https://mirror.example.com/devbytes"
        assert config.logging.level == "WARNING"
        assert config.logging.json_format is True

    @pytest.mark.unit
    def test_apply_without_overrides(self) -> None:
        """Test that an empty environment leaves the config untouched."""
        config = AppConfig()
        assert AppSettings(_env_file=None).apply(config) is config  # type: ignore[call-arg]

    @pytest.mark.unit
    def test_invalid_playlist_url_override(self) -> None:
        """Test that overrides are validated."""
        settings = AppSettings(_env_file=None, playlist_url="file:///etc/passwd")  # type: ignore[call-arg]
        with pytest.raises(ValidationError):
            settings.apply(AppConfig())
