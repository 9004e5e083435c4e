"""YAML configuration loader with validation."""

import hashlib
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from devbytes.config.schemas import AppConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads ``AppConfig`` from a YAML file.

    A missing path means defaults. The SHA-256 of the loaded file is kept
    for logging so a run can be tied to the exact configuration it used.
    """

    def __init__(self) -> None:
        self._checksum: str | None = None
        self._log = logger.bind(component="config")

    @property
    def checksum(self) -> str | None:
        """SHA-256 of the last loaded file, if any."""
        return self._checksum

    def load(self, path: Path | str | None = None) -> AppConfig:
        """Load and validate the configuration.

        Args:
            path: YAML file path, or None for defaults.

        Returns:
            Validated configuration.

        Raises:
            ConfigValidationError: If the file is unreadable or invalid.
        """
        if path is None:
            self._log.info("config_defaults_used")
            return AppConfig()

        file_path = Path(path)
        try:
            raw = file_path.read_bytes()
        except OSError as e:
            errors = [{"loc": "", "msg": f"Cannot read file: {e}", "type": "io_error"}]
            raise ConfigValidationError(errors, str(file_path)) from e

        self._checksum = hashlib.sha256(raw).hexdigest()

        try:
            data = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            errors = [{"loc": "", "msg": f"Invalid YAML: {e}", "type": "yaml_error"}]
            raise ConfigValidationError(errors, str(file_path)) from e

        if not isinstance(data, dict):
            errors = [
                {
                    "loc": "",
                    "msg": f"Top-level YAML must be a mapping, got {type(data).__name__}",
                    "type": "type_error",
                }
            ]
            raise ConfigValidationError(errors, str(file_path))

        try:
            config = AppConfig.model_validate(data)
        except ValidationError as e:
            errors = [
                {
                    "loc": ".".join(str(part) for part in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            self._log.warning(
                "config_validation_failed",
                file_path=str(file_path),
                error_count=len(errors),
            )
            raise ConfigValidationError(errors, str(file_path)) from e

        self._log.info(
            "config_loaded",
            file_path=str(file_path),
            checksum=self._checksum[:12],
        )
        return config
