"""Configuration management for permgate.

Settings are declared as YAML (or TOML) and validated with Pydantic models.
:class:`ConfigManager` reads the file once and hands the resulting
:class:`PermgateSettings` to whoever builds the store and its backend.
"""
from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from permgate.utils.errors import ConfigurationError
from permgate.utils.logging import get_logger

logger = get_logger(__name__)


class StorageSettings(BaseModel):
    """Where permission maps are persisted."""

    backend: Literal["file", "redis", "memory"] = "file"
    directory: Path = Field(default=Path(".permgate/permissions"))
    redis_url: str = Field(default="redis://localhost:6379/0", repr=False)
    key_prefix: str = "permgate:"
    timeout: float = Field(default=5.0, description="Seconds, remote backends only")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value


class CacheSettings(BaseModel):
    """Cache lifetime policy."""

    preload: bool = Field(default=True, description="Load every stored entity on install")
    retain_individuals: bool = Field(
        default=False, description="Keep an individual's weights cached after disconnect"
    )


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: Optional[Path] = None


class PermgateSettings(BaseModel):
    """Root configuration schema."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigManager:
    """Load configuration files for an embedding process.

    The path comes from the constructor, then ``$PERMGATE_CONFIG``, then
    ``config/permgate.yml``.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.config_path = config_path or Path(os.environ.get("PERMGATE_CONFIG", "config/permgate.yml"))
        self._settings: Optional[PermgateSettings] = None
        self._lock = threading.Lock()

    def load(self) -> PermgateSettings:
        """Load configuration from disk and validate it."""

        with self._lock:
            logger.debug("loading configuration", extra={"path": self.config_path})
            data = self._read_file(self.config_path)
            try:
                settings = PermgateSettings(**data)
            except (ValidationError, TypeError) as exc:
                raise ConfigurationError(str(exc)) from exc
            self._settings = settings
            return settings

    def get_settings(self) -> PermgateSettings:
        """Return the last loaded settings, loading them if necessary."""

        if self._settings is None:
            return self.load()
        return self._settings

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigurationError(f"Configuration file {path} does not exist")
        try:
            if path.suffix in {".yml", ".yaml"}:
                with path.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle) or {}
            elif path.suffix == ".toml":
                import tomllib  # Python 3.11+ built-in

                with path.open("rb") as handle:
                    data = tomllib.load(handle)
            else:
                raise ConfigurationError(f"Unsupported configuration format: {path.suffix}")
        except (OSError, yaml.YAMLError, ValueError) as exc:
            raise ConfigurationError(f"Cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root in {path} must be a mapping")
        return data


__all__ = [
    "ConfigManager",
    "PermgateSettings",
    "StorageSettings",
    "CacheSettings",
    "LoggingSettings",
]
