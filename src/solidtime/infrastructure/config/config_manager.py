"""Loads client settings from .solidtime.yml and SOLIDTIME_* variables"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from solidtime.domain.config import DEFAULT_BASE_URL, ClientOptions, RetryConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".solidtime.yml"


class ConfigurationError(Exception):
    """Settings are missing, unreadable or invalid."""

    pass


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest .solidtime.yml at or above ``start`` (default: cwd)."""
    directory = (start or Path.cwd()).resolve()
    while True:
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            logger.info(f"Using config file {candidate}")
            return candidate
        if directory.parent == directory:
            logger.debug(f"No {CONFIG_FILE_NAME} above {start or Path.cwd()}")
            return None
        directory = directory.parent


def deep_merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``update`` into a copy of ``base``; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in update.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def format_validation_error(error: ValidationError) -> str:
    lines = ["Configuration validation failed:"]
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "<root>"
        lines.append(f"  - {location}: {detail['msg']}")
    return "\n".join(lines)


class ConfigManager:
    """Builds ``ClientOptions`` from layered settings

    Later layers win:
    1. Built-in defaults
    2. .solidtime.yml (explicit path, or searched upwards from the cwd)
    3. SOLIDTIME_API_TOKEN, SOLIDTIME_BASE_URL, SOLIDTIME_TIMEOUT_SECONDS, SOLIDTIME_VERBOSE
    4. Explicit overrides, e.g. CLI flags (None values are ignored)
    """

    DEFAULT_CONFIG = {
        "api_token": None,
        "base_url": DEFAULT_BASE_URL,
        "timeout_seconds": 30,
        "verbose": False,
        "unmapped_members": "skip",
        "retry": {
            "max_retries": 3,
            "initial_backoff": 1.0,
        },
    }

    ENV_OVERRIDES = {
        "SOLIDTIME_API_TOKEN": "api_token",
        "SOLIDTIME_BASE_URL": "base_url",
        "SOLIDTIME_TIMEOUT_SECONDS": "timeout_seconds",
        "SOLIDTIME_VERBOSE": "verbose",
    }

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """Load and validate settings

        Args:
            config_path: Path to .solidtime.yml (searched for when None)
            overrides: Highest-priority values

        Raises:
            ConfigurationError: If the file cannot be read, the token is
                missing, or validation fails
        """
        self.config_path = Path(config_path) if config_path is not None else find_config_file()
        self.overrides = {key: value for key, value in (overrides or {}).items() if value is not None}
        try:
            self.options: ClientOptions = self._load_config()
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e)) from e

    def _read_file(self) -> Dict[str, Any]:
        if self.config_path is None or not self.config_path.exists():
            return {}
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read {self.config_path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.config_path} must contain a mapping")
        logger.info(f"Loaded configuration from {self.config_path}")
        return data

    def _read_environment(self) -> Dict[str, Any]:
        return {key: os.environ[name] for name, key in self.ENV_OVERRIDES.items() if os.environ.get(name)}

    def _load_config(self) -> ClientOptions:
        """Merge all layers and validate the result

        Raises:
            ValidationError: If a value is invalid
            ConfigurationError: If the file is unreadable or no token is set
        """
        settings = copy.deepcopy(self.DEFAULT_CONFIG)
        for layer in (self._read_file(), self._read_environment(), self.overrides):
            settings = deep_merge(settings, layer)

        if settings.get("api_token") is None:
            raise ConfigurationError(
                "Solidtime API token is required. "
                "Set SOLIDTIME_API_TOKEN environment variable or provide api_token in config."
            )
        return ClientOptions(**settings)

    def get_client_options(self) -> ClientOptions:
        """Get validated client options"""
        return self.options

    def get_retry_config(self) -> RetryConfig:
        """Get retry configuration"""
        return self.options.retry
