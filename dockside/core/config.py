"""Configuration management with YAML files and environment overrides."""

import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from pydantic import ValidationError

from .types import HarnessConfig
from .errors import ConfigurationError

ENV_PREFIX = "DOCKSIDE_"
DEFAULT_CONFIG_FILE = Path("dockside.yaml")


def load_env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Collect ``DOCKSIDE_*`` variables as a nested override dict.

    ``DOCKSIDE_READINESS__MAX_ATTEMPTS=10`` becomes
    ``{"readiness": {"max_attempts": 10}}``.
    """
    overrides: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        field_name = key[len(prefix):].lower()
        if not field_name:
            continue

        if "__" in field_name:
            section, _, sub_field = field_name.partition("__")
            if not section or not sub_field or "__" in sub_field:
                continue
            overrides.setdefault(section, {})[sub_field] = _convert_env_value(value)
            continue

        overrides[field_name] = _convert_env_value(value)

    return overrides


def _convert_env_value(value: str) -> Any:
    """Convert an environment string to int, float, bool or str."""
    if not value:
        return None

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    return value


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Loads and caches the harness configuration."""

    def __init__(self) -> None:
        self._config: Optional[HarnessConfig] = None

    def load_config(
        self, config_file: Optional[Path] = None, **overrides: Any
    ) -> HarnessConfig:
        """Load configuration.

        Precedence, lowest first: model defaults, YAML file, environment,
        explicit overrides.
        """
        config_data: Dict[str, Any] = {}

        if config_file is None and DEFAULT_CONFIG_FILE.exists():
            config_file = DEFAULT_CONFIG_FILE
        if config_file is not None:
            config_file = Path(config_file)
            if not config_file.exists():
                raise ConfigurationError(f"Config file not found: {config_file}")
            config_data = _merge(config_data, self._load_from_file(config_file))

        config_data = _merge(config_data, load_env_overrides())
        config_data = _merge(config_data, overrides)

        try:
            self._config = HarnessConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid harness configuration: {e}") from e

        return self._config

    def get_config(self) -> HarnessConfig:
        """Get current configuration, loading defaults on first use."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def reset(self) -> None:
        self._config = None

    def _load_from_file(self, config_file: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        if config_file.suffix.lower() not in (".yml", ".yaml"):
            raise ConfigurationError(
                f"Unsupported config file format: {config_file.suffix}"
            )
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load config file {config_file}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_file} must contain a mapping at the top level"
            )
        return data


_config_manager = ConfigManager()


def load_config(**kwargs: Any) -> HarnessConfig:
    """Load the process-wide default configuration."""
    return _config_manager.load_config(**kwargs)


def get_config() -> HarnessConfig:
    """Get the process-wide default configuration."""
    return _config_manager.get_config()


def reset_config() -> None:
    """Forget the cached configuration so the next get reloads it."""
    _config_manager.reset()
