"""Configuration management for the CLI."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "separator": ",",
    "layout": "tag",
    "identifier": None,
    "record": None,
}

ENVIRONMENT = {
    "RECDAO_SEPARATOR": "separator",
    "RECDAO_LAYOUT": "layout",
    "RECDAO_IDENTIFIER": "identifier",
    "RECDAO_RECORD": "record",
}


class Config:
    """Configuration management for the CLI application."""

    @staticmethod
    def from_file(path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file.

        Raises:
            ValueError: If the file cannot be read or is not a YAML mapping.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}") from e
        except OSError as e:
            raise ValueError(f"Error reading config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    @staticmethod
    def get_config_paths() -> list[Path]:
        """Get the default configuration file paths, lowest precedence first."""
        xdg_config_home = Path(
            os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        )
        return [
            xdg_config_home / "recdao" / "config.yaml",
            Path(".recdao.yaml"),
            Path("recdao.yaml"),
        ]

    @staticmethod
    def from_environment() -> dict[str, Any]:
        """Settings given through RECDAO_* environment variables."""
        return {
            key: os.environ[variable]
            for variable, key in ENVIRONMENT.items()
            if os.environ.get(variable)
        }

    @staticmethod
    def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
        """Merge multiple configuration dictionaries, later ones winning."""
        result: dict[str, Any] = {}
        for config in configs:
            result = _deep_merge(result, config)
        return result


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load defaults, configuration files and environment overrides.

    Args:
        path: Explicit configuration file, read after the default ones.
    """
    config = dict(DEFAULTS)

    paths = Config.get_config_paths()
    if path is not None:
        paths.append(Path(path))

    for candidate in paths:
        if candidate.exists():
            logger.debug("Reading configuration from %s", candidate)
            config = Config.merge_configs(config, Config.from_file(candidate))

    return Config.merge_configs(config, Config.from_environment())


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
