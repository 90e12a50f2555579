"""YAML config loader and API credential lookup."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from meteo.config.schema import MeteoConfig
from meteo.errors import ConfigurationError


def load_config(path: str | Path) -> MeteoConfig:
    """Load and validate config from a YAML file.

    A missing or empty file yields the defaults.
    """
    path = Path(path)
    if not path.exists():
        return MeteoConfig()
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return MeteoConfig(**raw)


def resolve_api_key(
    config: MeteoConfig, environ: Mapping[str, str] | None = None
) -> str:
    """Return the weather API key from the environment.

    Raises ConfigurationError when it is unset or blank.
    """
    if environ is None:
        environ = os.environ
    name = config.weather.api_key_env
    key = environ.get(name, "").strip()
    if not key:
        raise ConfigurationError(f"{name} not set")
    return key


def get_config_value(config: MeteoConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'favorites.max_workers'."""
    obj: Any = config
    for part in dotted_key.split("."):
        if hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict):
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj
