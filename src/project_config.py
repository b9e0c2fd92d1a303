"""Utility helpers for loading the batch configuration file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import-untyped]

from contracts.errors import ConfigurationError

_CONFIG_FILENAME = "config.toml"
_CONFIG_ENV = "BATCH_CONFIG"


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return ``$BATCH_CONFIG`` or ``config.toml`` in the current directory."""

    source = os.environ if env is None else env
    override = source.get(_CONFIG_ENV)
    if override:
        return Path(override)
    return Path.cwd() / _CONFIG_FILENAME


@lru_cache(maxsize=8)
def _load(path: str) -> Dict[str, Any]:
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file '{path}' was not found") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Configuration file '{path}' is not valid TOML: {exc}") from exc


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """Load and cache the configuration document as a dictionary."""

    resolved = Path(path) if path is not None else default_config_path()
    return _load(str(resolved.resolve()))


def reload() -> None:
    """Clear the cached configuration documents."""

    _load.cache_clear()


def get_section(config: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Retrieve a nested configuration value using dotted notation."""

    data: Any = config
    for part in path.split("."):
        if isinstance(data, Mapping) and part in data:
            data = data[part]
        else:
            if default is not None:
                return default
            raise KeyError(f"Configuration path '{path}' not found")
    return data


__all__ = ["default_config_path", "get_section", "load_config", "reload"]
