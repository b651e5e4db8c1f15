from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import yaml

"""Run configuration for the processor.

`load_config` takes a YAML path, a dict of overrides or None, lays it over
DEFAULTS, coerces every value to its expected type and checks ranges.
"""


DEFAULTS: dict[str, Any] = {
    "tape_cells": 30000,
    "instruction_budget": 10000,
    "lenient_log": False,
}

# key -> converter applied to the merged value; None falls back to the default
_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "tape_cells": int,
    "instruction_budget": int,
    "lenient_log": bool,
}

_POSITIVE_KEYS = ("tape_cells", "instruction_budget")


class ConfigError(ValueError):
    """Raised when configuration is invalid or cannot be loaded."""


def _read_yaml(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        msg = f"Config file not found: {path}"
        raise ConfigError(msg)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"Failed to load config file {path}: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Config file {path} does not contain a mapping"
        raise ConfigError(msg)
    return data


def _normalize(cfg: dict[str, Any]) -> None:
    """Coerce values in-place and reject unknown keys and out-of-range values."""
    unknown = sorted(set(cfg) - set(DEFAULTS))
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)

    for key, convert in _CONVERTERS.items():
        value = cfg[key]
        if value is None and key == "instruction_budget":
            value = DEFAULTS[key]
        try:
            cfg[key] = convert(value)
        except (TypeError, ValueError) as e:
            msg = f"Bad types in config: {key}={value!r} ({e})"
            raise ConfigError(msg) from e

    for key in _POSITIVE_KEYS:
        if cfg[key] <= 0:
            msg = f"{key} must be positive"
            raise ConfigError(msg)


def load_config(path_or_dict: str | dict[str, Any] | None = None) -> dict[str, Any]:
    """Load and normalize configuration.

    None gives a copy of DEFAULTS; a dict or a YAML file path is overlaid on
    them. Raises ConfigError for anything that cannot be used.
    """
    if path_or_dict is None:
        overrides: dict[str, Any] = {}
    elif isinstance(path_or_dict, dict):
        overrides = path_or_dict
    elif isinstance(path_or_dict, str):
        overrides = _read_yaml(path_or_dict)
    else:
        msg = "Unsupported config input"
        raise ConfigError(msg)

    cfg = dict(DEFAULTS)
    cfg.update(overrides)
    _normalize(cfg)
    return cfg
