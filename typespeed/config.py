"""Configuration loading utilities."""
from __future__ import annotations

import json
import logging
import os
import pathlib
import sys
import tomllib
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

LOGGER = logging.getLogger(__name__)

APP_NAME = "typespeed"

DEFAULT_DURATION_S = 30
DEFAULT_NUMBERS_RATIO = 0.05
DEFAULT_SYMBOLS_RATIO = 0.10
DEFAULT_UPPERCASE_RATIO = 0.15

COLOR_NAMES = (
    "default",
    "black",
    "red",
    "green",
    "yellow",
    "blue",
    "magenta",
    "cyan",
    "white",
)

_RATIO_DEFAULTS = {
    "numbers_ratio": DEFAULT_NUMBERS_RATIO,
    "symbols_ratio": DEFAULT_SYMBOLS_RATIO,
    "uppercase_ratio": DEFAULT_UPPERCASE_RATIO,
}
_BOOL_KEYS = ("numbers", "symbols", "uppercase", "save_results")
_PATH_KEYS = ("dictionary_path", "results_path")
_KNOWN_KEYS = {"duration", "colors", *_RATIO_DEFAULTS, *_BOOL_KEYS, *_PATH_KEYS}


class ConfigError(RuntimeError):
    """Raised when configuration loading fails."""


@dataclass(frozen=True)
class ColorScheme:
    correct_match_fg: str = "green"
    correct_match_bg: str = "default"
    incorrect_match_fg: str = "default"
    incorrect_match_bg: str = "red"


@dataclass(frozen=True)
class TestConfig:
    """Immutable settings for one run of the program."""

    __test__ = False

    duration: int = DEFAULT_DURATION_S
    numbers: bool = False
    numbers_ratio: float = DEFAULT_NUMBERS_RATIO
    symbols: bool = False
    symbols_ratio: float = DEFAULT_SYMBOLS_RATIO
    uppercase: bool = False
    uppercase_ratio: float = DEFAULT_UPPERCASE_RATIO
    dictionary_path: Optional[pathlib.Path] = None
    save_results: bool = True
    results_path: Optional[pathlib.Path] = None
    colors: ColorScheme = field(default_factory=ColorScheme)


def load_config(path: str | pathlib.Path) -> dict[str, Any]:
    """Load a configuration file (TOML or JSON).

    This stays dependency-free to keep installs lightweight.
    """
    path_obj = pathlib.Path(path)
    if not path_obj.exists():
        raise ConfigError(f"Config path does not exist: {path_obj}")

    suffix = path_obj.suffix.lower()
    if suffix not in (".toml", ".json"):
        raise ConfigError(f"Unsupported config format: {path_obj.suffix}")

    try:
        if suffix == ".toml":
            with path_obj.open("rb") as handle:
                data = tomllib.load(handle)
        else:
            with path_obj.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
    except (OSError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to parse config file {path_obj}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path_obj} must contain a table/object")
    return data


def config_dir() -> pathlib.Path:
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return pathlib.Path(base) / APP_NAME
    return pathlib.Path.home() / ".config" / APP_NAME


def data_dir() -> pathlib.Path:
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return pathlib.Path(base) / APP_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return pathlib.Path(xdg) / APP_NAME
    return pathlib.Path.home() / ".local" / "share" / APP_NAME


def find_default_config() -> Optional[pathlib.Path]:
    """Return the first existing default config file, if any."""
    directory = config_dir()
    for name in (f"{APP_NAME}-config.toml", f"{APP_NAME}-config.json"):
        candidate = directory / name
        if candidate.exists():
            return candidate
    return None


def resolve_ratio(value: Any, default: float, *, name: str = "ratio") -> float:
    """Return ``value`` if it is a ratio in [0, 1], else ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        LOGGER.warning("Ignoring non-numeric %s %r; using %s", name, value, default)
        return default
    if not 0.0 <= value <= 1.0:
        LOGGER.warning("Ignoring out-of-range %s %s; using %s", name, value, default)
        return default
    return float(value)


def build_config(
    file_values: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> TestConfig:
    """Merge defaults, config file values and CLI overrides.

    Overrides with a value of ``None`` count as "not given", so the
    config file (or the default) wins for that key.
    """
    merged: dict[str, Any] = {}
    for key, value in (file_values or {}).items():
        if key not in _KNOWN_KEYS:
            LOGGER.warning("Ignoring unknown config key %r", key)
            continue
        merged[key] = value
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    kwargs: dict[str, Any] = {}
    if "duration" in merged:
        kwargs["duration"] = _to_duration(merged["duration"])
    for key in _BOOL_KEYS:
        if key in merged:
            kwargs[key] = _to_bool(merged[key], key)
    for key, default in _RATIO_DEFAULTS.items():
        if key in merged:
            kwargs[key] = resolve_ratio(merged[key], default, name=key)
    for key in _PATH_KEYS:
        if key in merged:
            kwargs[key] = _to_path(merged[key], key)
    if "colors" in merged:
        kwargs["colors"] = _to_colors(merged["colors"])

    return TestConfig(**kwargs)


def _to_duration(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"duration must be a whole number of seconds, got {value!r}")
    if value <= 0:
        raise ConfigError(f"duration must be greater than zero, got {value}")
    return value


def _to_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _to_path(value: Any, key: str) -> Optional[pathlib.Path]:
    if isinstance(value, pathlib.Path):
        return value.expanduser()
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a path string, got {value!r}")
    stripped = value.strip()
    return pathlib.Path(stripped).expanduser() if stripped else None


def _to_colors(value: Any) -> ColorScheme:
    if not isinstance(value, Mapping):
        raise ConfigError(f"colors must be a table of color names, got {value!r}")

    fields = ColorScheme.__dataclass_fields__
    kwargs: dict[str, str] = {}
    for key, color in value.items():
        if key not in fields:
            LOGGER.warning("Ignoring unknown colors key %r", key)
            continue
        if not isinstance(color, str) or color.strip().lower() not in COLOR_NAMES:
            raise ConfigError(
                f"Unknown color {color!r} for {key}; expected one of {', '.join(COLOR_NAMES)}"
            )
        kwargs[key] = color.strip().lower()
    return ColorScheme(**kwargs)
