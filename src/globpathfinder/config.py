"""
TOML-based config file loading for globpathfinder.

Searches for `.globpathfinder.toml`, `globpathfinder.toml`, or
`pyproject.toml [tool.globpathfinder]` walking up from the current directory.
Config values are merged with CLI flags using three-way precedence: explicit
CLI flags > config file > built-in defaults.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, TypeVar, cast

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

log = logging.getLogger(__name__)


@dataclass
class FinderConfig:
    """
    Parsed config from a TOML file. Fields are `None` when not set in the config,
    allowing the merge logic to distinguish "not configured" from "explicitly set
    to default value".

    A relative `base_dir` is resolved against the directory holding the config
    file, so a checked-in config means the same thing from any working directory.
    """

    base_dir: str | None = None
    include: list[str] | None = None
    exclude: list[str] | None = None
    extensions: list[str] | None = None
    max_depth: int | None = None
    only_files: bool | None = None
    follow_links: bool | None = None
    fail_fast: bool | None = None


# Config file search order (first match wins within each directory level)
_CONFIG_FILENAMES = [".globpathfinder.toml", "globpathfinder.toml", "pyproject.toml"]

_KEBAB_TO_SNAKE: dict[str, str] = {
    "base-dir": "base_dir",
    "max-depth": "max_depth",
    "only-files": "only_files",
    "follow-links": "follow_links",
    "fail-fast": "fail_fast",
}

_VALID_FIELDS = {f.name for f in fields(FinderConfig)}

_LIST_FIELDS = {"include", "exclude", "extensions"}
_BOOL_FIELDS = {"only_files", "follow_links", "fail_fast"}


def find_config_file(start_dir: Path) -> Path | None:
    """
    Walk up from `start_dir` looking for a config file. Returns the first
    found, or `None`. Search order per directory: `.globpathfinder.toml` >
    `globpathfinder.toml` > `pyproject.toml` (only if it has `[tool.globpathfinder]`).
    """
    current = start_dir.resolve()
    while True:
        for filename in _CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                if filename == "pyproject.toml":
                    if _pyproject_has_section(candidate):
                        return candidate
                else:
                    return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Check if a pyproject.toml has a [tool.globpathfinder] section."""
    try:
        data = tomllib.loads(path.read_text())
        return "globpathfinder" in data.get("tool", {})
    except (tomllib.TOMLDecodeError, OSError):
        return False


def load_config(config_path: Path) -> FinderConfig:
    """
    Load a `FinderConfig` from a TOML file. Supports both standalone
    `globpathfinder.toml` / `.globpathfinder.toml` and `pyproject.toml` (extracts
    `[tool.globpathfinder]`). TOML kebab-case keys are mapped to Python snake_case.
    A file that is not valid TOML is reported and treated as empty.
    """
    try:
        data = tomllib.loads(config_path.read_text())
    except tomllib.TOMLDecodeError as e:
        log.warning("Ignoring invalid config file %s: %s", config_path, e)
        return FinderConfig()

    if config_path.name == "pyproject.toml":
        data = data.get("tool", {}).get("globpathfinder", {})

    config = _parse_config_data(data)
    if config.base_dir is not None:
        config.base_dir = str(config_path.parent / Path(config.base_dir).expanduser())
    return config


def _parse_config_data(data: dict[str, Any]) -> FinderConfig:
    """Parse a flat or sectioned TOML dict into FinderConfig."""
    # Flatten sections: a [query] table merges into the top level
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in cast(dict[str, Any], value).items():
                flat[sub_key] = sub_value
        else:
            flat[key] = value

    mapped: dict[str, Any] = {}
    for key, value in flat.items():
        snake_key = _KEBAB_TO_SNAKE.get(key, key.replace("-", "_"))
        if snake_key not in _VALID_FIELDS:
            log.warning("Ignoring unrecognized config key: %s", key)
            continue
        if isinstance(value, str) and snake_key in _LIST_FIELDS:
            value = [value]
        if _has_valid_type(snake_key, value):
            mapped[snake_key] = value
        else:
            log.warning("Ignoring config key %s: unexpected value %r", key, value)

    return FinderConfig(**mapped)


def _has_valid_type(field_name: str, value: Any) -> bool:
    if field_name in _LIST_FIELDS:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    if field_name in _BOOL_FIELDS:
        return isinstance(value, bool)
    if field_name == "max_depth":
        # bool is an int subclass.
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, str)


_T = TypeVar("_T")


def merge_cli_with_config(
    cli_opts: _T,
    config: FinderConfig | None,
    explicit_flags: set[str],
) -> _T:
    """
    Merge CLI options with config file settings.

    Precedence: explicit CLI flags > config file > built-in defaults.
    """
    if config is None:
        return cli_opts

    for cfg_field in fields(FinderConfig):
        cfg_value = getattr(config, cfg_field.name)
        if cfg_value is None:
            continue  # Not set in config

        if cfg_field.name in explicit_flags:
            continue

        if hasattr(cli_opts, cfg_field.name):
            setattr(cli_opts, cfg_field.name, cfg_value)

    return cli_opts
