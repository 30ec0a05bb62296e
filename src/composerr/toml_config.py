"""TOML-based configuration for composerr.

Usage:
    from composerr.toml_config import load_toml_config, find_config_file

    config_path = find_config_file(Path.cwd())
    if config_path:
        config = load_toml_config(config_path)

Example composerr.toml:
    container_marker = "compose_errors"
    declaration_marker = "errorset"
    result_types = ["Result", "Outcome"]
    suffix = "Error"

In pyproject.toml the same keys live under ``[tool.composerr]``.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from composerr.config import ComposerrConfig
from composerr.errors import ConfigError

# Config file names to search for (in order of preference)
CONFIG_FILE_NAMES = ["composerr.toml", ".composerr.toml", "pyproject.toml"]


def find_config_file(
    start_dir: Path,
    config_names: list[str] | None = None,
) -> Path | None:
    """Find a config file by searching up the directory hierarchy.

    Args:
        start_dir: Directory to start searching from
        config_names: List of config file names to search for (default: CONFIG_FILE_NAMES)

    Returns:
        Path to the config file, or None if not found
    """
    config_names = config_names or CONFIG_FILE_NAMES
    current = start_dir.resolve()

    while True:
        for name in config_names:
            config_path = current / name
            if config_path.exists():
                # pyproject.toml only counts with a [tool.composerr] section
                if name == "pyproject.toml":
                    if _has_composerr_section(config_path):
                        return config_path
                else:
                    return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _has_composerr_section(pyproject_path: Path) -> bool:
    """Check if pyproject.toml has a [tool.composerr] section."""
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return "composerr" in data.get("tool", {})


def load_toml_config(path: Path) -> ComposerrConfig:
    """Load a ComposerrConfig from a TOML file.

    Supports composerr.toml (whole file) and pyproject.toml (under
    [tool.composerr]).
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", file=path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}", file=path) from e

    if path.name == "pyproject.toml":
        if "composerr" not in data.get("tool", {}):
            raise ConfigError(f"No [tool.composerr] section in {path}", file=path)
        data = data["tool"]["composerr"]

    return build_config_from_dict(data, source=path)


def build_config_from_dict(
    data: dict[str, Any],
    source: Path | None = None,
) -> ComposerrConfig:
    """Build a ComposerrConfig from a dictionary of settings."""
    unknown = sorted(set(data) - ComposerrConfig.setting_names())
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}", file=source)

    try:
        return ComposerrConfig(**data)
    except ConfigError as e:
        raise ConfigError(str(e), file=source) from e


def load_config(start_dir: Path | None = None, path: Path | None = None) -> ComposerrConfig:
    """Load an explicit config file, a discovered one, or the defaults."""
    if path is not None:
        return load_toml_config(path)

    found = find_config_file(start_dir or Path.cwd())
    if found is None:
        return ComposerrConfig()
    return load_toml_config(found)
