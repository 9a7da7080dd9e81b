"""Layered TOML configuration loader for the task store."""

import os
import re
import tomllib
from pathlib import Path
from typing import Any

# Environment names become file names under the config directory
_ENV_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")


def get_config_dir() -> Path:
    """Get the configuration directory path.

    The config directory can be overridden with TASKINDEX_CONFIG_DIR env var.
    Otherwise the nearest 'config/' directory from the working directory
    upwards is used.

    Returns:
        Path to the configuration directory (may not exist)

    Raises:
        FileNotFoundError: If TASKINDEX_CONFIG_DIR points nowhere
    """
    config_dir_env = os.environ.get("TASKINDEX_CONFIG_DIR")
    if config_dir_env:
        path = Path(config_dir_env)
        if not path.exists():
            raise FileNotFoundError(f"Config directory not found: {config_dir_env}")
        return path

    current = Path.cwd()
    for _ in range(5):
        config_path = current / "config"
        if config_path.exists():
            return config_path
        current = current.parent

    return Path("config")


def get_environment() -> str:
    """Get the current environment from TASKINDEX_ENV.

    Defaults to 'development' if not set.

    Raises:
        ValueError: If the name is not a plain lowercase identifier
    """
    env = os.environ.get("TASKINDEX_ENV", "development")
    if not _ENV_NAME.match(env):
        raise ValueError(f"Invalid TASKINDEX_ENV: {env!r}")
    return env


def load_toml(file_path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary.

    Args:
        file_path: Path to the TOML file

    Returns:
        Dictionary containing the TOML data

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary
        override: Override dictionary (takes precedence)

    Returns:
        Merged dictionary; neither input is modified
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(config_dir: Path | None = None, env: str | None = None) -> dict[str, Any]:
    """Load configuration from TOML files.

    Loading order:
    1. config/default.toml (optional, the store runs on model defaults)
    2. config/{env}.toml (optional)

    Args:
        config_dir: Directory to read from (default: get_config_dir())
        env: Environment overlay to apply (default: get_environment())

    Returns:
        Merged configuration dictionary
    """
    config_dir = config_dir or get_config_dir()
    env = env or get_environment()

    config: dict[str, Any] = {}

    default_path = config_dir / "default.toml"
    if default_path.exists():
        config = load_toml(default_path)

    env_path = config_dir / f"{env}.toml"
    if env_path.exists():
        config = deep_merge(config, load_toml(env_path))

    return config
