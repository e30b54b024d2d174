"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

The project config file is the one Task Master tools share
(.taskmaster/config.json, or .taskmasterconfig in older projects). Its
``global`` section is mapped onto this package's settings.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import LOG_LEVELS, TaskMasterConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = Path(".taskmaster") / "config.json"
LEGACY_CONFIG_FILE = Path(".taskmasterconfig")

# Global cache to avoid reloading config multiple times per session
_config_cache: TaskMasterConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/taskmaster/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "taskmaster" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Project root (defaults to current directory)

    Returns:
        .taskmaster/config.json, or the legacy .taskmasterconfig when only
        that one exists
    """
    if cwd is None:
        cwd = Path.cwd()
    current = cwd / PROJECT_CONFIG_FILE
    legacy = cwd / LEGACY_CONFIG_FILE
    if not current.exists() and legacy.exists():
        return legacy
    return current


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}})
        {'a': 1, 'b': {'x': 10, 'y': 20}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config problems should not stop the tool
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _normalize_log_level(value: str) -> str | None:
    level = value.strip().upper()
    if level == "WARN":
        level = "WARNING"
    if level not in LOG_LEVELS:
        return None
    return level


def apply_global_section(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Map the shared ``global`` section onto this package's keys.

    ``global.defaultTag`` sets tags.default_tag and ``global.logLevel`` sets
    logging.level. Explicit values in tags/logging win.
    """
    section = config_dict.get("global")
    if not isinstance(section, dict):
        return config_dict

    result = config_dict.copy()

    if isinstance(default_tag := section.get("defaultTag"), str) and default_tag:
        tags = dict(result.get("tags") or {})
        tags.setdefault("default_tag", default_tag)
        result["tags"] = tags

    if isinstance(log_level := section.get("logLevel"), str):
        if level := _normalize_log_level(log_level):
            log_config = dict(result.get("logging") or {})
            log_config.setdefault("level", level)
            result["logging"] = log_config

    return result


def _int_from_env(name: str, minimum: int) -> int | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s value '%s', ignoring", name, raw)
        return None
    if value < minimum:
        logger.warning("%s must be >= %d, got %d, ignoring", name, minimum, value)
        return None
    return value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        TASKMASTER_LOCK_STALE_MS - overrides storage.lock_stale_ms
        TASKMASTER_LOCK_MAX_ATTEMPTS - overrides storage.lock_max_attempts
        TASKMASTER_DEFAULT_TAG - overrides tags.default_tag
        TASKMASTER_LOG_LEVEL (or LOG_LEVEL) - overrides logging.level

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    storage = dict(result.get("storage") or {})
    if (stale_ms := _int_from_env("TASKMASTER_LOCK_STALE_MS", 1)) is not None:
        storage["lock_stale_ms"] = stale_ms
    if (attempts := _int_from_env("TASKMASTER_LOCK_MAX_ATTEMPTS", 1)) is not None:
        storage["lock_max_attempts"] = attempts
    if storage:
        result["storage"] = storage

    if default_tag := os.environ.get("TASKMASTER_DEFAULT_TAG"):
        result["tags"] = {**(result.get("tags") or {}), "default_tag": default_tag}

    raw_level = os.environ.get("TASKMASTER_LOG_LEVEL") or os.environ.get("LOG_LEVEL")
    if raw_level:
        if level := _normalize_log_level(raw_level):
            result["logging"] = {**(result.get("logging") or {}), "level": level}
        else:
            logger.warning("Invalid log level '%s' in environment, ignoring", raw_level)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "storage": {
            "lock_stale_ms": 10_000,
            "lock_max_attempts": 40,
            "lock_retry_delay_ms": 20,
            "lock_max_delay_ms": 500,
            "create_backups": True,
        },
        "tags": {"default_tag": "master"},
        "logging": {"level": "WARNING"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> TaskMasterConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TASKMASTER_*)
        2. Project config (.taskmaster/config.json or .taskmasterconfig)
        3. User config (~/.config/taskmaster/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project root to load the project config from
            (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated TaskMasterConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.storage.lock_stale_ms
        10000
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, apply_global_section(user_config))

    # Project config (higher priority than user config)
    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, apply_global_section(project_config))

    merged = apply_env_overrides(merged)

    config = TaskMasterConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
