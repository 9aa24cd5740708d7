"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dataview.core.exceptions import ConfigError

from .models import DataViewConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = ".dataview.json"

# Global cache to avoid reloading config multiple times per process
_config_cache: DataViewConfig | None = None


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
    """Path to ~/.config/dataview/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "dataview" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .dataview.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / PROJECT_CONFIG_FILE


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested
    dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}
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
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring config at %s: top level must be an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient: warn and continue
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set(result: dict[str, Any], section: str, key: str, value: Any) -> None:
    if not isinstance(result.get(section), dict):
        result[section] = {}
    else:
        result[section] = dict(result[section])
    result[section][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        DATAVIEW_BASE_URL - overrides remote.base_url
        DATAVIEW_TIMEOUT - overrides remote.timeout
        DATAVIEW_MAX_RETRIES - overrides remote.max_retries
        DATAVIEW_BUFFER - overrides dataset.buffer
        DATAVIEW_KEY_FIELD - overrides dataset.key_field
        DATAVIEW_PAGE_SIZE - overrides query.page_size

    Raises:
        ConfigError: If a numeric override cannot be parsed
    """
    result = config_dict.copy()

    if base_url := os.environ.get("DATAVIEW_BASE_URL"):
        _set(result, "remote", "base_url", base_url)

    if timeout_str := os.environ.get("DATAVIEW_TIMEOUT"):
        try:
            _set(result, "remote", "timeout", float(timeout_str))
        except ValueError as e:
            raise ConfigError(f"Invalid DATAVIEW_TIMEOUT value '{timeout_str}'") from e

    if retries_str := os.environ.get("DATAVIEW_MAX_RETRIES"):
        try:
            _set(result, "remote", "max_retries", int(retries_str))
        except ValueError as e:
            raise ConfigError(f"Invalid DATAVIEW_MAX_RETRIES value '{retries_str}'") from e

    if (buffer_str := os.environ.get("DATAVIEW_BUFFER")) is not None:
        _set(result, "dataset", "buffer", buffer_str.lower() not in ("false", "0", "no", ""))

    if key_field := os.environ.get("DATAVIEW_KEY_FIELD"):
        _set(result, "dataset", "key_field", key_field)

    if page_size_str := os.environ.get("DATAVIEW_PAGE_SIZE"):
        try:
            _set(result, "query", "page_size", int(page_size_str))
        except ValueError as e:
            raise ConfigError(f"Invalid DATAVIEW_PAGE_SIZE value '{page_size_str}'") from e

    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded default configuration, matching the model defaults."""
    return DataViewConfig().model_dump()


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> DataViewConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (DATAVIEW_*)
        2. Project config (.dataview.json)
        3. User config (~/.config/dataview/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .dataview.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated DataViewConfig instance

    Raises:
        ConfigError: If the merged config fails validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    try:
        config = DataViewConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    _config_cache = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
