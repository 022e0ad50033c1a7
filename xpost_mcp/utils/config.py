"""Configuration management for xpost-mcp."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from functools import lru_cache

from ..core.exceptions import ConfigurationError


DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "name": "x-posting-server",
        "host": "127.0.0.1",
        "port": 3001,
        "sse_path": "/sse",
        "messages_path": "/messages",
        "keepalive_seconds": 15,
    },
    "cache": {
        "path": "cached-tweets.json",
        "page_size": 20,
        "min_entries": 1,
        "exemplar_count": 5,
    },
    "posting": {
        "provider": "x",
        "base_url": "https://api.twitter.com",
        "timeout": 30,
    },
    "generation": {
        "provider": "gemini",
        "model": "gemini-2.5-flash-preview-05-20",
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
        "max_retries": 2,
        "temperature": 0.7,
        "top_p": 0.8,
        "top_k": 40,
        "max_output_tokens": 4096,
        "timeout": 60,
    },
    "client": {
        "server_url": "http://localhost:3001",
        "request_timeout": 120,
    },
    "logging": {
        "level": "INFO",
        "format": "text",
        "file": None,
        "max_size": "10MB",
        "backup_count": 3,
    },
}

# Environment variables holding credentials, never stored in config files
CREDENTIAL_VARS = [
    "X_API_KEY",
    "X_API_SECRET",
    "X_ACCESS_TOKEN",
    "X_ACCESS_TOKEN_SECRET",
    "X_USERNAME",
    "GEMINI_API_KEY",
]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _find_config_file() -> Optional[Path]:
    env_path = os.getenv("XPOST_CONFIG")
    possible_paths = [
        Path(env_path) if env_path else None,
        Path("config/settings.yaml"),
        Path.home() / ".xpost" / "settings.yaml",
    ]
    for path in possible_paths:
        if path is not None and path.exists():
            return path
    return None


@lru_cache(maxsize=4)
def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file merged over built-in defaults.

    Args:
        config_path: Path to config file. If None, searches default locations
            and falls back to defaults alone when none exists.

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the config file is invalid or missing
    """
    if config_path is None:
        found = _find_config_file()
        config_path = str(found) if found else None

    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is not None:
        try:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {config_path}")

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {config_path}")
        config = _deep_merge(config, loaded)

    return _apply_env_overrides(config)


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to config."""
    env_mappings = {
        "XPOST_SERVER_HOST": ("server", "host"),
        "XPOST_SERVER_PORT": ("server", "port"),
        "XPOST_CACHE_PATH": ("cache", "path"),
        "XPOST_LOG_LEVEL": ("logging", "level"),
        "XPOST_POSTING_PROVIDER": ("posting", "provider"),
        "XPOST_GENERATION_PROVIDER": ("generation", "provider"),
        "XPOST_SERVER_URL": ("client", "server_url"),
    }

    for env_var, config_path in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            current = config
            for key in config_path[:-1]:
                current = current.setdefault(key, {})

            if "port" in config_path[-1].lower():
                try:
                    value = int(value)
                except ValueError:
                    continue

            current[config_path[-1]] = value

    return config


def get_config_value(path: str, default: Any = None) -> Any:
    """
    Get a specific configuration value by path.

    Args:
        path: Dot-separated path (e.g., 'server.port')
        default: Default value if path not found

    Returns:
        Configuration value or default
    """
    config = load_config()

    try:
        value = config
        for key in path.split("."):
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def require_env(name: str) -> str:
    """Return a required environment variable or raise naming it."""
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"{name} not found in environment variables")
    return value


def credential_report() -> Dict[str, bool]:
    """Presence of each credential variable. Values are never returned."""
    return {name: bool(os.getenv(name)) for name in CREDENTIAL_VARS}


class Config:
    """Configuration wrapper with attribute access."""

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        if config_dict is None:
            config_dict = load_config()
        self._config = config_dict

    def __getattr__(self, name: str) -> Any:
        if name in self._config:
            value = self._config[name]
            if isinstance(value, dict):
                return Config(value)
            return value
        raise AttributeError(f"Config has no attribute '{name}'")

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)
