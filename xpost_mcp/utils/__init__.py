"""Utility modules for xpost-mcp."""

from .config import load_config, get_config_value, require_env, credential_report, Config
from .logger import get_logger, setup_logging

__all__ = [
    'load_config',
    'get_config_value',
    'require_env',
    'credential_report',
    'Config',
    'get_logger',
    'setup_logging',
]
