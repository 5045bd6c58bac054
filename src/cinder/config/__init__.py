"""Configuration module."""

from cinder.config.loader import get_default_config, load_config, load_config_or_default
from cinder.config.models import (
    CinderConfig,
    ConfigError,
    LoggingConfig,
    SessionsConfig,
)
from cinder.config.paths import (
    get_cinder_home,
    get_config_path,
    get_logs_path,
    get_sessions_path,
)

__all__ = [
    "CinderConfig",
    "ConfigError",
    "LoggingConfig",
    "SessionsConfig",
    "get_cinder_home",
    "get_config_path",
    "get_default_config",
    "get_logs_path",
    "get_sessions_path",
    "load_config",
    "load_config_or_default",
]
