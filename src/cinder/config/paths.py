"""Centralized path management for Cinder.

All state (config, sessions, logs) is stored under a single base directory.
The base directory can be overridden with the CINDER_HOME environment variable.

Default locations:
- Linux/macOS: ~/.cinder
- Windows: %USERPROFILE%\\.cinder
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "CINDER_HOME"


@lru_cache(maxsize=1)
def get_cinder_home() -> Path:
    """Get the base directory for all Cinder data.

    Resolution order:
    1. CINDER_HOME environment variable (if set)
    2. Platform default (~/.cinder)

    Returns:
        Path to the Cinder home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".cinder"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_cinder_home() / "config.toml"


def get_sessions_path() -> Path:
    """Get the sessions directory path (one JSON file per session)."""
    return get_cinder_home() / "sessions"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_cinder_home() / "logs"


def get_all_paths() -> dict[str, Path]:
    """Get all standard paths for debugging/display."""
    return {
        "home": get_cinder_home(),
        "config": get_config_path(),
        "sessions": get_sessions_path(),
        "logs": get_logs_path(),
    }
