"""Configuration loading from TOML files."""

import tomllib
from pathlib import Path

from cinder.config.models import CinderConfig, ConfigError
from cinder.config.paths import get_config_path


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.cinder/config.toml (or CINDER_HOME)
        Path("/etc/cinder/config.toml"),  # System-wide
    ]


def load_config(path: Path | None = None) -> CinderConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated CinderConfig instance.

    Raises:
        FileNotFoundError: If no config file is found.
        ConfigError: If the file is not valid TOML.
        ValidationError: If the file does not match the config schema.
    """
    config_path: Path | None = None

    default_paths = _get_default_config_paths()

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in default_paths:
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    if config_path is None:
        raise FileNotFoundError(
            f"No config file found. Searched: {', '.join(str(p) for p in default_paths)}"
        )

    with config_path.open("rb") as f:
        try:
            raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    return CinderConfig.model_validate(raw_config)


def get_default_config() -> CinderConfig:
    """Get a default configuration for callers that tolerate a missing file."""
    return CinderConfig()


def load_config_or_default(path: Path | None = None) -> CinderConfig:
    """Load config, falling back to defaults only when no file was searched out.

    An explicit ``path`` that does not exist is still an error.
    """
    try:
        return load_config(path)
    except FileNotFoundError:
        if path is not None:
            raise
        return get_default_config()
