"""Configuration models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from cinder.config.paths import get_sessions_path


class ConfigError(ValueError):
    """Configuration error."""

    pass


class SessionsConfig(BaseModel):
    """Configuration for session storage and history limits.

    When a session grows past ``max_messages`` the history is truncated
    down to roughly ``keep_last`` messages. Truncation never splits a
    tool call from its results, so the retained history may be slightly
    longer than ``keep_last``.
    """

    path: Path | None = None  # None = ~/.cinder/sessions
    max_messages: int = Field(default=200, ge=1)
    keep_last: int = Field(default=50, ge=1)

    @model_validator(mode="after")
    def _validate_limits(self) -> "SessionsConfig":
        if self.keep_last > self.max_messages:
            raise ValueError(
                f"sessions.keep_last ({self.keep_last}) must not exceed "
                f"sessions.max_messages ({self.max_messages})"
            )
        return self


class LoggingConfig(BaseModel):
    """Configuration for logging output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
    log_to_file: bool = False
    retention_days: int = Field(default=7, ge=1)


class CinderConfig(BaseModel):
    """Root configuration model."""

    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def sessions_path(self) -> Path:
        """Resolve the sessions directory, honoring CINDER_HOME by default."""
        if self.sessions.path is not None:
            return self.sessions.path.expanduser()
        return get_sessions_path()
