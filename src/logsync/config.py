"""
Configuration for log synchronization runs.

This module provides:
- SyncConfig: Immutable configuration handed to the convergence engine
- SyncSettings: Environment-backed settings for the ``python -m logsync`` entrypoint
- load_settings: Cached accessor for SyncSettings
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from logsync.exceptions import ConfigurationError

DEFAULT_MAX_BATCH_SIZE = 1000

_ENV_PATH = Path(".env")


def parse_start_timestamp(value: str | datetime | None) -> datetime | None:
    """
    Parse an ISO-8601 local date-time.

    Args:
        value: Date-time string, datetime, or None

    Returns:
        The parsed datetime, or None for a missing or blank value

    Raises:
        ConfigurationError: If the string is not ISO-8601
    """
    if value is None or isinstance(value, datetime):
        return value
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise ConfigurationError(
            f"start timestamp must be an ISO-8601 local date-time, got {value!r}"
        ) from e


@dataclass(frozen=True)
class SyncConfig:
    """
    Configuration for one reconciliation run.

    Attributes:
        max_batch_size: Maximum records fetched per query branch per page.
            Values that are missing or not positive fall back to
            DEFAULT_MAX_BATCH_SIZE.
        start_timestamp: Optional point in time to resume from. When absent
            the engine probes the index for its earliest record instead.

    Example:
        >>> config = SyncConfig(max_batch_size=500)
        >>> SyncConfig(max_batch_size=0).max_batch_size
        1000
        >>> SyncConfig(start_timestamp="2024-03-01T00:00:00").start_timestamp
        datetime.datetime(2024, 3, 1, 0, 0)
    """

    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    start_timestamp: datetime | None = None

    def __post_init__(self) -> None:
        """Normalize batch size and start timestamp."""
        if not self.max_batch_size or self.max_batch_size < 1:
            object.__setattr__(self, "max_batch_size", DEFAULT_MAX_BATCH_SIZE)
        object.__setattr__(self, "start_timestamp", parse_start_timestamp(self.start_timestamp))

    @classmethod
    def from_settings(cls, settings: SyncSettings) -> SyncConfig:
        """Build a run configuration from loaded settings."""
        return cls(
            max_batch_size=settings.max_batch_size or DEFAULT_MAX_BATCH_SIZE,
            start_timestamp=settings.start_date,
        )


class SyncSettings(BaseSettings):
    """Settings loaded from ``LOGSYNC_*`` environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="LOGSYNC_",
        env_file=_ENV_PATH,
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    database_url: str = Field(default="postgresql+asyncpg://localhost/reportportal")

    elasticsearch_url: str = Field(default="http://localhost:9200")
    elasticsearch_username: str | None = Field(default=None)
    elasticsearch_password: SecretStr | None = Field(default=None)
    index_prefix: str = Field(default="logs-")

    max_batch_size: int | None = Field(default=DEFAULT_MAX_BATCH_SIZE)
    start_date: str | None = Field(default=None)

    log_level: str = Field(default="INFO")
    enable_tracing: bool = Field(default=True)


@lru_cache(maxsize=1)
def load_settings() -> SyncSettings:
    """
    Return cached settings loaded from the environment.

    Raises:
        ConfigurationError: If an environment value cannot be parsed
    """
    try:
        return SyncSettings()
    except ValidationError as e:
        raise ConfigurationError(f"invalid LOGSYNC_* settings: {e}") from e


__all__ = [
    "DEFAULT_MAX_BATCH_SIZE",
    "SyncConfig",
    "SyncSettings",
    "load_settings",
    "parse_start_timestamp",
]
