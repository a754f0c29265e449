"""
Shared configuration management for the feature-flag runtime.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


CACHE_REFRESH_POLICIES = ("only_if_cache_miss", "stale_while_revalidate", "strongly_consistent")


class RuntimeConfig(BaseSettings):
    """Runtime configuration, read from FLAGS_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLAGS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Datafile fetching
    datafile_url_template: str = Field(default="http://localhost:8080/datafiles/{key}.json")
    fetch_timeout_seconds: float = Field(default=5.0)
    fetch_max_attempts: int = Field(default=3)

    # Datafile cache
    cache_refresh_policy: str = Field(default="strongly_consistent")
    cache_max_age_seconds: Optional[float] = Field(default=None)

    # Event batching
    event_batch_size: int = Field(default=10)
    event_flush_interval_seconds: float = Field(default=1.0)

    @field_validator("cache_refresh_policy")
    @classmethod
    def _known_policy(cls, value: str) -> str:
        value = value.lower()
        if value not in CACHE_REFRESH_POLICIES:
            raise ValueError(f"unknown cache refresh policy '{value}'")
        return value


def get_config(**overrides) -> RuntimeConfig:
    """Get the runtime configuration."""
    return RuntimeConfig(**overrides)
