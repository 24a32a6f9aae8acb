"""Central configuration for docketwatch runtime settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Requests per rolling window agreed with the county for each host.
DEFAULT_RATE_LIMITS: Dict[str, int] = {
    "roasearch": 15,
    "odyroa": 30,
    "courtindex": 30,
    "sdcourt": 20,
    "scraperapi": 10,
}


class Settings(BaseSettings):
    rate_limits: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS), alias="RATE_LIMITS"
    )
    rate_limit_default: int = Field(10, alias="RATE_LIMIT_DEFAULT")
    rate_window_seconds: float = Field(60.0, alias="RATE_WINDOW_SECONDS")
    min_request_interval_seconds: float = Field(0.5, alias="MIN_REQUEST_INTERVAL_SECONDS")

    fetch_timeout_seconds: float = Field(20.0, alias="FETCH_TIMEOUT_SECONDS")
    user_agent_override: Optional[str] = Field(None, alias="USER_AGENT_OVERRIDE")
    scraperapi_key: Optional[str] = Field(None, alias="SCRAPERAPI_KEY")
    strategies_file: Optional[str] = Field(None, alias="STRATEGIES_FILE")

    sweep_pause_seconds: float = Field(2.0, alias="SWEEP_PAUSE_SECONDS")
    max_sweep_cases: int = Field(15, alias="MAX_SWEEP_CASES")

    snapshot_path: str = Field("data/snapshots.json", alias="SNAPSHOT_PATH")
    discord_webhook_url: Optional[str] = Field(None, alias="DISCORD_WEBHOOK_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached settings instance."""

    return Settings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""

    get_settings.cache_clear()
