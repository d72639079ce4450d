"""Beacon Configuration."""

from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)


class BeaconSettings(BaseSettings):
    """Settings for the Beacon service, read from BEACON_* environment variables."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    title: str = "Beacon"
    description: str = "Heartbeat-based liveness monitor"

    # Auth
    access_token: str = ""

    # Monitored entities (comma-separated allow-list)
    servers: str = ""

    # Detection
    alert_threshold_seconds: int = Field(default=90, ge=1)
    sweep_interval_seconds: int = Field(default=60, ge=1)
    entity_timeout_seconds: float = Field(default=10.0, gt=0)
    run_scheduler: bool = True

    # Store
    store_backend: str = Field(default="sqlite", pattern="^(sqlite|memory)$")
    database_path: Path = Path("beacon.sqlite3")
    state_path: Path | None = None  # JSON file for the memory backend

    # Notifications
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    notify_console: bool = False  # Print to the terminal when Telegram is not set up
    notify_timeout_seconds: float = Field(default=10.0, gt=0)
    drain_timeout_seconds: float = Field(default=15.0, gt=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    class Config:
        env_prefix = "BEACON_"
        env_file = ".env"
        extra = "ignore"

    @model_validator(mode="after")
    def _warn_on_tight_threshold(self) -> "BeaconSettings":
        if self.alert_threshold_seconds <= self.sweep_interval_seconds:
            logger.warning(
                "Alert threshold does not exceed sweep interval; expect false DOWN alerts",
                alert_threshold_seconds=self.alert_threshold_seconds,
                sweep_interval_seconds=self.sweep_interval_seconds,
            )
        return self

    @property
    def server_names(self) -> list[str]:
        """Allow-list of entity names, in configured order, without duplicates."""
        names = (s.strip() for s in self.servers.split(","))
        return list(dict.fromkeys(n for n in names if n))


@lru_cache
def get_settings() -> BeaconSettings:
    """Get the process-wide settings instance."""
    return BeaconSettings()
