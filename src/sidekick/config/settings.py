"""Sidekick configuration settings using pydantic-settings."""

from functools import cached_property
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the Sidekick sync agent.

    Settings are loaded from environment variables with the SIDEKICK_ prefix.
    For example, SIDEKICK_SERVER_URL=https://claims.example.com sets server_url.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDEKICK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    server_url: str = "http://localhost:8000"
    api_token: str | None = None
    upload_timeout: float = 30.0  # seconds per request
    upload_max_retries: int = 3  # in-call attempts on transient failures

    # Connectivity
    probe_interval: float = 15.0  # seconds between reachability probes

    # Local storage
    data_dir: Path = Path("~/.local/share/sidekick")
    durable_queue: bool = True  # keep pending operations in SQLite across restarts

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None
    device_id: str | None = None  # stamped on every log record

    @field_validator("upload_max_retries")
    @classmethod
    def validate_upload_max_retries(cls, v: int) -> int:
        """Ensure at least one upload attempt is made."""
        if v < 1:
            raise ValueError("upload_max_retries must be at least 1")
        return v

    @field_validator("upload_timeout", "probe_interval")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Ensure durations are positive."""
        if v <= 0:
            raise ValueError("value must be greater than 0 seconds")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @cached_property
    def data_path(self) -> Path:
        """Return expanded data directory path."""
        return self.data_dir.expanduser()

    @property
    def queue_db_path(self) -> Path:
        """SQLite file backing the durable operation queue."""
        return self.data_path / "sync_queue.db"

    @property
    def settings_store_path(self) -> Path:
        """JSON key-value file holding persisted sync metadata."""
        return self.data_path / "settings.json"
