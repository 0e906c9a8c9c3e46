"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Find .env file
# =============================================================================

def find_env_file() -> str:
    """Find the .env file relative to project root."""
    candidates = [
        "config/.env",
        ".env",
        Path(__file__).parent.parent / "config" / ".env",
    ]

    for candidate in candidates:
        path = Path(candidate)
        if path.exists():
            return str(path)

    return "config/.env"  # Default


ENV_FILE = find_env_file()


# =============================================================================
# Settings Classes
# =============================================================================


class BookingApiSettings(BaseSettings):
    """Booking/payment backend settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="BOOKING_API_",
        extra="ignore",
    )

    base_url: str = "http://localhost:3000/api"
    timeout_seconds: float = 30.0

    # Payment status polling (interrupted checkout redirects)
    status_poll_interval_seconds: float = 5.0
    status_poll_max_attempts: int = 60

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Booking API timeout must be positive")
        return v

    @field_validator("status_poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v < 1:
            raise ValueError("Status poll interval must be at least 1 second")
        return v

    @field_validator("status_poll_max_attempts")
    @classmethod
    def validate_poll_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Status poll attempts must be at least 1")
        return v


class TrackerSettings(BaseSettings):
    """Pending-reservation tracker settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="TRACKER_",
        extra="ignore",
    )

    storage_key: str = "pendingReservation"
    session_dir: str = "/tmp/staybook/sessions"


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Pricing display
    default_currency: str = "PHP"


class Settings(BaseSettings):
    """Main settings container with lazy loading."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cache for sub-settings
    _booking_api: BookingApiSettings | None = None
    _tracker: TrackerSettings | None = None
    _app: AppSettings | None = None

    @property
    def booking_api(self) -> BookingApiSettings:
        if self._booking_api is None:
            self._booking_api = BookingApiSettings()
        return self._booking_api

    @property
    def tracker(self) -> TrackerSettings:
        if self._tracker is None:
            self._tracker = TrackerSettings()
        return self._tracker

    @property
    def app(self) -> AppSettings:
        if self._app is None:
            self._app = AppSettings()
        return self._app

    # Convenience accessors
    @property
    def booking_api_base_url(self) -> str:
        return self.booking_api.base_url

    @property
    def booking_api_timeout(self) -> float:
        return self.booking_api.timeout_seconds

    @property
    def pending_storage_key(self) -> str:
        return self.tracker.storage_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
