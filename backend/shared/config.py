"""
Central configuration for the Zonera score board services.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings shared across the API and the refresh scheduler."""

    model_config = SettingsConfigDict(
        env_prefix="ZN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Pod/container ID bound to every log line")

    # ── API ──────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["*"]

    # ── Refresh cycle ────────────────────────────────────────
    refresh_interval_s: float = 60.0
    source_timeout_s: float = 10.0
    keep_last_good_on_failure: bool = Field(
        default=False,
        description="Reuse a failed source's previous slot instead of contributing an empty list.",
    )

    # ── Board ────────────────────────────────────────────────
    board_timezone: str = Field(default="UTC", description="Default observer zone for day filtering")
    date_window_size: int = 7

    # ── Custom store (Firestore REST) ────────────────────────
    custom_store_enabled: bool = True
    firestore_base_url: str = "https://firestore.googleapis.com/v1"
    firestore_project_id: str = ""
    firestore_api_key: str = ""
    firestore_bearer_token: str = ""
    firestore_page_size: int = 300
    firestore_matches_collection: str = "matches"
    firestore_leagues_collection: str = "leagues"

    # ── API-Football ─────────────────────────────────────────
    api_football_enabled: bool = True
    api_football_base_url: str = "https://v3.football.api-sports.io"
    api_football_host: str = "v3.football.api-sports.io"
    api_football_api_key: str = ""

    # ── football-data.org ────────────────────────────────────
    football_data_enabled: bool = True
    football_data_base_url: str = "https://api.football-data.org/v4"
    football_data_api_key: str = ""

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090

    @field_validator("refresh_interval_s", "source_timeout_s")
    @classmethod
    def positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @property
    def custom_store_configured(self) -> bool:
        return bool(self.firestore_project_id)

    @property
    def api_football_configured(self) -> bool:
        return bool(self.api_football_api_key)

    @property
    def football_data_configured(self) -> bool:
        return bool(self.football_data_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
