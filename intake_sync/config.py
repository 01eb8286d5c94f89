"""Central configuration for the intake display service."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = ROOT_DIR / ".env"


# ============================================================
# Nested Configuration Classes
# ============================================================

class ReconnectSettings(BaseModel):
    """Connection supervisor retry configuration."""
    delay_seconds: float = Field(2.0, description="Delay before resubscribing after a drop or rejection")
    backoff_factor: float = Field(1.0, description="Multiplier applied to the delay after each failed attempt (1.0 = fixed)")
    max_delay_seconds: float = Field(30.0, description="Upper bound for the retry delay")
    subscribe_timeout_seconds: float = Field(10.0, description="Max wait for the relay to confirm a subscription")


class PhaseDurations(BaseModel):
    """Display phase duration configuration (seconds)."""
    completed_dwell_seconds: float = Field(8.0, description="Success screen duration before returning to standby")


class AdSettings(BaseModel):
    """Advertisement rotation configuration."""
    default_duration_ms: int = Field(5000, description="Slide duration when neither slide nor location sets one")
    campaign_default_seconds: int = Field(5, description="Paid campaign duration when the campaign omits it")
    promo_title: str = Field("Vuoi pubblicizzarti qui?", description="Title of the 'space available' slide")
    promo_description: str = Field(
        "Scansiona il QR per acquistare uno spazio pubblicitario",
        description="Description of the 'space available' slide",
    )
    promo_url: Optional[str] = Field(None, description="QR destination of the 'space available' slide")


class PollingSettings(BaseModel):
    """Polling fallback configuration."""
    interval_seconds: float = Field(30.0, description="Refresh interval for campaigns and display config")
    request_timeout_seconds: float = Field(15.0, description="HTTP timeout for config requests")


class PublishSettings(BaseModel):
    """Operator-side broadcast retry configuration."""
    max_attempts: int = Field(3, description="Attempts per broadcast before giving up")
    retry_delay_seconds: float = Field(0.5, description="Delay between broadcast attempts")


class PerformanceSettings(BaseModel):
    """Queue tuning."""
    ui_event_queue_size: int = Field(16, description="Max buffered UI events per renderer connection")


class Settings(BaseSettings):
    """Environment-driven settings for the kiosk display service."""

    # Location & backends
    location_id: str = Field(..., description="Opaque identifier of the physical kiosk location")
    relay_ws_url: str = Field(..., description="Broadcast relay websocket URL (e.g. wss://relay.example.com/ws/broadcast)")
    config_api_url: str = Field(..., description="Display config REST base URL (e.g. https://api.example.com)")

    # Local HTTP server
    service_host: str = Field("0.0.0.0", description="Host interface for local FastAPI server")
    service_port: int = Field(5000, description="Port for FastAPI server")

    # Relay hosting
    relay_enabled: bool = Field(False, description="Also serve the broadcast relay from this process")
    relay_topic_prefixes: str = Field(
        "display-session-,intake-response-,display-config-",
        description="Comma separated topic prefixes the relay accepts subscriptions for",
    )

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_directory: Path = Field(ROOT_DIR / "logs", description="Log directory path")
    log_retention_days: int = Field(14, description="Number of log files to retain")

    # Nested Configuration Objects
    reconnect: ReconnectSettings = Field(default_factory=ReconnectSettings, description="Connection supervisor settings")
    phases: PhaseDurations = Field(default_factory=PhaseDurations, description="Display phase durations")
    ads: AdSettings = Field(default_factory=AdSettings, description="Advertisement rotation settings")
    polling: PollingSettings = Field(default_factory=PollingSettings, description="Polling fallback settings")
    publish: PublishSettings = Field(default_factory=PublishSettings, description="Broadcast retry settings")
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings, description="Performance tuning")

    @field_validator("location_id", mode="before")
    @classmethod
    def strip_location_id(cls, value: object) -> object:
        if isinstance(value, str):
            parsed = value.strip()
            if not parsed:
                raise ValueError("LOCATION_ID must not be empty")
            return parsed
        return value

    @property
    def relay_prefixes(self) -> List[str]:
        return [part.strip() for part in self.relay_topic_prefixes.split(",") if part.strip()]

    model_config = SettingsConfigDict(
        env_file=str(DEFAULT_ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings(override_env_file: Optional[Path] = None) -> Settings:
    """Cached Settings instance; accepts optional env override for tests."""

    if override_env_file:
        return Settings(_env_file=str(override_env_file))
    return Settings()
