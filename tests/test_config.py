"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from intake_sync.config import Settings

REQUIRED = {
    "location_id": "loc-1",
    "relay_ws_url": "ws://relay.test/ws/broadcast",
    "config_api_url": "https://api.test",
}


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None, **REQUIRED)
        assert settings.reconnect.delay_seconds == 2.0
        assert settings.reconnect.backoff_factor == 1.0
        assert settings.phases.completed_dwell_seconds == 8.0
        assert settings.ads.default_duration_ms == 5000
        assert settings.polling.interval_seconds == 30.0
        assert settings.publish.max_attempts == 3
        assert settings.relay_prefixes == ["display-session-", "intake-response-", "display-config-"]

    def test_location_id_is_stripped(self):
        settings = Settings(_env_file=None, **{**REQUIRED, "location_id": "  loc-7 "})
        assert settings.location_id == "loc-7"

    def test_blank_location_id_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{**REQUIRED, "location_id": "   "})

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("RECONNECT__DELAY_SECONDS", "5")
        monkeypatch.setenv("PHASES__COMPLETED_DWELL_SECONDS", "3.5")
        settings = Settings(_env_file=None, **REQUIRED)
        assert settings.reconnect.delay_seconds == 5.0
        assert settings.phases.completed_dwell_seconds == 3.5
