"""Tests for the scrolling ticker."""

from __future__ import annotations

from intake_sync.ads.models import DisplayConfig
from intake_sync.ads.ticker import DEFAULT_TICKER_MESSAGES, build_ticker


def _config(**data) -> DisplayConfig:
    return DisplayConfig.model_validate(data)


class TestBuildTicker:
    def test_defaults_without_config(self):
        ticker = build_ticker(None)
        assert ticker.enabled
        assert ticker.speed == 30
        assert ticker.messages == list(DEFAULT_TICKER_MESSAGES)

    def test_defaults_when_location_has_no_messages(self):
        ticker = build_ticker(_config(tickerSpeed=50), default_speed=20)
        assert ticker.speed == 50
        assert [m.id for m in ticker.messages] == ["default-1", "default-2", "default-3"]

    def test_location_messages_replace_defaults(self):
        ticker = build_ticker(_config(tickerMessages=[{"id": "m1", "text": "Aperti anche la domenica"}]))
        assert [m.text for m in ticker.messages] == ["Aperti anche la domenica"]

    def test_rss_items_follow_messages(self):
        ticker = build_ticker(
            _config(
                tickerMessages=[{"id": "m1", "text": "Aperti anche la domenica", "emoji": "📅"}],
                tickerRssItems=[{"id": "rss-1", "text": "Titolo dal feed"}],
            )
        )
        assert [m.id for m in ticker.messages] == ["m1", "rss-1"]
        assert ticker.to_wire()["messages"][0] == {"id": "m1", "text": "Aperti anche la domenica", "emoji": "📅"}

    def test_rss_items_extend_defaults(self):
        ticker = build_ticker(_config(tickerRssItems=[{"id": "rss-1", "text": "Titolo dal feed"}]))
        assert [m.id for m in ticker.messages][-1] == "rss-1"
        assert len(ticker.messages) == len(DEFAULT_TICKER_MESSAGES) + 1

    def test_unset_speed_uses_default(self):
        assert build_ticker(_config(), default_speed=42).speed == 42

    def test_disabled(self):
        assert not build_ticker(_config(tickerEnabled=False)).enabled
