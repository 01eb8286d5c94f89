"""Tests for the display-config polling fallback."""

from __future__ import annotations

import asyncio

import pytest

from intake_sync.ads.models import DisplayConfig
from intake_sync.events import CONFIG_CHANGED, config_topic
from intake_sync.polling import PollingFallback, announce_config_change


class ScriptedFetch:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


class TestRefresh:
    @pytest.mark.asyncio
    async def test_failure_keeps_last_good(self):
        good = DisplayConfig.model_validate({"slideIntervalMs": 6000})
        applied = []
        polling = PollingFallback(ScriptedFetch(good, None, RuntimeError("boom")), applied.append)

        assert await polling.refresh()
        assert not await polling.refresh()
        assert not await polling.refresh()

        assert applied == [good]
        assert polling.last_good is good
        assert polling.failure_count == 2


class TestLoop:
    @pytest.mark.asyncio
    async def test_loop_refreshes_on_interval(self, recording_sleep):
        fetch = ScriptedFetch(DisplayConfig(), DisplayConfig(), DisplayConfig())
        polling = PollingFallback(fetch, lambda config: None, interval=30.0, sleep=recording_sleep)

        await polling.start()
        for _ in range(3):
            await asyncio.sleep(0)
        await polling.stop()

        assert fetch.calls >= 2
        assert set(recording_sleep.delays) == {30.0}
        assert not polling.running

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_sleep(self):
        fetch = ScriptedFetch(DisplayConfig())
        polling = PollingFallback(fetch, lambda config: None, interval=3600.0)
        await polling.start()
        await asyncio.sleep(0)

        await asyncio.wait_for(polling.stop(), timeout=1.0)
        assert fetch.calls == 1


class TestAnnounceConfigChange:
    @pytest.mark.asyncio
    async def test_publishes_on_location_config_topic(self, transport):
        received = []

        async def handler(name, payload):
            received.append((name, payload))

        await transport.subscribe(config_topic("loc-9"), handler)
        assert await announce_config_change(transport, "loc-9")
        assert received == [(CONFIG_CHANGED, {"locationId": "loc-9"})]

    @pytest.mark.asyncio
    async def test_failed_publish_reported(self, transport):
        transport.fail_publishes = True
        assert not await announce_config_change(transport, "loc-9")
