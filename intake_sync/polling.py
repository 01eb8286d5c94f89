"""Display content refresh: config-change nudges with a polling fallback."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from .ads.models import DisplayConfig
from .events import CONFIG_CHANGED, config_topic
from .supervisor import SleepFn
from .transport.base import Transport

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Optional[DisplayConfig]]]
ConfigCallback = Callable[[DisplayConfig], None]


class PollingFallback:
    """
    Re-reads campaigns, operator slides and branding on a fixed interval.

    Independent of the session channel. A failed or empty fetch keeps the last
    known good config; the display never blanks because the data store hiccuped.
    """

    def __init__(
        self,
        fetch: FetchFn,
        on_config: ConfigCallback,
        *,
        interval: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._fetch = fetch
        self._on_config = on_config
        self.interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None
        self.last_good: Optional[DisplayConfig] = None
        self.refresh_count = 0
        self.failure_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> bool:
        """One fetch; returns True when fresh config was applied."""
        self.refresh_count += 1
        try:
            config = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Display config refresh failed: %s", e)
            config = None

        if config is None:
            self.failure_count += 1
            logger.info("Keeping last known display config (failures=%d)", self.failure_count)
            return False

        self.last_good = config
        try:
            self._on_config(config)
        except Exception:
            logger.exception("Display config callback failed")
            return False
        return True

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="display-config-poll")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            await self.refresh()
            await self._sleep(self.interval)


async def announce_config_change(transport: Transport, location_id: str) -> bool:
    """Tell the location's display to re-read its content now."""
    sent = await transport.publish(config_topic(location_id), CONFIG_CHANGED, {"locationId": location_id})
    if not sent:
        logger.warning("Config change for %s not announced; display will pick it up on the next poll", location_id)
    return sent


__all__ = ["ConfigCallback", "FetchFn", "PollingFallback", "announce_config_change"]
