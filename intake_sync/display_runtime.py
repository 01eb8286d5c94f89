"""Coordinates the display side: channel, session state, ads, ticker and config refresh."""
from __future__ import annotations

import asyncio
import datetime
import logging
from asyncio import QueueEmpty
from typing import Any, Dict, List, Optional

from .ads.models import AdPlaylistItem, DisplayConfig, LocationBranding, PromoSlide
from .ads.playlist import build_playlist
from .ads.scheduler import AdScheduler
from .ads.ticker import Ticker, build_ticker
from .clock import Clock
from .config import Settings, get_settings
from .events import CONFIG_CHANGED, config_topic, session_topic
from .polling import PollingFallback
from .responder import CustomerResponder
from .session_machine import DisplaySessionMachine
from .state import ConnectionState, DisplayEvent, DisplayMode
from .supervisor import ConnectionSupervisor, SleepFn
from .transport.base import Transport
from .transport.http_client import DisplayConfigClient
from .transport.ws_client import WebSocketTransport

logger = logging.getLogger(__name__)


class DisplayRuntime:
    """Wires one kiosk display together and fans render events out to UI clients."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        transport: Optional[Transport] = None,
        config_client: Optional[DisplayConfigClient] = None,
        clock: Optional[Clock] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport or WebSocketTransport(
            self.settings.relay_ws_url,
            subscribe_timeout=self.settings.reconnect.subscribe_timeout_seconds,
        )
        self._config_client = config_client or DisplayConfigClient(self.settings)
        self._ui_subscribers: List[asyncio.Queue[DisplayEvent]] = []
        self.branding = LocationBranding()
        self.ticker: Ticker = build_ticker(None)

        self.machine = DisplaySessionMachine(
            dwell_seconds=self.settings.phases.completed_dwell_seconds,
            clock=clock,
            on_transition=self._on_transition,
        )
        self.scheduler = AdScheduler(
            default_duration_ms=self.settings.ads.default_duration_ms,
            clock=clock,
            on_change=self._on_ad_change,
        )
        self.supervisor = ConnectionSupervisor(
            self.transport,
            session_topic(self.settings.location_id),
            self.machine.handle_message,
            retry_delay=self.settings.reconnect.delay_seconds,
            backoff_factor=self.settings.reconnect.backoff_factor,
            max_delay=self.settings.reconnect.max_delay_seconds,
            sleep=sleep,
            on_state_change=self._on_connection_change,
        )
        self.polling = PollingFallback(
            self._config_client.fetch_display_config,
            self._apply_config,
            interval=self.settings.polling.interval_seconds,
            sleep=sleep,
        )
        # Operator edits announce themselves here so the display need not wait for the next poll
        self.config_watch = ConnectionSupervisor(
            self.transport,
            config_topic(self.settings.location_id),
            self._on_config_message,
            retry_delay=self.settings.reconnect.delay_seconds,
            backoff_factor=self.settings.reconnect.backoff_factor,
            max_delay=self.settings.reconnect.max_delay_seconds,
            sleep=sleep,
        )
        self.responder =CustomerResponder(self.transport, self.settings.location_id, self.machine)

    @property
    def mode(self) -> DisplayMode:
        return self.machine.mode

    @property
    def connection(self) -> ConnectionState:
        return self.supervisor.state

    async def start(self) -> None:
        logger.info("Starting display runtime for location %s", self.settings.location_id)
        if self.machine.mode == DisplayMode.STANDBY:
            self.scheduler.start()
        await self.supervisor.start()
        await self.config_watch.start()
        await self.polling.start()

    async def stop(self) -> None:
        logger.info("Stopping display runtime")
        self.scheduler.cancel()
        self.machine.close()
        await self.polling.stop()
        await self.config_watch.stop()
        await self.supervisor.stop()
        try:
            await self.transport.aclose()
        except Exception as e:
            logger.warning("Error closing transport: %s", e)
        await self._config_client.aclose()

    def snapshot(self) -> Dict[str, Any]:
        state = self.machine.snapshot()
        state["connection"] = self.supervisor.state.value
        state["ad"] = self.scheduler.current.to_wire() if self.machine.mode == DisplayMode.STANDBY else None
        state["adIndex"] = self.scheduler.index
        state["branding"] = self.branding.to_wire()
        state["ticker"] = self.ticker.to_wire()
        return state

    # ============================================================
    # UI fan-out
    # ============================================================

    def register_ui(self) -> asyncio.Queue[DisplayEvent]:
        queue: asyncio.Queue[DisplayEvent] = asyncio.Queue(maxsize=self.settings.performance.ui_event_queue_size)
        self._ui_subscribers.append(queue)
        return queue

    def unregister_ui(self, queue: asyncio.Queue[DisplayEvent]) -> None:
        if queue in self._ui_subscribers:
            self._ui_subscribers.remove(queue)

    def _broadcast(self, event: DisplayEvent) -> None:
        """Push to every renderer; a slow renderer loses its oldest event."""
        for queue in list(self._ui_subscribers):
            try:
                if queue.full():
                    try:
                        queue.get_nowait()
                    except QueueEmpty:
                        pass
                queue.put_nowait(event)
            except Exception as e:
                logger.warning("Failed to broadcast event to subscriber: %s", e)

    # ============================================================
    # Callbacks
    # ============================================================

    def _on_transition(self, previous: DisplayMode, mode: DisplayMode, reason: str) -> None:
        if previous == DisplayMode.STANDBY and mode != DisplayMode.STANDBY:
            self.scheduler.cancel()
        elif previous != DisplayMode.STANDBY and mode == DisplayMode.STANDBY:
            self.scheduler.start()
        data = self.machine.snapshot()
        data["reason"] = reason
        self._broadcast(DisplayEvent(type="state", data=data, mode=mode))

    def _on_ad_change(self, item: AdPlaylistItem, index: int) -> None:
        if self.machine.mode != DisplayMode.STANDBY:
            return
        self._broadcast(DisplayEvent(type="ad", data={"index": index, "item": item.to_wire()}, mode=self.machine.mode))

    def _on_connection_change(self, state: ConnectionState) -> None:
        self._broadcast(DisplayEvent(type="connection", data={"state": state.value}, mode=self.machine.mode))

    def _apply_config(self, config: DisplayConfig) -> None:
        ads = self.settings.ads
        branding_changed = config.location_branding != self.branding
        self.branding = config.location_branding
        if config.slide_interval_ms:
            self.scheduler.set_default_duration(config.slide_interval_ms)
        promo = PromoSlide(title=ads.promo_title, description=ads.promo_description, qr_url=ads.promo_url)
        playlist = build_playlist(
            config.operator_slides,
            config.campaigns,
            today=datetime.date.today(),
            promo=promo,
            campaign_default_seconds=ads.campaign_default_seconds,
        )
        changed = self.scheduler.set_playlist(playlist)
        logger.debug("Display config applied (playlist changed=%s)", changed)

        ticker = build_ticker(config)
        if ticker != self.ticker:
            self.ticker = ticker
            self._broadcast(DisplayEvent(type="ticker", data=ticker.to_wire(), mode=self.machine.mode))
        if branding_changed:
            self._broadcast(
                DisplayEvent(type="config", data={"branding": self.branding.to_wire()}, mode=self.machine.mode)
            )

    async def _on_config_message(self, name: str, payload: Dict[str, Any]) -> None:
        if name != CONFIG_CHANGED:
            logger.debug("Ignoring %s on config topic", name)
            return
        logger.info("🔄 Display config changed, refreshing now")
        await self.polling.refresh()


__all__ = ["DisplayRuntime"]
