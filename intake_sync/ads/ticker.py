"""Scrolling ticker shown under the standby slides."""
from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from ..models import WireModel
from .models import DisplayConfig, TickerMessage

DEFAULT_TICKER_SPEED = 30

DEFAULT_TICKER_MESSAGES: tuple[TickerMessage, ...] = (
    TickerMessage(id="default-1", text="Benvenuto! Riparazioni veloci e garantite", emoji="👋"),
    TickerMessage(id="default-2", text="Preventivi gratuiti su tutti i dispositivi", emoji="💰"),
    TickerMessage(id="default-3", text="Tecnici certificati e ricambi originali", emoji="✅"),
)


class Ticker(WireModel):
    enabled: bool = True
    speed: int = DEFAULT_TICKER_SPEED
    messages: List[TickerMessage] = Field(default_factory=lambda: list(DEFAULT_TICKER_MESSAGES))


def build_ticker(config: Optional[DisplayConfig], *, default_speed: int = DEFAULT_TICKER_SPEED) -> Ticker:
    """Location messages (or the defaults) followed by any RSS headlines."""
    if config is None:
        return Ticker(speed=default_speed)
    messages = list(config.ticker_messages) if config.ticker_messages else list(DEFAULT_TICKER_MESSAGES)
    messages.extend(config.ticker_rss_items)
    return Ticker(
        enabled=config.ticker_enabled,
        speed=config.ticker_speed or default_speed,
        messages=messages,
    )


__all__ = ["DEFAULT_TICKER_MESSAGES", "DEFAULT_TICKER_SPEED", "Ticker", "build_ticker"]
