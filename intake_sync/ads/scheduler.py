"""Per-item advertisement rotation."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import List, Optional, Sequence

from ..clock import Clock, TimerHandle, resolve_clock
from .models import AdPlaylistItem
from .playlist import DEFAULT_SLIDES

logger = logging.getLogger(__name__)

AdChangeCallback = Callable[[AdPlaylistItem, int], None]


class AdScheduler:
    """
    Rotates the playlist with one single-shot timer per item.

    Every item is shown for its own ``display_duration_ms`` (or the default),
    so the timer is rescheduled on each advance rather than ticking at a fixed
    rate. :meth:`cancel` keeps the index; the next :meth:`start` resumes on the
    same item.
    """

    def __init__(
        self,
        playlist: Optional[Sequence[AdPlaylistItem]] = None,
        *,
        default_duration_ms: int = 5000,
        clock: Optional[Clock] = None,
        on_change: Optional[AdChangeCallback] = None,
    ) -> None:
        self._playlist: List[AdPlaylistItem] = list(playlist) if playlist else list(DEFAULT_SLIDES)
        self.default_duration_ms = default_duration_ms
        self._clock = clock
        self._on_change = on_change
        self._index = 0
        self._timer: Optional[TimerHandle] = None
        self._running = False

    @property
    def playlist(self) -> List[AdPlaylistItem]:
        return list(self._playlist)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> AdPlaylistItem:
        return self._playlist[self._index]

    @property
    def running(self) -> bool:
        return self._running

    def duration_ms(self, item: AdPlaylistItem) -> int:
        return item.display_duration_ms or self.default_duration_ms

    def set_default_duration(self, duration_ms: int) -> None:
        self.default_duration_ms = duration_ms

    def set_playlist(self, items: Sequence[AdPlaylistItem]) -> bool:
        """Swap the playlist; returns False when nothing changed."""
        new_items = list(items) if items else list(DEFAULT_SLIDES)
        if new_items == self._playlist:
            return False
        self._playlist = new_items
        self._index %= len(new_items)
        logger.info("Ad playlist updated: %d items, resuming at %d", len(new_items), self._index)
        if self._running:
            self._schedule()
        self._notify()
        return True

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.debug("Ad rotation started at item %d", self._index)
        self._schedule()
        self._notify()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._running:
            logger.debug("Ad rotation paused at item %d", self._index)
        self._running = False

    def advance(self) -> AdPlaylistItem:
        self._index = (self._index + 1) % len(self._playlist)
        if self._running:
            self._schedule()
        self._notify()
        return self.current

    def _schedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        delay = self.duration_ms(self.current) / 1000.0
        self._timer = resolve_clock(self._clock).call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._running:
            self.advance()

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.current, self._index)
        except Exception:
            logger.exception("Ad change callback failed")


__all__ = ["AdChangeCallback", "AdScheduler"]
