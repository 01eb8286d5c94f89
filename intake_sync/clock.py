"""Timer seam for display timers.

The running asyncio loop already satisfies :class:`Clock`; tests pass a
simulated clock instead so rotation and dwell timing can be checked without
waiting in real time.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


def resolve_clock(clock: Optional[Clock]) -> Clock:
    """Return ``clock`` or the running event loop."""
    if clock is not None:
        return clock
    return asyncio.get_running_loop()


__all__ = ["Clock", "TimerHandle", "resolve_clock"]
