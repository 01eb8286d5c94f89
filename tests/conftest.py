"""Shared fixtures for the intake display test suite."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Tuple

import pytest

from intake_sync.transport.memory import InMemoryTransport


class FakeTimer:
    def __init__(self, clock: "FakeClock", when: float, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        self.clock = clock
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Simulated time: timers only fire when the test advances the clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(self, self.now + delay, callback, args)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays and yields once."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def transport() -> InMemoryTransport:
    return InMemoryTransport()


