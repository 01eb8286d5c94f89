"""Tests for per-item advertisement rotation on a simulated clock."""

from __future__ import annotations

import pytest

from intake_sync.ads.models import CustomSlide
from intake_sync.ads.playlist import DEFAULT_SLIDES
from intake_sync.ads.scheduler import AdScheduler


def _slides(*durations):
    return [
        CustomSlide(id=f"s{i}", title=f"Slide {i}", display_duration_ms=duration)
        for i, duration in enumerate(durations)
    ]


@pytest.fixture()
def shown():
    return []


@pytest.fixture()
def scheduler(clock, shown) -> AdScheduler:
    return AdScheduler(
        _slides(3000, 7000, 5000),
        clock=clock,
        on_change=lambda item, index: shown.append((round(clock.now, 3), item.id)),
    )


class TestRotation:
    def test_each_item_uses_its_own_duration(self, scheduler, clock, shown):
        scheduler.start()
        clock.advance(30.0)
        assert shown == [
            (0.0, "s0"),
            (3.0, "s1"),
            (10.0, "s2"),
            (15.0, "s0"),
            (18.0, "s1"),
            (25.0, "s2"),
            (30.0, "s0"),
        ]

    def test_missing_duration_uses_default(self, clock):
        slides = [CustomSlide(id="a", title="A"), CustomSlide(id="b", title="B", display_duration_ms=1000)]
        scheduler = AdScheduler(slides, default_duration_ms=4000, clock=clock)
        scheduler.start()
        clock.advance(3.9)
        assert scheduler.current.id == "a"
        clock.advance(0.1)
        assert scheduler.current.id == "b"

    def test_empty_playlist_falls_back_to_defaults(self, clock):
        scheduler = AdScheduler([], clock=clock)
        assert scheduler.playlist == list(DEFAULT_SLIDES)


class TestPauseResume:
    def test_cancel_keeps_index_and_stops_timer(self, scheduler, clock):
        scheduler.start()
        clock.advance(3.0)
        assert scheduler.index == 1

        scheduler.cancel()
        assert not scheduler.running
        assert clock.pending == []
        clock.advance(60.0)
        assert scheduler.index == 1

        scheduler.start()
        clock.advance(6.9)
        assert scheduler.index == 1
        clock.advance(0.1)
        assert scheduler.index == 2

    def test_start_twice_schedules_one_timer(self, scheduler, clock):
        scheduler.start()
        scheduler.start()
        assert len(clock.pending) == 1


class TestPlaylistChange:
    def test_identical_playlist_is_noop(self, scheduler, clock):
        scheduler.start()
        clock.advance(3.0)
        assert not scheduler.set_playlist(_slides(3000, 7000, 5000))
        assert scheduler.index == 1

    def test_shorter_playlist_clamps_index(self, scheduler, clock):
        scheduler.start()
        clock.advance(10.0)
        assert scheduler.index == 2

        assert scheduler.set_playlist(_slides(1000, 2000))
        assert scheduler.index == 0
        assert len(clock.pending) == 1
        clock.advance(1.0)
        assert scheduler.index == 1
