"""Tests for watchdog module (Layer 2c)."""

import asyncio

from article_narrator.errors import StallTimeout
from article_narrator.models import WatchdogState
from article_narrator.watchdog import StallWatchdog


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_check_fires_once_after_timeout():
    clock = FakeClock()
    stalls = []
    dog = StallWatchdog(WatchdogState(last_progress_at=0.0, timeout=15.0), stalls.append, clock)

    clock.now = 15.0
    assert not dog.check()
    clock.now = 15.1
    assert dog.check()
    clock.now = 100.0
    assert not dog.check()

    assert len(stalls) == 1
    assert isinstance(stalls[0], StallTimeout)
    assert dog.cancelled


def test_progress_resets_deadline():
    clock = FakeClock()
    state = WatchdogState(last_progress_at=0.0, timeout=15.0)
    dog = StallWatchdog(state, lambda e: None, clock)
    clock.now = 14.0
    state.touch(clock())
    clock.now = 20.0
    assert not dog.check()


def test_cancelled_never_fires():
    clock = FakeClock()
    stalls = []
    dog = StallWatchdog(WatchdogState(last_progress_at=0.0, timeout=1.0), stalls.append, clock)
    dog.cancel()
    clock.now = 50.0
    assert not dog.check()
    assert stalls == []


def test_poll_loop_reports_stall():
    """With no progress the task reports exactly once and exits."""
    stalls = []

    async def go():
        state = WatchdogState(timeout=0.02, poll_interval=0.01)
        dog = StallWatchdog(state, stalls.append)
        dog.start()
        await asyncio.sleep(0.15)
        return dog

    dog = asyncio.run(go())
    assert len(stalls) == 1
    assert dog.cancelled


def test_cancel_stops_poll_loop():
    stalls = []

    async def go():
        dog = StallWatchdog(WatchdogState(timeout=0.05, poll_interval=0.01), stalls.append)
        dog.start()
        await asyncio.sleep(0.02)
        dog.cancel()
        await asyncio.sleep(0.1)

    asyncio.run(go())
    assert stalls == []
