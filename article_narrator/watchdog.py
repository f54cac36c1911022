"""Stall detection for an in-flight synthesis."""

import asyncio
import logging
import time
from typing import Callable

from article_narrator.errors import StallTimeout
from article_narrator.models import WatchdogState

logger = logging.getLogger(__name__)


class StallWatchdog:
    """Reports a StallTimeout once if synthesis stops making progress.

    A cancelled watchdog never fires, even if its last tick was already
    scheduled when cancel() ran.
    """

    def __init__(
        self,
        state: WatchdogState,
        on_stall: Callable[[StallTimeout], None],
        clock=time.monotonic,
    ):
        self.state = state
        self.on_stall = on_stall
        self.clock = clock
        self.cancelled = False
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        self.state.touch(self.clock())
        self._task = asyncio.get_running_loop().create_task(self._poll())

    def cancel(self) -> None:
        self.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def check(self) -> bool:
        """One tick. Returns True if the stall fired."""
        if self.cancelled:
            return False
        silent_for = self.clock() - self.state.last_progress_at
        if silent_for <= self.state.timeout:
            return False

        self.cancelled = True
        logger.warning("No synthesis progress for %.1fs, giving up", silent_for)
        self.on_stall(StallTimeout(f"Speech synthesis stalled for {silent_for:.0f} seconds."))
        return True

    async def _poll(self) -> None:
        while not self.cancelled:
            await asyncio.sleep(self.state.poll_interval)
            if self.check():
                return
