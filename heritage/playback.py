"""Cursor-year playback.

A two-state machine (stopped / running). While running, a single pending
timer re-arms itself after each tick. The timer primitive is injected as a
`schedule(delay_seconds, callback) -> handle` callable whose handle exposes
`cancel()`. By default it is the running asyncio loop's `call_later`, or a
daemon `threading.Timer` when called outside an event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)

STOPPED = "stopped"
RUNNING = "running"

ScheduleFn = Callable[[float, Callable[[], None]], Any]


def asyncio_schedule(delay: float, callback: Callable[[], None]) -> Any:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # no loop: ticks arrive on a timer thread
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
    return loop.call_later(delay, callback)
class PlaybackScheduler:
    def __init__(
        self,
        on_tick: Callable[[], None],
        *,
        interval_ms: int = 800,
        schedule: Optional[ScheduleFn] = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._on_tick = on_tick
        self.interval_ms = interval_ms
        self._schedule = schedule or asyncio_schedule
        self._handle: Any = None
        # bumped on every start/stop so a stale timer callback can tell it was cancelled
        self._generation = 0
        self.status = STOPPED

    @property
    def running(self) -> bool:
        return self.status == RUNNING

    def start(self) -> bool:
        if self.running:
            return False
        # arm first: a schedule failure must leave the scheduler stopped
        generation = self._generation + 1
        self._arm(generation)
        self._generation = generation
        self.status = RUNNING
        logger.info("playback started (every %d ms)", self.interval_ms)
        return True

    def stop(self) -> bool:
        if not self.running:
            return False
        self.status = STOPPED
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.info("playback stopped")
        return True

    def tick(self) -> bool:
        """Advance once. Ignored while stopped."""
        if not self.running:
            return False
        logger.debug("playback tick")
        self._on_tick()
        return True

    def _arm(self, generation: int) -> None:
        self._handle = self._schedule(self.interval_ms / 1000.0, lambda: self._fire(generation))

    def _fire(self, generation: int) -> None:
        if generation != self._generation or not self.running:
            return
        self._handle = None
        self.tick()
        if self.running and generation == self._generation:
            self._arm(generation)
