"""Fixed-cadence, non-overlapping reconciliation scheduler."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)


class Poller:
    """Runs `tick` every `interval` seconds with at most one tick in flight.

    A tick that comes due while the previous one is still outstanding is
    skipped, not queued. `stop()` cancels the schedule and the in-flight tick;
    nothing starts once stop has been requested.
    """

    def __init__(self, tick: Callable[[], Awaitable[None]], interval: float = 2.0, name: str = "poller"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._tick = tick
        self.interval = float(interval)
        self.name = name

        self._stop_event = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self.ticks_started = 0
        self.ticks_skipped = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._stop_event.is_set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    async def start(self) -> None:
        """Create the background scheduling task; the first tick fires immediately."""
        if self._loop_task is not None:
            logger.warning("%s already started", self.name)
            return
        self._stop_event.clear()
        self._loop_task = asyncio.get_running_loop().create_task(self._schedule_loop())
        logger.info("%s started (every %.2fs)", self.name, self.interval)

    async def stop(self) -> None:
        """Stop scheduling, cancel the in-flight tick and wait for both to finish."""
        self._stop_event.set()
        tasks = [t for t in (self._loop_task, self._in_flight) if t is not None]
        for t in tasks:
            t.cancel()
        for t in tasks:
            try:
                await t
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._in_flight = None
        logger.info("%s stopped", self.name)

    def _fire(self) -> None:
        if self._stop_event.is_set():
            return
        if self.in_flight:
            self.ticks_skipped += 1
            logger.debug("%s: previous tick still running, skipping", self.name)
            return
        self.ticks_started += 1
        self._in_flight = asyncio.get_running_loop().create_task(self._run_tick())

    async def _run_tick(self) -> None:
        try:
            await self._tick()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s tick error: %s", self.name, exc)

    async def _schedule_loop(self) -> None:
        while not self._stop_event.is_set():
            self._fire()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                continue
