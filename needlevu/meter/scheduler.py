"""Frame scheduler: runs the engine once per display frame."""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from ..utils import timestamp_now
from .engine import MeterEngine
from .state import MeterReading

DEFAULT_REFRESH_HZ = 60.0


class FrameScheduler:
    """Ticks a MeterEngine at a pinned rate on a cooperative loop.

    The needle physics are per-frame, so the period is fixed. A late
    wake-up runs a single tick and re-aligns; missed frames are dropped,
    never replayed in a burst.
    """

    def __init__(
        self,
        engine: MeterEngine,
        refresh_hz: float = DEFAULT_REFRESH_HZ,
        on_tick: Callable[[MeterReading], None] | None = None,
    ) -> None:
        if refresh_hz <= 0:
            raise ValueError("refresh_hz must be > 0")
        self.engine = engine
        self.refresh_hz = refresh_hz
        self.ticks: int = 0
        self._on_tick = on_tick
        self._in_tick = False

    @property
    def period(self) -> float:
        return 1.0 / self.refresh_hz

    def tick(self) -> MeterReading | None:
        """Run one engine frame. Returns None if a tick is already running."""
        if self._in_tick:
            logger.debug("Skipping re-entrant meter tick")
            return None
        self._in_tick = True
        try:
            reading = self.engine.tick()
            self.ticks += 1
        finally:
            self._in_tick = False
        if self._on_tick:
            self._on_tick(reading)
        return reading

    async def run(self, stop: asyncio.Event | None = None, max_ticks: int | None = None) -> int:
        """Tick until stop is set or max_ticks frames have run. Returns ticks run."""
        period = self.period
        start_ticks = self.ticks
        next_due = timestamp_now()
        while True:
            if stop is not None and stop.is_set():
                break
            if max_ticks is not None and self.ticks - start_ticks >= max_ticks:
                break
            self.tick()
            next_due += period
            now = timestamp_now()
            if next_due < now:
                next_due = now
            await asyncio.sleep(next_due - now)
        return self.ticks - start_ticks
