"""Clamping, formatting and timing helpers."""

from __future__ import annotations

import math
import time


def timestamp_now() -> float:
    """Return monotonic time for frame scheduling."""
    return time.monotonic()


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]. NaN clamps to low."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def format_db(db: float, floor: float | None = None) -> str:
    """Format decibels as '+1.5 dB'; at or below floor shows '-inf dB'."""
    if floor is not None and db <= floor:
        return "-inf dB"
    return f"{db:+.1f} dB"


def format_duration(seconds: float) -> str:
    """Format seconds as MM:SS."""
    m, s = divmod(int(seconds), 60)
    return f"{m:02d}:{s:02d}"
