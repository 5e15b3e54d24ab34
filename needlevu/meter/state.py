"""Meter state: the needle's position, peak hold and physics terms."""

from __future__ import annotations

from dataclasses import dataclass

from ..utils import clamp

MIN_DB = -20.0
MAX_DB = 3.0
PEAK_LAMP_DB = -3.0


def normalize(db: float) -> float:
    """Map a dB value onto the scale as a fraction in [0.0, 1.0]."""
    return clamp((db - MIN_DB) / (MAX_DB - MIN_DB), 0.0, 1.0)


def peak_lamp_active(peak: float, threshold: float = PEAK_LAMP_DB) -> bool:
    """True when the peak-hold value is above the lamp threshold."""
    return peak > threshold


@dataclass(frozen=True)
class MeterReading:
    """Immutable snapshot of a meter for renderers."""
    value: float   # dB, within [MIN_DB, MAX_DB]
    peak: float    # dB, within [MIN_DB, MAX_DB]

    @property
    def normalized(self) -> float:
        return normalize(self.value)

    @property
    def peak_normalized(self) -> float:
        return normalize(self.peak)

    @property
    def peak_lamp(self) -> bool:
        return peak_lamp_active(self.peak)


@dataclass
class MeterState:
    """Mutable needle state owned by a single MeterEngine.

    ``value`` is only bounded below: a spring-loaded needle may swing past
    MAX_DB for a few frames. Consumers should read through ``reading()``,
    which clamps both fields to the scale.
    """
    value: float = MIN_DB
    peak: float = MIN_DB
    velocity: float = 0.0
    acceleration: float = 0.0

    def reset(self) -> None:
        self.value = MIN_DB
        self.peak = MIN_DB
        self.velocity = 0.0
        self.acceleration = 0.0

    def reading(self) -> MeterReading:
        return MeterReading(
            value=clamp(self.value, MIN_DB, MAX_DB),
            peak=clamp(self.peak, MIN_DB, MAX_DB),
        )
