"""Peak hold with linear decay."""

from __future__ import annotations

from .state import MIN_DB, MeterState

DEFAULT_DECAY_RATE = 0.04  # dB per frame


def advance_peak(state: MeterState, decay_rate: float = DEFAULT_DECAY_RATE) -> None:
    """Snap the peak up to the needle, or let it fall by decay_rate."""
    if state.value > state.peak:
        state.peak = state.value
    else:
        state.peak -= decay_rate
    state.peak = max(state.peak, MIN_DB)


class PeakTracker:
    """advance_peak bound to a configured decay rate."""

    def __init__(self, decay_rate: float = DEFAULT_DECAY_RATE) -> None:
        if decay_rate <= 0:
            raise ValueError("decay_rate must be > 0")
        self.decay_rate = decay_rate

    def advance(self, state: MeterState) -> None:
        advance_peak(state, self.decay_rate)
