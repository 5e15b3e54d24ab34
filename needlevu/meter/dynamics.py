"""Needle dynamics: how the displayed value chases the measured level.

Both models advance once per frame and assume a fixed frame period; the
constants are per-frame, not per-second.
"""

from __future__ import annotations

import math
from typing import Protocol

from .state import MIN_DB, MeterState

DEFAULT_SPRING_CONSTANT = 0.07
DEFAULT_DAMPING = 0.88
DEFAULT_SMOOTHING_ALPHA = 0.2


class NeedleDynamics(Protocol):
    name: str

    def advance(self, state: MeterState, target_db: float) -> None: ...


def _finite_target(target_db: float) -> float:
    return target_db if math.isfinite(target_db) else MIN_DB


class SpringDamper:
    """Second-order model: the needle is a unit mass on a damped spring.

    Gives the overshoot and settle of a real moving-coil meter.
    """

    name = "spring"

    def __init__(
        self,
        spring_constant: float = DEFAULT_SPRING_CONSTANT,
        damping: float = DEFAULT_DAMPING,
    ) -> None:
        if spring_constant <= 0:
            raise ValueError("spring_constant must be > 0")
        if not 0 < damping < 1:
            raise ValueError("damping must be between 0 and 1 (exclusive)")
        self.spring_constant = spring_constant
        self.damping = damping

    def advance(self, state: MeterState, target_db: float) -> None:
        target = _finite_target(target_db)
        state.acceleration = (target - state.value) * self.spring_constant
        state.velocity = (state.velocity + state.acceleration) * self.damping
        state.value += state.velocity

        if not math.isfinite(state.value):
            state.value = MIN_DB
            state.velocity = 0.0
            state.acceleration = 0.0
        elif state.value < MIN_DB:
            # Needle rests on the end stop: unlike a bare clamp, downward
            # velocity is dropped so the next rise starts from rest
            state.value = MIN_DB
            state.velocity = max(state.velocity, 0.0)

    def __repr__(self) -> str:
        return f"SpringDamper(spring_constant={self.spring_constant}, damping={self.damping})"


class ExponentialSmoothing:
    """First-order model: monotonic approach, no overshoot."""

    name = "smoothing"

    def __init__(self, alpha: float = DEFAULT_SMOOTHING_ALPHA) -> None:
        if not 0 < alpha <= 1:
            raise ValueError("alpha must be in (0, 1]")
        self.alpha = alpha

    def advance(self, state: MeterState, target_db: float) -> None:
        target = _finite_target(target_db)
        value = state.value * (1.0 - self.alpha) + target * self.alpha
        if not math.isfinite(value):
            value = MIN_DB
        state.value = max(value, MIN_DB)
        state.velocity = 0.0
        state.acceleration = 0.0

    def __repr__(self) -> str:
        return f"ExponentialSmoothing(alpha={self.alpha})"


DYNAMICS = {
    SpringDamper.name: SpringDamper,
    ExponentialSmoothing.name: ExponentialSmoothing,
}


def make_dynamics(name: str, **params: float) -> NeedleDynamics:
    """Build a dynamics model by name ("spring" or "smoothing")."""
    try:
        cls = DYNAMICS[name]
    except KeyError:
        raise ValueError(f"Unknown dynamics: {name!r}. Must be one of {sorted(DYNAMICS)}") from None
    return cls(**params)
