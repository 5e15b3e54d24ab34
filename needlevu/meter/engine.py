"""MeterEngine: level detection -> needle dynamics -> peak hold, once per frame."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from loguru import logger

from .dynamics import NeedleDynamics, SpringDamper, make_dynamics
from .level import DEFAULT_GAIN, detect_level
from .peak import PeakTracker
from .source import SourceSlot
from .state import MIN_DB, MeterReading, MeterState

if TYPE_CHECKING:
    from ..config import MeterConfig


class MeterEngine:
    """Owns one meter's state and advances it one frame per tick().

    The engine never touches capture resources. It reads whatever source
    is currently in ``slot`` and treats an empty slot as silence.
    """

    def __init__(
        self,
        dynamics: NeedleDynamics | None = None,
        peak: PeakTracker | None = None,
        estimator: str = "rms",
        gain: float = DEFAULT_GAIN,
        slot: SourceSlot | None = None,
    ) -> None:
        self.state = MeterState()
        self.dynamics: NeedleDynamics = dynamics or SpringDamper()
        self.peak = peak or PeakTracker()
        self.estimator = estimator
        self.gain = gain
        self.slot = slot or SourceSlot()
        self.last_target_db: float = MIN_DB

        # Last buffer successfully read, keyed by the session it came from
        self._last_read: tuple[int, Sequence[int]] | None = None
        self._stalled_session: int | None = None

    @classmethod
    def from_config(cls, config: MeterConfig, slot: SourceSlot | None = None) -> MeterEngine:
        return cls(
            dynamics=make_dynamics(config.dynamics, **config.dynamics_params()),
            peak=PeakTracker(config.decay_rate),
            estimator=config.estimator,
            gain=config.gain,
            slot=slot,
        )

    def set_dynamics(self, dynamics: NeedleDynamics) -> None:
        """Swap the needle model; the needle keeps its position."""
        self.dynamics = dynamics
        self.state.velocity = 0.0
        self.state.acceleration = 0.0
        logger.info(f"Needle dynamics set to {dynamics!r}")

    def reading(self) -> MeterReading:
        return self.state.reading()

    def _read_samples(self) -> Sequence[int] | None:
        session_id, source = self.slot.current
        if source is None:
            self._last_read = None
            return None

        try:
            samples = source.get_latest_magnitudes()
        except Exception as e:
            samples = None
            if self._stalled_session != session_id:
                logger.warning(f"Capture session {session_id} read failed: {e}")
                self._stalled_session = session_id

        if samples is not None:
            self._last_read = (session_id, samples)
            self._stalled_session = None
            return samples

        # Stalled: fall back to the last valid read of this same session
        if self._last_read is not None and self._last_read[0] == session_id:
            return self._last_read[1]
        return None

    def tick(self) -> MeterReading:
        """Advance the meter by one frame and return the new reading."""
        samples = self._read_samples()
        if samples is None:
            target = MIN_DB
        else:
            target = detect_level(samples, estimator=self.estimator, gain=self.gain)
        self.last_target_db = target

        self.dynamics.advance(self.state, target)
        self.peak.advance(self.state)
        return self.state.reading()

    def reset(self) -> None:
        self.state.reset()
        self.last_target_db = MIN_DB
        self._last_read = None
