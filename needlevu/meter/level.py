"""Level detection: spectral byte magnitudes -> loudness in dB."""

from __future__ import annotations

import math
from typing import Sequence, Union

import numpy as np

from .state import MIN_DB

Samples = Union[bytes, bytearray, memoryview, np.ndarray, Sequence[int]]

DEFAULT_GAIN = 1.6
ESTIMATORS = ("rms", "mean")


def to_decibels(amplitude: float) -> float:
    """Convert a linear amplitude in [0, 1] to dB, floored at MIN_DB."""
    if not amplitude > 0.0:  # also catches NaN
        return MIN_DB
    return max(20.0 * math.log10(amplitude), MIN_DB)


def _as_magnitudes(samples: Samples) -> np.ndarray | None:
    if isinstance(samples, (bytes, bytearray, memoryview)):
        data = np.frombuffer(samples, dtype=np.uint8).astype(np.float64)
    else:
        try:
            data = np.asarray(samples, dtype=np.float64).ravel()
        except (TypeError, ValueError):
            return None
    if data.size == 0:
        return None
    data = np.nan_to_num(data, nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(data, 0.0, 255.0)


def aggregate_amplitude(samples: Samples, estimator: str = "rms", gain: float = DEFAULT_GAIN) -> float:
    """Reduce one frame of byte magnitudes to a single amplitude in [0, 1].

    ``rms`` is the root-mean-square of ``b / 255``; ``mean`` is the plain
    average. Either is scaled by ``gain`` and then clamped to [0, 1].
    Empty or malformed buffers aggregate to 0.
    """
    if estimator not in ESTIMATORS:
        raise ValueError(f"Unknown estimator: {estimator!r}. Must be one of {list(ESTIMATORS)}")
    data = _as_magnitudes(samples)
    if data is None:
        return 0.0
    amplitudes = data / 255.0
    if estimator == "rms":
        aggregate = float(np.sqrt(np.mean(amplitudes * amplitudes)))
    else:
        aggregate = float(np.mean(amplitudes))
    return min(max(aggregate * gain, 0.0), 1.0)


def detect_level(
    samples: Samples | None,
    *,
    estimator: str = "rms",
    gain: float = DEFAULT_GAIN,
) -> float:
    """Return the instantaneous loudness of one frame in dB.

    ``None`` means no capture session is attached and reads as silence.
    The result is >= MIN_DB; there is no upper clamp here.
    """
    if samples is None:
        return MIN_DB
    return to_decibels(aggregate_amplitude(samples, estimator, gain))
