"""Spectrum analyzer: PCM blocks -> byte magnitudes per frequency bin."""

from __future__ import annotations

import numpy as np

VALID_FFT_SIZES = [256, 512, 1024, 2048, 4096, 8192]

MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0


class SpectrumAnalyzer:
    """Keeps the last ``fft_size`` samples and produces a byte spectrum.

    Each call to ``process()`` windows the buffer (Blackman), takes a real
    FFT, blends the magnitudes with the previous frame by ``smoothing`` and
    maps [MIN_DECIBELS, MAX_DECIBELS] linearly onto 0-255.
    Output length is ``fft_size // 2``.
    """

    def __init__(self, fft_size: int = 2048, smoothing: float = 0.25) -> None:
        if fft_size not in VALID_FFT_SIZES:
            raise ValueError(f"Invalid fft_size: {fft_size}. Must be one of {VALID_FFT_SIZES}")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        self.fft_size = fft_size
        self.smoothing = smoothing
        self._window = np.blackman(fft_size).astype(np.float32)
        self._buffer = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float32)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def push(self, block: np.ndarray) -> None:
        """Append mono float32 samples to the rolling buffer."""
        block = np.asarray(block, dtype=np.float32).ravel()
        n = block.size
        if n == 0:
            return
        if n >= self.fft_size:
            self._buffer[:] = block[-self.fft_size:]
        else:
            self._buffer = np.roll(self._buffer, -n)
            self._buffer[-n:] = block

    def process(self) -> np.ndarray:
        """Compute the current byte spectrum (uint8, length bin_count)."""
        spectrum = np.fft.rfft(self._buffer * self._window)[: self.bin_count]
        magnitude = np.abs(spectrum).astype(np.float32) / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitude

        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)
        scaled = (db - MIN_DECIBELS) * (255.0 / (MAX_DECIBELS - MIN_DECIBELS))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)

    def reset(self) -> None:
        self._buffer[:] = 0.0
        self._smoothed[:] = 0.0
