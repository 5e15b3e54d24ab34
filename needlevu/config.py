"""Meter configuration: needle model, level detection, capture and logging settings."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path

from .audio.analyzer import VALID_FFT_SIZES
from .meter.dynamics import DYNAMICS
from .meter.level import ESTIMATORS

DEFAULT_CONFIG_PATH = Path.home() / "needlevu_config.json"

VALID_SAMPLE_RATES = [44100, 48000, 96000]
VALID_LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class MeterConfig:
    last_source_id: str = ""
    dynamics: str = "spring"         # "spring" or "smoothing"
    spring_constant: float = 0.07
    damping: float = 0.88
    smoothing_alpha: float = 0.2
    decay_rate: float = 0.04         # dB per frame
    estimator: str = "rms"           # "rms" or "mean"
    gain: float = 1.6
    refresh_hz: float = 60.0         # meter ticks per second
    render_hz: float = 30.0          # widget repaints per second
    sample_rate: int = 48000
    fft_size: int = 2048
    smoothing: float = 0.25          # analyzer smoothing between spectra
    log_file: str = str(Path.home() / ".needlevu" / "needlevu.log")
    log_level: str = "INFO"

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.dynamics not in DYNAMICS:
            errors.append(f"Invalid dynamics: {self.dynamics}. Must be one of {sorted(DYNAMICS)}")
        if self.spring_constant <= 0:
            errors.append("spring_constant must be > 0")
        if not 0 < self.damping < 1:
            errors.append("damping must be between 0 and 1 (exclusive)")
        if not 0 < self.smoothing_alpha <= 1:
            errors.append("smoothing_alpha must be in (0, 1]")
        if self.decay_rate <= 0:
            errors.append("decay_rate must be > 0")
        if self.estimator not in ESTIMATORS:
            errors.append(f"Invalid estimator: {self.estimator}. Must be one of {list(ESTIMATORS)}")
        if self.gain <= 0:
            errors.append("gain must be > 0")
        if self.refresh_hz <= 0:
            errors.append("refresh_hz must be > 0")
        if self.render_hz <= 0:
            errors.append("render_hz must be > 0")
        if self.sample_rate not in VALID_SAMPLE_RATES:
            errors.append(f"Invalid sample rate: {self.sample_rate}. Must be one of {VALID_SAMPLE_RATES}")
        if self.fft_size not in VALID_FFT_SIZES:
            errors.append(f"Invalid fft size: {self.fft_size}. Must be one of {VALID_FFT_SIZES}")
        if not 0 <= self.smoothing < 1:
            errors.append("smoothing must be in [0, 1)")
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")
        return errors

    def dynamics_params(self) -> dict[str, float]:
        """Keyword arguments for make_dynamics() under the selected model."""
        if self.dynamics == "smoothing":
            return {"alpha": self.smoothing_alpha}
        return {"spring_constant": self.spring_constant, "damping": self.damping}

    def set_value(self, key: str, raw: str) -> None:
        """Set a field from its string form, converting to the field's type."""
        if key not in self.__dataclass_fields__:
            raise KeyError(key)
        current = getattr(self, key)
        value: object
        if isinstance(current, int):
            value = int(raw)
        elif isinstance(current, float):
            value = float(raw)
        else:
            value = raw
        setattr(self, key, value)

    def save(self, path: Path = DEFAULT_CONFIG_PATH) -> None:
        path.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls, path: Path = DEFAULT_CONFIG_PATH) -> MeterConfig:
        if not path.exists():
            return cls()
        data = json.loads(path.read_text())
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)

    @classmethod
    def exists(cls, path: Path = DEFAULT_CONFIG_PATH) -> bool:
        return path.exists()
