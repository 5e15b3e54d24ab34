"""Capture source enumeration via sounddevice."""

from __future__ import annotations

from dataclasses import dataclass

LOOPBACK_HINTS = ("monitor", "loopback", "stereo mix", "what u hear")


@dataclass(frozen=True)
class CaptureTarget:
    """An input device that can be metered."""
    id: str            # "<host api>:<device name>", stable across reboots
    name: str          # display name
    device: int        # sounddevice index at enumeration time
    channels: int
    sample_rate: float

    @property
    def is_loopback(self) -> bool:
        """True for desktop-audio monitor sources (PulseAudio/PipeWire, WASAPI)."""
        lowered = self.name.lower()
        return any(hint in lowered for hint in LOOPBACK_HINTS)

    @property
    def label(self) -> str:
        return f"{self.name} (desktop audio)" if self.is_loopback else self.name


def list_sources(sd: object = None) -> list[CaptureTarget]:
    """Return every input-capable device, in sounddevice order."""
    if sd is None:
        # Imported here so non-audio code paths work without PortAudio
        import sounddevice as sd
    devices = sd.query_devices()
    hostapis = sd.query_hostapis()
    targets: list[CaptureTarget] = []
    for i, d in enumerate(devices):
        if d["max_input_channels"] <= 0:
            continue
        api = hostapis[d["hostapi"]]["name"] if d.get("hostapi") is not None else "?"
        targets.append(CaptureTarget(
            id=f"{api}:{d['name']}",
            name=d["name"],
            device=i,
            channels=int(d["max_input_channels"]),
            sample_rate=float(d["default_samplerate"]),
        ))
    return targets


def find_source(source_id: str, targets: list[CaptureTarget]) -> CaptureTarget | None:
    for target in targets:
        if target.id == source_id:
            return target
    return None
