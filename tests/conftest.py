"""Shared test doubles."""

from __future__ import annotations

import pytest

from needlevu.audio.sources import CaptureTarget


class FakeSource:
    """A sample source returning a fixed buffer; can be told to fail."""

    def __init__(self, magnitudes=None, fail: bool = False) -> None:
        self.magnitudes = magnitudes
        self.fail = fail
        self.reads = 0
        self.stopped = False

    def get_latest_magnitudes(self):
        self.reads += 1
        if self.fail:
            raise RuntimeError("stream stalled")
        return self.magnitudes

    def stop(self) -> None:
        self.stopped = True


LOUD = bytes([255]) * 512
QUIET = bytes([8]) * 512
SILENT = bytes(512)


def make_target(name: str, api: str = "ALSA", device: int = 0) -> CaptureTarget:
    return CaptureTarget(id=f"{api}:{name}", name=name, device=device, channels=2, sample_rate=48000.0)


@pytest.fixture
def loud_source() -> FakeSource:
    return FakeSource(LOUD)
