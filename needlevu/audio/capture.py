"""Live capture sessions and the manager that swaps them under the engine."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np
from loguru import logger

from ..meter.source import SampleSource, SourceSlot
from .analyzer import SpectrumAnalyzer
from .sources import CaptureTarget, find_source, list_sources

if TYPE_CHECKING:
    import sounddevice


class CaptureError(Exception):
    """A capture session could not be opened."""


@dataclass
class CaptureSettings:
    sample_rate: int = 48000
    fft_size: int = 2048
    smoothing: float = 0.25

    @property
    def blocksize(self) -> int:
        return self.fft_size // 4


@dataclass(frozen=True)
class CaptureOutcome:
    """Result of CaptureManager.start_capture()."""
    session_id: int
    source_id: str
    error: str | None = None
    superseded: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.superseded


class CaptureSession:
    """A running input stream feeding a SpectrumAnalyzer.

    The stream callback runs on the PortAudio thread and publishes each new
    spectrum by replacing a single reference, so get_latest_magnitudes()
    never blocks and never sees a half-written array.
    """

    def __init__(self, target: CaptureTarget, settings: CaptureSettings) -> None:
        self.target = target
        self.settings = settings
        self.analyzer = SpectrumAnalyzer(settings.fft_size, settings.smoothing)
        self.overflows: int = 0
        self._latest: np.ndarray | None = None
        self._stream = None

    def _callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info: object,
        status: sounddevice.CallbackFlags,
    ) -> None:
        """Audio stream callback, runs in the real-time audio thread."""
        if status.input_overflow:
            self.overflows += 1
        if indata.shape[1] > 1:
            mono = indata.mean(axis=1)
        else:
            mono = indata[:, 0]
        self.analyzer.push(mono)
        self._latest = self.analyzer.process()

    def start(self) -> None:
        import sounddevice as sd

        channels = max(1, min(self.target.channels, 2))
        self._stream = sd.InputStream(
            samplerate=self.settings.sample_rate,
            blocksize=self.settings.blocksize,
            device=self.target.device,
            channels=channels,
            dtype="float32",
            callback=self._callback,
        )
        self._stream.start()

    def get_latest_magnitudes(self) -> np.ndarray | None:
        return self._latest

    def stop(self) -> None:
        if self._stream:
            try:
                self._stream.stop()
            finally:
                self._stream.close()
                self._stream = None
        self._latest = None

    @property
    def is_running(self) -> bool:
        return self._stream is not None


def open_capture(target: CaptureTarget, settings: CaptureSettings) -> CaptureSession:
    """Open and start a capture session. Blocking; run it off the event loop."""
    import sounddevice as sd

    session = CaptureSession(target, settings)
    try:
        session.start()
    except (sd.PortAudioError, ValueError) as e:
        session.stop()
        raise CaptureError(f"Could not open '{target.name}': {e}") from e
    return session


Lister = Callable[[], "list[CaptureTarget]"]
Opener = Callable[[CaptureTarget, CaptureSettings], SampleSource]


class CaptureManager:
    """Starts and stops capture sessions for one engine's SourceSlot.

    Each start claims a fresh session id from the slot. Whatever the start
    opens is attached only if that id is still the latest when it finishes;
    otherwise it is stopped and the outcome is marked superseded.
    """

    def __init__(
        self,
        slot: SourceSlot,
        settings: CaptureSettings | None = None,
        lister: Lister = list_sources,
        opener: Opener = open_capture,
    ) -> None:
        self.slot = slot
        self.settings = settings or CaptureSettings()
        self._lister = lister
        self._opener = opener
        self.source_id: str | None = None
        self._releasing: asyncio.Future | None = None

    @property
    def active(self) -> bool:
        return self.slot.current.source is not None

    @property
    def session_id(self) -> int:
        return self.slot.current.session_id

    async def _stop_source(self, source: SampleSource | None) -> None:
        if source is None:
            return
        try:
            await asyncio.to_thread(source.stop)
        except Exception as e:
            logger.warning(f"Error stopping capture: {e}")

    def _release(self, source: SampleSource | None) -> asyncio.Future:
        """Queue the stop of a detached source behind any stop still running.

        The returned future completes only once every source detached so far
        has been stopped.
        """
        prior = self._releasing

        async def release() -> None:
            if prior is not None and not prior.done():
                await prior
            await self._stop_source(source)

        self._releasing = asyncio.ensure_future(release())
        return self._releasing

    async def start_capture(self, source_id: str) -> CaptureOutcome:
        session_id, previous = self.slot.claim()
        self.source_id = None
        # Cancelling this start must not cut the release short
        await asyncio.shield(self._release(previous))

        if not self.slot.is_current(session_id):
            return CaptureOutcome(session_id, source_id, superseded=True)

        logger.info(f"Starting capture session {session_id} on {source_id!r}")
        try:
            targets = await asyncio.to_thread(self._lister)
            target = find_source(source_id, targets)
            if target is None:
                raise CaptureError(f"Unknown capture source: {source_id!r}")
            opening = asyncio.ensure_future(asyncio.to_thread(self._opener, target, self.settings))
            try:
                source = await asyncio.shield(opening)
            except asyncio.CancelledError:
                opening.add_done_callback(_stop_orphan)
                raise
        except asyncio.CancelledError:
            logger.info(f"Capture session {session_id} cancelled")
            raise
        except Exception as e:
            if not self.slot.is_current(session_id):
                return CaptureOutcome(session_id, source_id, superseded=True)
            logger.error(f"Capture session {session_id} failed: {e}")
            return CaptureOutcome(session_id, source_id, error=str(e))

        if not self.slot.attach(session_id, source):
            logger.info(f"Capture session {session_id} superseded, discarding")
            await self._stop_source(source)
            return CaptureOutcome(session_id, source_id, superseded=True)

        self.source_id = source_id
        logger.info(f"Capture session {session_id} active")
        return CaptureOutcome(session_id, source_id)

    async def stop_capture(self) -> None:
        """Detach and stop the current session; the meter falls to silence."""
        _, previous = self.slot.claim()
        self.source_id = None
        if previous is not None:
            logger.info("Capture stopped")
        await asyncio.shield(self._release(previous))

    def close(self) -> None:
        """Synchronous shutdown for app exit."""
        _, previous = self.slot.claim()
        self.source_id = None
        if previous is not None:
            previous.stop()


def _stop_orphan(future: asyncio.Future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    source = future.result()
    logger.info("Stopping capture opened by a cancelled start")
    source.stop()
