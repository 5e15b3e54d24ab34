import asyncio
import threading
from types import SimpleNamespace

import numpy as np

from conftest import LOUD, QUIET, FakeSource, make_target
from needlevu.audio.capture import CaptureError, CaptureManager, CaptureSession, CaptureSettings
from needlevu.meter.dynamics import ExponentialSmoothing
from needlevu.meter.engine import MeterEngine
from needlevu.meter.state import MIN_DB

TARGETS = [make_target("Mic", device=0), make_target("Monitor of Speakers", device=3)]
MIC, MONITOR = TARGETS[0].id, TARGETS[1].id


def make_manager(engine, opener):
    return CaptureManager(engine.slot, lister=lambda: TARGETS, opener=opener)


def test_start_capture_attaches_source():
    engine = MeterEngine(dynamics=ExponentialSmoothing(1.0))
    source = FakeSource(LOUD)
    opened = []

    def opener(target, settings):
        opened.append(target)
        return source

    manager = make_manager(engine, opener)
    outcome = asyncio.run(manager.start_capture(MIC))

    assert outcome.ok
    assert outcome.session_id == 1
    assert opened == [TARGETS[0]]
    assert manager.active
    assert manager.source_id == MIC
    engine.tick()
    assert engine.last_target_db == 0.0


def test_switching_stops_previous_session():
    engine = MeterEngine()
    first, second = FakeSource(LOUD), FakeSource(QUIET)
    sources = iter([first, second])
    manager = make_manager(engine, lambda target, settings: next(sources))

    async def scenario():
        await manager.start_capture(MIC)
        return await manager.start_capture(MONITOR)

    outcome = asyncio.run(scenario())
    assert outcome.ok
    assert outcome.session_id == 2
    assert first.stopped
    assert not second.stopped
    assert engine.slot.current.source is second


def test_unknown_source_is_reported_and_meter_goes_silent():
    engine = MeterEngine()
    manager = make_manager(engine, lambda target, settings: FakeSource(LOUD))
    outcome = asyncio.run(manager.start_capture("ALSA:Nope"))

    assert not outcome.ok
    assert not outcome.superseded
    assert "Unknown capture source" in outcome.error
    assert not manager.active
    engine.tick()
    assert engine.reading().value == MIN_DB


def test_open_failure_is_reported():
    engine = MeterEngine()

    def opener(target, settings):
        raise CaptureError("permission denied")

    manager = make_manager(engine, opener)
    outcome = asyncio.run(manager.start_capture(MIC))
    assert outcome.error == "permission denied"
    assert manager.source_id is None
    assert engine.slot.current.source is None


def test_superseded_start_is_discarded():
    engine = MeterEngine(dynamics=ExponentialSmoothing(1.0))
    stale, fresh = FakeSource(LOUD), FakeSource(QUIET)
    stale_entered = threading.Event()
    release_stale = threading.Event()

    def opener(target, settings):
        if target.id == MIC:
            stale_entered.set()
            release_stale.wait(2.0)
            return stale
        return fresh

    manager = make_manager(engine, opener)

    async def scenario():
        stale_task = asyncio.create_task(manager.start_capture(MIC))
        await asyncio.to_thread(stale_entered.wait, 2.0)
        fresh_outcome = await manager.start_capture(MONITOR)
        release_stale.set()
        return await stale_task, fresh_outcome

    stale_outcome, fresh_outcome = asyncio.run(scenario())

    assert fresh_outcome.ok
    assert stale_outcome.superseded
    assert stale_outcome.session_id < fresh_outcome.session_id
    assert stale.stopped
    assert engine.slot.current.source is fresh
    assert manager.source_id == MONITOR

    engine.tick()
    assert stale.reads == 0
    assert engine.last_target_db == MIN_DB  # the quiet source, not the stale loud one


def test_cancelled_start_stops_what_it_opened():
    engine = MeterEngine()
    orphan = FakeSource(LOUD)
    entered = threading.Event()
    release = threading.Event()

    def opener(target, settings):
        entered.set()
        release.wait(2.0)
        return orphan

    manager = make_manager(engine, opener)

    async def scenario():
        task = asyncio.create_task(manager.start_capture(MIC))
        await asyncio.to_thread(entered.wait, 2.0)
        task.cancel()
        release.set()
        try:
            await task
        except asyncio.CancelledError:
            pass
        for _ in range(100):
            if orphan.stopped:
                break
            await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert orphan.stopped
    assert engine.slot.current.source is None


class SlowStopSource(FakeSource):
    """A source whose stop() holds until told to finish."""

    def __init__(self, magnitudes=None) -> None:
        super().__init__(magnitudes)
        self.stop_entered = threading.Event()
        self.finish_stop = threading.Event()

    def stop(self) -> None:
        self.stop_entered.set()
        self.finish_stop.wait(2.0)
        super().stop()


def test_new_source_waits_for_previous_release_across_starts():
    engine = MeterEngine()
    old = SlowStopSource(LOUD)
    session_id, _ = engine.slot.claim()
    engine.slot.attach(session_id, old)
    new = FakeSource(QUIET)
    old_stopped_at_open = []

    def opener(target, settings):
        old_stopped_at_open.append(old.stopped)
        return new

    manager = make_manager(engine, opener)

    async def scenario():
        first = asyncio.create_task(manager.start_capture(MONITOR))
        await asyncio.to_thread(old.stop_entered.wait, 2.0)

        # A newer selection cancels the first start while the old stream is still stopping
        second = asyncio.create_task(manager.start_capture(MIC))
        first.cancel()
        await asyncio.sleep(0.05)
        assert old_stopped_at_open == []
        assert engine.slot.current.source is None

        old.finish_stop.set()
        try:
            await first
        except asyncio.CancelledError:
            pass
        return await second

    outcome = asyncio.run(scenario())
    assert outcome.ok
    assert old_stopped_at_open == [True]
    assert engine.slot.current.source is new


def test_stop_capture_detaches():
    engine = MeterEngine()
    source = FakeSource(LOUD)
    manager = make_manager(engine, lambda target, settings: source)

    async def scenario():
        await manager.start_capture(MIC)
        await manager.stop_capture()

    asyncio.run(scenario())
    assert source.stopped
    assert not manager.active
    assert manager.source_id is None


def test_close_is_synchronous():
    engine = MeterEngine()
    source = FakeSource(LOUD)
    manager = make_manager(engine, lambda target, settings: source)
    asyncio.run(manager.start_capture(MIC))
    manager.close()
    assert source.stopped
    assert not manager.active


def test_session_callback_publishes_spectrum():
    session = CaptureSession(make_target("Mic"), CaptureSettings(fft_size=512))
    assert session.get_latest_magnitudes() is None

    status = SimpleNamespace(input_overflow=True)
    n = np.arange(128)
    block = np.column_stack([np.sin(2 * np.pi * n / 16), np.sin(2 * np.pi * n / 16)]).astype(np.float32)
    session._callback(block, 128, None, status)

    magnitudes = session.get_latest_magnitudes()
    assert magnitudes.shape == (256,)
    assert magnitudes.any()
    assert session.overflows == 1

    session.stop()
    assert session.get_latest_magnitudes() is None
    assert not session.is_running


def test_settings_blocksize():
    assert CaptureSettings(fft_size=2048).blocksize == 512
