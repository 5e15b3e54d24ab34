import asyncio

import pytest

from conftest import LOUD, FakeSource
from needlevu.meter.engine import MeterEngine
from needlevu.meter.scheduler import FrameScheduler
from needlevu.meter.state import MIN_DB


def test_period():
    assert FrameScheduler(MeterEngine(), 50).period == pytest.approx(0.02)


def test_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        FrameScheduler(MeterEngine(), 0)


def test_tick_runs_pipeline_and_reports():
    engine = MeterEngine()
    session_id, _ = engine.slot.claim()
    engine.slot.attach(session_id, FakeSource(LOUD))
    seen = []
    scheduler = FrameScheduler(engine, on_tick=seen.append)

    reading = scheduler.tick()
    assert reading.value > MIN_DB
    assert scheduler.ticks == 1
    assert seen == [reading]


def test_reentrant_tick_is_skipped():
    engine = MeterEngine()
    scheduler = FrameScheduler(engine)
    nested = []
    original_tick = engine.tick

    def tick_and_reenter():
        nested.append(scheduler.tick())
        return original_tick()

    engine.tick = tick_and_reenter
    assert scheduler.tick() is not None
    assert nested == [None]
    assert scheduler.ticks == 1


def test_run_stops_after_max_ticks():
    scheduler = FrameScheduler(MeterEngine(), refresh_hz=1000)
    ran = asyncio.run(scheduler.run(max_ticks=5))
    assert ran == 5
    assert scheduler.ticks == 5


def test_run_honours_stop_event():
    async def scenario():
        scheduler = FrameScheduler(MeterEngine(), refresh_hz=200)
        stop = asyncio.Event()
        task = asyncio.create_task(scheduler.run(stop=stop))
        await asyncio.sleep(0.05)
        stop.set()
        ran = await asyncio.wait_for(task, timeout=1.0)
        return ran

    assert asyncio.run(scenario()) >= 1


def test_run_with_stop_already_set_does_nothing():
    async def scenario():
        stop = asyncio.Event()
        stop.set()
        return await FrameScheduler(MeterEngine()).run(stop=stop)

    assert asyncio.run(scenario()) == 0
