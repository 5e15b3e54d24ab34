"""Live meter screen: source picker, needle and event log."""

from __future__ import annotations

import asyncio

from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Header, Footer, Label, Select
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.timer import Timer
from loguru import logger

from ...audio.sources import CaptureTarget
from ...meter.dynamics import make_dynamics
from ...meter.scheduler import FrameScheduler
from ...utils import timestamp_now
from ..widgets.needle import NeedleMeterWidget
from ..widgets.event_log import EventLogWidget


class MeterScreen(Screen):
    """Meters the selected capture source in real time."""

    BINDINGS = [
        ("r", "refresh_sources", "Refresh sources"),
        ("s", "stop_capture", "Stop"),
        ("d", "toggle_dynamics", "Needle model"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._scheduler: FrameScheduler | None = None
        self._tick_timer: Timer | None = None
        self._render_timer: Timer | None = None
        self._targets: list[CaptureTarget] = []
        self._selected_id: str | None = None
        self._restore_saved = False
        self._mounted_at: float = 0.0

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label("", id="meter-header")
        with Horizontal(id="source-bar"):
            yield Select([], prompt="Loading sources...", id="source-select")
        with Vertical(id="meter-body"):
            yield NeedleMeterWidget(id="needle-panel")
            yield EventLogWidget(id="log-panel")
        yield Label("", id="meter-footer")
        yield Footer()

    def on_mount(self) -> None:
        app = self.app
        self._mounted_at = timestamp_now()
        self._restore_saved = True
        self._scheduler = FrameScheduler(app.engine, app.config.refresh_hz)

        # Meter physics and painting run on separate timers
        self._tick_timer = self.set_interval(self._scheduler.period, self._scheduler.tick)
        self._render_timer = self.set_interval(1 / app.config.render_hz, self._update_ui)

        self._update_header()
        self.action_refresh_sources()

    @property
    def scheduler(self) -> FrameScheduler | None:
        return self._scheduler

    @property
    def targets(self) -> list[CaptureTarget]:
        return self._targets

    def _update_header(self) -> None:
        app = self.app
        dynamics = app.engine.dynamics.name
        source = app.capture.source_id or "none"
        header = self.query_one("#meter-header", Label)
        header.update(f"Source: {source} | Needle: {dynamics} | {app.config.refresh_hz:g} Hz")

    def _update_ui(self) -> None:
        """Periodic repaint from the engine's latest reading."""
        reading = self.app.engine.reading()
        self.query_one("#needle-panel", NeedleMeterWidget).update_reading(reading)

        footer = self.query_one("#meter-footer", Label)
        if self.app.capture.active:
            footer.update("r: refresh  |  s: stop  |  d: needle model  |  q: quit")
        else:
            footer.update("Select a source to start metering  |  r: refresh  |  q: quit")

    def _log(self, message: str) -> None:
        try:
            log_widget = self.query_one("#log-panel", EventLogWidget)
        except NoMatches:
            return
        log_widget.add_entry(timestamp_now() - self._mounted_at, message)

    # --- Source discovery ---

    async def _discover_sources(self) -> None:
        try:
            targets = await asyncio.to_thread(self.app.lister)
        except Exception as e:
            logger.error(f"Could not enumerate capture sources: {e}")
            self._log(f"[red]Could not list sources:[/red] {e}")
            targets = []
        self._set_sources(targets)

    def _set_sources(self, targets: list[CaptureTarget]) -> None:
        self._targets = list(targets)
        select = self.query_one("#source-select", Select)
        if not targets:
            select.prompt = "-- No sources found --"
            select.set_options([])
            return
        select.prompt = "-- Select Audio Source --"
        select.set_options([(t.label, t.id) for t in targets])
        self._log(f"Found {len(targets)} source(s)")

        known = {t.id for t in targets}
        if self._restore_saved:
            # Only the first listing reopens the source saved by a previous run
            self._restore_saved = False
            saved = self.app.config.last_source_id
            if saved in known:
                self._selected_id = saved
                select.value = saved
                self._start_capture(saved)
        elif self._selected_id in known:
            select.value = self._selected_id

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.is_blank():
            return
        value = str(event.value)
        if value == self._selected_id:
            return
        self._selected_id = value
        self.app.remember_source(self._selected_id)
        self._start_capture(self._selected_id)

    # --- Capture lifecycle ---

    def _start_capture(self, source_id: str) -> None:
        # exclusive: a newer selection cancels a start that is still in flight
        self.run_worker(self._run_capture(source_id), group="capture", exclusive=True)

    async def _run_capture(self, source_id: str) -> None:
        name = next((t.name for t in self._targets if t.id == source_id), source_id)
        self._log(f"Connecting to {name}...")
        outcome = await self.app.capture.start_capture(source_id)
        if outcome.ok:
            self._log(f"[green]Metering[/green] {name}")
        elif outcome.superseded:
            self._log(f"Discarded superseded start of {name}")
        else:
            self._log(f"[red]Capture failed:[/red] {outcome.error}")
            self.notify(f"Capture failed: {outcome.error}", severity="error")
        self._update_header()

    # --- Key actions ---

    def action_refresh_sources(self) -> None:
        self.run_worker(self._discover_sources(), group="sources", exclusive=True)

    async def action_stop_capture(self) -> None:
        # A start still connecting counts as running
        running = self.app.capture.active or self._selected_id is not None
        self.workers.cancel_group(self, "capture")
        if not running:
            return
        await self.app.capture.stop_capture()
        self._selected_id = None
        self.query_one("#source-select", Select).clear()
        self._log("Capture stopped")
        self._update_header()

    def action_toggle_dynamics(self) -> None:
        app = self.app
        name = "smoothing" if app.engine.dynamics.name == "spring" else "spring"
        app.config.dynamics = name
        app.engine.set_dynamics(make_dynamics(name, **app.config.dynamics_params()))
        self._log(f"Needle model: {name}")
        self._update_header()

    def action_quit(self) -> None:
        if self._tick_timer:
            self._tick_timer.stop()
        if self._render_timer:
            self._render_timer.stop()
        self.app.exit()
