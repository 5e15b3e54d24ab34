"""Needle meter widget: draws a MeterReading as a text-mode VU scale."""

from __future__ import annotations

from textual.widgets import Static, Label
from textual.containers import Vertical

from ...meter.state import MIN_DB, MAX_DB, MeterReading, normalize
from ...utils import format_db

SCALE_STEP_DB = 3


def scale_marks() -> list[int]:
    """dB values printed along the scale."""
    return list(range(int(MIN_DB), int(MAX_DB) + 1, SCALE_STEP_DB))


def scale_position(db: float, width: int) -> int:
    """Column of db on a scale `width` characters wide."""
    return round(normalize(db) * (width - 1))


class NeedleMeterWidget(Static):
    """Text-mode analog meter: scale, needle, peak marker and PEAK lamp."""

    SCALE_WIDTH = 47

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._reading = MeterReading(MIN_DB, MIN_DB)

    def compose(self):
        yield Vertical(
            Label("VU", id="needle-title"),
            Label(self._scale_line(), id="needle-scale"),
            Label("", id="needle-peak-marker"),
            Label("", id="needle-track"),
            Label("", id="needle-readout"),
            Label("PEAK", id="needle-lamp", classes="lamp-off"),
        )

    @property
    def reading(self) -> MeterReading:
        return self._reading

    def _scale_line(self) -> str:
        line = [" "] * self.SCALE_WIDTH
        for db in scale_marks():
            text = f"{db:+d}" if db else "0"
            col = scale_position(db, self.SCALE_WIDTH)
            start = max(0, min(col - len(text) // 2, self.SCALE_WIDTH - len(text)))
            line[start:start + len(text)] = text
        return "".join(line)

    def render_track(self, reading: MeterReading) -> str:
        """The needle row: zero-dB and above drawn in the red zone."""
        zero_col = scale_position(0.0, self.SCALE_WIDTH)
        needle_col = scale_position(reading.value, self.SCALE_WIDTH)
        cells = []
        for col in range(self.SCALE_WIDTH):
            if col == needle_col:
                cells.append("[b]┃[/b]")
            elif col >= zero_col:
                cells.append("[red]─[/red]")
            else:
                cells.append("─")
        return "".join(cells)

    def update_reading(self, reading: MeterReading) -> None:
        """Repaint from a new meter reading."""
        self._reading = reading
        peak_col = scale_position(reading.peak, self.SCALE_WIDTH)
        marker = " " * peak_col + "▾"

        try:
            self.query_one("#needle-track", Label).update(self.render_track(reading))
            self.query_one("#needle-peak-marker", Label).update(marker)
            self.query_one("#needle-readout", Label).update(
                f"{format_db(reading.value, floor=MIN_DB)}   peak {format_db(reading.peak, floor=MIN_DB)}"
            )
            lamp = self.query_one("#needle-lamp", Label)
            lamp.set_class(reading.peak_lamp, "lamp-on")
            lamp.set_class(not reading.peak_lamp, "lamp-off")
        except Exception:
            pass  # Widget may not be mounted yet
