"""Capture event log widget."""

from __future__ import annotations

from textual.widgets import RichLog

from ...utils import format_duration


class EventLogWidget(RichLog):
    """Source changes and capture failures, stamped with time since mount.

    Messages may carry Rich markup. Plain copies are kept in ``events`` so
    the log can be inspected without rendering it.
    """

    MAX_EVENTS = 200

    def __init__(self, **kwargs) -> None:
        super().__init__(wrap=True, markup=True, max_lines=self.MAX_EVENTS, **kwargs)
        self.border_title = "Events"
        self.events: list[tuple[float, str]] = []

    def add_entry(self, elapsed: float, message: str) -> None:
        self.events.append((elapsed, message))
        del self.events[:-self.MAX_EVENTS]
        # The stamp is styled, not bracketed, so it can't be read as markup
        self.write(f"[dim]{format_duration(elapsed)}[/dim]  {message}")
