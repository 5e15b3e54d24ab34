"""needlevu Textual Application."""

from __future__ import annotations

from pathlib import Path

from textual.app import App
from loguru import logger

from .audio.capture import CaptureManager, CaptureSettings, Lister
from .audio.sources import list_sources
from .config import DEFAULT_CONFIG_PATH, MeterConfig
from .meter.engine import MeterEngine
from .tui.styles import APP_CSS
from .tui.screens.meter import MeterScreen


class NeedleVUApp(App):
    """needlevu: Analog VU Meter."""

    CSS = APP_CSS
    TITLE = "needlevu"
    SUB_TITLE = "Analog VU Meter"

    SCREENS = {
        "meter": MeterScreen,
    }

    def __init__(
        self,
        config: MeterConfig | None = None,
        config_path: Path = DEFAULT_CONFIG_PATH,
        engine: MeterEngine | None = None,
        capture: CaptureManager | None = None,
        lister: Lister = list_sources,
    ) -> None:
        super().__init__()
        self.config = config or MeterConfig.load(config_path)
        self.config_path = config_path
        self.engine = engine or MeterEngine.from_config(self.config)
        self.lister = lister
        self.capture = capture or CaptureManager(
            self.engine.slot,
            CaptureSettings(
                sample_rate=self.config.sample_rate,
                fft_size=self.config.fft_size,
                smoothing=self.config.smoothing,
            ),
            lister=lister,
        )

    def on_mount(self) -> None:
        self.push_screen("meter")

    def remember_source(self, source_id: str) -> None:
        """Persist the selected source so the next launch reopens it.

        Only last_source_id is written back. Overrides made for this run
        (``--dynamics``, the ``d`` toggle) stay out of the saved file.
        """
        self.config.last_source_id = source_id
        try:
            saved = MeterConfig.load(self.config_path)
            saved.last_source_id = source_id
            saved.save(self.config_path)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")
