"""Entry point for the needlevu CLI."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from loguru import logger

from .config import DEFAULT_CONFIG_PATH, MeterConfig
from .log import setup_logging
from .meter.dynamics import DYNAMICS
from .meter.engine import MeterEngine
from .meter.scheduler import FrameScheduler
from .meter.state import MIN_DB, MeterReading
from .utils import format_db

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the JSON config file.",
)


def _load_config(config_path: Path) -> MeterConfig:
    config = MeterConfig.load(config_path)
    errors = config.validate()
    if errors:
        for e in errors:
            click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    return config


@click.group()
def main() -> None:
    """needlevu - Analog VU meter for live audio."""


@main.command()
@config_option
@click.option("--source", "source_id", default=None, help="Capture source id (see 'needlevu sources').")
@click.option("--dynamics", type=click.Choice(sorted(DYNAMICS)), default=None, help="Needle model.")
def run(config_path: Path, source_id: str | None, dynamics: str | None) -> None:
    """Open the meter in the terminal UI."""
    config = _load_config(config_path)
    if dynamics:
        config.dynamics = dynamics
    if source_id:
        config.last_source_id = source_id
    setup_logging(config.log_level, config.log_file)

    # Import the app here so non-UI commands work without Textual loaded
    from .app import NeedleVUApp

    app = NeedleVUApp(config=config, config_path=config_path)
    try:
        app.run()
    finally:
        app.capture.close()


@main.command()
def sources() -> None:
    """List capturable audio sources."""
    from .audio.sources import list_sources

    try:
        targets = list_sources()
    except Exception as e:
        click.echo(f"Error: Could not query audio devices: {e}", err=True)
        raise SystemExit(1)

    if not targets:
        click.echo("No capture sources found.")
        return
    for t in targets:
        click.echo(f"  {t.id}  ({t.channels} ch, {t.sample_rate:g} Hz){'  [desktop audio]' if t.is_loopback else ''}")


def _format_reading(reading: MeterReading) -> str:
    lamp = "PEAK" if reading.peak_lamp else "    "
    bar = "#" * round(reading.normalized * 40)
    return f"{format_db(reading.value, floor=MIN_DB):>9}  {format_db(reading.peak, floor=MIN_DB):>9}  {lamp}  |{bar:<40}|"


async def _monitor(config: MeterConfig, source_id: str | None, seconds: float, print_hz: float) -> int:
    from .audio.capture import CaptureManager, CaptureSettings

    engine = MeterEngine.from_config(config)
    capture = CaptureManager(
        engine.slot,
        CaptureSettings(config.sample_rate, config.fft_size, config.smoothing),
    )
    if source_id:
        outcome = await capture.start_capture(source_id)
        if not outcome.ok:
            click.echo(f"Error: {outcome.error}", err=True)
            return 1

    every = max(1, round(config.refresh_hz / print_hz))

    def on_tick(reading: MeterReading) -> None:
        if scheduler.ticks % every == 0:
            click.echo(_format_reading(reading))

    scheduler = FrameScheduler(engine, config.refresh_hz, on_tick=on_tick)
    try:
        await scheduler.run(max_ticks=max(1, round(seconds * config.refresh_hz)))
    finally:
        await capture.stop_capture()
    return 0


@main.command()
@config_option
@click.option("--source", "source_id", default=None, help="Capture source id; defaults to the last one used.")
@click.option("--seconds", type=float, default=10.0, show_default=True)
@click.option("--print-hz", type=float, default=10.0, show_default=True, help="Lines printed per second.")
def monitor(config_path: Path, source_id: str | None, seconds: float, print_hz: float) -> None:
    """Meter a source headless and print value/peak lines."""
    config = _load_config(config_path)
    setup_logging(config.log_level)
    source_id = source_id or config.last_source_id or None
    if source_id is None:
        click.echo("No source given; metering silence.", err=True)
    logger.info(f"Monitoring {source_id or 'silence'} for {seconds}s")
    code = asyncio.run(_monitor(config, source_id, seconds, print_hz))
    if code:
        raise SystemExit(code)


@main.command()
@config_option
def show_config(config_path: Path) -> None:
    """Print the effective configuration."""
    config = MeterConfig.load(config_path)
    state = "" if MeterConfig.exists(config_path) else " (defaults, file not found)"
    click.echo(f"Config: {config_path}{state}")
    for key, value in vars(config).items():
        click.echo(f"  {key} = {value}")
    for e in config.validate():
        click.echo(f"Error: {e}", err=True)


@main.command()
@config_option
@click.argument("key")
@click.argument("value")
def set_config(config_path: Path, key: str, value: str) -> None:
    """Set KEY to VALUE in the config file."""
    config = MeterConfig.load(config_path)
    try:
        config.set_value(key, value)
    except KeyError:
        click.echo(f"Error: Unknown setting '{key}'.", err=True)
        raise SystemExit(1)
    except ValueError as e:
        click.echo(f"Error: Invalid value for '{key}': {e}", err=True)
        raise SystemExit(1)

    errors = config.validate()
    if errors:
        for e in errors:
            click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    config.save(config_path)
    click.echo(f"{key} = {getattr(config, key)}")


if __name__ == "__main__":
    main()
