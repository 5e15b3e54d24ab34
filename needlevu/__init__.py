"""needlevu: an analog VU-meter needle for live audio."""

__version__ = "0.1.0"
