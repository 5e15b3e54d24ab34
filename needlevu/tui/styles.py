"""Textual CSS styles for needlevu."""

APP_CSS = """
Screen {
    background: $surface;
}

/* Meter Screen */
#meter-header {
    dock: top;
    height: 3;
    background: $primary;
    padding: 0 2;
    content-align: left middle;
}

#source-bar {
    dock: top;
    height: auto;
    padding: 0 2;
}

#source-select {
    width: 1fr;
}

#meter-body {
    layout: grid;
    grid-size: 1 2;
    grid-rows: 14 1fr;
    grid-gutter: 1;
    padding: 1;
    height: 1fr;
}

#needle-panel {
    height: 100%;
    border: thick $accent;
    padding: 1 2;
    min-width: 55;
}

#log-panel {
    height: 1fr;
    border: thick $secondary;
    padding: 1 2;
}

#meter-footer {
    dock: bottom;
    height: 3;
    background: $surface-darken-1;
    padding: 0 2;
    content-align: center middle;
}

/* Widgets */
#needle-title {
    text-style: bold;
    width: 100%;
    content-align: center middle;
}

#needle-readout {
    margin-top: 1;
}

.lamp-on {
    color: $error;
    text-style: bold reverse;
}

.lamp-off {
    color: $text-muted;
}
"""
