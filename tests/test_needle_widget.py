from needlevu.meter.state import MAX_DB, MIN_DB, MeterReading
from needlevu.tui.widgets.needle import NeedleMeterWidget, scale_marks, scale_position


def test_scale_marks_every_three_db():
    assert scale_marks() == [-20, -17, -14, -11, -8, -5, -2, 1]


def test_scale_position_clamps_to_ends():
    assert scale_position(MIN_DB, 47) == 0
    assert scale_position(MAX_DB, 47) == 46
    assert scale_position(-40.0, 47) == 0
    assert scale_position(12.0, 47) == 46


def test_track_draws_needle_at_reading():
    widget = NeedleMeterWidget()
    track = widget.render_track(MeterReading(MIN_DB, MIN_DB))
    assert track.startswith("[b]┃[/b]")
    track = widget.render_track(MeterReading(MAX_DB, MAX_DB))
    assert track.endswith("[b]┃[/b]")
