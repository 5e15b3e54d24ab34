from conftest import FakeSource
from needlevu.meter.source import SourceSlot


def test_claim_hands_back_previous_source():
    slot = SourceSlot()
    first_id, previous = slot.claim()
    assert previous is None
    source = FakeSource()
    assert slot.attach(first_id, source)

    second_id, previous = slot.claim()
    assert second_id == first_id + 1
    assert previous is source
    assert slot.current.source is None
    assert slot.current.session_id == second_id


def test_attach_refuses_superseded_session():
    slot = SourceSlot()
    old_id, _ = slot.claim()
    slot.claim()
    assert not slot.attach(old_id, FakeSource())
    assert slot.current.source is None


def test_release_only_matching_session():
    slot = SourceSlot()
    session_id, _ = slot.claim()
    source = FakeSource()
    slot.attach(session_id, source)

    assert slot.release(session_id + 5) is None
    assert slot.current.source is source
    assert slot.release(session_id) is source
    assert slot.current.source is None
    assert slot.release() is None


def test_is_current():
    slot = SourceSlot()
    a, _ = slot.claim()
    assert slot.is_current(a)
    b, _ = slot.claim()
    assert not slot.is_current(a)
    assert slot.is_current(b)
    assert slot.latest_id == b
