from __future__ import annotations

import pytest

from stacksend.host import Clock, ClockError, EventError, EventLog, ManualClock, SystemClock


def test_manual_clock_moves_forward_only():
    c = ManualClock(start=10)
    assert c.now() == 10
    assert c.advance(5) == 15
    assert c.set(20) == 20
    with pytest.raises(ClockError):
        c.set(19)
    with pytest.raises(ClockError):
        c.advance(-1)


def test_clocks_satisfy_protocol():
    assert isinstance(ManualClock(), Clock)
    assert isinstance(SystemClock(), Clock)
    s = SystemClock()
    assert s.now() <= s.now()


def test_event_log_emit_and_filter():
    log = EventLog()
    log.emit("A", {"x": 1, "who": "me", "ok": True, "none": None})
    log.emit("B")
    log.emit("A", {"x": 2})
    assert len(log) == 3
    assert [e.args["x"] for e in log.events("A")] == [1, 2]
    assert [e.seq for e in log.events()] == [1, 2, 3]


@pytest.mark.parametrize(
    "name,args",
    [
        ("", {}),
        ("Ok", {"bad-key": 1}),
        ("Ok", {"1x": 1}),
        ("Ok", {"x": 1.5}),
        ("Ok", {"x": b"raw"}),
    ],
)
def test_event_log_rejects_invalid(name, args):
    with pytest.raises(EventError):
        EventLog().emit(name, args)


def test_check_validates_without_emitting():
    log = EventLog()
    assert log.check("Ok", {"x": 1}) == {"x": 1}
    with pytest.raises(EventError):
        log.check("Ok", {"who": b"raw"})
    assert len(log) == 0
