from threading import Event

import pytest

from olt_pipeline.model import GroupKey, NextObjective, NextType
from olt_pipeline.pending import EntryState, PendingGroupEvictor, PendingGroupTracker


def _objective(next_id=1):
    return NextObjective(id=next_id, type=NextType.BROADCAST, next=(), app_id="test")


def _tracker(clock, expired):
    return PendingGroupTracker(ttl=20.0, on_expired=expired.append, clock=clock)


def test_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        PendingGroupTracker(ttl=0)


def test_resolve_before_ttl_returns_entry(clock):
    expired = []
    tracker = _tracker(clock, expired)
    key = GroupKey(b"k")

    tracker.put(key, _objective())
    clock.advance(0.005)
    entry = tracker.resolve(key)

    assert entry.state is EntryState.RESOLVED
    assert key not in tracker
    clock.advance(60)
    assert tracker.expire() == []
    assert expired == []


def test_expire_fires_once_after_ttl(clock):
    expired = []
    tracker = _tracker(clock, expired)
    key = GroupKey(b"k")
    tracker.put(key, _objective())

    clock.advance(19.0)
    assert tracker.expire() == []

    clock.advance(1.0)
    swept = tracker.expire()

    assert [e.key for e in swept] == [key]
    assert swept[0].state is EntryState.EXPIRED
    assert expired == swept
    assert tracker.expire() == []
    assert len(tracker) == 0


def test_late_resolution_expires_instead(clock):
    expired = []
    tracker = _tracker(clock, expired)
    key = GroupKey(b"k")
    tracker.put(key, _objective())

    clock.advance(25)

    assert tracker.resolve(key) is None
    assert len(expired) == 1
    assert tracker.expire() == []


def test_put_supersedes_without_callback(clock):
    expired = []
    tracker = _tracker(clock, expired)
    key = GroupKey(b"k")
    first = _objective(7)
    second = _objective(7)

    assert tracker.put(key, first) is None
    clock.advance(10)
    previous = tracker.put(key, second)

    assert previous.objective is first
    assert previous.state is EntryState.SUPERSEDED
    assert tracker.get(key).objective is second

    # the ttl restarts with the superseding request
    clock.advance(15)
    assert tracker.expire() == []
    assert expired == []


def test_failing_expiry_callback_does_not_stop_sweep(clock):
    seen = []

    def on_expired(entry):
        seen.append(entry.key)
        raise RuntimeError("boom")

    tracker = PendingGroupTracker(ttl=1.0, on_expired=on_expired, clock=clock)
    tracker.put(GroupKey(b"a"), _objective(1))
    tracker.put(GroupKey(b"b"), _objective(2))
    clock.advance(2)

    assert len(tracker.expire()) == 2
    assert sorted(seen, key=lambda k: k.data) == [GroupKey(b"a"), GroupKey(b"b")]


def test_evictor_sweeps_in_background(clock):
    fired = Event()
    tracker = PendingGroupTracker(ttl=1.0, on_expired=lambda entry: fired.set(), clock=clock)
    tracker.put(GroupKey(b"k"), _objective())
    clock.advance(5)

    stop = Event()
    evictor = PendingGroupEvictor(tracker, interval=0.01, stop_event=stop)
    evictor.start()
    try:
        assert fired.wait(timeout=2)
    finally:
        stop.set()
        evictor.join(timeout=2)

    assert not evictor.is_alive()
    assert len(tracker) == 0
