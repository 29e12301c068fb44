import pytest

from conftest import ORIGIN, east
from navigation.guidance.nav_config import NavConfig
from navigation.guidance.proximity import (
    DriveRecording,
    RouteReplayTrigger,
    TrackPoint,
    TriggerEvent,
    ZoneState,
    classify_distance,
    within,
    zone_state,
)


@pytest.mark.parametrize(
    "dist,state",
    [
        (0.0, ZoneState.INSIDE),
        (30.0, ZoneState.INSIDE),
        (30.5, ZoneState.NEAR),
        (60.0, ZoneState.NEAR),
        (60.5, ZoneState.OUTSIDE),
    ],
)
def test_classify_distance(dist, state):
    assert classify_distance(dist, 30.0) is state


def test_classify_distance_rejects_bad_radius():
    with pytest.raises(ValueError):
        classify_distance(10.0, 0.0)


def test_zone_state_and_within():
    assert zone_state(east(20.0), ORIGIN, 30.0) is ZoneState.INSIDE
    assert zone_state(east(50.0), ORIGIN, 30.0) is ZoneState.NEAR
    assert zone_state(east(50.0), ORIGIN, 30.0, near_factor=1.5) is ZoneState.OUTSIDE
    assert within(east(29.0), ORIGIN, 30.0)
    assert not within(east(31.0), ORIGIN, 30.0)


def _pt(m, ts_ms):
    p = east(m)
    return TrackPoint(p.lat, p.lon, ts_ms)


def test_recording_statistics():
    rec = DriveRecording()
    assert rec.start(0)
    assert not rec.start(5)
    for i in range(11):
        rec.add(_pt(i * 100.0, i * 6_000))
    rec.stop()
    rec.add(_pt(5_000.0, 100_000))

    assert len(rec.points) == 11
    assert rec.distance_km() == pytest.approx(1.0, rel=1e-6)
    assert rec.duration_sec() == 60
    assert rec.avg_kmh() == pytest.approx(60.0, rel=1e-6)
    assert not rec.is_loop()


def test_short_recordings_have_no_stats():
    rec = DriveRecording()
    assert rec.distance_km() == 0.0
    assert rec.duration_sec() == 0
    assert rec.avg_kmh() == 0.0
    assert not rec.is_loop()


def test_loop_detection():
    rec = DriveRecording()
    rec.start(0)
    for m, ts in ((0.0, 0), (500.0, 30_000), (80.0, 60_000)):
        rec.add(_pt(m, ts))
    assert rec.is_loop()
    assert not rec.is_loop(threshold_m=50.0)

    rec.reset()
    assert not rec.recording
    assert rec.start_time_ms is None
    assert rec.points == []


def test_replay_trigger_start_and_finish():
    trigger = RouteReplayTrigger(ORIGIN, east(1_000.0))
    assert trigger.feed(east(-100.0), 0) is TriggerEvent.NONE
    assert trigger.start_zone is ZoneState.OUTSIDE

    assert trigger.feed(east(10.0), 1_000) is TriggerEvent.STARTED
    assert trigger.recording.recording

    events = [trigger.feed(east(m), 1_000 + int(m) * 10) for m in range(100, 1_000, 100)]
    assert events == [TriggerEvent.NONE] * 9
    assert trigger.finish_zone is ZoneState.OUTSIDE

    assert trigger.feed(east(995.0), 20_000) is TriggerEvent.FINISHED
    assert trigger.finished
    assert not trigger.recording.recording
    assert len(trigger.recording.points) == 11
    assert trigger.recording.distance_km() == pytest.approx(0.985, abs=1e-3)

    # finished triggers ignore further positions
    assert trigger.feed(east(10.0), 30_000) is TriggerEvent.NONE


def test_replay_trigger_needs_min_points_before_finishing():
    cfg = NavConfig(replay_min_points=3)
    trigger = RouteReplayTrigger(ORIGIN, ORIGIN, cfg)
    assert trigger.feed(ORIGIN, 0) is TriggerEvent.STARTED
    assert trigger.feed(east(5.0), 1_000) is TriggerEvent.NONE
    assert trigger.feed(east(200.0), 20_000) is TriggerEvent.NONE
    assert trigger.feed(east(2.0), 40_000) is TriggerEvent.FINISHED
    assert trigger.recording.is_loop()


def test_replay_trigger_reset():
    trigger = RouteReplayTrigger(ORIGIN, east(1_000.0), NavConfig(replay_min_points=2))
    trigger.feed(ORIGIN, 0)
    trigger.feed(east(1_000.0), 60_000)
    assert trigger.finished

    trigger.reset()
    assert not trigger.finished
    assert trigger.recording.points == []
    assert trigger.feed(ORIGIN, 70_000) is TriggerEvent.STARTED
