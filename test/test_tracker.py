from __future__ import annotations

import json
import logging

import pytest

from resource_tracker.config import DEFAULT_TZ, RP_CAP, RP_RATE_MS, TP_CAP, TP_RATE_MS
from resource_tracker.tracker import ResourceTracker

T = 1_800_000_000_000
SEC = 1_000
MIN = 60 * SEC


def _tracker(data: dict | None = None, now: int = T) -> ResourceTracker:
    tracker = ResourceTracker(logger=logging.getLogger("test.tracker"), time_zone="UTC")
    tracker.load(data, now)
    return tracker


def test_first_run_starts_full_and_anchored() -> None:
    tracker = _tracker()
    tp = tracker.state("tp")
    rp = tracker.state("rp")
    assert tp.base == TP_CAP
    assert rp.base == RP_CAP
    assert tp.next_override == T + TP_RATE_MS
    assert rp.next_override == T + RP_RATE_MS


def test_load_sanitizes_persisted_state() -> None:
    data = {
        "resources": {"tp": {"base": "40", "last": T - 25 * MIN, "nextOverride": T - 20 * MIN}, "rp": "junk"},
        "history": {"tp": {"points": [{"ts": "bad", "value": 1}]}},
        "wasted_reset": {"tp": "nan"},
        "time_zone": "Invalid/Zone",
    }
    tracker = _tracker(data)
    assert tracker.state("tp").next_override == T - 20 * MIN
    # Grid points T-20m, T-10m and T all fall after `last`.
    assert tracker.current("tp", T).value == 43
    assert tracker.state("rp").base == RP_CAP
    saved = tracker.to_dict()
    assert saved["history"]["tp"]["points"] == []
    assert saved["wasted_reset"]["tp"] is None


def test_spend_keeps_regen_grid() -> None:
    tracker = _tracker()
    now = T + 3 * MIN
    before = tracker.current("tp", now)
    value = tracker.spend("tp", 30, now)
    after = tracker.current("tp", now)
    assert value == 70
    assert after.next_point == before.next_point
    events = tracker.to_dict()["history"]["tp"]["events"]
    assert events[-1]["type"] == "spend"
    assert events[-1]["delta"] == -30


def test_set_value_and_override() -> None:
    tracker = _tracker()
    assert tracker.set_value("rp", "2", T + MIN)
    assert tracker.current("rp", T + MIN).value == 2
    assert not tracker.set_value("rp", "two", T + MIN)

    assert tracker.set_next_override("rp", "30m", T + MIN)
    assert tracker.current("rp", T + MIN).next_point == T + 31 * MIN
    assert not tracker.set_next_override("rp", "later", T + MIN)


def test_adjust_up_is_manual() -> None:
    tracker = _tracker()
    tracker.spend("tp", 50, T)
    assert tracker.adjust("tp", 5, T + SEC) == 55
    assert tracker.to_dict()["history"]["tp"]["events"][-1]["type"] == "manual"


def test_tick_samples_with_throttle() -> None:
    tracker = _tracker()
    for second in range(0, 181):
        tracker.tick(T + second * SEC)
    points = tracker.to_dict()["history"]["tp"]["points"]
    assert [p["ts"] for p in points] == [T, T + MIN, T + 2 * MIN, T + 3 * MIN]


def test_wasted_accumulates_and_resets() -> None:
    tracker = _tracker()
    for minute in range(0, 11):
        tracker.tick(T + minute * MIN)
    wasted = tracker.wasted("tp", T + 10 * MIN)
    assert wasted.ms == pytest.approx(10 * MIN)
    assert wasted.points == pytest.approx(1)

    tracker.reset_wasted("tp", T + 10 * MIN)
    assert tracker.wasted("tp", T + 10 * MIN).ms == 0
    assert tracker.wasted("tp", T + 12 * MIN).ms == pytest.approx(2 * MIN)
    assert tracker.to_dict()["history"]["tp"]["events"][-1]["type"] == "reset"


def test_spend_does_not_jump_wasted() -> None:
    tracker = _tracker()
    for minute in range(0, 6):
        tracker.tick(T + minute * MIN)
    spend_at = T + 5 * MIN + 30 * SEC
    before = tracker.wasted("tp", spend_at)
    tracker.spend("tp", 10, spend_at)
    after = tracker.wasted("tp", spend_at)
    assert after.ms == pytest.approx(before.ms)


def test_status_is_json_ready() -> None:
    tracker = _tracker()
    tracker.spend("tp", 45, T)
    status = tracker.status(T + MIN)
    assert json.loads(json.dumps(status)) == status
    tp = status["resources"]["tp"]
    assert tp["value"] == 55
    assert set(tp["milestones"]) == {"30", "60", "90"}
    assert tp["milestones"]["30"] == T + MIN
    assert status["resources"]["rp"]["time_to_full_ms"] == 0
    assert status["resources"]["rp"]["time_to_full_text"] == "0s"
    assert status["next_daily_reset"] > T + MIN
    assert status["time_zone"] == "UTC"


def test_round_trip_through_saved_dict() -> None:
    tracker = _tracker()
    tracker.spend("tp", 20, T + MIN)
    tracker.tick(T + 2 * MIN)
    saved = json.loads(json.dumps(tracker.to_dict()))

    restored = _tracker(saved, now=T + 3 * MIN)
    assert restored.state("tp") == tracker.state("tp")
    assert restored.to_dict()["history"] == tracker.to_dict()["history"]


def test_unknown_kind_is_a_key_error() -> None:
    tracker = _tracker()
    with pytest.raises(KeyError):
        tracker.spend("gold", 1, T)


def test_mutations_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    tracker = _tracker()
    with caplog.at_level(logging.INFO, logger="test.tracker"):
        tracker.spend("tp", 5, T)
    assert "RESOURCE spend kind=tp amount=5 value=95" in caplog.text


@pytest.mark.parametrize("zone", ["America", "Etc", "Z" * 300])
def test_unusable_persisted_zone_falls_back(zone: str) -> None:
    tracker = _tracker({"time_zone": zone})
    assert tracker.status(T)["time_zone"] == DEFAULT_TZ
