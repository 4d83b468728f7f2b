from __future__ import annotations

import pytest

from resource_tracker.timers import (
    create_timer,
    pause_timer,
    resume_timer,
    timer_progress,
    timer_remaining_ms,
    timer_total_ms,
)

NOW = 1_800_000_000_000
MIN = 60_000


def test_create_timer_from_duration_text() -> None:
    t = create_timer(" Stamina ", "10m", NOW)
    assert t is not None
    assert t["label"] == "Stamina"
    assert t["target_ts"] == NOW + 10 * MIN
    assert t["duration_ms"] == 10 * MIN
    assert create_timer("x", "whenever", NOW) is None


def test_remaining_and_progress() -> None:
    t = create_timer("x", "10m", NOW)
    assert timer_remaining_ms(t, NOW + 4 * MIN) == 6 * MIN
    assert timer_progress(t, NOW + 4 * MIN) == pytest.approx(0.4)
    assert timer_remaining_ms(t, NOW + 20 * MIN) == 0
    assert timer_progress(t, NOW + 20 * MIN) == 1.0


def test_pause_and_resume_keep_remaining() -> None:
    t = create_timer("x", "10m", NOW)
    paused = pause_timer(t, NOW + 3 * MIN)
    assert paused["is_paused"] is True
    assert timer_remaining_ms(paused, NOW + 30 * MIN) == 7 * MIN

    resumed = resume_timer(paused, NOW + 30 * MIN)
    assert resumed["is_paused"] is False
    assert resumed["target_ts"] == NOW + 37 * MIN
    assert timer_remaining_ms(resumed, NOW + 31 * MIN) == 6 * MIN
    assert t["is_paused"] is False


def test_total_falls_back_without_duration() -> None:
    legacy = {"target_ts": NOW + 5 * MIN, "created": NOW - 5 * MIN}
    assert timer_total_ms(legacy, timer_remaining_ms(legacy, NOW), NOW) == 10 * MIN

    paused = {"is_paused": True, "paused_remaining": 3 * MIN}
    assert timer_total_ms(paused, timer_remaining_ms(paused, NOW), NOW) == 3 * MIN

    bare = {"target_ts": NOW + 2 * MIN}
    assert timer_total_ms(bare, timer_remaining_ms(bare, NOW), NOW) == 2 * MIN

    assert timer_total_ms({}, 0, NOW) == 1


def test_remaining_never_negative_on_bad_data() -> None:
    assert timer_remaining_ms({"target_ts": "soon"}, NOW) == 0
    assert timer_remaining_ms({"is_paused": True, "paused_remaining": -50}, NOW) == 0
    assert timer_remaining_ms({"target_ts": NOW - MIN}, NOW) == 0
