"""Bounded per-resource history. Mutating helpers return a fresh, trimmed snapshot."""

import math
import uuid
from typing import Any, Iterable

from .config import (
    HISTORY_EVENT_TYPES,
    HISTORY_MAX_EVENTS,
    HISTORY_MAX_POINTS,
    HISTORY_MIN_GAP_MS,
    HISTORY_RETENTION_MS,
    HISTORY_SAMPLE_INTERVAL_MS,
    HISTORY_VALUE_EPSILON,
    RESOURCE_KINDS,
)
from .logging_setup import get_logger
from .utils import compact_number, to_number

logger = get_logger("history")

Snapshot = dict[str, list[dict[str, Any]]]


def empty_snapshot() -> Snapshot:
    return {"points": [], "events": []}


def empty_history() -> dict[str, Snapshot]:
    return {kind: empty_snapshot() for kind in RESOURCE_KINDS}


def _draft(snapshot: Snapshot | None) -> Snapshot:
    snapshot = snapshot or {}
    return {
        "points": [dict(p) for p in snapshot.get("points", [])],
        "events": [dict(e) for e in snapshot.get("events", [])],
    }


def _keep_ordered(items: list[dict[str, Any]]) -> None:
    if len(items) > 1 and items[-2]["ts"] > items[-1]["ts"]:
        items.sort(key=lambda item: item["ts"])


def trim(snapshot: Snapshot, cutoff: float) -> Snapshot:
    """Drop entries older than `cutoff`. Mutates: only call on a fresh draft."""
    snapshot["points"] = [p for p in snapshot["points"] if p["ts"] >= cutoff]
    snapshot["events"] = [e for e in snapshot["events"] if e["ts"] >= cutoff]
    return snapshot


def push_point(snapshot: Snapshot | None, value: float, ts: float, force: bool = False) -> Snapshot:
    draft = _draft(snapshot)
    points = draft["points"]
    if points and not force:
        last = points[-1]
        if ts - last["ts"] < HISTORY_MIN_GAP_MS and abs(value - last["value"]) < HISTORY_VALUE_EPSILON:
            return trim(draft, ts - HISTORY_RETENTION_MS)
    points.append({"ts": ts, "value": value})
    _keep_ordered(points)
    if len(points) > HISTORY_MAX_POINTS:
        del points[: len(points) - HISTORY_MAX_POINTS]
    return trim(draft, ts - HISTORY_RETENTION_MS)


def add_event(
    snapshot: Snapshot | None,
    kind: str,
    value: float,
    ts: float,
    type: str = "manual",
    delta: float | None = None,
    note: str | None = None,
    event_id: str | None = None,
) -> Snapshot:
    draft = _draft(snapshot)
    event: dict[str, Any] = {
        "id": event_id or uuid.uuid4().hex,
        "ts": ts,
        "kind": kind,
        "type": type if type in HISTORY_EVENT_TYPES else "manual",
        "value": value,
    }
    if delta is not None:
        event["delta"] = delta
    if note:
        event["note"] = note
    events = draft["events"]
    events.append(event)
    _keep_ordered(events)
    if len(events) > HISTORY_MAX_EVENTS:
        del events[: len(events) - HISTORY_MAX_EVENTS]
    return trim(draft, ts - HISTORY_RETENTION_MS)


def sample(
    snapshot: Snapshot | None,
    kind: str,
    value: float,
    ts: float,
    last_sampled: dict[str, float] | None = None,
    force: bool = False,
) -> tuple[Snapshot, dict[str, float]]:
    """Throttled sample; the throttle map is passed in and a new one handed back."""
    last_sampled = dict(last_sampled or {})
    has_points = bool(snapshot and snapshot.get("points"))
    prev = last_sampled.get(kind)
    due = prev is None or ts - prev >= HISTORY_SAMPLE_INTERVAL_MS
    if not (force or due or not has_points):
        return _draft(snapshot), last_sampled
    snapshot = push_point(snapshot, value, ts, force=force)
    latest = snapshot["points"][-1] if snapshot["points"] else None
    if latest is not None and latest["ts"] == ts and latest["value"] == value:
        last_sampled[kind] = ts
    return snapshot, last_sampled


def record_change(
    snapshot: Snapshot | None,
    kind: str,
    prev_value: float | None,
    value: float,
    ts: float,
    type: str = "manual",
    delta: float | None = None,
    note: str | None = None,
) -> Snapshot:
    """Log a discrete change: the value just before, the value after, and the event.

    Both points share `ts`, so interpolation sees a vertical step instead of a
    slope leaking backwards over the previous segment.
    """
    draft = snapshot
    if prev_value is not None and abs(prev_value - value) >= HISTORY_VALUE_EPSILON:
        draft = push_point(draft, prev_value, ts, force=True)
    draft = push_point(draft, value, ts, force=True)
    return add_event(draft, kind, value, ts, type=type, delta=delta, note=note)


# Load-time sanitisation


def _clean_points(raw: Any) -> list[dict[str, Any]]:
    points: list[dict[str, Any]] = []
    if not isinstance(raw, list):
        return points
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        ts = to_number(entry.get("ts"))
        value = to_number(entry.get("value"))
        if not (math.isfinite(ts) and math.isfinite(value)):
            continue
        points.append({"ts": compact_number(ts), "value": compact_number(value)})
    points.sort(key=lambda p: p["ts"])
    return points[-HISTORY_MAX_POINTS:]


def _clean_events(raw: Any, kind: str) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    if not isinstance(raw, list):
        return events
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        ts = to_number(entry.get("ts"))
        value = to_number(entry.get("value"))
        if not (math.isfinite(ts) and math.isfinite(value)):
            continue
        event_id = entry.get("id")
        event: dict[str, Any] = {
            "id": str(event_id) if event_id else uuid.uuid4().hex,
            "ts": compact_number(ts),
            "kind": kind,
            "type": entry.get("type") if entry.get("type") in HISTORY_EVENT_TYPES else "manual",
            "value": compact_number(value),
        }
        delta = to_number(entry.get("delta"))
        if math.isfinite(delta):
            event["delta"] = compact_number(delta)
        note = entry.get("note")
        if isinstance(note, str) and note:
            event["note"] = note
        events.append(event)
    events.sort(key=lambda e: e["ts"])
    return events[-HISTORY_MAX_EVENTS:]


def sanitize_snapshot(raw: Any, kind: str, now: float | None = None) -> Snapshot:
    raw = raw if isinstance(raw, dict) else {}
    snapshot = {
        "points": _clean_points(raw.get("points")),
        "events": _clean_events(raw.get("events"), kind),
    }
    if now is not None:
        trim(snapshot, now - HISTORY_RETENTION_MS)
    return snapshot


def sanitize_history(raw: Any, now: float | None = None) -> dict[str, Snapshot]:
    raw = raw if isinstance(raw, dict) else {}
    history = {kind: sanitize_snapshot(raw.get(kind), kind, now) for kind in RESOURCE_KINDS}
    for kind in RESOURCE_KINDS:
        src = raw.get(kind)
        src_points = src.get("points") if isinstance(src, dict) else None
        seen = len(src_points) if isinstance(src_points, list) else 0
        kept = len(history[kind]["points"])
        if seen > kept:
            logger.info(f"History sanitized kind={kind} points_in={seen} points_kept={kept}")
    return history


# Series reconstruction


def build_history_series(
    points: Iterable[dict[str, Any]],
    current_value: float,
    domain_start: float,
    domain_end: float,
) -> list[dict[str, float]]:
    """Series over exactly [domain_start, domain_end], tail snapped to `current_value`."""
    series = []
    for p in points:
        ts = to_number(p.get("ts"))
        value = to_number(p.get("value"))
        if math.isfinite(ts) and math.isfinite(value) and domain_start <= ts <= domain_end:
            series.append({"ts": ts, "value": value})

    if not series:
        return [
            {"ts": domain_start, "value": current_value},
            {"ts": domain_end, "value": current_value},
        ]

    if series[0]["ts"] > domain_start:
        series.insert(0, {"ts": domain_start, "value": series[0]["value"]})

    last = series[-1]
    differs = abs(last["value"] - current_value) >= HISTORY_VALUE_EPSILON
    tail_value = current_value if differs else last["value"]
    if last["ts"] < domain_end or differs:
        series.append({"ts": domain_end, "value": tail_value})

    if len(series) < 2:
        series.append({"ts": domain_end, "value": series[-1]["value"]})
    return series
