import math
from dataclasses import dataclass
from typing import Any, Iterable

from .history import build_history_series
from .utils import to_number


@dataclass(frozen=True)
class WastedInfo:
    ms: float = 0
    points: float = 0


def _earliest_in_window(points: Iterable[dict[str, Any]], start: float, end: float) -> float | None:
    earliest = None
    for p in points:
        ts = to_number(p.get("ts"))
        if not (math.isfinite(ts) and math.isfinite(to_number(p.get("value")))):
            continue
        if start <= ts <= end and (earliest is None or ts < earliest):
            earliest = ts
    return earliest


def compute_wasted_at_cap(
    points: Iterable[dict[str, Any]],
    current_value: float,
    cap: float,
    rate_ms: float,
    retention_ms: float,
    now: float,
    reset_anchor: float | None = None,
) -> WastedInfo:
    """Time the resource sat pinned at cap, counted from the first sample in the window."""
    current_value = to_number(current_value)
    cap = to_number(cap)
    rate_ms = to_number(rate_ms)
    retention_ms = to_number(retention_ms)
    now = to_number(now)
    if not all(math.isfinite(x) for x in (cap, rate_ms, retention_ms, now)):
        return WastedInfo(0, 0)
    if not (rate_ms > 0 and cap > 0):
        return WastedInfo(0, 0)

    points = [p for p in points or [] if isinstance(p, dict)]
    domain_end = now
    domain_start = now - retention_ms
    anchor = to_number(reset_anchor)
    if math.isfinite(anchor):
        domain_start = max(domain_start, anchor)
    if domain_start > domain_end:
        return WastedInfo(0, 0)

    earliest = _earliest_in_window(points, domain_start, domain_end)
    effective_start = domain_end if earliest is None else max(domain_start, earliest)

    series = build_history_series(points, current_value, effective_start, domain_end)

    wasted = 0.0
    for a, b in zip(series, series[1:]):
        seg_start = max(a["ts"], effective_start)
        seg_end = min(b["ts"], domain_end)
        if seg_end <= seg_start:
            continue
        start_val = a["value"]
        end_val = b["value"]
        if start_val >= cap and end_val >= cap:
            wasted += seg_end - seg_start
        elif start_val < cap <= end_val:
            slope = (end_val - start_val) / (b["ts"] - a["ts"])
            hit_ts = a["ts"] + (cap - start_val) / slope
            counted_from = max(hit_ts, seg_start)
            if seg_end > counted_from:
                wasted += seg_end - counted_from

    wasted = max(0.0, wasted)
    return WastedInfo(ms=wasted, points=wasted / rate_ms)
