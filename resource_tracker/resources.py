
import math
from dataclasses import dataclass, replace
from typing import Any, Iterable

from .config import FALLBACK_CAP, FALLBACK_RATE_MS
from .duration import parse_flexible
from .utils import clamp, compact_number, now_ms, to_number


@dataclass(frozen=True)
class ResourceState:
    """Persisted regen state: value `base` as of `last`, optional grid anchor."""

    base: float
    last: float
    next_override: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": compact_number(self.base),
            "last": compact_number(self.last),
            "next_override": None if self.next_override is None else compact_number(self.next_override),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any] | None,
        cap: float,
        defaults: "ResourceState | None" = None,
        now: int | None = None,
    ) -> "ResourceState":
        return sanitize_resource(data, cap, defaults=defaults, now=now)


@dataclass(frozen=True)
class CurrentResource:
    value: float
    next_point: float
    full_at: float


def _field(obj: Any, *names: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, ResourceState):
        obj = obj.to_dict()
    if not isinstance(obj, dict):
        return None
    for name in names:
        if name in obj:
            return obj[name]
    return None


def sanitize_resource(
    obj: Any,
    cap: float,
    defaults: ResourceState | None = None,
    now: int | None = None,
) -> ResourceState:
    """Coerce possibly-malformed persisted state into a valid ResourceState."""
    if defaults is None:
        defaults = ResourceState(base=cap, last=now_ms() if now is None else now, next_override=None)

    base = to_number(_field(obj, "base"))
    last = to_number(_field(obj, "last"))
    raw_override = _field(obj, "next_override", "nextOverride")
    override = None if raw_override is None else to_number(raw_override)

    if math.isfinite(base):
        base = clamp(base, 0, cap)
    else:
        base = clamp(defaults.base, 0, cap)
    if not math.isfinite(last):
        last = defaults.last
    if override is not None and not math.isfinite(override):
        override = defaults.next_override

    return ResourceState(base=base, last=last, next_override=override)


def same_resource(a: ResourceState | None, b: ResourceState | None) -> bool:
    return a is not None and b is not None and a == b


def compute_current(base, last, rate_ms, cap, next_override, now: float) -> CurrentResource:
    """Live value at `now`; an anchor pins the tick grid to `anchor + k * rate`."""
    b = to_number(base)
    l = to_number(last)
    rate = to_number(rate_ms)
    c = to_number(cap)

    b = b if math.isfinite(b) else 0
    l = l if math.isfinite(l) else now
    rate = rate if math.isfinite(rate) and rate > 0 else FALLBACK_RATE_MS
    c = c if math.isfinite(c) and c > 0 else FALLBACK_CAP

    anchor = None if next_override is None else to_number(next_override)
    if anchor is not None and math.isfinite(anchor):
        ticks_now = math.floor((now - anchor) / rate)
        ticks_last = math.floor((l - anchor) / rate)
        ticks = max(0, ticks_now - ticks_last)
        next_point = anchor + (ticks_now + 1) * rate
    else:
        ticks = math.floor(max(0, now - l) / rate)
        next_point = l + (ticks + 1) * rate

    value = clamp(b + ticks, 0, c)
    until_next = max(0, next_point - now)
    need = max(0, c - value)
    to_full = 0 if need == 0 else until_next + max(0, need - 1) * rate
    return CurrentResource(value=value, next_point=next_point, full_at=now + to_full)


def current_of(state: ResourceState, rate_ms: float, cap: float, now: float) -> CurrentResource:
    return compute_current(state.base, state.last, rate_ms, cap, state.next_override, now)


def milestone_times(
    current: CurrentResource,
    rate_ms: float,
    milestones: Iterable[float],
    now: float,
) -> dict[float, float]:
    first = max(0, current.next_point - now)
    res: dict[float, float] = {}
    for m in milestones:
        if current.value >= m:
            res[m] = now
        else:
            need = m - current.value
            res[m] = now + first + max(0, need - 1) * rate_ms
    return res


def time_to_full(current: CurrentResource, rate_ms: float, cap: float, now: float) -> tuple[float, float]:
    """Return (ms until full, absolute ms when full)."""
    need = max(0, cap - current.value)
    first = max(0, current.next_point - now)
    ms = 0 if need == 0 else first + max(0, need - 1) * rate_ms
    return ms, now + ms


# Mutations. Each returns a new state; callers swap it in whole.


def adjust_resource(state: ResourceState, delta: float, rate_ms: float, cap: float, now: float) -> ResourceState:
    current = current_of(state, rate_ms, cap, now)
    anchor = state.next_override if state.next_override is not None else current.next_point
    return ResourceState(base=clamp(current.value + delta, 0, cap), last=now, next_override=anchor)


def spend_resource(state: ResourceState, amount: float, rate_ms: float, cap: float, now: float) -> ResourceState:
    return adjust_resource(state, -abs(amount), rate_ms, cap, now)


def set_resource_value(state: ResourceState, value, cap: float, now: float) -> ResourceState:
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return state
    return ResourceState(base=clamp(n, 0, cap), last=now, next_override=state.next_override)


def set_next_override(state: ResourceState, text, now: float) -> ResourceState:
    ms = parse_flexible(text)
    if ms is None:
        return state
    return replace(state, next_override=now + ms)


def ensure_anchor(state: ResourceState, rate_ms: float, cap: float, now: float) -> ResourceState:
    if state.next_override is not None:
        return state
    current = compute_current(state.base, state.last, rate_ms, cap, None, now)
    return replace(state, next_override=current.next_point)
