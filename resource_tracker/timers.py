import math
import uuid

from .duration import parse_flexible
from .utils import clamp, to_number


def _finite(value) -> float | None:
    n = to_number(value)
    return n if math.isfinite(n) else None


def create_timer(label: str, text, now: int) -> dict | None:
    ms = parse_flexible(text)
    if ms is None:
        return None
    return {
        "id": uuid.uuid4().hex,
        "label": (label or "").strip(),
        "target_ts": now + ms,
        "is_paused": False,
        "paused_remaining": None,
        "created": now,
        "duration_ms": ms,
    }


def timer_remaining_ms(t: dict, now: int) -> float:
    target = _finite(t.get("target_ts"))
    if t.get("is_paused"):
        paused = _finite(t.get("paused_remaining"))
        if paused is not None:
            return max(0, paused)
    if target is not None:
        return max(0, target - now)
    return 0


def timer_total_ms(t: dict, remaining: float, now: int) -> float:
    duration = _finite(t.get("duration_ms"))
    if duration is not None:
        return max(max(0, duration), remaining)

    target = _finite(t.get("target_ts"))
    created = _finite(t.get("created"))
    if target is not None and created is not None and target - created > 0:
        return max(target - created, remaining)

    paused = _finite(t.get("paused_remaining"))
    if t.get("is_paused") and paused is not None:
        return max(max(0, paused), remaining)

    if target is not None:
        return max(max(0, target - now), remaining)
    return remaining or 1


def timer_progress(t: dict, now: int) -> float:
    """Fraction elapsed in [0, 1]."""
    remaining = timer_remaining_ms(t, now)
    total = timer_total_ms(t, remaining, now)
    if total <= 0:
        return 1.0
    return clamp(1.0 - remaining / total, 0.0, 1.0)


def pause_timer(t: dict, now: int) -> dict:
    if t.get("is_paused"):
        return dict(t)
    return {**t, "is_paused": True, "paused_remaining": timer_remaining_ms(t, now)}


def resume_timer(t: dict, now: int) -> dict:
    if not t.get("is_paused"):
        return dict(t)
    remaining = timer_remaining_ms(t, now)
    return {**t, "is_paused": False, "paused_remaining": None, "target_ts": now + remaining}
