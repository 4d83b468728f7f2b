import os
import math
import time


def ensure_dir(path: str) -> None:
    if path:
        os.makedirs(path, exist_ok=True)


def now_ms() -> int:
    return int(time.time() * 1000)


def to_number(value) -> float:
    """Loose numeric coercion: anything unusable becomes NaN instead of raising."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def is_finite(value) -> bool:
    return math.isfinite(to_number(value))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def compact_number(value: float):
    """Return an int for integral floats so persisted JSON stays tidy."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_mmss(ms: float) -> str:
    ms = to_number(ms)
    if not math.isfinite(ms) or ms < 0:
        ms = 0
    total_sec = int(ms // 1000)
    m, s = divmod(total_sec, 60)
    return f"{m:02d}:{s:02d}"


def format_dhms(ms: float) -> str:
    ms = to_number(ms)
    if not math.isfinite(ms) or ms < 0:
        ms = 0
    total_sec = int(ms // 1000)
    d, rem = divmod(total_sec, 86400)
    h, rem = divmod(rem, 3600)
    m, s = divmod(rem, 60)

    parts: list[str] = []
    if d:
        parts.append(f"{d}d")
    if h or d:
        parts.append(f"{h}h")
    if m or h or d:
        parts.append(f"{m}m")
    parts.append(f"{s}s")
    return " ".join(parts)
