import re

from .utils import compact_number

_MMSS_RE = re.compile(r"^(\d+):(\d+)$")
_NUMBER_RE = re.compile(r"^(?:\d+\.?\d*|\.\d+)$")

# Longest suffix first so "mins" is not read as "s".
_UNITS = (
    ("hours", 3600),
    ("hour", 3600),
    ("hrs", 3600),
    ("hr", 3600),
    ("h", 3600),
    ("minutes", 60),
    ("minute", 60),
    ("mins", 60),
    ("min", 60),
    ("m", 60),
    ("seconds", 1),
    ("second", 1),
    ("secs", 1),
    ("sec", 1),
    ("s", 1),
)


def parse_flexible(value) -> int | float | None:
    """Parse a human duration into milliseconds.

    Accepted forms:
      - "mm:ss" (seconds below 60), e.g. "1:30"
      - bare seconds, e.g. "45" or "2.5"
      - number + unit, e.g. "10m", "2 hrs", "30 seconds"

    Returns None for anything else; callers treat that as "ignore the input".
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().lower()
    if not text:
        return None

    if ":" in text:
        m = _MMSS_RE.match(text)
        if not m:
            return None
        minutes = int(m.group(1))
        seconds = int(m.group(2))
        if seconds >= 60:
            return None
        return (minutes * 60 + seconds) * 1000

    for suffix, factor in _UNITS:
        if text.endswith(suffix):
            num = text[: -len(suffix)].strip()
            if not _NUMBER_RE.match(num):
                return None
            return compact_number(float(num) * factor * 1000)

    if _NUMBER_RE.match(text):
        return compact_number(float(text) * 1000)
    return None
