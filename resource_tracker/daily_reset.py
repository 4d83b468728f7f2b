import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import DAILY_RESET_HOUR, DAY_MS, DEFAULT_TZ, FALLBACK_TZ_OFFSET
from .logging_setup import get_logger

logger = get_logger("daily_reset")


def is_valid_time_zone(value) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        ZoneInfo(value.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def ensure_time_zone(value) -> str:
    return value.strip() if is_valid_time_zone(value) else DEFAULT_TZ


def _format_offset(offset: datetime.timedelta) -> str:
    total_min = int(offset.total_seconds() // 60)
    sign = "+" if total_min >= 0 else "-"
    hh, mm = divmod(abs(total_min), 60)
    return f"{sign}{hh:02d}:{mm:02d}"


def tz_offset_designator(time_zone: str, at_ms: int) -> str:
    """UTC offset of `time_zone` at instant `at_ms`, as "+HH:MM" / "-HH:MM"."""
    zone = ensure_time_zone(time_zone)
    try:
        local = datetime.datetime.fromtimestamp(at_ms / 1000, tz=ZoneInfo(zone))
        offset = local.utcoffset()
        if offset is not None:
            return _format_offset(offset)
    except (ZoneInfoNotFoundError, ValueError, OverflowError, OSError) as ex:
        logger.warning(f"Failed to read timezone offset zone={zone} err={ex}")
    return FALLBACK_TZ_OFFSET


def _local_date(at_ms: int, zone: str) -> datetime.date:
    try:
        return datetime.datetime.fromtimestamp(at_ms / 1000, tz=ZoneInfo(zone)).date()
    except (ZoneInfoNotFoundError, ValueError, OverflowError, OSError) as ex:
        logger.warning(f"Failed to read local date zone={zone} err={ex}")
        return datetime.datetime.fromtimestamp(at_ms / 1000).date()


def _parse_iso_ms(text: str) -> int | None:
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    return int(parsed.timestamp() * 1000)


def next_daily_reset_ts(
    now: int,
    time_zone: str = DEFAULT_TZ,
    reset_hour: int = DAILY_RESET_HOUR,
    exact_offset: bool = False,
) -> int:
    """Absolute ms of the next `reset_hour`:00 local time in `time_zone`.

    The zone offset is sampled at `now` and applied to the target instant, so
    on a DST transition day the result can be one hour off. Pass
    `exact_offset=True` to sample the offset at the target instead.
    """
    zone = ensure_time_zone(time_zone)
    day = _local_date(now, zone)
    if exact_offset:
        target = _exact_target(day, zone, reset_hour)
        if target is not None:
            if target <= now:
                target = _exact_target(day + datetime.timedelta(days=1), zone, reset_hour) or target + DAY_MS
            return target

    offset = tz_offset_designator(zone, now)
    stamp = f"{day.isoformat()}T{reset_hour:02d}:00:00"

    target = _parse_iso_ms(stamp + offset)
    if target is None:
        target = _parse_iso_ms(stamp)
    if target is None:
        target = now

    if target <= now:
        target += DAY_MS
    return target


def _exact_target(day: datetime.date, zone: str, reset_hour: int) -> int | None:
    try:
        local = datetime.datetime(day.year, day.month, day.day, reset_hour, tzinfo=ZoneInfo(zone))
    except (ZoneInfoNotFoundError, ValueError, OSError) as ex:
        logger.warning(f"Exact reset lookup failed zone={zone} err={ex}")
        return None
    return int(local.timestamp() * 1000)
