"""Pure countdown arithmetic.

All timestamps are epoch milliseconds; durations handed to or returned
from these functions are whole seconds unless stated otherwise.
"""
import math
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Jakarta"


def remaining_seconds(target_at: int, now: int) -> int:
    return max(0, math.floor((target_at - now) / 1000))


def format_hhmmss(total_seconds: float) -> str:
    clamped = max(0, math.floor(total_seconds))
    hours = clamped // 3600
    minutes = (clamped % 3600) // 60
    seconds = clamped % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def reduction_seconds(amount: float, rp_per_unit: int,
                      seconds_per_unit: int) -> int:
    # partial units count for nothing
    units = math.floor(amount / rp_per_unit)
    return units * seconds_per_unit


def subtract_seconds(target_at: int, seconds: int, now: int) -> int:
    return max(target_at - seconds * 1000, now)


def percentage_remaining(initial_target_at: int, target_at: int,
                         now: int) -> float:
    """Share of the baseline window still left, 0..100 with 2 decimals.

    The window is measured from `now` on every call, so the value falls
    as the clock approaches the baseline even when no donation arrives.
    """
    total_window = initial_target_at - now
    remaining_window = target_at - now
    if total_window <= 0 or remaining_window <= 0:
        return 0
    pct = round(remaining_window / total_window * 100, 2)
    return min(100, max(0, pct))


def rate_label(rp_per_unit: int, seconds_per_unit: int) -> str:
    if seconds_per_unit % 60 == 0:
        duration = f"{seconds_per_unit // 60} min"
    else:
        duration = f"{seconds_per_unit} sec"
    return f"Rp {rp_per_unit:,} / {duration}"


def format_local(ts_ms: int, tz: str = DEFAULT_TIMEZONE) -> str:
    dt = datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)
    try:
        dt = dt.astimezone(ZoneInfo(tz))
    except OverflowError:
        # local wall time past 9999-12-31; show UTC instead
        return dt.strftime("%B %d, %Y %H:%M:%S UTC")
    return dt.strftime("%B %d, %Y %H:%M:%S")
