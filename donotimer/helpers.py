import time
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

# epoch milliseconds
Clock = Callable[[], int]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ----------------------------
# Helpers
# ----------------------------
def now_ms() -> int:
    return int(time.time() * 1000)


def to_iso(ts_ms: int | None) -> Optional[str]:
    if ts_ms is None:
        return None
    return (_EPOCH + timedelta(milliseconds=ts_ms)).isoformat(
        timespec="milliseconds"
    )


def parse_instant(value: str) -> int:
    """Parse an ISO-8601 timestamp into epoch milliseconds.

    A trailing ``Z`` is accepted; values without an offset are taken as UTC.
    Raises ValueError for anything that is not a string, does not parse, or
    falls outside the years 1..9999 once shifted to UTC.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"not a timestamp: {value!r}")
    s = value.strip()
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        ms = (dt - _EPOCH) // timedelta(milliseconds=1)
        to_iso(ms)
    except OverflowError:
        raise ValueError(f"timestamp out of range: {value!r}")
    return ms


def ct_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
