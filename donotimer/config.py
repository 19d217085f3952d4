import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .helpers import parse_instant
from .model.state import LEGACY_TIME_UNITS

# ----------------------------
# Config & Constants
# ----------------------------
DEFAULT_TARGET = "2026-02-28T15:00:00+07:00"
BACKENDS = ("file", "redis", "sql", "memory")


@dataclass(frozen=True)
class Settings:
    initial_target_at: int
    rp_per_unit: int = 1000
    seconds_per_unit: int = 1
    admin_password: str = ""
    webhook_secret: str = ""
    backend: str = "file"
    state_file: str = "data/state.json"
    redis_url: str = "redis://127.0.0.1:6379"
    state_key: str = "countdown:state"
    database_url: str = "sqlite:///./countdown.db"
    display_timezone: str = "Asia/Jakarta"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        env = os.environ if env is None else env

        raw_target = env.get("INITIAL_TARGET_DATETIME", DEFAULT_TARGET)
        try:
            initial_target_at = parse_instant(raw_target)
        except ValueError:
            raise ValueError(
                f"INITIAL_TARGET_DATETIME is not a valid timestamp: "
                f"{raw_target!r}"
            )

        rp_per_unit = _positive_int(env, "RP_PER_UNIT", "1000")
        if env.get("SECONDS_PER_UNIT"):
            seconds_per_unit = _positive_int(env, "SECONDS_PER_UNIT", "1")
        else:
            # older deployments only set TIME_UNIT=seconds|minutes
            unit = env.get("TIME_UNIT", "seconds").strip().lower()
            seconds_per_unit = LEGACY_TIME_UNITS.get(unit, 1)

        backend = env.get("STATE_BACKEND", "file").strip().lower()
        if backend not in BACKENDS:
            raise ValueError(
                f"STATE_BACKEND must be one of {', '.join(BACKENDS)}; "
                f"got {backend!r}"
            )

        display_timezone = env.get("DISPLAY_TIMEZONE", "Asia/Jakarta")
        try:
            ZoneInfo(display_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(
                f"DISPLAY_TIMEZONE is not a known time zone: "
                f"{display_timezone!r}"
            )

        return cls(
            initial_target_at=initial_target_at,
            rp_per_unit=rp_per_unit,
            seconds_per_unit=seconds_per_unit,
            admin_password=env.get("ADMIN_PASSWORD", ""),
            webhook_secret=env.get("WEBHOOK_SECRET", ""),
            backend=backend,
            state_file=env.get("STATE_FILE", "data/state.json"),
            redis_url=env.get("REDIS_URL", "redis://127.0.0.1:6379"),
            state_key=env.get("STATE_KEY", "countdown:state"),
            database_url=env.get("DATABASE_URL", "sqlite:///./countdown.db"),
            display_timezone=display_timezone,
            log_level=env.get("LOG_LEVEL", "INFO"),
        )


def _positive_int(env, name: str, default: str) -> int:
    raw = env.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer; got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive; got {value}")
    return value
