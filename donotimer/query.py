from typing import Any, Dict

from .helpers import Clock, now_ms, to_iso
from .model.store import StateStore
from .timecalc import (
    DEFAULT_TIMEZONE, format_hhmmss, format_local, percentage_remaining,
    rate_label, remaining_seconds,
)


class QueryFacade:
    """Read-only snapshot for the countdown, overlay and admin pages."""

    def __init__(self, store: StateStore, clock: Clock = now_ms,
                 display_timezone: str = DEFAULT_TIMEZONE) -> None:
        self.store = store
        self.clock = clock
        self.display_timezone = display_timezone

    async def snapshot(self) -> Dict[str, Any]:
        state = await self.store.read()
        now = self.clock()
        remaining = remaining_seconds(state.target_at, now)
        return {
            "targetAt": to_iso(state.target_at),
            "targetAtLocal": format_local(state.target_at,
                                          self.display_timezone),
            "remainingSeconds": remaining,
            "formattedHHMMSS": format_hhmmss(remaining),
            "percentageRemaining": percentage_remaining(
                state.initial_target_at, state.target_at, now
            ),
            "rpPerUnit": state.rp_per_unit,
            "secondsPerUnit": state.seconds_per_unit,
            "rateLabel": rate_label(state.rp_per_unit,
                                    state.seconds_per_unit),
            "lastDonation": (
                state.last_donation.to_doc() if state.last_donation else None
            ),
        }
