from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from .errors import Unauthorized, ValidationError
from .helpers import ct_equal, parse_instant, to_iso
from .model import CountdownState, UpdateSerializer
from .model.state import LEGACY_TIME_UNITS
from .model.store import StateStore

logger = logging.getLogger(__name__)


def _positive_int(value: Any) -> Optional[int]:
    # bool is an int subclass; JSON true must not become a rate of 1
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def validate_patch(body: Dict[str, Any]) -> Dict[str, int]:
    """Check every supplied field independently.

    Returns the normalized changes; raises one ValidationError listing every
    offending field.
    """
    errors: Dict[str, str] = {}
    changes: Dict[str, int] = {}

    if body.get("targetAt") is not None:
        try:
            changes["target_at"] = parse_instant(body["targetAt"])
        except ValueError:
            errors["targetAt"] = "Invalid targetAt datetime"

    if body.get("rpPerUnit") is not None:
        rp = _positive_int(body["rpPerUnit"])
        if rp is None:
            errors["rpPerUnit"] = "rpPerUnit must be a positive integer"
        else:
            changes["rp_per_unit"] = rp

    if body.get("secondsPerUnit") is not None:
        secs = _positive_int(body["secondsPerUnit"])
        if secs is None:
            errors["secondsPerUnit"] = (
                "secondsPerUnit must be a positive integer"
            )
        else:
            changes["seconds_per_unit"] = secs
    elif body.get("timeUnit") is not None:
        unit = body["timeUnit"]
        secs = LEGACY_TIME_UNITS.get(unit) if isinstance(unit, str) else None
        if secs is None:
            errors["timeUnit"] = "timeUnit must be 'seconds' or 'minutes'"
        else:
            changes["seconds_per_unit"] = secs

    if errors:
        raise ValidationError("; ".join(errors.values()), errors)
    return changes


def config_view(state: CountdownState) -> Dict[str, Any]:
    return {
        "targetAt": to_iso(state.target_at),
        "initialTargetAt": to_iso(state.initial_target_at),
        "rpPerUnit": state.rp_per_unit,
        "secondsPerUnit": state.seconds_per_unit,
    }


class AdminMutator:
    def __init__(self, store: StateStore, serializer: UpdateSerializer,
                 admin_password: str) -> None:
        self.store = store
        self.serializer = serializer
        self.admin_password = admin_password

    def authorize(self, credential: Optional[str]) -> None:
        if not self.admin_password or not credential:
            raise Unauthorized("Unauthorized")
        if not ct_equal(credential, self.admin_password):
            raise Unauthorized("Unauthorized")

    def login(self, password: Optional[str]) -> str:
        try:
            self.authorize(password)
        except Unauthorized:
            raise Unauthorized("Invalid password")
        return self.admin_password

    async def read_config(self, credential: Optional[str]) -> Dict[str, Any]:
        self.authorize(credential)
        return config_view(await self.store.read())

    async def apply(self, credential: Optional[str],
                    body: Dict[str, Any]) -> CountdownState:
        self.authorize(credential)
        changes = validate_patch(body)

        def update(state: CountdownState) -> CountdownState:
            if not changes:
                return state
            if "target_at" in changes:
                # operator retarget re-baselines the percentage at 100%
                return state.evolve(initial_target_at=changes["target_at"],
                                    **changes)
            return state.evolve(**changes)

        updated = await self.serializer.run_exclusive(update)
        if changes:
            logger.info("admin update applied: %s", ", ".join(sorted(changes)))
        return updated
