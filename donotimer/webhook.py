from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict

from .errors import DuplicateEvent, InvalidPayload
from .helpers import Clock, now_ms, to_iso
from .model import CountdownState, LastDonation, UpdateSerializer
from .model.store import StateStore
from .timecalc import (
    format_hhmmss, reduction_seconds, remaining_seconds, subtract_seconds,
)

logger = logging.getLogger(__name__)

DONATION_EVENT_TYPE = "alert"
APPLIED = "applied"
DUPLICATE_IGNORED = "duplicate-ignored"


@dataclass(frozen=True)
class DonationEvent:
    id: str
    amount: float
    donor_name: str


def parse_donation(event: Dict[str, Any]) -> DonationEvent:
    event_id = event.get("id")
    if event_id is None or str(event_id).strip() == "":
        raise InvalidPayload("Missing id", {"id": "required"})

    if event.get("type") != DONATION_EVENT_TYPE:
        raise InvalidPayload(
            f"Invalid type, expected '{DONATION_EVENT_TYPE}'",
            {"type": f"must be '{DONATION_EVENT_TYPE}'"},
        )

    amount = event.get("amount")
    try:
        # JSON integers are unbounded; float() overflows past ~1e308
        usable = (not isinstance(amount, bool)
                  and isinstance(amount, (int, float))
                  and math.isfinite(float(amount)) and amount > 0)
    except OverflowError:
        usable = False
    if not usable:
        raise InvalidPayload("Amount must be greater than 0",
                             {"amount": "must be a number greater than 0"})

    # the donation platform calls the donor "gifter"
    name = event.get("donorName") or event.get("gifterName") or ""
    return DonationEvent(
        id=str(event_id),
        amount=amount,
        donor_name=str(name).strip() or "Anonymous",
    )


@dataclass(frozen=True)
class WebhookResult:
    status: str
    state: CountdownState
    reduction_seconds: int
    remaining_seconds: int

    def to_response(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "targetAt": to_iso(self.state.target_at),
            "reductionSeconds": self.reduction_seconds,
            "remainingSeconds": self.remaining_seconds,
            "formattedHHMMSS": format_hhmmss(self.remaining_seconds),
        }


class WebhookProcessor:
    def __init__(self, store: StateStore, serializer: UpdateSerializer,
                 clock: Clock = now_ms) -> None:
        self.store = store
        self.serializer = serializer
        self.clock = clock

    async def process(self, event: Dict[str, Any]) -> WebhookResult:
        try:
            donation = parse_donation(event)
        except InvalidPayload as e:
            logger.warning("rejected webhook payload: %s", e.message)
            raise

        # fast path only; the authoritative check happens under the lock
        current = await self.store.read()
        if current.has_processed(donation.id):
            return self._duplicate(donation, current)

        reduction = reduction_seconds(
            donation.amount, current.rp_per_unit, current.seconds_per_unit
        )

        def apply(state: CountdownState) -> CountdownState:
            if state.has_processed(donation.id):
                # another delivery of this id got the lock first
                raise DuplicateEvent(donation.id, state)
            now = self.clock()
            return state.evolve(
                target_at=subtract_seconds(state.target_at, reduction, now),
                processed_event_ids=state.with_event(donation.id),
                last_donation=LastDonation(
                    id=donation.id,
                    donor_name=donation.donor_name,
                    amount=donation.amount,
                    reduction_seconds=reduction,
                    applied_at=now,
                ),
            )

        try:
            updated = await self.serializer.run_exclusive(apply)
        except DuplicateEvent as e:
            return self._duplicate(donation, e.state)

        logger.info(
            "applied donation %s: amount=%s reduction=%ss",
            donation.id, donation.amount, reduction,
        )
        return WebhookResult(
            status=APPLIED,
            state=updated,
            reduction_seconds=reduction,
            remaining_seconds=remaining_seconds(updated.target_at,
                                                self.clock()),
        )

    def _duplicate(self, donation: DonationEvent,
                   state: CountdownState) -> WebhookResult:
        logger.info("duplicate webhook %s ignored", donation.id)
        return WebhookResult(
            status=DUPLICATE_IGNORED,
            state=state,
            reduction_seconds=0,
            remaining_seconds=remaining_seconds(state.target_at,
                                                self.clock()),
        )
