from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from ..helpers import parse_instant, to_iso

LEDGER_CAPACITY = 100
LEGACY_TIME_UNITS = {"minutes": 60, "seconds": 1}


@dataclass(frozen=True)
class LastDonation:
    id: str
    donor_name: str
    amount: float
    reduction_seconds: int
    applied_at: int

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "donorName": self.donor_name,
            "amount": self.amount,
            "reductionSeconds": self.reduction_seconds,
            "appliedAt": to_iso(self.applied_at),
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "LastDonation":
        # older records used gifterName / timestamp
        applied = doc.get("appliedAt", doc.get("timestamp"))
        return cls(
            id=str(doc["id"]),
            donor_name=doc.get("donorName") or doc.get("gifterName")
            or "Anonymous",
            amount=doc.get("amount", 0),
            reduction_seconds=int(doc.get("reductionSeconds", 0)),
            applied_at=parse_instant(applied) if applied else 0,
        )


@dataclass(frozen=True)
class CountdownState:
    target_at: int
    initial_target_at: int
    rp_per_unit: int
    seconds_per_unit: int
    processed_event_ids: Tuple[str, ...] = field(default_factory=tuple)
    last_donation: Optional[LastDonation] = None

    def has_processed(self, event_id: str) -> bool:
        return event_id in self.processed_event_ids

    def with_event(self, event_id: str) -> Tuple[str, ...]:
        """Ledger with `event_id` appended, oldest ids evicted past capacity."""
        ids = self.processed_event_ids + (event_id,)
        if len(ids) > LEDGER_CAPACITY:
            ids = ids[len(ids) - LEDGER_CAPACITY:]
        return ids

    def evolve(self, **changes) -> "CountdownState":
        return replace(self, **changes)

    def to_doc(self) -> Dict[str, Any]:
        return {
            "targetAt": to_iso(self.target_at),
            "initialTargetAt": to_iso(self.initial_target_at),
            "rpPerUnit": self.rp_per_unit,
            "secondsPerUnit": self.seconds_per_unit,
            "processedEventIds": list(self.processed_event_ids),
            "lastDonation": (
                self.last_donation.to_doc() if self.last_donation else None
            ),
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "CountdownState":
        """Build state from a persisted record, upgrading older shapes.

        Older records carried `timeUnit` (seconds|minutes) instead of
        `secondsPerUnit` and kept the ledger under `lastProcessedWebhookIds`.
        """
        target_at = parse_instant(doc["targetAt"])
        initial = doc.get("initialTargetAt")

        seconds_per_unit = doc.get("secondsPerUnit")
        if seconds_per_unit is None:
            seconds_per_unit = LEGACY_TIME_UNITS.get(doc.get("timeUnit"), 1)

        ids = doc.get("processedEventIds")
        if ids is None:
            ids = doc.get("lastProcessedWebhookIds", [])
        ids = tuple(str(i) for i in ids)[-LEDGER_CAPACITY:]

        last = doc.get("lastDonation")
        return cls(
            target_at=target_at,
            initial_target_at=parse_instant(initial) if initial else target_at,
            rp_per_unit=int(doc["rpPerUnit"]),
            seconds_per_unit=int(seconds_per_unit),
            processed_event_ids=ids,
            last_donation=LastDonation.from_doc(last) if last else None,
        )

    @classmethod
    def initial(cls, target_at: int, rp_per_unit: int,
                seconds_per_unit: int) -> "CountdownState":
        return cls(
            target_at=target_at,
            initial_target_at=target_at,
            rp_per_unit=rp_per_unit,
            seconds_per_unit=seconds_per_unit,
        )
