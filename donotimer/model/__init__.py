from .state import CountdownState, LastDonation, LEDGER_CAPACITY
from .serializer import UpdateSerializer
from .store import StateStore, new_store

__all__ = [
    "CountdownState", "LastDonation", "LEDGER_CAPACITY",
    "UpdateSerializer", "StateStore", "new_store",
]
