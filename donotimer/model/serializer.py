import asyncio
from typing import Callable

from .state import CountdownState
from .store import StateStore

Updater = Callable[[CountdownState], CountdownState]


class UpdateSerializer:
    """Runs read-modify-write sequences against a store one at a time.

    Waiters are woken in arrival order, so updates apply in the order the
    callers asked for them. The updater must be pure: if it raises, nothing
    is written and the lock is released on the way out.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()

    async def run_exclusive(self, updater: Updater) -> CountdownState:
        async with self._lock:
            current = await self.store.read()
            updated = updater(current)
            if updated is not current:
                await self.store.write(updated)
            return updated
