"""Shared fixtures: a frozen clock and isolated in-memory stores."""
import asyncio

import pytest

from donotimer.helpers import parse_instant
from donotimer.model import CountdownState, UpdateSerializer
from donotimer.model.store import MemoryStateStore

T0 = parse_instant("2026-01-01T00:00:00+00:00")
HOUR_MS = 3600 * 1000


class FrozenClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class YieldingStore(MemoryStateStore):
    """Memory store that suspends on every call so coroutines interleave."""

    def __init__(self, defaults):
        super().__init__(defaults)
        self.writes = 0

    async def read(self):
        await asyncio.sleep(0)
        return await super().read()

    async def write(self, state):
        await asyncio.sleep(0)
        self.writes += 1
        await super().write(state)


def make_defaults(target_at: int = T0 + 10 * HOUR_MS, rp_per_unit: int = 1000,
                  seconds_per_unit: int = 60):
    def defaults() -> CountdownState:
        return CountdownState.initial(target_at, rp_per_unit,
                                      seconds_per_unit)
    return defaults


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return YieldingStore(make_defaults())


@pytest.fixture
def serializer(store):
    return UpdateSerializer(store)
