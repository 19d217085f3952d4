from typing import AsyncContextManager, Callable, Optional, Protocol

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncEngine

from ..state import CountdownState
from ._codec import Defaults
from ._file import FileStateStore
from ._memory import MemoryStateStore
from ._redis import RedisStateStore
from ._sql import SqlStateStore, create_schema

Gated = Callable[[], AsyncContextManager[None]]


class StateStore(Protocol):
    backend: str

    async def read(self) -> CountdownState: ...

    async def write(self, state: CountdownState) -> None: ...

    async def close(self) -> None: ...


# Factory keeps server.py simple and constructor-agnostic:
def new_store(backend: str, *, defaults: Defaults,
              path: Optional[str] = None,
              r: Optional[redis.Redis] = None,
              key: str = "countdown:state",
              engine: Optional[AsyncEngine] = None,
              gated: Optional[Gated] = None) -> StateStore:
    if backend == "file":
        if path is None:
            raise RuntimeError("StateStore(file) requires path=")
        return FileStateStore(path, defaults)
    if backend == "redis":
        if r is None:
            raise RuntimeError("StateStore(redis) requires r=redis.Redis")
        return RedisStateStore(r, defaults, key=key)
    if backend == "sql":
        if engine is None or gated is None:
            raise RuntimeError(
                "StateStore(sql) requires engine=AsyncEngine and gated=Gated"
            )
        return SqlStateStore(engine=engine, defaults=defaults, gated=gated)
    if backend == "memory":
        return MemoryStateStore(defaults)
    raise RuntimeError(f"unknown state backend {backend!r}")


__all__ = [
    "StateStore", "new_store", "create_schema",
    "FileStateStore", "MemoryStateStore", "RedisStateStore", "SqlStateStore",
]
