import asyncio
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

# One row is read per viewer poll; a small pool is plenty.
POOL_SIZE = 5

_ASYNC_DRIVERS = {
    "sqlite://": "sqlite+aiosqlite://",
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
}


def async_url(url: str) -> str:
    for prefix, driver in _ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return driver + url[len(prefix):]
    return url


def _enable_sqlite_durability(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _pragmas(dbapi_connection, _):
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA journal_mode=WAL;")
        cur.execute("PRAGMA busy_timeout=5000;")
        # a committed countdown write must survive power loss
        cur.execute("PRAGMA synchronous=FULL;")
        cur.close()


def make_async_engine(database_url: str):
    """Build the engine plus a gate that queues store calls ahead of the pool."""
    url = async_url(database_url)
    if url.startswith("postgresql+asyncpg://"):
        engine = create_async_engine(url, pool_pre_ping=True,
                                     pool_size=POOL_SIZE, max_overflow=0)
    else:
        engine = create_async_engine(url, pool_pre_ping=True)
    if url.startswith("sqlite+aiosqlite://"):
        _enable_sqlite_durability(engine)

    gate = asyncio.Semaphore(POOL_SIZE)

    @asynccontextmanager
    async def gated():
        async with gate:
            yield

    return engine, gated
