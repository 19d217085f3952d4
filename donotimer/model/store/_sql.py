from __future__ import annotations
import time
from typing import AsyncContextManager, Callable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ...errors import StorageFailure
from ..state import CountdownState
from ._codec import Defaults, decode_state, encode_state

STATE_ROW_ID = 1

# ------------------------------------------------------------------------------
# DDL (idempotent)
# ------------------------------------------------------------------------------
SQL_CREATE_COUNTDOWN_STATE = r"""
-- the one and only countdown record, stored as its JSON document
CREATE TABLE IF NOT EXISTS countdown_state (
  id          INTEGER PRIMARY KEY,
  doc         TEXT NOT NULL,
  updated_at  DOUBLE PRECISION NOT NULL
);
"""

SQL_SELECT_STATE = r"""
SELECT doc FROM countdown_state WHERE id = :id
"""

SQL_INSERT_DEFAULT = r"""
INSERT INTO countdown_state (id, doc, updated_at)
VALUES (:id, :doc, :updated_at)
ON CONFLICT (id) DO NOTHING
"""

SQL_UPSERT_STATE = r"""
INSERT INTO countdown_state (id, doc, updated_at)
VALUES (:id, :doc, :updated_at)
ON CONFLICT (id) DO UPDATE SET
  doc = EXCLUDED.doc,
  updated_at = EXCLUDED.updated_at
"""


async def create_schema(conn: AsyncConnection) -> None:
    await conn.execute(text(SQL_CREATE_COUNTDOWN_STATE))


class SqlStateStore:
    backend = "sql"

    def __init__(
        self, *, engine: AsyncEngine, defaults: Defaults,
        gated: Callable[[], AsyncContextManager[None]]
    ) -> None:
        self.engine = engine
        self.defaults = defaults
        self.gated = gated

    async def read(self) -> CountdownState:
        try:
            async with self.gated():
                async with self.engine.begin() as conn:
                    raw = await self._select(conn)
                    if raw is None:
                        await conn.execute(text(SQL_INSERT_DEFAULT), {
                            "id": STATE_ROW_ID,
                            "doc": encode_state(self.defaults()),
                            "updated_at": time.time(),
                        })
                        raw = await self._select(conn)
        except (SQLAlchemyError, OSError) as e:
            raise StorageFailure(f"database read failed: {e}") from e
        if raw is None:
            raise StorageFailure("database lost the countdown row on create")
        return decode_state(raw)

    async def write(self, state: CountdownState) -> None:
        try:
            async with self.gated():
                async with self.engine.begin() as conn:
                    await conn.execute(text(SQL_UPSERT_STATE), {
                        "id": STATE_ROW_ID,
                        "doc": encode_state(state),
                        "updated_at": time.time(),
                    })
        except (SQLAlchemyError, OSError) as e:
            raise StorageFailure(f"database write failed: {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()

    async def _select(self, conn: AsyncConnection) -> str | None:
        result = await conn.execute(text(SQL_SELECT_STATE),
                                    {"id": STATE_ROW_ID})
        return result.scalar_one_or_none()
