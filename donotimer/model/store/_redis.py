import redis.asyncio as redis
from redis.exceptions import RedisError

from ...errors import StorageFailure
from ..state import CountdownState
from ._codec import Defaults, decode_state, encode_state


class RedisStateStore:
    backend = "redis"

    def __init__(self, r: redis.Redis, defaults: Defaults,
                 key: str = "countdown:state") -> None:
        self.r = r
        self.defaults = defaults
        self.key = key

    async def read(self) -> CountdownState:
        try:
            raw = await self.r.get(self.key)
            if raw is None:
                # NX so two first readers cannot install different defaults
                await self.r.set(self.key, encode_state(self.defaults()),
                                 nx=True)
                raw = await self.r.get(self.key)
        except RedisError as e:
            raise StorageFailure(f"redis read failed: {e}") from e
        if raw is None:
            raise StorageFailure("redis lost the countdown record on create")
        return decode_state(raw)

    async def write(self, state: CountdownState) -> None:
        try:
            await self.r.set(self.key, encode_state(state))
        except RedisError as e:
            raise StorageFailure(f"redis write failed: {e}") from e

    async def close(self) -> None:
        await self.r.aclose()
