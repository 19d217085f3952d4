from typing import Optional

from ..state import CountdownState
from ._codec import Defaults, decode_state, encode_state


class MemoryStateStore:
    """Process-local store; keeps the serialized record, not the object."""

    backend = "memory"

    def __init__(self, defaults: Defaults) -> None:
        self.defaults = defaults
        self._raw: Optional[str] = None

    async def read(self) -> CountdownState:
        if self._raw is None:
            self._raw = encode_state(self.defaults())
        return decode_state(self._raw)

    async def write(self, state: CountdownState) -> None:
        self._raw = encode_state(state)

    async def close(self) -> None:
        pass
