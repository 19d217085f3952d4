import json
from typing import Callable

from ...errors import StorageFailure
from ..state import CountdownState

Defaults = Callable[[], CountdownState]


def encode_state(state: CountdownState) -> str:
    return json.dumps(state.to_doc(), indent=2)


def decode_state(raw: str | bytes) -> CountdownState:
    try:
        return CountdownState.from_doc(json.loads(raw))
    except (ValueError, KeyError, TypeError) as e:
        raise StorageFailure(f"stored countdown record is unreadable: {e}") \
            from e
