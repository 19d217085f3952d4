import asyncio
import os
import uuid
from pathlib import Path

from ...errors import StorageFailure
from ..state import CountdownState
from ._codec import Defaults, decode_state, encode_state


class FileStateStore:
    """JSON document on local disk.

    Writes go to a temp file in the same directory and are renamed over the
    live file, so a reader sees either the old record or the new one. The
    first-read default is hard-linked into place instead, which fails if the
    record already exists; a reader that raced a committed write then loads
    that write rather than clobbering it.
    """

    backend = "file"

    def __init__(self, path: str | os.PathLike, defaults: Defaults) -> None:
        self.path = Path(path)
        self.defaults = defaults

    async def read(self) -> CountdownState:
        try:
            raw = await asyncio.to_thread(self._read_raw)
            if raw is None:
                state = self.defaults()
                if await asyncio.to_thread(self._create_raw,
                                           encode_state(state)):
                    return state
                raw = await asyncio.to_thread(self._read_raw)
        except OSError as e:
            raise StorageFailure(f"cannot read {self.path}: {e}") from e
        if raw is None:
            raise StorageFailure(f"{self.path} vanished during creation")
        return decode_state(raw)

    async def write(self, state: CountdownState) -> None:
        raw = encode_state(state)
        try:
            await asyncio.to_thread(self._write_raw, raw)
        except OSError as e:
            raise StorageFailure(f"cannot write {self.path}: {e}") from e

    async def close(self) -> None:
        pass

    def _read_raw(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _stage(self, raw: str) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(
            f"{self.path.stem}.tmp.{uuid.uuid4().hex}{self.path.suffix}"
        )
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(raw)
            f.flush()
            os.fsync(f.fileno())
        return tmp

    def _create_raw(self, raw: str) -> bool:
        tmp = None
        try:
            tmp = self._stage(raw)
            os.link(tmp, self.path)
            return True
        except FileExistsError:
            return False
        finally:
            if tmp is not None and tmp.exists():
                tmp.unlink()

    def _write_raw(self, raw: str) -> None:
        tmp = None
        try:
            tmp = self._stage(raw)
            os.replace(tmp, self.path)
        finally:
            if tmp is not None and tmp.exists():
                tmp.unlink()
