"""Output sinks for dump frames and companion logs."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO, Optional, Protocol, Union, runtime_checkable

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class SinkLike(Protocol):
    """Anything frames can be written to (files, sockets, ``io.BytesIO``)."""

    def write(self, data: bytes) -> int:  # pragma: no cover - protocol signature
        ...


@runtime_checkable
class Nameable(Protocol):
    """Capability of sinks that are backed by a named file."""

    def name(self) -> str:  # pragma: no cover - protocol signature
        ...


class FileSink:
    """File-backed sink.

    Binary sinks are unbuffered and write each frame completely or not at
    all: a failed write truncates the file back to where the frame started
    and re-raises. Text sinks (companion logs) flush after every write.
    """

    def __init__(self, path: PathLike, mode: str = "wb") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._binary = "b" in mode
        if self._binary:
            self._fp: IO = open(self.path, mode, buffering=0)
        else:
            self._fp = open(self.path, mode, encoding="utf-8")

    def name(self) -> str:
        return str(self.path)

    def write(self, data) -> int:
        if not self._binary:
            written = self._fp.write(data)
            self._fp.flush()
            return written
        view = memoryview(data)
        start = self._fp.tell()
        total = 0
        try:
            while total < len(view):
                written = self._fp.write(view[total:])
                if not written:
                    raise OSError(f"short write to {self.path}")
                total += written
        except OSError:
            self._rollback(start)
            raise
        return total

    def _rollback(self, offset: int) -> None:
        try:
            self._fp.truncate(offset)
            self._fp.seek(offset)
        except OSError:
            log.warning("cannot drop partial frame from %s", self.path, exc_info=True)

    def flush(self) -> None:
        self._fp.flush()

    @property
    def closed(self) -> bool:
        return self._fp.closed

    def close(self) -> None:
        if not self._fp.closed:
            self._fp.close()

    def __repr__(self) -> str:
        return f"FileSink({self.name()!r})"

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_sink(path: PathLike, *, text: bool = False, append: bool = False) -> FileSink:
    """Open a file sink, creating parent directories as needed."""

    mode = ("a" if append else "w") + ("" if text else "b")
    return FileSink(path, mode)


def is_nameable(sink: object) -> bool:
    # plain file objects carry a ``name`` attribute that is not callable
    return isinstance(sink, Nameable) and callable(getattr(sink, "name", None))


def sink_name(sink: object) -> Optional[str]:
    """Return the file name of *sink* when it is file-backed."""

    if is_nameable(sink):
        return sink.name()  # type: ignore[union-attr]
    return None
