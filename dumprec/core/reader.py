"""Offline readers for finished dump files."""

from __future__ import annotations

import io
import logging
import os
import queue
import threading
from pathlib import Path
from typing import BinaryIO, Iterator, List, Union

from .frame import Record, decode
from .naming import chunk_index

log = logging.getLogger(__name__)

DumpSource = Union[str, "os.PathLike[str]", BinaryIO]

_END = object()


def _read_source(source: DumpSource) -> bytes:
    if isinstance(source, (str, os.PathLike)):
        return Path(source).read_bytes()
    return source.read()


def read_records(source: DumpSource) -> List[Record]:
    """Read *source* fully and decode every record.

    Raises :class:`~dumprec.core.frame.TruncatedFrame` if the file ends
    mid-frame.
    """

    return decode(_read_source(source))


def read_all(source: DumpSource) -> bytes:
    """Return the payloads of *source* concatenated in file order."""

    return b"".join(record.payload for record in read_records(source))


def dump_reader(source: DumpSource) -> io.BytesIO:
    """Byte-stream view over the concatenated payloads of *source*."""

    return io.BytesIO(read_all(source))


class PayloadChannel:
    """Bounded queue of payloads filled by a producer thread.

    Iteration yields payloads in file order and stops once the producer is
    done. A channel can only be consumed once.
    """

    def __init__(self, records: List[Record]) -> None:
        self._count = len(records)
        # one extra slot for the end marker
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=self._count + 1)
        self._exhausted = False
        self._thread = threading.Thread(
            target=self._produce, args=(records,), name="dumprec-channel", daemon=True
        )
        self._thread.start()

    def __len__(self) -> int:
        return self._count

    def _produce(self, records: List[Record]) -> None:
        for record in records:
            self._queue.put(record.payload)
        self._queue.put(_END)

    def get(self, timeout: float | None = None) -> bytes | None:
        """Return the next payload, or ``None`` once the channel is drained."""

        if self._exhausted:
            return None
        item = self._queue.get(timeout=timeout)
        if item is _END:
            self._exhausted = True
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[bytes]:
        while True:
            payload = self.get()
            if payload is None:
                return
            yield payload


def dump_channel(source: DumpSource) -> PayloadChannel:
    """Decode *source* and stream its payloads through a :class:`PayloadChannel`.

    Decode errors are raised here, before any payload is produced.
    """

    return PayloadChannel(read_records(source))


def chunk_files(base: Union[str, "os.PathLike[str]"]) -> List[Path]:
    """Return the existing ``base.dump.N`` files ordered by chunk index."""

    base_path = Path(base)
    directory = base_path.parent
    found = []
    if not directory.is_dir():
        return []
    # names are matched literally, glob would treat [ ] * ? in the base as patterns
    for path in directory.iterdir():
        index = chunk_index(path, base_path.name)
        if index is not None:
            found.append((index, path))
    return [path for _, path in sorted(found)]


def read_chunks(base: Union[str, "os.PathLike[str]"]) -> List[Record]:
    """Decode a whole chunk family in order."""

    records: List[Record] = []
    for path in chunk_files(base):
        chunk = read_records(path)
        log.debug("read %d records from %s", len(chunk), path)
        records.extend(chunk)
    return records
