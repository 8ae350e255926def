"""Binary framing for dump records."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Union

# sequence: int64, timestamp (ns): int64, payload length: int32, little-endian
HEADER = struct.Struct("<qqi")
HEADER_SIZE = HEADER.size

BytesLike = Union[bytes, bytearray, memoryview]


class FrameError(Exception):
    """Base class for frame codec errors."""


class TruncatedFrame(FrameError):
    """Raised when a buffer ends in the middle of a frame."""

    def __init__(self, offset: int, reason: str) -> None:
        super().__init__(f"truncated frame at offset {offset}: {reason}")
        self.offset = offset
        self.reason = reason


@dataclass(frozen=True)
class Record:
    """One recorded payload with its sequence number and capture time."""

    sequence: int
    timestamp_ns: int
    payload: bytes = b""

    @property
    def timestamp(self) -> datetime:
        seconds, nanos = divmod(self.timestamp_ns, 1_000_000_000)
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
            microsecond=nanos // 1000
        )

    def to_dict(self) -> dict:
        return {
            "seq": self.sequence,
            "ts_ns": self.timestamp_ns,
            "len": len(self.payload),
            "payload_hex": self.payload.hex(),
        }


def encode(record: Record) -> bytes:
    """Serialize *record* into a frame.

    The payload length must fit in a signed 32-bit integer.
    """

    return HEADER.pack(record.sequence, record.timestamp_ns, len(record.payload)) + record.payload


def encode_payload(sequence: int, timestamp_ns: int, payload: BytesLike) -> bytes:
    """Build a frame straight from its fields, copying *payload*."""

    data = bytes(payload)
    return HEADER.pack(sequence, timestamp_ns, len(data)) + data


def iter_frames(buffer: BytesLike) -> Iterator[Record]:
    """Yield records from *buffer* in order.

    A declared length of zero or less produces an empty payload. Raises
    :class:`TruncatedFrame` once the scan reaches an incomplete frame.
    """

    view = memoryview(buffer)
    size = len(view)
    offset = 0
    while offset < size:
        if size - offset < HEADER_SIZE:
            raise TruncatedFrame(offset, f"{size - offset} of {HEADER_SIZE} header bytes")
        sequence, timestamp_ns, length = HEADER.unpack_from(view, offset)
        start = offset + HEADER_SIZE
        if length <= 0:
            yield Record(sequence, timestamp_ns, b"")
            offset = start
            continue
        end = start + length
        if end > size:
            raise TruncatedFrame(offset, f"payload needs {length} bytes, {size - start} left")
        yield Record(sequence, timestamp_ns, bytes(view[start:end]))
        offset = end


def decode(buffer: BytesLike) -> List[Record]:
    """Decode every frame in *buffer*.

    Decoding is all-or-nothing: a corrupt tail makes the whole buffer
    unreadable and no partial result is returned.
    """

    return list(iter_frames(buffer))
