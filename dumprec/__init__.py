"""Chunked binary dump recorder with companion text logs."""

from importlib.metadata import version, PackageNotFoundError

from .core.frame import Record, TruncatedFrame, decode, encode
from .core.reader import dump_channel, dump_reader, read_all, read_chunks, read_records
from .core.recorder import ChunkOpenFailed, DumpChunker, DumpRecorder, RecorderError, WriteFailed
from .io.companion_log import CompanionLog

__all__ = [
    "__version__",
    "ChunkOpenFailed",
    "CompanionLog",
    "DumpChunker",
    "DumpRecorder",
    "Record",
    "RecorderError",
    "TruncatedFrame",
    "WriteFailed",
    "decode",
    "dump_channel",
    "dump_reader",
    "encode",
    "read_all",
    "read_chunks",
    "read_records",
]

try:
    __version__ = version("dumprec")
except PackageNotFoundError:  # pragma: no cover - during local dev without install
    __version__ = "0.0.0"
