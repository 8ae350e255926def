"""File naming helpers for dump chunks."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Tuple

DUMP_EXTENSION = "dump"
LOG_EXTENSION = "log"

_creation_stamp: Optional[str] = None


def creation_stamp() -> str:
    """Return the ``YYMMDD-HHMMSS`` stamp of the first call in this process."""

    global _creation_stamp
    if _creation_stamp is None:
        _creation_stamp = time.strftime("%y%m%d-%H%M%S", time.localtime())
    return _creation_stamp


def stamped(name: str) -> str:
    return f"{creation_stamp()}_{name}"


def chunk_filename(base: str, extension: str, index: int) -> str:
    return f"{base}.{extension}.{index}"


def chunk_filenames(base: str, index: int) -> Tuple[str, str]:
    """Return the ``(dump, log)`` file names of chunk *index*."""

    return (
        chunk_filename(base, DUMP_EXTENSION, index),
        chunk_filename(base, LOG_EXTENSION, index),
    )


def chunk_index(path: Path, base: str) -> Optional[int]:
    """Return the chunk index encoded in *path* or ``None`` if it is not a dump chunk."""

    prefix = f"{Path(base).name}.{DUMP_EXTENSION}."
    name = path.name
    if not name.startswith(prefix):
        return None
    suffix = name[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)
