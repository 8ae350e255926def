"""Dump recorder writing framed byte payloads into size-bounded chunks."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ..io.companion_log import CompanionLog, Notifier
from ..io.sinks import FileSink, Nameable, PathLike, SinkLike, is_nameable, open_sink, sink_name
from .frame import BytesLike, encode_payload
from .naming import chunk_filenames
from .reporter import SizeReporter

if TYPE_CHECKING:  # pragma: no cover
    from .config import RecorderConfig

log = logging.getLogger(__name__)

ChunkCallback = Callable[[str, str], None]


class RecorderError(Exception):
    """Base class for dump recorder errors."""


class ChunkOpenFailed(RecorderError):
    """Raised when the files of a new chunk cannot be opened."""

    def __init__(self, filename: str, cause: BaseException) -> None:
        super().__init__(f"cannot open chunk file {filename}: {cause}")
        self.filename = filename
        self.cause = cause


class WriteFailed(RecorderError):
    """A frame could not be written to the sink."""

    def __init__(self, sequence: int, cause: BaseException) -> None:
        super().__init__(f"failed to write frame {sequence}: {cause}")
        self.sequence = sequence
        self.cause = cause


@dataclass(frozen=True)
class DumpChunker:
    """Rotation policy: cut a new chunk once *threshold* bytes would be exceeded."""

    threshold: int
    callback: Optional[ChunkCallback] = None

    def __post_init__(self) -> None:
        if self.threshold <= 0:
            raise ValueError("chunk threshold must be positive")

    @classmethod
    def from_kb(cls, unit_kb: int, callback: Optional[ChunkCallback] = None) -> "DumpChunker":
        return cls(threshold=int(unit_kb) * 1024, callback=callback)


class DumpRecorder:
    """Append timestamped, sequence-numbered payloads to a sink.

    In chunking mode the output is a family of ``base.dump.N`` files, each
    paired with a ``base.log.N`` companion log. Sequence numbers run across
    chunks.

    Thread-safe: sequence assignment, rotation and the write happen under a
    single lock per recorder. Rotation callbacks run on a worker thread and
    never hold that lock.
    """

    def __init__(
        self,
        sink: SinkLike,
        *,
        notifier: Optional[Notifier] = None,
        size_logging_interval: float = 0.0,
        clock: Callable[[], int] = time.time_ns,
        disable_on_write_error: bool = False,
    ) -> None:
        self._sink = sink
        self._notifier: Notifier = notifier if notifier is not None else CompanionLog()
        self._clock = clock
        self._disable_on_write_error = disable_on_write_error
        self._lock = threading.Lock()
        self._recording = True
        self._closed = False
        self._error: Optional[RecorderError] = None
        self._last_write_error: Optional[WriteFailed] = None
        self._seq = 0
        self._chunk_size = 0

        self._chunker: Optional[DumpChunker] = None
        self._base: Optional[str] = None
        self._chunk_index = 0
        self._log_sink: Optional[FileSink] = None
        self._executor: Optional[ThreadPoolExecutor] = None

        if size_logging_interval < 0:
            raise ValueError("size_logging_interval must not be negative")
        self._reporter: Optional[SizeReporter] = None
        if size_logging_interval:
            self._reporter = SizeReporter(
                self._notifier,
                self.log_prefix(),
                size_logging_interval,
                lambda: self._chunk_size,
                lambda: sink_name(self._sink),
            )
            self._reporter.start()

    @classmethod
    def open_file(
        cls,
        path: PathLike,
        *,
        notifier: Optional[Notifier] = None,
        size_logging_interval: float = 0.0,
        clock: Callable[[], int] = time.time_ns,
        disable_on_write_error: bool = False,
    ) -> "DumpRecorder":
        """Record into a single file opened for appending."""

        return cls(
            open_sink(path, append=True),
            notifier=notifier,
            size_logging_interval=size_logging_interval,
            clock=clock,
            disable_on_write_error=disable_on_write_error,
        )

    @classmethod
    def chunking(
        cls,
        base: str,
        chunker: DumpChunker,
        *,
        notifier: Optional[Notifier] = None,
        size_logging_interval: float = 0.0,
        clock: Callable[[], int] = time.time_ns,
        disable_on_write_error: bool = False,
        callback_workers: int = 2,
    ) -> "DumpRecorder":
        """Record into ``base.dump.0``, ``base.dump.1``, ... with companion logs.

        Raises :class:`ChunkOpenFailed` if the first chunk pair cannot be opened.
        """

        notifier = notifier if notifier is not None else CompanionLog()
        dump_sink, log_sink = _open_chunk(base, 0)
        notifier.redirect(log_sink)
        try:
            recorder = cls(
                dump_sink,
                notifier=notifier,
                size_logging_interval=size_logging_interval,
                clock=clock,
                disable_on_write_error=disable_on_write_error,
            )
        except Exception:
            notifier.redirect(None)
            _close_quietly(dump_sink)
            _close_quietly(log_sink)
            raise
        recorder._chunker = chunker
        recorder._base = base
        recorder._log_sink = log_sink
        recorder._executor = ThreadPoolExecutor(
            max_workers=max(1, callback_workers), thread_name_prefix="dumprec-chunk"
        )
        return recorder

    @classmethod
    def from_config(
        cls,
        config: "RecorderConfig",
        *,
        callback: Optional[ChunkCallback] = None,
        notifier: Optional[Notifier] = None,
    ) -> "DumpRecorder":
        base = str(config.base_path())
        if config.chunk_kb:
            return cls.chunking(
                base,
                DumpChunker.from_kb(config.chunk_kb, callback),
                notifier=notifier,
                size_logging_interval=config.size_logging_interval,
                disable_on_write_error=config.disable_on_write_error,
            )
        return cls.open_file(
            f"{base}.dump",
            notifier=notifier,
            size_logging_interval=config.size_logging_interval,
            disable_on_write_error=config.disable_on_write_error,
        )

    # -- state -------------------------------------------------------------

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> Optional[RecorderError]:
        """The error that closed the recorder, if any."""

        return self._error

    @property
    def last_write_error(self) -> Optional[WriteFailed]:
        return self._last_write_error

    @property
    def sequence(self) -> int:
        """Sequence number the next record will get."""

        return self._seq

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_index(self) -> int:
        return self._chunk_index

    @property
    def chunking_enabled(self) -> bool:
        return self._chunker is not None

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    def log_prefix(self) -> str:
        return "[DumpRecorder]"

    def dump_file(self) -> Optional[Nameable]:
        """Return the live sink if it is file-backed, otherwise ``None``."""

        sink = self._sink
        if is_nameable(sink):
            return sink  # type: ignore[return-value]
        return None

    # -- recording ---------------------------------------------------------

    def enable(self) -> None:
        with self._lock:
            if not self._closed:
                self._recording = True

    def disable(self) -> None:
        self._recording = False

    def record(self, payload: BytesLike) -> None:
        """Append *payload* as the next frame. No-op while disabled or closed."""

        if not self._recording:
            return
        with self._lock:
            if not self._recording or self._closed:
                return
            seq = self._seq
            frame = encode_payload(seq, self._clock(), payload)
            chunker = self._chunker
            if (
                chunker is not None
                and self._chunk_size > 0
                and self._chunk_size + len(frame) > chunker.threshold
            ):
                if not self._rotate_locked():
                    return
            try:
                self._sink.write(frame)
            except (OSError, ValueError) as exc:
                self._write_failed_locked(WriteFailed(seq, exc))
                return
            self._chunk_size += len(frame)
            self._seq = seq + 1

    def _write_failed_locked(self, error: WriteFailed) -> None:
        self._last_write_error = error
        self._notifier.notify(self.log_prefix(), str(error))
        if self._disable_on_write_error:
            self._close_locked(error)
            self._shutdown_executor()

    def _rotate_locked(self) -> bool:
        assert self._chunker is not None and self._base is not None
        finished = chunk_filenames(self._base, self._chunk_index)
        try:
            dump_sink, log_sink = _open_chunk(self._base, self._chunk_index + 1)
        except ChunkOpenFailed as exc:
            self._notifier.notify(self.log_prefix(), f"Failed to open new dump chunk: {exc}")
            self._close_locked(exc)
            self._submit_callback(finished)
            self._shutdown_executor()
            return False

        previous_log = self._notifier.redirect(log_sink)
        _close_quietly(self._sink)
        _close_quietly(previous_log)
        self._submit_callback(finished)

        self._sink = dump_sink
        self._log_sink = log_sink
        self._chunk_index += 1
        self._chunk_size = 0
        log.debug("rotated %s to chunk %d", self._base, self._chunk_index)
        return True

    def _submit_callback(self, filenames: tuple[str, str]) -> None:
        callback = self._chunker.callback if self._chunker is not None else None
        if callback is None or self._executor is None:
            return
        future = self._executor.submit(callback, *filenames)
        future.add_done_callback(_log_callback_failure)

    # -- shutdown ----------------------------------------------------------

    def close(self) -> None:
        """Stop recording and release file-backed sinks. Safe to call twice."""

        with self._lock:
            self._close_locked(None)
            self._shutdown_executor()

    def _close_locked(self, error: Optional[RecorderError]) -> None:
        if self._closed:
            return
        self._closed = True
        self._recording = False
        if error is not None:
            self._error = error
        if self._reporter is not None:
            self._reporter.stop()
        if is_nameable(self._sink):
            _close_quietly(self._sink)
        if self._log_sink is not None:
            self._notifier.redirect(None)
            _close_quietly(self._log_sink)
            self._log_sink = None

    def _shutdown_executor(self) -> None:
        # pending callbacks still run; close() does not wait for them
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def __enter__(self) -> "DumpRecorder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("recording" if self._recording else "disabled")
        return f"<DumpRecorder {sink_name(self._sink) or type(self._sink).__name__} seq={self._seq} {state}>"


def _open_chunk(base: str, index: int) -> tuple[FileSink, FileSink]:
    dump_name, log_name = chunk_filenames(base, index)
    try:
        dump_sink = open_sink(dump_name)
    except OSError as exc:
        raise ChunkOpenFailed(dump_name, exc) from exc
    try:
        log_sink = open_sink(log_name, text=True)
    except OSError as exc:
        dump_sink.close()
        # leave no orphan dump chunk for readers to pick up
        dump_sink.path.unlink(missing_ok=True)
        raise ChunkOpenFailed(log_name, exc) from exc
    return dump_sink, log_sink


def _close_quietly(sink: object) -> None:
    close = getattr(sink, "close", None)
    if close is None:
        return
    try:
        close()
    except OSError:
        log.warning("failed to close %r", sink, exc_info=True)


def _log_callback_failure(future: "Future[None]") -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        log.error("chunk callback failed", exc_info=exc)
