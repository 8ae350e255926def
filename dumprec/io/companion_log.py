"""Companion text log whose destination follows dump chunk rotation."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, TextIO, Union

from .sinks import FileSink

log = logging.getLogger("dumprec")

DATE_FORMAT = "%Y/%m/%d %H:%M:%S"

TextSink = Union[FileSink, TextIO]


class Notifier(Protocol):
    """Logging collaborator used by the recorder."""

    def notify(self, source: str, message: str) -> None:  # pragma: no cover - protocol signature
        ...

    def redirect(self, stream: Optional[TextSink]) -> Optional[TextSink]:  # pragma: no cover
        ...


class CompanionLog(logging.Handler):
    """Handler writing to the companion log of the current dump chunk.

    ``notify`` writes a line directly and forwards the same record to the
    ``dumprec`` logger so it also reaches the host's console handlers. The
    handler can additionally be attached to host loggers; their records then
    land in whichever companion chunk is active.

    ``redirect`` swaps the destination under the handler lock, so a record is
    never split across two chunks.
    """

    terminator = "\n"

    def __init__(
        self,
        stream: Optional[TextSink] = None,
        *,
        forward: Optional[logging.Logger] = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self.stream = stream
        self._forward = forward if forward is not None else log
        self.setFormatter(logging.Formatter("%(asctime)s %(message)s", DATE_FORMAT))

    def redirect(self, stream: Optional[TextSink]) -> Optional[TextSink]:
        """Point the handler at *stream* and return the previous stream."""

        self.acquire()
        try:
            previous, self.stream = self.stream, stream
            if previous is not None and not getattr(previous, "closed", False):
                flush = getattr(previous, "flush", None)
                if flush is not None:
                    flush()
        finally:
            self.release()
        return previous

    def notify(self, source: str, message: str) -> None:
        record = self._forward.makeRecord(
            self._forward.name,
            logging.INFO,
            __file__,
            0,
            "%s %s",
            (source, message.rstrip("\n")),
            None,
        )
        self.handle(record)
        # already written here; skip it if it propagates back to this handler
        record.companion = self
        if self._forward.isEnabledFor(logging.INFO):
            self._forward.handle(record)

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "companion", None) is self:
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        stream = self.stream
        if stream is None:
            return
        try:
            stream.write(self.format(record) + self.terminator)
        except Exception:
            self.handleError(record)

    def __repr__(self) -> str:
        name = getattr(self.stream, "name", None)
        if callable(name):
            name = name()
        return f"<CompanionLog {name or self.stream!r}>"
