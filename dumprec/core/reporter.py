"""Periodic size reporting for a dump recorder."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..io.companion_log import Notifier

log = logging.getLogger(__name__)


def format_size(size: int) -> str:
    """Return *size* with thousands separators (``1234567`` -> ``1,234,567``)."""

    return f"{size:,}"


class SizeReporter:
    """Background thread reporting the current chunk size.

    The size is read without the recorder lock, so periodic values are
    approximate. The final report sent on :meth:`stop` is taken after the
    recorder has stopped accepting records.
    """

    def __init__(
        self,
        notifier: Notifier,
        source: str,
        interval: float,
        size_probe: Callable[[], int],
        name_probe: Callable[[], Optional[str]],
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._notifier = notifier
        self._source = source
        self._interval = interval
        self._size_probe = size_probe
        self._name_probe = name_probe
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run, name="dumprec-size-reporter", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the thread and wait for its final report."""

        self._stopped.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def report(self) -> None:
        name = self._name_probe()
        prefix = f"Dump file, {name}, " if name else ""
        self._notifier.notify(self._source, f"{prefix}size: {format_size(self._size_probe())} B")

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._safe_report()
        self._safe_report()

    def _safe_report(self) -> None:
        try:
            self.report()
        except Exception:  # pragma: no cover
            log.exception("size report failed")
