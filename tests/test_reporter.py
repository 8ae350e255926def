import threading

import pytest

from dumprec.core.reporter import SizeReporter, format_size


class FakeNotifier:
    def __init__(self):
        self.messages = []
        self.ticked = threading.Event()

    def notify(self, source, message):
        self.messages.append((source, message))
        self.ticked.set()

    def redirect(self, stream):
        return None


def test_format_size_groups_thousands():
    assert format_size(0) == "0"
    assert format_size(999) == "999"
    assert format_size(1000) == "1,000"
    assert format_size(123456) == "123,456"
    assert format_size(1234567) == "1,234,567"


def test_reporter_ticks_periodically():
    notifier = FakeNotifier()
    reporter = SizeReporter(notifier, "[src]", 0.01, lambda: 42, lambda: None)
    reporter.start()
    assert notifier.ticked.wait(5)
    reporter.stop()
    assert not reporter.running
    assert ("[src]", "size: 42 B") in notifier.messages


def test_final_report_uses_size_at_stop():
    notifier = FakeNotifier()
    size = {"value": 10}
    reporter = SizeReporter(notifier, "[src]", 3600, lambda: size["value"], lambda: "out.dump")
    reporter.start()
    size["value"] = 2048
    reporter.stop()
    reporter.stop()
    assert notifier.messages == [("[src]", "Dump file, out.dump, size: 2,048 B")]


def test_reporter_requires_positive_interval():
    with pytest.raises(ValueError):
        SizeReporter(FakeNotifier(), "[src]", 0, lambda: 0, lambda: None)
