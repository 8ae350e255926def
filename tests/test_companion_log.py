import io
import logging

from dumprec.io.companion_log import CompanionLog
from dumprec.io.sinks import FileSink, is_nameable, open_sink, sink_name


def test_notify_writes_timestamped_line():
    stream = io.StringIO()
    companion = CompanionLog(stream)
    companion.notify("[DumpRecorder]", "size: 1 B\n")
    line = stream.getvalue()
    assert line.endswith("[DumpRecorder] size: 1 B\n")
    # "YYYY/MM/DD HH:MM:SS " prefix
    assert line[4] == "/" and line[7] == "/" and line[10] == " "


def test_notify_forwards_to_logger(caplog):
    companion = CompanionLog(io.StringIO())
    with caplog.at_level(logging.INFO, logger="dumprec"):
        companion.notify("[src]", "hello")
    assert "[src] hello" in caplog.text


def test_redirect_returns_previous_stream():
    first, second = io.StringIO(), io.StringIO()
    companion = CompanionLog(first)
    assert companion.redirect(second) is first
    companion.notify("[src]", "moved")
    assert first.getvalue() == ""
    assert "moved" in second.getvalue()
    assert companion.redirect(None) is second
    companion.notify("[src]", "dropped")
    assert "dropped" not in second.getvalue()


def test_attached_to_host_logger_without_duplicates():
    stream = io.StringIO()
    companion = CompanionLog(stream)
    host = logging.getLogger("dumprec")
    host.addHandler(companion)
    try:
        logging.getLogger("dumprec.host").warning("from host")
        companion.notify("[src]", "once")
    finally:
        host.removeHandler(companion)
    text = stream.getvalue()
    assert "from host" in text
    assert text.count("[src] once") == 1


def test_file_sinks_are_nameable(tmp_path):
    sink = open_sink(tmp_path / "sub" / "x.log", text=True)
    try:
        sink.write("line\n")
        assert is_nameable(sink)
        assert sink_name(sink) == str(tmp_path / "sub" / "x.log")
    finally:
        sink.close()
    assert sink.closed
    assert (tmp_path / "sub" / "x.log").read_text() == "line\n"
    assert not is_nameable(io.BytesIO())
    with open(tmp_path / "raw", "wb") as raw:
        assert sink_name(raw) is None
    assert isinstance(sink, FileSink)
