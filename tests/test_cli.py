import io
import json
from pathlib import Path

from dumprec.cli.show import main
from dumprec.core.frame import Record, encode


def write_dump(path: Path, payloads, start: int = 0) -> None:
    path.write_bytes(
        b"".join(encode(Record(start + i, 1_700_000_000_000_000_000 + i, p)) for i, p in enumerate(payloads))
    )


def test_lists_records(tmp_path: Path):
    path = tmp_path / "x.dump"
    write_dump(path, [b"\x01\x02", b""])
    out = io.StringIO()
    assert main([str(path)], stdout=out) == 0
    lines = out.getvalue().splitlines()
    assert lines[0] == f"# {path}: 2 records"
    assert lines[1].split()[0] == "0"
    assert lines[1].split()[-1] == "0102"


def test_jsonl_output(tmp_path: Path):
    path = tmp_path / "x.dump"
    write_dump(path, [b"ab"])
    out = io.StringIO()
    assert main([str(path), "--jsonl"], stdout=out) == 0
    entry = json.loads(out.getvalue())
    assert entry["seq"] == 0
    assert entry["payload_hex"] == "6162"
    assert entry["file"] == str(path)


def test_cat_chunks(tmp_path: Path):
    write_dump(tmp_path / "run.dump.0", [b"he", b"l"])
    write_dump(tmp_path / "run.dump.1", [b"lo"], start=2)
    raw = io.BytesIO()
    assert main([str(tmp_path / "run"), "--chunks", "--cat"], binary_stdout=raw) == 0
    assert raw.getvalue() == b"hello"


def test_truncated_file_sets_exit_code(tmp_path: Path, capsys):
    path = tmp_path / "bad.dump"
    path.write_bytes(encode(Record(0, 0, b"abc"))[:-1])
    assert main([str(path)], stdout=io.StringIO()) == 1
    assert "truncated frame" in capsys.readouterr().err
