from pathlib import Path

import pytest

from dumprec.core import reader
from dumprec.core.frame import Record, TruncatedFrame, encode


def write_dump(path: Path, payloads) -> bytes:
    data = b"".join(encode(Record(i, 10 + i, p)) for i, p in enumerate(payloads))
    path.write_bytes(data)
    return data


def test_read_all_concatenates_payloads(tmp_path: Path):
    path = tmp_path / "a.dump"
    write_dump(path, [b"he", b"", b"llo"])
    assert reader.read_all(path) == b"hello"
    assert reader.dump_reader(path).read() == b"hello"


def test_read_records_from_file_object(tmp_path: Path):
    path = tmp_path / "b.dump"
    write_dump(path, [b"x", b"y"])
    with path.open("rb") as fp:
        records = reader.read_records(fp)
    assert [r.sequence for r in records] == [0, 1]


def test_dump_channel_yields_in_order(tmp_path: Path):
    path = tmp_path / "c.dump"
    payloads = [bytes([i]) * i for i in range(20)]
    write_dump(path, payloads)
    channel = reader.dump_channel(path)
    assert len(channel) == 20
    assert list(channel) == payloads
    # drained channels stay empty
    assert list(channel) == []
    assert channel.get() is None


def test_dump_channel_of_empty_file(tmp_path: Path):
    path = tmp_path / "empty.dump"
    path.write_bytes(b"")
    assert list(reader.dump_channel(path)) == []


def test_truncated_file_fails_whole_read(tmp_path: Path):
    path = tmp_path / "d.dump"
    data = write_dump(path, [b"complete", b"partial"])
    path.write_bytes(data[:-3])
    with pytest.raises(TruncatedFrame):
        reader.read_records(path)
    with pytest.raises(TruncatedFrame):
        reader.dump_channel(path)


def test_chunk_family_is_read_in_index_order(tmp_path: Path):
    base = tmp_path / "run"
    chunks = {0: [b"a"], 1: [b"b"], 2: [b"c"], 10: [b"k"]}
    seq = 0
    for index, payloads in chunks.items():
        data = b""
        for payload in payloads:
            data += encode(Record(seq, seq, payload))
            seq += 1
        Path(f"{base}.dump.{index}").write_bytes(data)
    Path(f"{base}.log.0").write_text("not a dump")
    Path(f"{base}.dump.tmp").write_bytes(b"")

    files = reader.chunk_files(base)
    assert [p.name for p in files] == ["run.dump.0", "run.dump.1", "run.dump.2", "run.dump.10"]
    assert [r.payload for r in reader.read_chunks(base)] == [b"a", b"b", b"c", b"k"]


def test_chunk_base_with_glob_characters(tmp_path: Path):
    base = tmp_path / "cap[1]"
    Path(f"{base}.dump.0").write_bytes(encode(Record(0, 0, b"x")))
    Path(f"{base}.dump.1").write_bytes(encode(Record(1, 1, b"y")))
    (tmp_path / "cap1.dump.0").write_bytes(encode(Record(9, 9, b"other")))

    assert [p.name for p in reader.chunk_files(base)] == ["cap[1].dump.0", "cap[1].dump.1"]
    assert [r.payload for r in reader.read_chunks(base)] == [b"x", b"y"]


def test_chunk_files_of_missing_directory(tmp_path: Path):
    assert reader.chunk_files(tmp_path / "absent" / "run") == []
