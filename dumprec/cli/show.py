"""Command line tool listing the records of dump files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import BinaryIO, List, TextIO

from dumprec.core.frame import FrameError, Record
from dumprec.core.reader import chunk_files, read_records

log = logging.getLogger(__name__)

PREVIEW_BYTES = 16


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dumprec-inspect", description="Inspect dump recorder files"
    )
    parser.add_argument("paths", nargs="+", help="Dump files (or chunk base names with --chunks)")
    parser.add_argument(
        "--chunks",
        action="store_true",
        help="Treat each path as a chunk base name and read base.dump.0, base.dump.1, ...",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--jsonl", action="store_true", help="Emit one JSON object per record")
    output.add_argument(
        "--cat", action="store_true", help="Write the raw payloads to stdout, concatenated"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def format_record(record: Record) -> str:
    preview = record.payload[:PREVIEW_BYTES].hex()
    if len(record.payload) > PREVIEW_BYTES:
        preview += "..."
    stamp = record.timestamp.isoformat()
    return f"{record.sequence:>8} {stamp} {len(record.payload):>8} {preview}"


def _expand(paths: List[str], chunks: bool) -> List[str]:
    if not chunks:
        return paths
    expanded: List[str] = []
    for base in paths:
        files = chunk_files(base)
        if not files:
            log.warning("no chunks found for %s", base)
        expanded.extend(str(path) for path in files)
    return expanded


def main(
    argv: List[str] | None = None,
    *,
    stdout: TextIO | None = None,
    binary_stdout: BinaryIO | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    out = stdout or sys.stdout
    raw_out = binary_stdout

    exit_code = 0
    for path in _expand(args.paths, args.chunks):
        try:
            records = read_records(path)
        except FrameError as exc:
            print(f"{path}: {exc}", file=sys.stderr)
            exit_code = 1
            continue
        except OSError as exc:
            print(f"{path}: {exc.strerror or exc}", file=sys.stderr)
            exit_code = 1
            continue

        if args.cat:
            if raw_out is None:
                raw_out = sys.stdout.buffer
            for record in records:
                raw_out.write(record.payload)
            raw_out.flush()
        elif args.jsonl:
            for record in records:
                entry = record.to_dict()
                entry["file"] = path
                print(json.dumps(entry, separators=(",", ":")), file=out)
        else:
            print(f"# {path}: {len(records)} records", file=out)
            for record in records:
                print(format_record(record), file=out)
    return exit_code

