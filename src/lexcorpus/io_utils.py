"""I/O utilities for JSON and JSONL payload files and CLI output (orjson)."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def load_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load a JSON Lines file (one JSON object per line). Blank lines skipped."""
    records: list[dict[str, Any]] = []
    for line in path.read_bytes().split(b"\n"):
        line = line.strip()
        if line:
            records.append(orjson.loads(line))
    return records


def load_payloads(path: Path) -> list[dict[str, Any]]:
    """Ingestion payloads from ``.jsonl`` (one per line) or ``.json`` (object or list)."""
    if path.suffix == ".jsonl":
        return load_jsonl(path)
    data = load_json(path)
    return data if isinstance(data, list) else [data]


def dump_json(obj: Any) -> None:
    """Write ``obj`` as indented JSON to stdout."""
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")
    sys.stdout.flush()
