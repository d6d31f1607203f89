#!/usr/bin/env python3
"""Ingest extracted legal texts into the corpus database.

Each payload holds one document with its sections and articles (see
``lexcorpus.ingest``).  Payloads are read from ``.json`` files (one object
or a list) or ``.jsonl`` files (one object per line).  Every document is
written all-or-nothing; a rejected payload does not stop the others unless
``--fail-fast`` is given.

Usage:
    python3 scripts/ingest_texte.py --db corpus_index/lexcorpus.duckdb \
      --input data/textes/code_travail.json

    # Batch ingest, stop at the first rejected payload
    python3 scripts/ingest_texte.py --db corpus_index/lexcorpus.duckdb \
      --input data/textes/*.jsonl --fail-fast
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from lexcorpus.errors import CorpusError
from lexcorpus.facade import CorpusFacade
from lexcorpus.io_utils import dump_json, load_payloads
from lexcorpus.store import CorpusStore


def _log(msg: str) -> None:
    """Write log message to stderr with timestamp."""
    ts = datetime.now(UTC).strftime("%H:%M:%S")
    print(f"[ingest {ts}] {msg}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ingest legal-text payloads into the corpus database."
    )
    parser.add_argument(
        "--db", required=True, type=Path, help="Path to lexcorpus.duckdb"
    )
    parser.add_argument(
        "--input",
        required=True,
        nargs="+",
        type=Path,
        help="Payload file(s): .json (object or list) or .jsonl",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first rejected payload",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    payloads: list[tuple[Path, dict[str, Any]]] = []
    for path in args.input:
        if not path.exists():
            _log(f"Error: input not found: {path}")
            return 1
        payloads.extend((path, p) for p in load_payloads(path))

    results: list[dict[str, Any]] = []
    failures: list[dict[str, Any]] = []
    with CorpusStore(args.db, create_if_missing=True) as store:
        facade = CorpusFacade(store)
        for i, (path, payload) in enumerate(payloads):
            try:
                result = facade.ingest(payload)
            except CorpusError as exc:
                failures.append({"file": str(path), "index": i, "error": exc.public_message})
                _log(f"Rejected payload {i} from {path}: {exc.public_message}")
                if args.fail_fast:
                    break
                continue
            results.append(result)
            _log(f"Ingested {result['id']} ({'new' if result['created'] else 'replaced'})")

    dump_json({
        "ingested": len(results),
        "failed": len(failures),
        "documents": results,
        "failures": failures,
    })
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
