#!/usr/bin/env python3
"""Read document structure and relations from the corpus database.

Usage:
    # Ordered section tree, unsectioned articles, quarantined duplicates
    python3 scripts/structure_reader.py --db corpus_index/lexcorpus.duckdb --doc-id loi-2020-001

    # Force a canonical article for a duplicated number
    python3 scripts/structure_reader.py --db corpus_index/lexcorpus.duckdb --doc-id loi-2020-001 \
      --canonical "12=loi-2020-001-ART-40"

    # Relations bundle (forward and inverse)
    python3 scripts/structure_reader.py --db corpus_index/lexcorpus.duckdb --doc-id loi-2020-001 --relations

    # Full-text engine record
    python3 scripts/structure_reader.py --db corpus_index/lexcorpus.duckdb --doc-id loi-2020-001 --index-payload

    # Outline only (titles, no article bodies)
    python3 scripts/structure_reader.py --db corpus_index/lexcorpus.duckdb --doc-id loi-2020-001 --outline

    # List documents
    python3 scripts/structure_reader.py --db corpus_index/lexcorpus.duckdb --list --nature LOI
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import orjson

from lexcorpus.errors import CorpusError
from lexcorpus.facade import CorpusFacade
from lexcorpus.io_utils import dump_json
from lexcorpus.store import CorpusStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Read document structure and relations."
    )
    parser.add_argument(
        "--db", required=True, type=Path, help="Path to lexcorpus.duckdb"
    )
    parser.add_argument("--doc-id", default=None, help="Document to read")
    parser.add_argument(
        "--relations",
        action="store_true",
        help="Show the relations bundle instead of the structure",
    )
    parser.add_argument(
        "--index-payload",
        action="store_true",
        help="Print the record sent to the full-text engine",
    )
    parser.add_argument(
        "--outline",
        action="store_true",
        help="Structure without article bodies",
    )
    parser.add_argument(
        "--canonical",
        action="append",
        default=[],
        metavar="NUMERO=ARTICLE_ID",
        help="Canonical override for a duplicated article number (repeatable)",
    )
    parser.add_argument("--list", action="store_true", help="List documents")
    parser.add_argument("--nature", default=None, help="Filter --list by nature")
    parser.add_argument("--status", default=None, help="Filter --list by status")
    parser.add_argument("--page", type=int, default=1, help="Page for --list (default: 1)")
    parser.add_argument("--limit", type=int, default=20, help="Page size for --list (default: 20)")
    return parser


def _parse_overrides(items: list[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in items:
        numero, sep, article_id = item.partition("=")
        if not sep or not numero.strip() or not article_id.strip():
            raise ValueError(f"Invalid --canonical value {item!r}; expected NUMERO=ARTICLE_ID")
        overrides[numero.strip()] = article_id.strip()
    return overrides


def _outline(nodes: list[dict[str, Any]]) -> list[dict[str, Any]]:
    top: list[dict[str, Any]] = []
    stack: list[tuple[dict[str, Any], list[dict[str, Any]]]] = [
        (node, top) for node in reversed(nodes)
    ]
    while stack:
        node, siblings = stack.pop()
        entry = {
            "title": node["title"],
            "level": node["level"],
            "articles": [a["numero"] for a in node["articles"]],
            "children": [],
        }
        siblings.append(entry)
        stack.extend((child, entry["children"]) for child in reversed(node["children"]))
    return top


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.db.exists():
        print(f"Error: database not found: {args.db}", file=sys.stderr)
        return 1
    if args.list == (args.doc_id is not None):
        print("Error: specify exactly one of --doc-id or --list", file=sys.stderr)
        return 1

    try:
        overrides = _parse_overrides(args.canonical)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    with CorpusStore(args.db) as store:
        facade = CorpusFacade(store)
        try:
            if args.list:
                result = facade.list_documents(
                    nature=args.nature, status=args.status, page=args.page, limit=args.limit
                )
            elif args.relations:
                result = facade.get_relations(args.doc_id)
            elif args.index_payload:
                result = facade.index_payload(args.doc_id)
            else:
                result = facade.get_structure(args.doc_id, canonical_overrides=overrides)
                if args.outline:
                    result = {
                        "document": result["document"],
                        "sections": _outline(result["sections"]),
                        "articles": [a["numero"] for a in result["articles"]],
                        "counts": result["counts"],
                    }
        except CorpusError as exc:
            print(f"Error: {exc.public_message}", file=sys.stderr)
            return 1

    try:
        dump_json(result)
    except orjson.JSONEncodeError as exc:
        print(f"Error: cannot serialize result: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
