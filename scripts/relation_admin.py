#!/usr/bin/env python3
"""Administer relations between legal texts.

Subcommands:
    add      create a relation (source --TYPE--> target)
    update   change the type or annotations of a relation
    remove   delete a relation by id
    list     relations bundle of one document
    detect   relation mentions found in a document's text (read-only)
    graph    bounded neighbourhood of a document

Target statuses follow the relation: ABROGE marks the target abrogated,
MODIFIE/COMPLETE mark it modified; removing or retyping a relation
recomputes the status from what remains.

Usage:
    python3 scripts/relation_admin.py --db corpus_index/lexcorpus.duckdb \
      add --source loi-2021-007 --target loi-2015-012 --type ABROGE --date-effet 2021-07-01

    python3 scripts/relation_admin.py --db corpus_index/lexcorpus.duckdb remove --id <relation-id>

    python3 scripts/relation_admin.py --db corpus_index/lexcorpus.duckdb graph --doc-id loi-2015-012 --depth 3
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from lexcorpus.config import MAX_GRAPH_DEPTH
from lexcorpus.errors import CorpusError
from lexcorpus.facade import CorpusFacade
from lexcorpus.io_utils import dump_json
from lexcorpus.models import RELATION_TYPES
from lexcorpus.store import CorpusStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Administer relations between legal texts."
    )
    parser.add_argument(
        "--db", required=True, type=Path, help="Path to lexcorpus.duckdb"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable info logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Create a relation")
    add.add_argument("--source", required=True, help="Source document id")
    add.add_argument("--target", required=True, help="Target document id")
    add.add_argument(
        "--type",
        required=True,
        type=str.upper,
        choices=RELATION_TYPES,
        help="Relation type",
    )
    add.add_argument("--note", default=None)
    add.add_argument("--article-source", default=None, help="Article number in the source")
    add.add_argument("--article-target", default=None, help="Article number in the target")
    add.add_argument("--date-effet", default=None, help="Effective date (YYYY-MM-DD)")

    update = sub.add_parser("update", help="Update a relation")
    update.add_argument("--id", required=True, help="Relation id")
    update.add_argument("--type", default=None, type=str.upper, choices=RELATION_TYPES)
    update.add_argument("--note", default=None)
    update.add_argument("--article-source", default=None)
    update.add_argument("--article-target", default=None)
    update.add_argument("--date-effet", default=None)

    remove = sub.add_parser("remove", help="Delete a relation")
    remove.add_argument("--id", required=True, help="Relation id")

    listing = sub.add_parser("list", help="Relations bundle of a document")
    listing.add_argument("--doc-id", required=True)

    detect = sub.add_parser("detect", help="Detect relation mentions in a document")
    detect.add_argument("--doc-id", required=True)

    graph = sub.add_parser("graph", help="Relation neighbourhood of a document")
    graph.add_argument("--doc-id", required=True)
    graph.add_argument(
        "--depth",
        type=int,
        default=2,
        help=f"Maximum hops (1..{MAX_GRAPH_DEPTH}, default: 2)",
    )
    return parser


def _update_fields(args: argparse.Namespace) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if args.type is not None:
        fields["relation_type"] = args.type
    for attr, key in (
        ("note", "note"),
        ("article_source", "article_source_num"),
        ("article_target", "article_target_num"),
        ("date_effet", "date_effet"),
    ):
        value = getattr(args, attr)
        if value is not None:
            fields[key] = value
    return fields


def run(facade: CorpusFacade, args: argparse.Namespace) -> dict[str, Any]:
    if args.command == "add":
        return facade.add_relation(
            args.source,
            args.target,
            args.type,
            args.note,
            article_source_num=args.article_source,
            article_target_num=args.article_target,
            date_effet=args.date_effet,
        )
    if args.command == "update":
        return facade.update_relation(args.id, **_update_fields(args))
    if args.command == "remove":
        return facade.remove_relation(args.id)
    if args.command == "list":
        return facade.get_relations(args.doc_id)
    if args.command == "detect":
        return facade.detect_relations(args.doc_id)
    return facade.relation_graph(args.doc_id, args.depth)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.db.exists():
        print(f"Error: database not found: {args.db}", file=sys.stderr)
        return 1

    with CorpusStore(args.db) as store:
        try:
            result = run(CorpusFacade(store), args)
        except CorpusError as exc:
            print(f"Error: {exc.public_message}", file=sys.stderr)
            return 1

    dump_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
