"""Ingestion payload validation.

An ingestion payload is produced by the external extraction step:

    {
      "document": {"id", "title", "nature", "status"?, "numero"?,
                   "date_signature"?, "date_publication"?, "visas"?},
      "sections": [{"id", "title", "parent_id"?}, ...],     # input order
      "articles": [{"id"?, "numero", "body"?, "order_index"?,
                    "status"?, "section_id"?}, ...]          # input order
    }

``parse_ingest_payload`` turns it into typed rows or raises
``ValidationError`` naming the first offending row.  Missing article ids
default to ``<doc id>-ART-<n>`` and missing order indexes to the 1-based
input position, so re-ingesting the same payload yields the same rows.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from lexcorpus.errors import ValidationError
from lexcorpus.models import NATURES, STATUSES, ArticleRow, DocumentRecord, SectionRow

# Bounds of the INTEGER order_index column.
ORDER_INDEX_MIN = -(2**31)
ORDER_INDEX_MAX = 2**31 - 1


@dataclass(frozen=True, slots=True)
class IngestBatch:
    document: DocumentRecord
    sections: tuple[SectionRow, ...]
    articles: tuple[ArticleRow, ...]


def _text(row: Mapping[str, Any], key: str, where: str, *, required: bool = True) -> str | None:
    value = row.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{where}: missing {key!r}")
        return None
    if not isinstance(value, (str, int)):
        raise ValidationError(f"{where}: {key!r} must be a string")
    return str(value).strip()


def _choice(value: str | None, allowed: Sequence[str], key: str, where: str, default: str) -> str:
    if value is None:
        return default
    normalized = value.upper()
    if normalized not in allowed:
        raise ValidationError(f"{where}: unknown {key} {value!r}")
    return normalized


def _rows(payload: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    rows = payload.get(key) or []
    if not isinstance(rows, list):
        raise ValidationError(f"{key!r} must be a list")
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise ValidationError(f"{key}[{i}] must be an object")
    return rows


def parse_document(raw: Mapping[str, Any], *, created_at: str | None = None) -> DocumentRecord:
    where = "document"
    doc_id = _text(raw, "id", where)
    title = _text(raw, "title", where)
    assert doc_id is not None and title is not None
    return DocumentRecord(
        doc_id=doc_id,
        title=title,
        nature=_choice(_text(raw, "nature", where), NATURES, "nature", where, ""),
        status=_choice(_text(raw, "status", where, required=False), STATUSES, "status", where, "VIGUEUR"),
        created_at=created_at or datetime.now(UTC).isoformat(),
        numero=_text(raw, "numero", where, required=False),
        date_signature=_text(raw, "date_signature", where, required=False),
        date_publication=_text(raw, "date_publication", where, required=False),
        visas=_text(raw, "visas", where, required=False),
    )


def parse_ingest_payload(payload: Mapping[str, Any]) -> IngestBatch:
    """Validate a raw payload into an ``IngestBatch``.

    Raises:
        ValidationError: missing/unknown fields or duplicate row ids.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Payload must be an object")
    raw_doc = payload.get("document")
    if not isinstance(raw_doc, Mapping):
        raise ValidationError("Payload is missing its 'document' object")
    document = parse_document(raw_doc)
    doc_id = document.doc_id

    sections: list[SectionRow] = []
    seen_sections: set[str] = set()
    for i, row in enumerate(_rows(payload, "sections")):
        where = f"sections[{i}]"
        section_id = _text(row, "id", where)
        title = _text(row, "title", where)
        assert section_id is not None and title is not None
        if section_id in seen_sections:
            raise ValidationError(f"{where}: duplicate section id {section_id!r}")
        seen_sections.add(section_id)
        sections.append(SectionRow(
            section_id=section_id,
            doc_id=doc_id,
            title=title,
            parent_id=_text(row, "parent_id", where, required=False),
            position=i,
        ))

    articles: list[ArticleRow] = []
    seen_articles: set[str] = set()
    for i, row in enumerate(_rows(payload, "articles")):
        where = f"articles[{i}]"
        article_id = _text(row, "id", where, required=False) or f"{doc_id}-ART-{i + 1}"
        if article_id in seen_articles:
            raise ValidationError(f"{where}: duplicate article id {article_id!r}")
        seen_articles.add(article_id)
        numero = _text(row, "numero", where)
        assert numero is not None
        order_index = row.get("order_index", i + 1)
        if isinstance(order_index, bool) or not isinstance(order_index, int):
            raise ValidationError(f"{where}: 'order_index' must be an integer")
        if not ORDER_INDEX_MIN <= order_index <= ORDER_INDEX_MAX:
            raise ValidationError(
                f"{where}: 'order_index' {order_index} out of range "
                f"{ORDER_INDEX_MIN}..{ORDER_INDEX_MAX}"
            )
        body = row.get("body") or ""
        if not isinstance(body, str):
            raise ValidationError(f"{where}: 'body' must be a string")
        articles.append(ArticleRow(
            article_id=article_id,
            doc_id=doc_id,
            numero=numero,
            body=body,
            order_index=order_index,
            status=_choice(_text(row, "status", where, required=False), STATUSES, "status", where, "VIGUEUR"),
            section_id=_text(row, "section_id", where, required=False),
            position=i,
        ))

    return IngestBatch(document=document, sections=tuple(sections), articles=tuple(articles))
