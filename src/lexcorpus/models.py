"""Core record types and vocabularies for the legal-text corpus.

Records mirror the persisted rows one-to-one:

    documents  -> DocumentRecord
    sections   -> SectionRow
    articles   -> ArticleRow
    relations  -> RelationRecord

Vocabularies (natures, statuses, relation types) are plain string tuples;
the inverse view of a relation is a static lookup applied at query time,
never a second stored edge.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

NATURES: tuple[str, ...] = (
    "LOI",
    "LOI_ORGANIQUE",
    "LOI_CONSTITUTIONNELLE",
    "DECRET",
    "ORDONNANCE",
    "ARRETE",
    "CIRCULAIRE",
    "DECISION",
    "CODE",
    "JURISPRUDENCE",
    "CONVENTION",
    "TRAITE",
    "ACTE_UNIFORME_OHADA",
    "JURISPRUDENCE_CCJA",
    "TRAITE_OHADA",
    "REGLEMENT_OHADA",
    "AUTRE",
)

STATUSES: tuple[str, ...] = (
    "VIGUEUR",
    "VIGUEUR_DIFF",
    "MODIFIE",
    "ABROGE",
    "ABROGE_DIFF",
    "PERIME",
)

RELATION_TYPES: tuple[str, ...] = (
    "ABROGE",
    "MODIFIE",
    "COMPLETE",
    "CITE",
    "APPLIQUE",
    "RATIFIE",
)

INVERSE_LABELS: dict[str, str] = {t: f"{t}_PAR" for t in RELATION_TYPES}

RELATION_LABELS: dict[str, str] = {
    "ABROGE": "Abroge",
    "MODIFIE": "Modifie",
    "COMPLETE": "Complète",
    "CITE": "Cite",
    "APPLIQUE": "Applique",
    "RATIFIE": "Ratifie",
}


def relation_key(label: str) -> str:
    """Bundle key for a relation label: ``ABROGE`` -> ``abroge``, ``ABROGE_PAR`` -> ``abrogePar``."""
    head, _, tail = label.lower().partition("_")
    return head + tail.capitalize() if tail else head


FORWARD_KEYS: tuple[str, ...] = tuple(relation_key(t) for t in RELATION_TYPES)
INVERSE_KEYS: tuple[str, ...] = tuple(relation_key(INVERSE_LABELS[t]) for t in RELATION_TYPES)
RELATION_KEYS: tuple[str, ...] = FORWARD_KEYS + INVERSE_KEYS

MAX_ARTICLE_REF_LEN = 20


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    """A legal text (``Texte``)."""

    doc_id: str
    title: str
    nature: str
    status: str
    created_at: str
    numero: str | None = None
    date_signature: str | None = None
    date_publication: str | None = None
    visas: str | None = None

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.doc_id,
            "title": self.title,
            "nature": self.nature,
            "status": self.status,
            "numero": self.numero,
            "date_signature": self.date_signature,
            "date_publication": self.date_publication,
            "created_at": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class SectionRow:
    """A structural heading row; ``position`` is its input order."""

    section_id: str
    doc_id: str
    title: str
    parent_id: str | None
    position: int


@dataclass(frozen=True, slots=True)
class ArticleRow:
    """An article row; ``position`` is its ingestion order."""

    article_id: str
    doc_id: str
    numero: str
    body: str
    order_index: int
    status: str
    section_id: str | None
    position: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.article_id,
            "numero": self.numero,
            "body": self.body,
            "order_index": self.order_index,
            "status": self.status,
            "section_id": self.section_id,
        }


@dataclass(frozen=True, slots=True)
class RelationRecord:
    """A single directed, typed edge between two documents."""

    relation_id: str
    source_id: str
    target_id: str
    relation_type: str
    note: str | None
    created_at: str
    article_source_num: str | None = None
    article_target_num: str | None = None
    date_effet: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.relation_id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "type": self.relation_type,
            "note": self.note,
            "article_source_num": self.article_source_num,
            "article_target_num": self.article_target_num,
            "date_effet": self.date_effet,
            "created_at": self.created_at,
        }


_DIGITS_RE = re.compile(r"\D")


def numeric_article_key(numero: str) -> int:
    """Digits-only parse of a declared article number (``L.30-1`` -> 301, none -> 0)."""
    digits = _DIGITS_RE.sub("", numero or "")
    return int(digits) if digits else 0


def normalize_numero(numero: str) -> str:
    """Grouping key for declared numbers: collapsed whitespace, upper case."""
    return " ".join((numero or "").split()).upper()
