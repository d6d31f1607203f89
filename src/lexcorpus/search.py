"""Search shaping: index payloads, upstream hit retrieval, suggestion merge.

The full-text engine itself is an external collaborator.  The core only
decides what a document looks like when sent to it (``search_payload``)
and how its two result lists are merged into one suggestion list
(``merge_suggestions``).  ``StoreSearchBackend`` answers the upstream
queries straight from DuckDB so the portal works without an engine,
including the paged text search filtered by nature, status and
publication date range (``search_texts``).
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from lexcorpus.models import ArticleRow, DocumentRecord
from lexcorpus.store import CorpusStore

HitKind = Literal["article", "document"]

SNIPPET_CHARS = 80


@dataclass(frozen=True, slots=True)
class SearchHit:
    kind: HitKind
    doc_id: str
    doc_title: str
    score: float
    article_id: str | None = None
    article_numero: str | None = None
    snippet: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "doc_id": self.doc_id,
            "doc_title": self.doc_title,
            "score": self.score,
            "article_id": self.article_id,
            "article_numero": self.article_numero,
            "snippet": self.snippet,
        }


@dataclass(frozen=True, slots=True)
class SearchFilters:
    nature: str | None = None
    status: str | None = None
    date_from: str | None = None
    date_to: str | None = None


class SearchBackend(Protocol):
    """Upstream engine contract: two ranked suggestion lists and a paged text search."""

    def search_articles(self, query: str, limit: int) -> list[SearchHit]: ...

    def search_documents(self, query: str, limit: int) -> list[SearchHit]: ...

    def search_texts(
        self, query: str, filters: SearchFilters, limit: int, offset: int
    ) -> tuple[list[SearchHit], int]:
        """One page of matching documents, newest publication first, and the total."""
        ...


def query_tokens(query: str) -> list[str]:
    return [t for t in query.lower().split() if t]


def _hit_order(hit: SearchHit) -> tuple[float, int, str, str, str]:
    return (
        -hit.score,
        len(hit.doc_title),
        hit.doc_title,
        hit.doc_id,
        hit.article_id or "",
    )


def merge_suggestions(
    article_hits: Sequence[SearchHit],
    document_hits: Sequence[SearchHit],
    limit: int,
) -> list[SearchHit]:
    """Articles first, then documents; each group by score, shorter title, title."""
    merged = sorted(article_hits, key=_hit_order) + sorted(document_hits, key=_hit_order)
    return merged[: max(0, limit)]


def search_payload(document: DocumentRecord, articles: Sequence[ArticleRow]) -> dict[str, Any]:
    """Record sent to an external full-text engine for one document."""
    return {
        "id": document.doc_id,
        "title": document.title,
        "nature": document.nature,
        "numero": document.numero,
        "status": document.status,
        "date_signature": document.date_signature,
        "date_publication": document.date_publication,
        "visas": document.visas,
        "articles": " ".join(a.body for a in articles if a.body),
    }


def _score(text: str, tokens: Sequence[str]) -> int:
    lowered = text.lower()
    return sum(lowered.count(tok) for tok in tokens)


def _snippet(text: str, tokens: Sequence[str]) -> str:
    lowered = text.lower()
    positions = [p for p in (lowered.find(t) for t in tokens) if p >= 0]
    if not positions:
        return text[: SNIPPET_CHARS * 2]
    pos = min(positions)
    lo = max(0, pos - SNIPPET_CHARS)
    return text[lo: pos + SNIPPET_CHARS].strip()


class StoreSearchBackend:
    """Substring search over the corpus store; score = token occurrence count."""

    def __init__(self, store: CorpusStore) -> None:
        self._store = store

    def _contains_clause(self, column: str, tokens: Sequence[str]) -> tuple[str, list[Any]]:
        clause = " OR ".join(f"contains(lower({column}), ?)" for _ in tokens)
        return f"({clause})", list(tokens)

    def search_articles(self, query: str, limit: int) -> list[SearchHit]:
        tokens = query_tokens(query)
        if not tokens:
            return []
        where, params = self._contains_clause("a.body", tokens)
        rows = self._store.query(
            "SELECT a.article_id, a.numero, a.body, d.doc_id, d.title "
            "FROM articles a JOIN documents d ON a.doc_id = d.doc_id "
            f"WHERE {where}",
            params,
        )
        hits = [
            SearchHit(
                kind="article",
                doc_id=str(r[3]),
                doc_title=str(r[4]),
                score=float(_score(str(r[2]), tokens)),
                article_id=str(r[0]),
                article_numero=str(r[1]),
                snippet=_snippet(str(r[2]), tokens),
            )
            for r in rows
        ]
        return sorted(hits, key=_hit_order)[:limit]

    def search_documents(self, query: str, limit: int) -> list[SearchHit]:
        tokens = query_tokens(query)
        if not tokens:
            return []
        where, params = self._contains_clause("title", tokens)
        rows = self._store.query(
            f"SELECT doc_id, title FROM documents WHERE {where}",
            params,
        )
        hits = [
            SearchHit(
                kind="document",
                doc_id=str(r[0]),
                doc_title=str(r[1]),
                score=float(_score(str(r[1]), tokens)),
                snippet=str(r[1]),
            )
            for r in rows
        ]
        return sorted(hits, key=_hit_order)[:limit]

    def _text_match_clause(self, tokens: Sequence[str]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for tok in tokens:
            clauses.append(
                "(contains(lower(d.title), ?) "
                "OR contains(lower(coalesce(d.numero, '')), ?) "
                "OR contains(lower(coalesce(d.visas, '')), ?) "
                "OR EXISTS (SELECT 1 FROM articles a "
                "WHERE a.doc_id = d.doc_id AND contains(lower(a.body), ?)))"
            )
            params.extend([tok] * 4)
        return "(" + " OR ".join(clauses) + ")", params

    def search_texts(
        self,
        query: str,
        filters: SearchFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[SearchHit], int]:
        tokens = query_tokens(query)
        if not tokens:
            return [], 0
        where, params = self._text_match_clause(tokens)
        conditions = [where]
        if filters.nature:
            conditions.append("d.nature = ?")
            params.append(filters.nature)
        if filters.status:
            conditions.append("d.status = ?")
            params.append(filters.status)
        if filters.date_from:
            conditions.append("d.date_publication >= ?")
            params.append(filters.date_from)
        if filters.date_to:
            conditions.append("d.date_publication <= ?")
            params.append(filters.date_to)
        where_sql = " AND ".join(conditions)

        count = self._store.query(f"SELECT COUNT(*) FROM documents d WHERE {where_sql}", params)
        total = int(count[0][0]) if count else 0
        rows = self._store.query(
            "SELECT d.doc_id, d.title, "
            "coalesce((SELECT string_agg(a.body, ' ' ORDER BY a.position) "
            "FROM articles a WHERE a.doc_id = d.doc_id), '') "
            f"FROM documents d WHERE {where_sql} "
            "ORDER BY d.date_publication DESC NULLS LAST, d.doc_id ASC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        hits = []
        for r in rows:
            title, body = str(r[1]), str(r[2])
            hits.append(SearchHit(
                kind="document",
                doc_id=str(r[0]),
                doc_title=title,
                score=float(_score(title, tokens) + _score(body, tokens)),
                snippet=_snippet(body, tokens) if _score(body, tokens) else title,
            ))
        return hits, total
