"""Corpus query facade: the single entry point used by the API and scripts.

Composes deduplication, tree building, the relation graph and search into
the operations external consumers need:

    ingest            validated, all-or-nothing write of one document
    get_structure     ordered section forest + unsectioned articles + duplicates
    get_relations     12-key forward/inverse relation bundle with counterparts
    add/update/remove_relation
    relation_graph    bounded neighbourhood walk
    detect_relations  relation mentions found in a document's text
    suggest           merged article/document hit list
    search            paged text search with nature, status and date filters
    index_payload     record shaped for an external full-text engine
    list_documents / delete_document

The store handle is passed in explicitly; the facade keeps no state of its
own beyond that handle, so concurrent requests only share the store.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import date
from typing import Any

from lexcorpus.config import DELETE_POLICIES, MAX_GRAPH_DEPTH, MAX_SUGGEST_LIMIT
from lexcorpus.dedup import deduplicate_articles
from lexcorpus.errors import NotFound, ReferencedDocument, ValidationError
from lexcorpus.ingest import parse_ingest_payload
from lexcorpus.models import (
    NATURES,
    RELATION_KEYS,
    STATUSES,
    ArticleRow,
    DocumentRecord,
    RelationRecord,
    SectionRow,
)
from lexcorpus.relation_detection import detect_relations
from lexcorpus.relation_graph import RelationGraph
from lexcorpus.search import (
    SearchBackend,
    SearchFilters,
    StoreSearchBackend,
    merge_suggestions,
    search_payload,
)
from lexcorpus.section_tree import build_section_tree, flat_article_order, group_articles
from lexcorpus.store import CorpusStore

log = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class CorpusFacade:
    """Request-level operations over one ``CorpusStore``."""

    def __init__(
        self,
        store: CorpusStore,
        *,
        search_backend: SearchBackend | None = None,
        delete_policy: str = "block",
    ) -> None:
        if delete_policy not in DELETE_POLICIES:
            raise ValidationError(f"Unknown delete policy {delete_policy!r}")
        self._store = store
        self._relations = RelationGraph(store)
        self._search = search_backend or StoreSearchBackend(store)
        self.delete_policy = delete_policy

    @property
    def store(self) -> CorpusStore:
        return self._store

    @property
    def relations(self) -> RelationGraph:
        return self._relations

    def _require_document(self, doc_id: str) -> DocumentRecord:
        doc = self._store.get_document(doc_id)
        if doc is None:
            raise NotFound(f"Document not found: {doc_id}")
        return doc

    # ─── Structure ───────────────────────────────────────────────────

    def _assemble(
        self,
        document: DocumentRecord,
        sections: Sequence[SectionRow],
        articles: Sequence[ArticleRow],
        overrides: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        dedup = deduplicate_articles(articles, overrides=overrides)
        by_section, loose = group_articles(
            dedup.canonical, {s.section_id for s in sections}
        )
        roots = build_section_tree(sections, by_section)
        return {
            "document": document.summary(),
            "is_flat": not sections,
            "sections": [node.to_dict() for node in roots],
            "articles": [a.to_dict() for a in flat_article_order(loose)],
            "duplicates": {
                numero: [a.to_dict() for a in group]
                for numero, group in dedup.duplicates.items()
            },
            "counts": {
                "sections": len(sections),
                "articles": len(dedup.canonical),
                "duplicates": dedup.duplicate_count,
            },
        }

    def get_structure(
        self,
        doc_id: str,
        *,
        canonical_overrides: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Full navigable structure of a document.

        Raises:
            NotFound: unknown document.
            StructuralError: stored section parentage is cyclic.
        """
        document = self._require_document(doc_id)
        return self._assemble(
            document,
            self._store.get_sections(doc_id),
            self._store.get_articles(doc_id),
            canonical_overrides,
        )

    def ingest(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Validate and store one document with its sections and articles.

        The structure is built before anything is written, so a payload with
        cyclic sections is rejected without touching the store.
        """
        batch = parse_ingest_payload(payload)
        structure = self._assemble(batch.document, batch.sections, batch.articles)

        with self._store.transaction() as store:
            existing = store.get_document(batch.document.doc_id)
            document = batch.document
            if existing is not None:
                document = replace(document, created_at=existing.created_at)
            store.upsert_document(document)
            store.replace_structure(document.doc_id, batch.sections, batch.articles)
            if store.relations_to(document.doc_id):
                self._relations.recompute_status(document.doc_id)

        log.info(
            "document ingested id=%s sections=%d articles=%d duplicates=%d",
            document.doc_id,
            len(batch.sections),
            len(batch.articles),
            structure["counts"]["duplicates"],
        )
        return {
            "id": document.doc_id,
            "created": existing is None,
            "counts": structure["counts"],
        }

    # ─── Relations ───────────────────────────────────────────────────

    def _relation_entry(
        self,
        record: RelationRecord,
        counterpart_id: str,
        docs: Mapping[str, DocumentRecord],
    ) -> dict[str, Any]:
        entry = record.to_dict()
        counterpart = docs.get(counterpart_id)
        entry["document"] = {
            "id": counterpart_id,
            "title": counterpart.title if counterpart else None,
            "nature": counterpart.nature if counterpart else None,
            "status": counterpart.status if counterpart else None,
        }
        return entry

    def get_relations(self, doc_id: str) -> dict[str, Any]:
        """Every relation the document takes part in, both directions."""
        document = self._require_document(doc_id)
        forward = self._relations.relations_for_source(doc_id)
        inverse = self._relations.relations_for_target(doc_id)

        counterpart_ids = [r.target_id for rs in forward.values() for r in rs]
        counterpart_ids += [r.source_id for rs in inverse.values() for r in rs]
        docs = self._store.get_documents(counterpart_ids)

        bundle: dict[str, list[dict[str, Any]]] = {key: [] for key in RELATION_KEYS}
        for key, records in forward.items():
            bundle[key] = [self._relation_entry(r, r.target_id, docs) for r in records]
        for key, records in inverse.items():
            bundle[key] = [self._relation_entry(r, r.source_id, docs) for r in records]

        return {
            "document": {"id": document.doc_id, "title": document.title},
            "counts": self._relations.counts(doc_id),
            "relations": bundle,
        }

    def add_relation(
        self,
        source_id: str,
        target_id: str,
        relation_type: str,
        note: str | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        return self._relations.add_relation(
            source_id, target_id, relation_type, note, **extra
        ).to_dict()

    def update_relation(self, relation_id: str, **fields: Any) -> dict[str, Any]:
        return self._relations.update_relation(relation_id, **fields).to_dict()

    def remove_relation(self, relation_id: str) -> dict[str, Any]:
        record = self._relations.remove_relation(relation_id)
        return {"id": record.relation_id, "deleted": True}

    def relation_graph(self, doc_id: str, max_depth: int = 2) -> dict[str, Any]:
        if max_depth < 1:
            raise ValidationError("max_depth must be at least 1")
        return self._relations.neighbourhood(doc_id, min(max_depth, MAX_GRAPH_DEPTH))

    def detect_relations(self, doc_id: str) -> dict[str, Any]:
        """Relation mentions in a document's visas and articles, with stored matches."""
        document = self._require_document(doc_id)
        articles = self._store.get_articles(doc_id)
        text = "\n".join([document.visas or "", *(a.body for a in articles)])

        detected: list[dict[str, Any]] = []
        for hit in detect_relations(text):
            target_id: str | None = None
            if any(ch.isdigit() for ch in hit.lookup_key):
                matches = [
                    d for d in self._store.find_documents_by_numero(hit.lookup_key, limit=2)
                    if d.doc_id != doc_id
                ]
                target_id = matches[0].doc_id if matches else None
            detected.append({
                "type": hit.relation_type,
                "reference": hit.reference,
                "context": hit.context,
                "target_id": target_id,
            })
        return {
            "document_id": doc_id,
            "detected": detected,
            "count": len(detected),
            "matched_count": sum(1 for d in detected if d["target_id"]),
        }

    # ─── Search ──────────────────────────────────────────────────────

    def suggest(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        """Top article hits then top document-title hits, at most ``limit`` in total."""
        if not query or not query.strip():
            raise ValidationError("Search query must not be empty")
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        limit = min(limit, MAX_SUGGEST_LIMIT)
        query = query.strip()
        hits = merge_suggestions(
            self._search.search_articles(query, limit),
            self._search.search_documents(query, limit),
            limit,
        )
        return [h.to_dict() for h in hits]

    def search(
        self,
        query: str,
        *,
        nature: str | None = None,
        status: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Paged text search over documents, newest publication first.

        Dates bound ``date_publication`` inclusively and must be ISO dates.
        ``limit`` is clamped to ``MAX_PAGE_SIZE``.
        """
        if not query or not query.strip():
            raise ValidationError("Search query must not be empty")
        if nature is not None and nature not in NATURES:
            raise ValidationError(f"Unknown nature {nature!r}")
        if status is not None and status not in STATUSES:
            raise ValidationError(f"Unknown status {status!r}")
        for name, value in (("date_from", date_from), ("date_to", date_to)):
            if value is None:
                continue
            try:
                date.fromisoformat(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)") from None
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be at least 1")
        limit = min(limit, MAX_PAGE_SIZE)

        query = query.strip()
        filters = SearchFilters(
            nature=nature, status=status, date_from=date_from, date_to=date_to
        )
        hits, total = self._search.search_texts(query, filters, limit, (page - 1) * limit)
        docs = self._store.get_documents([h.doc_id for h in hits])
        results = []
        for hit in hits:
            entry = hit.to_dict()
            doc = docs.get(hit.doc_id)
            entry["document"] = doc.summary() if doc else None
            results.append(entry)
        return {
            "query": query,
            "hits": results,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    def index_payload(self, doc_id: str) -> dict[str, Any]:
        """Record to push to an external full-text engine for one document."""
        document = self._require_document(doc_id)
        return search_payload(document, self._store.get_articles(doc_id))

    # ─── Documents ───────────────────────────────────────────────────

    def list_documents(
        self,
        *,
        nature: str | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        if nature is not None and nature not in NATURES:
            raise ValidationError(f"Unknown nature {nature!r}")
        if status is not None and status not in STATUSES:
            raise ValidationError(f"Unknown status {status!r}")
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit within 1..{MAX_PAGE_SIZE}")
        total = self._store.count_documents(nature=nature, status=status)
        docs = self._store.list_documents(
            nature=nature, status=status, limit=limit, offset=(page - 1) * limit
        )
        return {
            "data": [d.summary() for d in docs],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    def delete_document(self, doc_id: str) -> dict[str, Any]:
        """Delete a document; relations touching it block or cascade per policy."""
        with self._store.transaction() as store:
            if not store.document_exists(doc_id):
                raise NotFound(f"Document not found: {doc_id}")
            outgoing = store.relations_from(doc_id)
            incoming = store.relations_to(doc_id)
            if (outgoing or incoming) and self.delete_policy == "block":
                raise ReferencedDocument(
                    f"Document {doc_id} is referenced by "
                    f"{len(outgoing) + len(incoming)} relation(s)"
                )
            for record in outgoing + incoming:
                store.delete_relation(record.relation_id)
            store.delete_document(doc_id)
            for target_id in {r.target_id for r in outgoing}:
                self._relations.recompute_status(target_id)

        log.info(
            "document deleted id=%s relations_removed=%d",
            doc_id,
            len(outgoing) + len(incoming),
        )
        return {
            "id": doc_id,
            "deleted": True,
            "relations_removed": len(outgoing) + len(incoming),
        }
