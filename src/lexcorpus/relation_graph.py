"""Directed, typed relation graph between documents.

Each relation is one stored edge ``source --TYPE--> target``.  The inverse
view (``target --TYPE_PAR--> source``) is computed at read time from
``INVERSE_LABELS``; nothing is written twice.

Queries are single-hop and type-scoped, so cycles (mutual citations, an
abrogating text cited back by the one it abrogates) are harmless.  The only
multi-hop walk, ``neighbourhood``, keeps a visited set.

Writes also maintain the target document's legal status:
    ABROGE                -> target ABROGE
    MODIFIE / COMPLETE    -> target MODIFIE (unless already ABROGE)
and recompute it from the remaining incoming edges after a delete or a
type change.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Any

from lexcorpus.errors import DuplicateRelation, InvalidRelation, NotFound, ValidationError
from lexcorpus.models import (
    FORWARD_KEYS,
    INVERSE_KEYS,
    INVERSE_LABELS,
    MAX_ARTICLE_REF_LEN,
    RELATION_LABELS,
    RELATION_TYPES,
    RelationRecord,
    relation_key,
)
from lexcorpus.store import CorpusStore

log = logging.getLogger(__name__)

_MODIFYING_TYPES = frozenset({"MODIFIE", "COMPLETE"})
_NODE_TITLE_MAX = 50

_UNSET: Any = object()


def inverse_label(relation_type: str) -> str:
    return INVERSE_LABELS[relation_type]


def status_from_incoming(types: set[str]) -> str:
    """Legal status implied by the set of incoming relation types."""
    if "ABROGE" in types:
        return "ABROGE"
    if types & _MODIFYING_TYPES:
        return "MODIFIE"
    return "VIGUEUR"


def _check_type(relation_type: str) -> str:
    normalized = (relation_type or "").strip().upper()
    if normalized not in RELATION_TYPES:
        raise InvalidRelation(
            f"Unknown relation type {relation_type!r}; expected one of {', '.join(RELATION_TYPES)}"
        )
    return normalized


def _check_article_ref(name: str, value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if len(value) > MAX_ARTICLE_REF_LEN:
        raise ValidationError(f"{name} longer than {MAX_ARTICLE_REF_LEN} characters")
    return value or None


def _short_title(title: str) -> str:
    if len(title) > _NODE_TITLE_MAX:
        return title[:_NODE_TITLE_MAX] + "..."
    return title


class RelationGraph:
    """Relation operations over a ``CorpusStore``."""

    def __init__(self, store: CorpusStore) -> None:
        self._store = store

    # ─── Writes ──────────────────────────────────────────────────────

    def add_relation(
        self,
        source_id: str,
        target_id: str,
        relation_type: str,
        note: str | None = None,
        *,
        article_source_num: str | None = None,
        article_target_num: str | None = None,
        date_effet: str | None = None,
    ) -> RelationRecord:
        """Create one directed edge.

        Raises:
            InvalidRelation: self-loop or unknown type.
            NotFound: either document is absent.
            DuplicateRelation: the (source, target, type) triple exists.
        """
        relation_type = _check_type(relation_type)
        if source_id == target_id:
            raise InvalidRelation("A document cannot be related to itself")
        article_source_num = _check_article_ref("article_source_num", article_source_num)
        article_target_num = _check_article_ref("article_target_num", article_target_num)

        with self._store.transaction() as store:
            for role, doc_id in (("source", source_id), ("target", target_id)):
                if not store.document_exists(doc_id):
                    raise NotFound(f"Document {role} not found: {doc_id}")
            if store.find_relation(source_id, target_id, relation_type) is not None:
                raise DuplicateRelation(
                    f"Relation {relation_type} from {source_id} to {target_id} already exists"
                )
            record = store.insert_relation(
                source_id,
                target_id,
                relation_type,
                note=note,
                article_source_num=article_source_num,
                article_target_num=article_target_num,
                date_effet=date_effet,
            )
            self._apply_status_effect(target_id, relation_type)

        log.info(
            "relation created id=%s type=%s source=%s target=%s",
            record.relation_id, relation_type, source_id, target_id,
        )
        return record

    def update_relation(
        self,
        relation_id: str,
        *,
        relation_type: str | None = None,
        note: Any = _UNSET,
        article_source_num: Any = _UNSET,
        article_target_num: Any = _UNSET,
        date_effet: Any = _UNSET,
    ) -> RelationRecord:
        """Patch a relation; fields left unset keep their value."""
        fields: dict[str, Any] = {}
        if relation_type is not None:
            fields["relation_type"] = _check_type(relation_type)
        if note is not _UNSET:
            fields["note"] = note
        if article_source_num is not _UNSET:
            fields["article_source_num"] = _check_article_ref("article_source_num", article_source_num)
        if article_target_num is not _UNSET:
            fields["article_target_num"] = _check_article_ref("article_target_num", article_target_num)
        if date_effet is not _UNSET:
            fields["date_effet"] = date_effet

        with self._store.transaction() as store:
            current = store.get_relation(relation_id)
            if current is None:
                raise NotFound(f"Relation not found: {relation_id}")
            new_type = fields.get("relation_type", current.relation_type)
            type_changed = new_type != current.relation_type
            if type_changed and store.find_relation(
                current.source_id, current.target_id, new_type
            ) is not None:
                raise DuplicateRelation(
                    f"Relation {new_type} from {current.source_id} "
                    f"to {current.target_id} already exists"
                )
            store.update_relation(relation_id, fields)
            if type_changed:
                self.recompute_status(current.target_id)
            updated = store.get_relation(relation_id)

        assert updated is not None
        log.info("relation updated id=%s", relation_id)
        return updated

    def remove_relation(self, relation_id: str) -> RelationRecord:
        """Delete a relation and recompute its target's status.

        Raises:
            NotFound: no relation with this id (also on a repeated call).
        """
        with self._store.transaction() as store:
            record = store.get_relation(relation_id)
            if record is None:
                raise NotFound(f"Relation not found: {relation_id}")
            store.delete_relation(relation_id)
            self.recompute_status(record.target_id)

        log.info("relation deleted id=%s", relation_id)
        return record

    def _apply_status_effect(self, target_id: str, relation_type: str) -> None:
        if relation_type == "ABROGE":
            self._store.set_document_status(target_id, "ABROGE")
        elif relation_type in _MODIFYING_TYPES:
            target = self._store.get_document(target_id)
            if target is not None and target.status != "ABROGE":
                self._store.set_document_status(target_id, "MODIFIE")

    def recompute_status(self, doc_id: str) -> str | None:
        """Reset a document's status from its remaining incoming relations."""
        if not self._store.document_exists(doc_id):
            return None
        incoming = {r.relation_type for r in self._store.relations_to(doc_id)}
        status = status_from_incoming(incoming)
        self._store.set_document_status(doc_id, status)
        return status

    # ─── Reads ───────────────────────────────────────────────────────

    def relations_for_source(self, doc_id: str) -> dict[str, list[RelationRecord]]:
        """Edges leaving ``doc_id``, keyed by forward label (``abroge``...)."""
        grouped: dict[str, list[RelationRecord]] = {key: [] for key in FORWARD_KEYS}
        for record in self._store.relations_from(doc_id):
            grouped[relation_key(record.relation_type)].append(record)
        return grouped

    def relations_for_target(self, doc_id: str) -> dict[str, list[RelationRecord]]:
        """Edges entering ``doc_id``, keyed by inverse label (``abrogePar``...)."""
        grouped: dict[str, list[RelationRecord]] = {key: [] for key in INVERSE_KEYS}
        for record in self._store.relations_to(doc_id):
            grouped[relation_key(inverse_label(record.relation_type))].append(record)
        return grouped

    def counts(self, doc_id: str) -> dict[str, int]:
        as_source, as_target = self._store.count_relations(doc_id)
        return {
            "asSource": as_source,
            "asTarget": as_target,
            "total": as_source + as_target,
        }

    def neighbourhood(self, doc_id: str, max_depth: int = 2) -> dict[str, Any]:
        """Breadth-first walk over edges in both directions, up to ``max_depth`` hops.

        Returns ``{"root_id", "nodes", "edges"}``; each edge appears once even
        when reached from both ends.
        """
        if not self._store.document_exists(doc_id):
            raise NotFound(f"Document not found: {doc_id}")

        node_ids: list[str] = [doc_id]
        edges: dict[str, dict[str, str]] = {}
        visited: set[str] = {doc_id}
        queue: deque[tuple[str, int]] = deque([(doc_id, 0)])
        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            touching = self._store.relations_from(current) + self._store.relations_to(current)
            for record in touching:
                if record.relation_id not in edges:
                    edges[record.relation_id] = {
                        "source": record.source_id,
                        "target": record.target_id,
                        "type": record.relation_type,
                        "label": RELATION_LABELS[record.relation_type],
                    }
                other = record.target_id if record.source_id == current else record.source_id
                if other not in visited:
                    visited.add(other)
                    node_ids.append(other)
                    queue.append((other, depth + 1))

        docs = self._store.get_documents(node_ids)
        nodes = [
            {
                "id": d.doc_id,
                "title": _short_title(d.title),
                "nature": d.nature,
                "status": d.status,
            }
            for d in (docs[nid] for nid in node_ids if nid in docs)
        ]
        return {"root_id": doc_id, "nodes": nodes, "edges": list(edges.values())}
