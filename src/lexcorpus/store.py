"""DuckDB read/write store for documents, structure rows and relations.

Manages a single DuckDB database (``corpus_index/lexcorpus.duckdb`` by
default, or ``":memory:"``).  Tables:

* documents  -- one row per legal text
* sections   -- structural headings (owned by a document)
* articles   -- provisions (owned by a document, optionally by a section)
* relations  -- directed typed edges between documents, stored once

Write discipline: every logical write goes through ``transaction()`` so a
half-written structure or a relation without its status side effects is
never visible.  Nested ``transaction()`` blocks join the outer one.

The connection is not thread-safe; a hosting process shares one store on a
single event loop thread.
"""
from __future__ import annotations

import contextlib
import importlib
import uuid
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from lexcorpus.models import ArticleRow, DocumentRecord, RelationRecord, SectionRow

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")


SCHEMA_VERSION = "1.0.0"

MEMORY = ":memory:"


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _opt_str(value: Any) -> str | None:
    return str(value) if value is not None else None


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL
);

-- ─── DOCUMENTS ────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS documents (
    doc_id VARCHAR PRIMARY KEY,
    title VARCHAR NOT NULL,
    nature VARCHAR NOT NULL,
    status VARCHAR NOT NULL DEFAULT 'VIGUEUR',
    numero VARCHAR,
    date_signature VARCHAR,
    date_publication VARCHAR,
    visas VARCHAR,
    created_at VARCHAR NOT NULL
);

-- ─── SECTIONS ─────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS sections (
    section_id VARCHAR NOT NULL,
    doc_id VARCHAR NOT NULL,
    title VARCHAR NOT NULL,
    parent_id VARCHAR,
    position INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sections_doc ON sections(doc_id);

-- ─── ARTICLES ─────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS articles (
    article_id VARCHAR NOT NULL,
    doc_id VARCHAR NOT NULL,
    numero VARCHAR NOT NULL,
    body VARCHAR NOT NULL DEFAULT '',
    order_index INTEGER NOT NULL,
    status VARCHAR NOT NULL DEFAULT 'VIGUEUR',
    section_id VARCHAR,
    position INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_articles_doc ON articles(doc_id);

-- ─── RELATIONS ────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS relations (
    relation_id VARCHAR PRIMARY KEY,
    source_id VARCHAR NOT NULL,
    target_id VARCHAR NOT NULL,
    relation_type VARCHAR NOT NULL,
    note VARCHAR,
    article_source_num VARCHAR,
    article_target_num VARCHAR,
    date_effet VARCHAR,
    created_at VARCHAR NOT NULL,
    UNIQUE (source_id, target_id, relation_type)
);
CREATE INDEX IF NOT EXISTS idx_relations_source ON relations(source_id);
CREATE INDEX IF NOT EXISTS idx_relations_target ON relations(target_id);
"""

_DOCUMENT_COLS = (
    "doc_id, title, nature, status, created_at, numero, "
    "date_signature, date_publication, visas"
)
_SECTION_COLS = "section_id, doc_id, title, parent_id, position"
_ARTICLE_COLS = (
    "article_id, doc_id, numero, body, order_index, status, section_id, position"
)
_RELATION_COLS = (
    "relation_id, source_id, target_id, relation_type, note, created_at, "
    "article_source_num, article_target_num, date_effet"
)


def _document_from_row(r: tuple[Any, ...]) -> DocumentRecord:
    return DocumentRecord(
        doc_id=str(r[0]),
        title=str(r[1]),
        nature=str(r[2]),
        status=str(r[3]),
        created_at=str(r[4]),
        numero=_opt_str(r[5]),
        date_signature=_opt_str(r[6]),
        date_publication=_opt_str(r[7]),
        visas=_opt_str(r[8]),
    )


def _section_from_row(r: tuple[Any, ...]) -> SectionRow:
    return SectionRow(
        section_id=str(r[0]),
        doc_id=str(r[1]),
        title=str(r[2]),
        parent_id=_opt_str(r[3]),
        position=int(r[4]),
    )


def _article_from_row(r: tuple[Any, ...]) -> ArticleRow:
    return ArticleRow(
        article_id=str(r[0]),
        doc_id=str(r[1]),
        numero=str(r[2]),
        body=str(r[3] or ""),
        order_index=int(r[4]),
        status=str(r[5]),
        section_id=_opt_str(r[6]),
        position=int(r[7]),
    )


def _relation_from_row(r: tuple[Any, ...]) -> RelationRecord:
    return RelationRecord(
        relation_id=str(r[0]),
        source_id=str(r[1]),
        target_id=str(r[2]),
        relation_type=str(r[3]),
        note=_opt_str(r[4]),
        created_at=str(r[5]),
        article_source_num=_opt_str(r[6]),
        article_target_num=_opt_str(r[7]),
        date_effet=_opt_str(r[8]),
    )


class CorpusStore:
    """Read/write interface to the corpus DuckDB database."""

    def __init__(
        self,
        db_path: Path | str = MEMORY,
        *,
        create_if_missing: bool = False,
    ) -> None:
        self._in_transaction = False
        if str(db_path) == MEMORY:
            self._db_path: Path | None = None
            self._conn: Any = _duckdb_mod.connect(MEMORY)
        else:
            self._db_path = Path(db_path)
            if not self._db_path.exists() and not create_if_missing:
                raise FileNotFoundError(f"Corpus database not found: {self._db_path}")
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = _duckdb_mod.connect(str(self._db_path))
        self._create_schema()

    def _create_schema(self) -> None:
        for stmt in _SCHEMA_DDL.split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.execute(
            "INSERT OR REPLACE INTO _schema_version (table_name, version) VALUES (?, ?)",
            ["corpus", SCHEMA_VERSION],
        )

    @property
    def db_path(self) -> Path | None:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> CorpusStore:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[CorpusStore]:
        """Run the enclosed writes atomically; roll back on any exception."""
        if self._in_transaction:
            yield self
            return
        self._conn.execute("BEGIN TRANSACTION")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple[Any, ...]]:
        """Execute a raw read query (search backends, diagnostics)."""
        if params:
            return self._conn.execute(sql, params).fetchall()
        return self._conn.execute(sql).fetchall()

    # ─── Documents ───────────────────────────────────────────────────

    def get_document(self, doc_id: str) -> DocumentRecord | None:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents WHERE doc_id = ?", [doc_id]
        ).fetchone()
        return _document_from_row(row) if row else None

    def get_documents(self, doc_ids: Sequence[str]) -> dict[str, DocumentRecord]:
        if not doc_ids:
            return {}
        unique_ids = list(dict.fromkeys(doc_ids))
        placeholders = ", ".join("?" for _ in unique_ids)
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents WHERE doc_id IN ({placeholders})",
            unique_ids,
        ).fetchall()
        return {str(r[0]): _document_from_row(r) for r in rows}

    def document_exists(self, doc_id: str) -> bool:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM documents WHERE doc_id = ?", [doc_id]
        ).fetchone()
        return bool(row and row[0])

    def _document_filters(
        self, nature: str | None, status: str | None
    ) -> tuple[str, list[Any]]:
        conditions: list[str] = []
        params: list[Any] = []
        if nature:
            conditions.append("nature = ?")
            params.append(nature)
        if status:
            conditions.append("status = ?")
            params.append(status)
        where = " WHERE " + " AND ".join(conditions) if conditions else ""
        return where, params

    def list_documents(
        self,
        *,
        nature: str | None = None,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[DocumentRecord]:
        where, params = self._document_filters(nature, status)
        params.extend([limit, offset])
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents{where} "
            "ORDER BY created_at DESC, doc_id ASC LIMIT ? OFFSET ?",
            params,
        ).fetchall()
        return [_document_from_row(r) for r in rows]

    def count_documents(
        self, *, nature: str | None = None, status: str | None = None
    ) -> int:
        where, params = self._document_filters(nature, status)
        row = self._conn.execute(
            f"SELECT COUNT(*) FROM documents{where}", params
        ).fetchone()
        return int(row[0]) if row else 0

    def find_documents_by_numero(self, fragment: str, *, limit: int = 1) -> list[DocumentRecord]:
        """Documents whose official number contains ``fragment`` (whitespace-insensitive)."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents "
            "WHERE numero IS NOT NULL "
            "AND contains(upper(replace(numero, ' ', '')), upper(?)) "
            "ORDER BY created_at ASC, doc_id ASC LIMIT ?",
            [fragment, limit],
        ).fetchall()
        return [_document_from_row(r) for r in rows]

    def upsert_document(self, doc: DocumentRecord) -> DocumentRecord:
        """Insert or update a document row; an existing row keeps its created_at."""
        existing = self.get_document(doc.doc_id)
        if existing is None:
            self._conn.execute(
                f"INSERT INTO documents ({_DOCUMENT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    doc.doc_id, doc.title, doc.nature, doc.status, doc.created_at,
                    doc.numero, doc.date_signature, doc.date_publication, doc.visas,
                ],
            )
            return doc
        self._conn.execute(
            "UPDATE documents SET title = ?, nature = ?, status = ?, numero = ?, "
            "date_signature = ?, date_publication = ?, visas = ? WHERE doc_id = ?",
            [
                doc.title, doc.nature, doc.status, doc.numero,
                doc.date_signature, doc.date_publication, doc.visas, doc.doc_id,
            ],
        )
        return self.get_document(doc.doc_id) or doc

    def set_document_status(self, doc_id: str, status: str) -> None:
        self._conn.execute(
            "UPDATE documents SET status = ? WHERE doc_id = ?", [status, doc_id]
        )

    def delete_document(self, doc_id: str) -> None:
        """Delete a document with its sections and articles (relations untouched)."""
        self._conn.execute("DELETE FROM articles WHERE doc_id = ?", [doc_id])
        self._conn.execute("DELETE FROM sections WHERE doc_id = ?", [doc_id])
        self._conn.execute("DELETE FROM documents WHERE doc_id = ?", [doc_id])

    # ─── Structure rows ──────────────────────────────────────────────

    def replace_structure(
        self,
        doc_id: str,
        sections: Sequence[SectionRow],
        articles: Sequence[ArticleRow],
    ) -> None:
        """Replace every section and article row owned by ``doc_id``."""
        self._conn.execute("DELETE FROM articles WHERE doc_id = ?", [doc_id])
        self._conn.execute("DELETE FROM sections WHERE doc_id = ?", [doc_id])
        if sections:
            self._conn.executemany(
                f"INSERT INTO sections ({_SECTION_COLS}) VALUES (?, ?, ?, ?, ?)",
                [
                    [s.section_id, doc_id, s.title, s.parent_id, s.position]
                    for s in sections
                ],
            )
        if articles:
            self._conn.executemany(
                f"INSERT INTO articles ({_ARTICLE_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    [
                        a.article_id, doc_id, a.numero, a.body, a.order_index,
                        a.status, a.section_id, a.position,
                    ]
                    for a in articles
                ],
            )

    def get_sections(self, doc_id: str) -> list[SectionRow]:
        rows = self._conn.execute(
            f"SELECT {_SECTION_COLS} FROM sections WHERE doc_id = ? ORDER BY position",
            [doc_id],
        ).fetchall()
        return [_section_from_row(r) for r in rows]

    def get_articles(self, doc_id: str) -> list[ArticleRow]:
        rows = self._conn.execute(
            f"SELECT {_ARTICLE_COLS} FROM articles WHERE doc_id = ? ORDER BY position",
            [doc_id],
        ).fetchall()
        return [_article_from_row(r) for r in rows]

    # ─── Relations ───────────────────────────────────────────────────

    def insert_relation(
        self,
        source_id: str,
        target_id: str,
        relation_type: str,
        *,
        note: str | None = None,
        article_source_num: str | None = None,
        article_target_num: str | None = None,
        date_effet: str | None = None,
    ) -> RelationRecord:
        record = RelationRecord(
            relation_id=_uuid(),
            source_id=source_id,
            target_id=target_id,
            relation_type=relation_type,
            note=note,
            created_at=_now(),
            article_source_num=article_source_num,
            article_target_num=article_target_num,
            date_effet=date_effet,
        )
        self._conn.execute(
            f"INSERT INTO relations ({_RELATION_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                record.relation_id, record.source_id, record.target_id,
                record.relation_type, record.note, record.created_at,
                record.article_source_num, record.article_target_num, record.date_effet,
            ],
        )
        return record

    def get_relation(self, relation_id: str) -> RelationRecord | None:
        row = self._conn.execute(
            f"SELECT {_RELATION_COLS} FROM relations WHERE relation_id = ?",
            [relation_id],
        ).fetchone()
        return _relation_from_row(row) if row else None

    def find_relation(
        self, source_id: str, target_id: str, relation_type: str
    ) -> RelationRecord | None:
        row = self._conn.execute(
            f"SELECT {_RELATION_COLS} FROM relations "
            "WHERE source_id = ? AND target_id = ? AND relation_type = ?",
            [source_id, target_id, relation_type],
        ).fetchone()
        return _relation_from_row(row) if row else None

    def relations_from(self, doc_id: str) -> list[RelationRecord]:
        rows = self._conn.execute(
            f"SELECT {_RELATION_COLS} FROM relations WHERE source_id = ? "
            "ORDER BY created_at DESC, relation_id ASC",
            [doc_id],
        ).fetchall()
        return [_relation_from_row(r) for r in rows]

    def relations_to(self, doc_id: str) -> list[RelationRecord]:
        rows = self._conn.execute(
            f"SELECT {_RELATION_COLS} FROM relations WHERE target_id = ? "
            "ORDER BY created_at DESC, relation_id ASC",
            [doc_id],
        ).fetchall()
        return [_relation_from_row(r) for r in rows]

    def count_relations(self, doc_id: str) -> tuple[int, int]:
        """(as source, as target) edge counts for a document."""
        row = self._conn.execute(
            "SELECT "
            "COUNT(*) FILTER (WHERE source_id = ?), "
            "COUNT(*) FILTER (WHERE target_id = ?) "
            "FROM relations",
            [doc_id, doc_id],
        ).fetchone()
        if not row:
            return 0, 0
        return int(row[0]), int(row[1])

    def update_relation(self, relation_id: str, fields: dict[str, Any]) -> None:
        allowed = {
            "relation_type", "note", "article_source_num",
            "article_target_num", "date_effet",
        }
        updates = {k: v for k, v in fields.items() if k in allowed}
        if not updates:
            return
        assignments = ", ".join(f"{col} = ?" for col in updates)
        self._conn.execute(
            f"UPDATE relations SET {assignments} WHERE relation_id = ?",
            [*updates.values(), relation_id],
        )

    def delete_relation(self, relation_id: str) -> None:
        self._conn.execute(
            "DELETE FROM relations WHERE relation_id = ?", [relation_id]
        )
