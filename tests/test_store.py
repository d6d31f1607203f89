"""Tests for lexcorpus.store: DuckDB persistence for documents, structure and relations."""
from __future__ import annotations

from pathlib import Path

import pytest

from lexcorpus.models import ArticleRow, DocumentRecord, SectionRow
from lexcorpus.store import SCHEMA_VERSION, CorpusStore


# ───────────────────── Fixtures ──────────────────────────────────────


@pytest.fixture()
def store(tmp_path: Path) -> CorpusStore:
    """Create a fresh CorpusStore in a temp directory."""
    db_path = tmp_path / "lexcorpus.duckdb"
    s = CorpusStore(db_path, create_if_missing=True)
    yield s  # type: ignore[misc]
    s.close()


def _doc(doc_id: str, *, created_at: str = "2024-01-01T00:00:00+00:00", **kw: object) -> DocumentRecord:
    fields: dict[str, object] = {
        "title": f"Loi {doc_id}",
        "nature": "LOI",
        "status": "VIGUEUR",
        "numero": None,
    }
    fields.update(kw)
    return DocumentRecord(doc_id=doc_id, created_at=created_at, **fields)  # type: ignore[arg-type]


def _article(doc_id: str, i: int, section_id: str | None = None) -> ArticleRow:
    return ArticleRow(
        article_id=f"{doc_id}-ART-{i}",
        doc_id=doc_id,
        numero=str(i),
        body=f"Article {i}",
        order_index=i,
        status="VIGUEUR",
        section_id=section_id,
        position=i - 1,
    )


# ───────────────────── Lifecycle ─────────────────────────────────────


class TestLifecycle:
    def test_missing_database_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            CorpusStore(tmp_path / "absent.duckdb")

    def test_schema_version_recorded(self, store: CorpusStore) -> None:
        rows = store.query("SELECT version FROM _schema_version WHERE table_name = 'corpus'")
        assert rows == [(SCHEMA_VERSION,)]

    def test_reopen_keeps_data(self, tmp_path: Path) -> None:
        db_path = tmp_path / "lexcorpus.duckdb"
        with CorpusStore(db_path, create_if_missing=True) as s:
            s.upsert_document(_doc("loi-1"))
        with CorpusStore(db_path) as s:
            assert s.document_exists("loi-1")

    def test_in_memory_store(self) -> None:
        with CorpusStore() as s:
            assert s.db_path is None
            assert s.count_documents() == 0


# ───────────────────── Transactions ──────────────────────────────────


class TestTransactions:
    def test_rollback_on_error(self, store: CorpusStore) -> None:
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.upsert_document(_doc("loi-1"))
                raise RuntimeError("boom")
        assert not store.document_exists("loi-1")

    def test_nested_block_joins_outer(self, store: CorpusStore) -> None:
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.upsert_document(_doc("loi-1"))
                raise RuntimeError("boom")
        assert not store.document_exists("loi-1")

    def test_commit(self, store: CorpusStore) -> None:
        with store.transaction():
            store.upsert_document(_doc("loi-1"))
        assert store.document_exists("loi-1")


# ───────────────────── Documents ─────────────────────────────────────


class TestDocuments:
    def test_upsert_keeps_created_at(self, store: CorpusStore) -> None:
        store.upsert_document(_doc("loi-1", created_at="2020-01-01T00:00:00+00:00"))
        store.upsert_document(_doc("loi-1", created_at="2024-06-01T00:00:00+00:00", title="Nouveau titre"))
        doc = store.get_document("loi-1")
        assert doc is not None
        assert doc.title == "Nouveau titre"
        assert doc.created_at == "2020-01-01T00:00:00+00:00"

    def test_list_newest_first_with_filters(self, store: CorpusStore) -> None:
        store.upsert_document(_doc("a", created_at="2024-01-01T00:00:00+00:00"))
        store.upsert_document(_doc("b", created_at="2024-03-01T00:00:00+00:00"))
        store.upsert_document(_doc("c", created_at="2024-02-01T00:00:00+00:00", nature="DECRET"))

        assert [d.doc_id for d in store.list_documents()] == ["b", "c", "a"]
        assert [d.doc_id for d in store.list_documents(nature="LOI")] == ["b", "a"]
        assert [d.doc_id for d in store.list_documents(limit=1, offset=1)] == ["c"]
        assert store.count_documents(nature="DECRET") == 1

    def test_find_by_numero_ignores_spaces(self, store: CorpusStore) -> None:
        store.upsert_document(_doc("loi-1", numero="L/2015/ 012/AN"))
        found = store.find_documents_by_numero("L/2015/012")
        assert [d.doc_id for d in found] == ["loi-1"]

    def test_delete_removes_structure(self, store: CorpusStore) -> None:
        store.upsert_document(_doc("loi-1"))
        store.replace_structure("loi-1", [], [_article("loi-1", 1)])
        store.delete_document("loi-1")
        assert store.get_document("loi-1") is None
        assert store.get_articles("loi-1") == []


# ───────────────────── Structure ─────────────────────────────────────


class TestStructure:
    def test_replace_structure_is_idempotent(self, store: CorpusStore) -> None:
        store.upsert_document(_doc("loi-1"))
        sections = [SectionRow("s1", "loi-1", "TITRE I", None, 0)]
        articles = [_article("loi-1", 1, "s1"), _article("loi-1", 2)]
        store.replace_structure("loi-1", sections, articles)
        store.replace_structure("loi-1", sections, articles)
        assert store.get_sections("loi-1") == sections
        assert store.get_articles("loi-1") == articles


# ───────────────────── Relations ─────────────────────────────────────


class TestRelations:
    def test_insert_and_query_both_directions(self, store: CorpusStore) -> None:
        record = store.insert_relation("a", "b", "CITE", note="voir art. 3", article_source_num="3")
        assert store.get_relation(record.relation_id) == record
        assert store.find_relation("a", "b", "CITE") == record
        assert store.relations_from("a") == [record]
        assert store.relations_to("b") == [record]
        assert store.count_relations("a") == (1, 0)
        assert store.count_relations("b") == (0, 1)

    def test_update_only_known_columns(self, store: CorpusStore) -> None:
        record = store.insert_relation("a", "b", "CITE")
        store.update_relation(record.relation_id, {"note": "n", "source_id": "zzz"})
        updated = store.get_relation(record.relation_id)
        assert updated is not None
        assert updated.note == "n"
        assert updated.source_id == "a"

    def test_delete_relation(self, store: CorpusStore) -> None:
        record = store.insert_relation("a", "b", "CITE")
        store.delete_relation(record.relation_id)
        assert store.get_relation(record.relation_id) is None
