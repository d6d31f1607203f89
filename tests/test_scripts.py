"""Tests for the ingest, structure reader and relation admin CLIs."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from scripts.ingest_texte import main as ingest_main
from scripts.relation_admin import build_parser as relation_parser
from scripts.relation_admin import main as relation_main
from scripts.structure_reader import main as structure_main


def _payload(doc_id: str, **doc: Any) -> dict[str, Any]:
    document = {"id": doc_id, "title": f"Loi {doc_id}", "nature": "LOI"}
    document.update(doc)
    return {
        "document": document,
        "sections": [
            {"id": f"{doc_id}-t2", "title": "TITRE II"},
            {"id": f"{doc_id}-t1", "title": "TITRE I"},
        ],
        "articles": [
            {"numero": "1", "body": "Premier article.", "section_id": f"{doc_id}-t1"},
            {"numero": "2", "body": "Second article.", "section_id": f"{doc_id}-t2"},
        ],
    }


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Corpus database populated with two documents through the ingest CLI."""
    source = tmp_path / "textes.jsonl"
    source.write_text(
        "\n".join(json.dumps(p) for p in (_payload("A"), _payload("B"))) + "\n",
        encoding="utf-8",
    )
    db = tmp_path / "lexcorpus.duckdb"
    assert ingest_main(["--db", str(db), "--input", str(source)]) == 0
    return db


def _stdout_json(capsys) -> Any:
    return json.loads(capsys.readouterr().out)


class TestIngestCli:
    def test_reports_ingested_documents(self, tmp_path: Path, capsys) -> None:
        source = tmp_path / "textes.json"
        source.write_text(json.dumps([_payload("A"), _payload("B")]), encoding="utf-8")
        rc = ingest_main(["--db", str(tmp_path / "c.duckdb"), "--input", str(source)])
        out = _stdout_json(capsys)
        assert rc == 0
        assert out["ingested"] == 2
        assert out["failed"] == 0
        assert [d["id"] for d in out["documents"]] == ["A", "B"]

    def test_rejected_payload_exits_nonzero(self, tmp_path: Path, capsys) -> None:
        source = tmp_path / "bad.json"
        source.write_text(json.dumps([_payload("ok"), {"document": {"id": "x"}}]), encoding="utf-8")
        rc = ingest_main(["--db", str(tmp_path / "c.duckdb"), "--input", str(source)])
        out = _stdout_json(capsys)
        assert rc == 1
        assert out["ingested"] == 1
        assert out["failures"][0]["index"] == 1

    def test_missing_input(self, tmp_path: Path) -> None:
        rc = ingest_main(["--db", str(tmp_path / "c.duckdb"), "--input", str(tmp_path / "absent.json")])
        assert rc == 1


class TestStructureReaderCli:
    def test_structure(self, db_path: Path, capsys) -> None:
        capsys.readouterr()
        assert structure_main(["--db", str(db_path), "--doc-id", "A"]) == 0
        out = _stdout_json(capsys)
        assert [s["id"] for s in out["sections"]] == ["A-t1", "A-t2"]

    def test_outline(self, db_path: Path, capsys) -> None:
        capsys.readouterr()
        assert structure_main(["--db", str(db_path), "--doc-id", "A", "--outline"]) == 0
        out = _stdout_json(capsys)
        assert out["sections"][0] == {"title": "TITRE I", "level": "TITRE", "articles": ["1"], "children": []}

    @staticmethod
    def _chain_db(tmp_path: Path, depth: int) -> Path:
        payload = _payload("P")
        payload["sections"] = [{"id": "s0", "title": "LIVRE I"}] + [
            {"id": f"s{i}", "title": f"SECTION {i}", "parent_id": f"s{i - 1}"}
            for i in range(1, depth)
        ]
        payload["articles"] = []
        source = tmp_path / "profond.json"
        source.write_text(json.dumps(payload), encoding="utf-8")
        db = tmp_path / "c.duckdb"
        assert ingest_main(["--db", str(db), "--input", str(source)]) == 0
        return db

    def test_outline_of_deep_chain(self, tmp_path: Path, capsys) -> None:
        depth = 100
        db = self._chain_db(tmp_path, depth)
        capsys.readouterr()

        assert structure_main(["--db", str(db), "--doc-id", "P", "--outline"]) == 0
        node = _stdout_json(capsys)["sections"][0]
        for _ in range(depth - 1):
            [node] = node["children"]
        assert node["title"] == f"SECTION {depth - 1}"

    def test_too_deep_to_print_exits_nonzero(self, tmp_path: Path, capsys) -> None:
        db = self._chain_db(tmp_path, 1200)
        capsys.readouterr()
        assert structure_main(["--db", str(db), "--doc-id", "P"]) == 1
        assert "cannot serialize" in capsys.readouterr().err

    def test_index_payload(self, db_path: Path, capsys) -> None:
        capsys.readouterr()
        assert structure_main(["--db", str(db_path), "--doc-id", "A", "--index-payload"]) == 0
        out = _stdout_json(capsys)
        assert out["id"] == "A"
        assert out["articles"] == "Premier article. Second article."

    def test_list(self, db_path: Path, capsys) -> None:
        capsys.readouterr()
        assert structure_main(["--db", str(db_path), "--list"]) == 0
        assert _stdout_json(capsys)["pagination"]["total"] == 2

    def test_unknown_document(self, db_path: Path, capsys) -> None:
        assert structure_main(["--db", str(db_path), "--doc-id", "absent"]) == 1
        assert "Document not found" in capsys.readouterr().err

    def test_requires_one_mode(self, db_path: Path) -> None:
        assert structure_main(["--db", str(db_path)]) == 1

    def test_bad_canonical_override(self, db_path: Path) -> None:
        assert structure_main(["--db", str(db_path), "--doc-id", "A", "--canonical", "12"]) == 1


class TestRelationAdminCli:
    def test_add_list_remove(self, db_path: Path, capsys) -> None:
        capsys.readouterr()
        assert relation_main([
            "--db", str(db_path), "add",
            "--source", "A", "--target", "B", "--type", "abroge", "--date-effet", "2024-01-01",
        ]) == 0
        created = _stdout_json(capsys)
        assert created["type"] == "ABROGE"

        assert relation_main(["--db", str(db_path), "list", "--doc-id", "B"]) == 0
        bundle = _stdout_json(capsys)
        assert bundle["relations"]["abrogePar"][0]["document"]["id"] == "A"
        assert bundle["relations"]["abrogePar"][0]["date_effet"] == "2024-01-01"

        assert relation_main(["--db", str(db_path), "remove", "--id", created["id"]]) == 0
        capsys.readouterr()
        assert relation_main(["--db", str(db_path), "remove", "--id", created["id"]]) == 1

    def test_duplicate_exits_nonzero(self, db_path: Path, capsys) -> None:
        args = ["--db", str(db_path), "add", "--source", "A", "--target", "B", "--type", "CITE"]
        assert relation_main(args) == 0
        assert relation_main(args) == 1
        assert "already exists" in capsys.readouterr().err

    def test_graph(self, db_path: Path, capsys) -> None:
        relation_main(["--db", str(db_path), "add", "--source", "A", "--target", "B", "--type", "CITE"])
        capsys.readouterr()
        assert relation_main(["--db", str(db_path), "graph", "--doc-id", "B", "--depth", "1"]) == 0
        graph = _stdout_json(capsys)
        assert {n["id"] for n in graph["nodes"]} == {"A", "B"}

    def test_parser_rejects_unknown_type(self) -> None:
        with pytest.raises(SystemExit):
            relation_parser().parse_args(["--db", "x", "add", "--source", "A", "--target", "B", "--type", "REMPLACE"])
