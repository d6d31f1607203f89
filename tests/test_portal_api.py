"""Tests for portal.api.server: route behaviour and error translation."""
from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fastapi import HTTPException

from lexcorpus.facade import CorpusFacade
from lexcorpus.store import CorpusStore
from portal.api import server


@pytest.fixture()
def facade(monkeypatch) -> CorpusFacade:
    store = CorpusStore()
    facade = CorpusFacade(store)
    monkeypatch.setattr(server, "_facade", facade)
    yield facade  # type: ignore[misc]
    store.close()


def _payload(doc_id: str, title: str) -> dict[str, Any]:
    return {
        "document": {"id": doc_id, "title": title, "nature": "LOI"},
        "sections": [{"id": f"{doc_id}-t1", "title": "TITRE I"}],
        "articles": [
            {"numero": "1", "body": "Le présent statut régit l'entreprenant.", "section_id": f"{doc_id}-t1"},
        ],
    }


def _status_of(coro) -> int:
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(coro)
    return excinfo.value.status_code


def test_store_unavailable_returns_503(monkeypatch) -> None:
    monkeypatch.setattr(server, "_facade", None)
    assert _status_of(server.document_structure("x")) == 503
    health = asyncio.run(server.health())
    assert health["store_open"] is False


def test_ingest_and_structure(facade: CorpusFacade) -> None:
    created = asyncio.run(server.ingest_document(_payload("loi-1", "Loi 1")))
    assert created["created"] is True

    structure = asyncio.run(server.document_structure("loi-1"))
    assert [s["id"] for s in structure["sections"]] == ["loi-1-t1"]
    assert structure["sections"][0]["articles"][0]["numero"] == "1"

    listing = asyncio.run(server.list_documents(nature=None, status=None, page=1, limit=20))
    assert listing["pagination"]["total"] == 1


def test_invalid_payload_is_400(facade: CorpusFacade) -> None:
    assert _status_of(server.ingest_document({"document": {"id": "x"}})) == 400


def test_unknown_document_is_404(facade: CorpusFacade) -> None:
    assert _status_of(server.document_relations("absent")) == 404
    assert _status_of(server.document_relation_graph("absent", max_depth=2)) == 404


def test_relation_lifecycle(facade: CorpusFacade) -> None:
    asyncio.run(server.ingest_document(_payload("A", "Loi A")))
    asyncio.run(server.ingest_document(_payload("B", "Loi B")))

    body = server.RelationCreate(source_id="A", target_id="B", type="MODIFIE", note="art. 1")
    created = asyncio.run(server.create_relation(body))
    assert created["type"] == "MODIFIE"

    assert _status_of(server.create_relation(body)) == 409
    self_loop = server.RelationCreate(source_id="A", target_id="A", type="CITE")
    assert _status_of(server.create_relation(self_loop)) == 400

    patched = asyncio.run(
        server.update_relation(created["id"], server.RelationUpdate(type="ABROGE"))
    )
    assert patched["type"] == "ABROGE"
    assert patched["note"] == "art. 1"

    relations = asyncio.run(server.document_relations("B"))
    assert relations["relations"]["abrogePar"][0]["document"]["title"] == "Loi A"

    deleted = asyncio.run(server.delete_relation(created["id"]))
    assert deleted == {"id": created["id"], "deleted": True}
    assert _status_of(server.delete_relation(created["id"])) == 404


def test_delete_referenced_document_is_409(facade: CorpusFacade) -> None:
    asyncio.run(server.ingest_document(_payload("A", "Loi A")))
    asyncio.run(server.ingest_document(_payload("B", "Loi B")))
    asyncio.run(server.create_relation(server.RelationCreate(source_id="A", target_id="B", type="CITE")))
    assert _status_of(server.delete_document("B")) == 409


def test_structural_error_hides_details(facade: CorpusFacade) -> None:
    payload = _payload("C", "Loi C")
    payload["sections"] = [
        {"id": "a", "title": "TITRE I", "parent_id": "b"},
        {"id": "b", "title": "TITRE II", "parent_id": "a"},
    ]
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(server.ingest_document(payload))
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "Internal error"


def test_suggest(facade: CorpusFacade) -> None:
    asyncio.run(server.ingest_document(_payload("au", "Statut de l'entreprenant")))
    result = asyncio.run(server.suggest(q="entreprenant", limit=10))
    assert result["total"] == 2
    assert [h["type"] for h in result["hits"]] == ["article", "document"]
    assert _status_of(server.suggest(q="   ", limit=10)) == 400


def test_search(facade: CorpusFacade) -> None:
    for doc_id, published in (("ancien", "2001-05-02"), ("recent", "2021-07-14")):
        payload = _payload(doc_id, f"Loi {doc_id}")
        payload["document"]["date_publication"] = published
        asyncio.run(server.ingest_document(payload))

    result = asyncio.run(server.search(
        q="entreprenant", nature="LOI", status=None, date_from=None, date_to=None, page=1, limit=20,
    ))
    assert [h["doc_id"] for h in result["hits"]] == ["recent", "ancien"]
    assert result["pagination"]["total"] == 2

    dated = asyncio.run(server.search(
        q="entreprenant", nature=None, status=None, date_from="2010-01-01", date_to=None, page=1, limit=20,
    ))
    assert [h["doc_id"] for h in dated["hits"]] == ["recent"]

    assert _status_of(server.search(
        q="entreprenant", nature="BULLE", status=None, date_from=None, date_to=None, page=1, limit=20,
    )) == 400
