"""Tests for lexcorpus.ingest: payload validation into typed rows."""
from __future__ import annotations

import pytest

from lexcorpus.errors import ValidationError
from lexcorpus.ingest import parse_document, parse_ingest_payload


def test_defaults_filled_in() -> None:
    batch = parse_ingest_payload({
        "document": {"id": "loi-1", "title": " Loi 1 ", "nature": "loi"},
        "sections": [{"id": "t1", "title": "TITRE I"}],
        "articles": [
            {"numero": "1", "body": "Premier", "section_id": "t1"},
            {"numero": "2", "order_index": 9, "status": "abroge"},
        ],
    })
    assert batch.document.title == "Loi 1"
    assert batch.document.nature == "LOI"
    assert batch.document.status == "VIGUEUR"
    assert [a.article_id for a in batch.articles] == ["loi-1-ART-1", "loi-1-ART-2"]
    assert [a.order_index for a in batch.articles] == [1, 9]
    assert [a.position for a in batch.articles] == [0, 1]
    assert batch.articles[1].status == "ABROGE"
    assert batch.articles[1].body == ""
    assert batch.sections[0].parent_id is None


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ({"document": {"id": "x", "nature": "LOI"}}, "'title'"),
        ({"document": {"id": "x", "title": "T", "nature": "LOI", "status": "EN_COURS"}}, "status"),
        (
            {"document": {"id": "x", "title": "T", "nature": "LOI"}, "sections": [{"id": "s", "title": "A"}, {"id": "s", "title": "B"}]},
            "duplicate section id",
        ),
        (
            {"document": {"id": "x", "title": "T", "nature": "LOI"}, "articles": [{"numero": "1", "order_index": "3"}]},
            "order_index",
        ),
        (
            {"document": {"id": "x", "title": "T", "nature": "LOI"}, "articles": [{"numero": "1", "order_index": 3_000_000_000}]},
            r"articles\[0\]: 'order_index' 3000000000 out of range",
        ),
        ({"document": {"id": "x", "title": "T", "nature": "LOI"}, "articles": "nope"}, "must be a list"),
    ],
)
def test_rejections_name_the_problem(payload: dict, fragment: str) -> None:
    with pytest.raises(ValidationError, match=fragment):
        parse_ingest_payload(payload)


def test_validation_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        parse_ingest_payload({"document": None})


def test_parse_document_keeps_given_created_at() -> None:
    doc = parse_document({"id": "d", "title": "T", "nature": "DECRET"}, created_at="2020-01-01T00:00:00+00:00")
    assert doc.created_at == "2020-01-01T00:00:00+00:00"
