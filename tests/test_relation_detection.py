"""Tests for lexcorpus.relation_detection: relation mentions in legal text."""
from __future__ import annotations

from lexcorpus.relation_detection import detect_relations


def test_abrogation_with_number() -> None:
    [hit] = detect_relations("Le présent texte est abrogé par la loi n° L/2015/012/AN du 3 mars 2015.")
    assert hit.relation_type == "ABROGE"
    assert hit.reference == "L/2015/012/AN"
    assert "abrogé" in hit.context


def test_modification() -> None:
    hits = detect_relations("Article 3 modifié par l'ordonnance n° O/2019/003/PRG.")
    assert [(h.relation_type, h.reference) for h in hits] == [("MODIFIE", "O/2019/003/PRG")]


def test_citation_phrases() -> None:
    text = (
        "En application de la loi L/2001/017/AN et conformément à l'article 12, "
        "le ministre arrête."
    )
    hits = detect_relations(text)
    assert [h.relation_type for h in hits] == ["CITE", "CITE"]
    assert [h.reference for h in hits] == ["L/2001/017/AN", "12"]


def test_bare_reference_not_reported_twice() -> None:
    text = "Vu le décret D/2010/045/PRG; le décret est abrogé par la loi n° L/2015/012/AN."
    hits = detect_relations(text)
    assert [(h.relation_type, h.reference) for h in hits] == [
        ("CITE", "D/2010/045/PRG"),
        ("ABROGE", "L/2015/012/AN"),
    ]


def test_word_after_keyword_is_not_a_number() -> None:
    [hit] = detect_relations("modifiée par la loi relative au travail")
    assert hit.relation_type == "MODIFIE"
    assert hit.lookup_key == "modifiéeparlaloi"


def test_empty_text() -> None:
    assert detect_relations("") == []
