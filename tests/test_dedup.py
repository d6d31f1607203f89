"""Tests for lexcorpus.dedup: canonical article selection."""
from __future__ import annotations

from lexcorpus.dedup import choose_canonical, deduplicate_articles
from lexcorpus.models import ArticleRow


def _article(article_id: str, numero: str, body: str, *, order_index: int, position: int) -> ArticleRow:
    return ArticleRow(
        article_id=article_id,
        doc_id="doc-1",
        numero=numero,
        body=body,
        order_index=order_index,
        status="VIGUEUR",
        section_id=None,
        position=position,
    )


def test_longest_body_wins() -> None:
    stub = _article("stub", "12", "x" * 40, order_index=1, position=0)
    full = _article("full", "12", "y" * 400, order_index=7, position=5)
    other = _article("other", "13", "z" * 100, order_index=8, position=6)

    result = deduplicate_articles([stub, full, other])

    assert [a.article_id for a in result.canonical] == ["full", "other"]
    assert [a.article_id for a in result.duplicates["12"]] == ["stub"]
    assert result.duplicate_count == 1


def test_tie_goes_to_lowest_order_index_then_position() -> None:
    a = _article("a", "5", "same", order_index=3, position=0)
    b = _article("b", "5", "same", order_index=2, position=1)
    c = _article("c", "5", "same", order_index=2, position=2)
    assert choose_canonical([a, b, c]).article_id == "b"


def test_numbers_compared_after_normalization() -> None:
    a = _article("a", "L. 30 ", "short", order_index=1, position=0)
    b = _article("b", "l.  30", "much longer body", order_index=2, position=1)
    result = deduplicate_articles([a, b])
    assert [x.article_id for x in result.canonical] == ["b"]
    assert result.duplicate_count == 1


def test_override_forces_canonical() -> None:
    stub = _article("stub", "12", "x" * 40, order_index=1, position=0)
    full = _article("full", "12", "y" * 400, order_index=2, position=1)

    result = deduplicate_articles([stub, full], overrides={"12": "stub"})

    assert [a.article_id for a in result.canonical] == ["stub"]
    assert [a.article_id for a in result.duplicates["12"]] == ["full"]


def test_unknown_override_falls_back_to_default_policy() -> None:
    stub = _article("stub", "12", "x" * 40, order_index=1, position=0)
    full = _article("full", "12", "y" * 400, order_index=2, position=1)
    result = deduplicate_articles([stub, full], overrides={"12": "missing"})
    assert [a.article_id for a in result.canonical] == ["full"]


def test_no_duplicates_passes_through() -> None:
    rows = [_article(str(i), str(i), "body", order_index=i, position=i) for i in range(3)]
    result = deduplicate_articles(rows)
    assert result.canonical == tuple(rows)
    assert result.duplicates == {}
    assert result.duplicate_count == 0
