"""Duplicate-article resolution within one document.

Upstream extraction sometimes captures a table-of-contents stub next to the
real article body under the same declared number.  Articles are grouped by
their normalized declared number; singleton groups pass through, larger
groups keep one canonical instance and quarantine the rest.

Canonical policy: longest body wins; ties go to the lowest order index,
then the earliest ingestion position.  A reviewer can force a different
instance per number through ``overrides``.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from lexcorpus.models import ArticleRow, normalize_numero

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DedupResult:
    """Canonical articles (input order) plus quarantined duplicates by number."""

    canonical: tuple[ArticleRow, ...]
    duplicates: dict[str, tuple[ArticleRow, ...]] = field(default_factory=dict)

    @property
    def duplicate_count(self) -> int:
        return sum(len(group) for group in self.duplicates.values())


def canonical_rank(article: ArticleRow) -> tuple[int, int, int]:
    """Sort key whose minimum is the canonical instance of a group."""
    return (-len(article.body or ""), article.order_index, article.position)


def choose_canonical(
    group: Sequence[ArticleRow],
    *,
    override_id: str | None = None,
) -> ArticleRow:
    if override_id is not None:
        for article in group:
            if article.article_id == override_id:
                return article
        log.warning(
            "canonical override %s not among duplicates of %r; using default policy",
            override_id,
            group[0].numero,
        )
    return min(group, key=canonical_rank)


def deduplicate_articles(
    articles: Sequence[ArticleRow],
    *,
    overrides: Mapping[str, str] | None = None,
) -> DedupResult:
    """Split ``articles`` into canonical instances and quarantined duplicates.

    Args:
        articles: All articles of one document.
        overrides: Optional map of declared number -> article id forcing the
            canonical choice for that number.

    Returns:
        DedupResult; ``duplicates`` is keyed by the declared number of the
        canonical instance and ordered by first appearance.
    """
    normalized_overrides = {
        normalize_numero(num): art_id for num, art_id in (overrides or {}).items()
    }
    groups: dict[str, list[ArticleRow]] = {}
    for article in articles:
        groups.setdefault(normalize_numero(article.numero), []).append(article)

    keep: set[str] = set()
    duplicates: dict[str, tuple[ArticleRow, ...]] = {}
    for key, group in groups.items():
        if len(group) == 1:
            keep.add(group[0].article_id)
            continue
        winner = choose_canonical(group, override_id=normalized_overrides.get(key))
        keep.add(winner.article_id)
        demoted = tuple(a for a in group if a.article_id != winner.article_id)
        duplicates[winner.numero] = demoted
        log.warning(
            "article %r of %s has %d duplicate(s); kept %s",
            winner.numero,
            winner.doc_id,
            len(demoted),
            winner.article_id,
        )

    canonical = tuple(a for a in articles if a.article_id in keep)
    return DedupResult(canonical=canonical, duplicates=duplicates)
