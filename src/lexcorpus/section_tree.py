"""Section tree builder.

Builds an ordered forest of section nodes from flat section rows and the
articles grouped by section id.

Build passes:
    1. Arena: section id -> node (duplicate ids are structural errors).
    2. Parent check: every parent chain is followed with a visited set;
       revisiting a node on the current chain raises StructuralError
       naming the offending section.  Rows whose parent id is absent from
       the document are promoted to roots.
    3. Link children and sort siblings by
       (heading level, heading ordinal, input position).
    4. Iterative walk from the roots to confirm every section is reached
       exactly once.

Articles inside a section are ordered by explicit order index, then
ingestion position.  Articles without a section use the looser flat rule
(``flat_article_order``): digits of the declared number, then order index.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from lexcorpus.errors import StructuralError
from lexcorpus.heading_classifier import HeadingClass, classify_heading
from lexcorpus.models import ArticleRow, SectionRow, numeric_article_key

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SectionNode:
    section: SectionRow
    heading: HeadingClass
    articles: list[ArticleRow] = field(default_factory=list)
    children: list[SectionNode] = field(default_factory=list)

    @property
    def section_id(self) -> str:
        return self.section.section_id

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (self.heading.level, self.heading.ordinal, self.section.position)

    def to_dict(self) -> dict[str, Any]:
        """Serialize this node and its subtree without recursion."""
        out: dict[int, dict[str, Any]] = {}
        stack: list[tuple[SectionNode, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if not expanded:
                stack.append((node, True))
                stack.extend((child, False) for child in node.children)
                continue
            out[id(node)] = {
                "id": node.section.section_id,
                "title": node.section.title,
                "parent_id": node.section.parent_id,
                "level": node.heading.level_name,
                "ordinal": node.heading.ordinal if node.heading.recognized else None,
                "articles": [a.to_dict() for a in node.articles],
                "children": [out.pop(id(c)) for c in node.children],
            }
        return out[id(self)]


def section_article_order(articles: Sequence[ArticleRow]) -> list[ArticleRow]:
    return sorted(articles, key=lambda a: (a.order_index, a.position))


def flat_article_order(articles: Sequence[ArticleRow]) -> list[ArticleRow]:
    return sorted(
        articles,
        key=lambda a: (numeric_article_key(a.numero), a.order_index, a.position),
    )


def iter_nodes(roots: Sequence[SectionNode]) -> Iterator[SectionNode]:
    """Depth-first pre-order walk, without recursion."""
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _check_parent_chains(
    arena: Mapping[str, SectionNode],
    parents: Mapping[str, str | None],
) -> None:
    reaches_root: set[str] = set()
    for start in arena:
        chain: list[str] = []
        on_chain: set[str] = set()
        current: str | None = start
        while current is not None and current not in reaches_root:
            if current in on_chain:
                raise StructuralError(
                    f"Section parent cycle through {current!r}",
                    section_id=current,
                )
            on_chain.add(current)
            chain.append(current)
            current = parents[current]
        reaches_root.update(chain)


def build_section_tree(
    sections: Sequence[SectionRow],
    articles_by_section: Mapping[str, Sequence[ArticleRow]] | None = None,
) -> list[SectionNode]:
    """Build the ordered section forest of one document.

    Raises:
        StructuralError: duplicate section ids or a cycle in parent links.
    """
    articles_by_section = articles_by_section or {}

    arena: dict[str, SectionNode] = {}
    for row in sections:
        if row.section_id in arena:
            raise StructuralError(
                f"Duplicate section id {row.section_id!r}",
                section_id=row.section_id,
            )
        arena[row.section_id] = SectionNode(
            section=row,
            heading=classify_heading(row.title),
            articles=section_article_order(articles_by_section.get(row.section_id, ())),
        )

    parents: dict[str, str | None] = {}
    for sid, node in arena.items():
        parent_id = node.section.parent_id
        if parent_id is not None and parent_id not in arena:
            log.warning(
                "section %s of %s points at missing parent %s; promoted to root",
                sid,
                node.section.doc_id,
                parent_id,
            )
            parent_id = None
        parents[sid] = parent_id

    _check_parent_chains(arena, parents)

    roots: list[SectionNode] = []
    for sid, node in arena.items():
        parent_id = parents[sid]
        if parent_id is None:
            roots.append(node)
        else:
            arena[parent_id].children.append(node)

    for node in arena.values():
        node.children.sort(key=lambda n: n.sort_key)
    roots.sort(key=lambda n: n.sort_key)

    seen: set[str] = set()
    for node in iter_nodes(roots):
        if node.section_id in seen:
            raise StructuralError(
                f"Section {node.section_id!r} reached twice",
                section_id=node.section_id,
            )
        seen.add(node.section_id)
    if len(seen) != len(arena):
        missing = sorted(set(arena) - seen)
        raise StructuralError(
            f"Sections unreachable from any root: {', '.join(missing)}",
            section_id=missing[0],
        )
    return roots


def group_articles(
    articles: Sequence[ArticleRow],
    section_ids: set[str],
) -> tuple[dict[str, list[ArticleRow]], list[ArticleRow]]:
    """Split articles into per-section lists and the unsectioned remainder.

    Articles pointing at a section id unknown to the document are treated as
    unsectioned.
    """
    by_section: dict[str, list[ArticleRow]] = {}
    loose: list[ArticleRow] = []
    for article in articles:
        sid = article.section_id
        if sid is None:
            loose.append(article)
        elif sid in section_ids:
            by_section.setdefault(sid, []).append(article)
        else:
            log.warning(
                "article %s of %s points at missing section %s; kept unsectioned",
                article.article_id,
                article.doc_id,
                sid,
            )
            loose.append(article)
    return by_section, loose
