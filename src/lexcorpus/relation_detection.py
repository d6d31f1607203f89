"""Relation mention detection in French legal text.

Scans visas and article bodies for phrases announcing a legal effect on
another text:

    abrogation   -- "abrogé par la loi n° L/2015/012/AN", "abrogeant le décret ..."
    modification -- "modifiée par l'ordonnance n° O/2019/003"
    citation     -- "en application de", "conformément à", "en vertu de",
                    "prévu(e)(s) à / par" followed by a text or an article
    reference    -- a bare official number such as "L/2020/001/AN"

Detection only proposes candidates; it never writes relations.
"""
from __future__ import annotations

import re
from dataclasses import dataclass


_TEXT_KIND = r"(?:loi|d[ée]cret|ordonnance|arr[êe]t[ée])"
_ARTICLE_DET = r"(?:la\s+|le\s+|l['’]\s*)?"
_NUMBER = r"(?:n[°o.]?\s*)?([A-Z0-9/\-]*\d[A-Z0-9/\-]*)?"

_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "ABROGE",
        re.compile(
            rf"abrog[ée]\w*\s+(?:par\s+)?{_ARTICLE_DET}{_TEXT_KIND}\s*{_NUMBER}",
            re.IGNORECASE,
        ),
    ),
    (
        "MODIFIE",
        re.compile(
            rf"modifi[ée]\w*\s+(?:par\s+)?{_ARTICLE_DET}{_TEXT_KIND}\s*{_NUMBER}",
            re.IGNORECASE,
        ),
    ),
    (
        "CITE",
        re.compile(
            r"(?:en\s+application\s+de|conform[ée]ment\s+[àa]|en\s+vertu\s+de|"
            r"pr[ée]vu[es]{0,2}\s+(?:[àa]|par))\s+"
            rf"{_ARTICLE_DET}(?:{_TEXT_KIND}|article)\s*{_NUMBER}",
            re.IGNORECASE,
        ),
    ),
)

_REFERENCE_RE = re.compile(
    rf"{_TEXT_KIND}\s*(?:n[°o.]?\s*)?([LODA]/\d{{4}}/\d{{3}}(?:/[A-Z]+)?)",
    re.IGNORECASE,
)

CONTEXT_CHARS = 100


@dataclass(frozen=True, slots=True)
class DetectedRelation:
    relation_type: str
    reference: str
    context: str
    char_start: int
    char_end: int

    @property
    def lookup_key(self) -> str:
        """Reference with whitespace removed, as matched against document numbers."""
        return re.sub(r"\s+", "", self.reference)


def _context(text: str, start: int, end: int) -> str:
    lo = max(0, start - CONTEXT_CHARS)
    hi = min(len(text), end + CONTEXT_CHARS)
    return text[lo:hi].strip()


def detect_relations(text: str) -> list[DetectedRelation]:
    """Detect relation mentions, ordered by position in ``text``.

    A bare reference already covered by a typed mention is not reported a
    second time.
    """
    if not text:
        return []
    found: list[DetectedRelation] = []
    for relation_type, pattern in _PATTERNS:
        for m in pattern.finditer(text):
            reference = (m.group(1) or m.group(0)).strip()
            found.append(DetectedRelation(
                relation_type=relation_type,
                reference=reference,
                context=_context(text, m.start(), m.end()),
                char_start=m.start(),
                char_end=m.end(),
            ))

    typed_spans = [(d.char_start, d.char_end) for d in found]
    for m in _REFERENCE_RE.finditer(text):
        if any(lo <= m.start(1) and m.end(1) <= hi for lo, hi in typed_spans):
            continue
        found.append(DetectedRelation(
            relation_type="CITE",
            reference=m.group(1),
            context=_context(text, m.start(), m.end()),
            char_start=m.start(),
            char_end=m.end(),
        ))

    found.sort(key=lambda d: (d.char_start, d.relation_type))
    return found
