"""Heading classifier for French legislative section titles.

Turns a free-text title such as ``"TITRE II - Des sociétés"`` into a
semantic level and a comparable ordinal:

    LIVRE (0) > TITRE (1) > CHAPITRE (2) > SECTION (3) > PARAGRAPHE (4)
    > SOUS-SECTION (5) > anything else (99)

Ordinals come from the first numeral token after the keyword: Roman
numerals (decoded additively with subtraction, non-canonical forms such as
``IIII`` accepted), arabic digits (``1``, ``1er``), or a few spelled-out
ordinals (``PREMIER``, ``UNIQUE``, ``PRELIMINAIRE``).  Titles without a
numeral get ``MISSING_ORDINAL`` so they sort last within their level.

Pure functions only -- no I/O.
"""
from __future__ import annotations

import re
from dataclasses import dataclass


HEADING_KEYWORDS: tuple[str, ...] = (
    "LIVRE",
    "TITRE",
    "CHAPITRE",
    "SECTION",
    "PARAGRAPHE",
    "SOUS-SECTION",
)

UNKNOWN_LEVEL = 99
MISSING_ORDINAL = 1_000_000_000

_ROMAN_VALUES: dict[str, int] = {
    "I": 1, "V": 5, "X": 10, "L": 50,
    "C": 100, "D": 500, "M": 1000,
}

# "TITRE PRELIMINAIRE" precedes "TITRE I" in French codes.
_WORD_ORDINALS: dict[str, int] = {
    "PRELIMINAIRE": 0,
    "PREMIER": 1,
    "IER": 1,
    "PREMIERE": 1,
    "UNIQUE": 1,
}

# SOUS-SECTION must be tried before SECTION; the word boundary keeps
# "SECTIONS" or "TITRES" from matching.
_KEYWORD_RE = re.compile(
    r"^\s*(SOUS[\s\-]SECTION|LIVRE|TITRE|CHAPITRE|SECTION|PARAGRAPHE)(?![A-Z])",
    re.IGNORECASE,
)

_NUMERAL_TOKEN_RE = re.compile(r"[\s.:\-–—]*([0-9A-ZÀ-ÿ]+)", re.IGNORECASE)
_ROMAN_RE = re.compile(r"^[IVXLCDM]+$", re.IGNORECASE)
_ARABIC_RE = re.compile(r"^(\d+)")


@dataclass(frozen=True, slots=True)
class HeadingClass:
    """Classification of a single section title."""

    level: int
    ordinal: int
    recognized: bool

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.level, self.ordinal)

    @property
    def level_name(self) -> str:
        if not self.recognized:
            return "AUTRES"
        return HEADING_KEYWORDS[self.level]


def roman_to_int(numeral: str) -> int:
    """Decode a Roman numeral: add each symbol, subtract it when a larger one follows."""
    values = [_ROMAN_VALUES[ch] for ch in numeral.upper()]
    total = 0
    for i, value in enumerate(values):
        if i + 1 < len(values) and value < values[i + 1]:
            total -= value
        else:
            total += value
    return total


def _strip_accents(token: str) -> str:
    return (
        token.upper()
        .replace("É", "E")
        .replace("È", "E")
        .replace("Ê", "E")
    )


def parse_ordinal(token: str) -> int | None:
    """Convert a numeral token to an int, or None if it is not a numeral."""
    if not token:
        return None
    if _ROMAN_RE.match(token):
        return roman_to_int(token)
    m = _ARABIC_RE.match(token)
    if m:
        return int(m.group(1))
    return _WORD_ORDINALS.get(_strip_accents(token))


def classify_heading(title: str) -> HeadingClass:
    """Classify a section title into (level, ordinal, recognized)."""
    m = _KEYWORD_RE.match(title or "")
    if not m:
        return HeadingClass(UNKNOWN_LEVEL, MISSING_ORDINAL, False)

    keyword = re.sub(r"[\s\-]", "-", m.group(1).upper())
    level = HEADING_KEYWORDS.index(keyword)

    tok = _NUMERAL_TOKEN_RE.match(title, m.end())
    ordinal = parse_ordinal(tok.group(1)) if tok else None
    if ordinal is None:
        ordinal = MISSING_ORDINAL
    return HeadingClass(level, ordinal, True)
