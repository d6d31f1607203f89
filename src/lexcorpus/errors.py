"""Error taxonomy for the corpus core.

Every failure the core raises on purpose derives from ``CorpusError``.
The HTTP layer and the CLI scripts translate these into a small set of
external conditions (not-found / bad-input / conflict / internal) using
``code`` and ``public_message``; the original exception text never leaves
the process for ``StructuralError``.
"""
from __future__ import annotations


class CorpusError(RuntimeError):
    """Base class for all expected corpus failures."""

    code = "internal"

    @property
    def public_message(self) -> str:
        return str(self)


class NotFound(CorpusError):
    """Referenced document, section or relation does not exist."""

    code = "not_found"


class InvalidRelation(CorpusError):
    """Relation rejected on its own terms (self-loop, unknown type)."""

    code = "bad_input"


class DuplicateRelation(CorpusError):
    """An identical (source, target, type) triple already exists."""

    code = "conflict"


class ReferencedDocument(CorpusError):
    """Document delete blocked because relations still reference it."""

    code = "conflict"


class StructuralError(CorpusError):
    """Malformed section parentage (cycle, foreign parent)."""

    code = "internal"

    def __init__(self, message: str, *, section_id: str | None = None) -> None:
        super().__init__(message)
        self.section_id = section_id

    @property
    def public_message(self) -> str:
        return "Document structure is corrupted"


class ValidationError(CorpusError, ValueError):
    """Malformed input row or payload."""

    code = "bad_input"
