"""Legal-text corpus core: section trees, duplicate articles, relation graph."""

from lexcorpus.errors import (
    CorpusError,
    DuplicateRelation,
    InvalidRelation,
    NotFound,
    ReferencedDocument,
    StructuralError,
    ValidationError,
)
from lexcorpus.facade import CorpusFacade
from lexcorpus.heading_classifier import HeadingClass, classify_heading, roman_to_int
from lexcorpus.store import CorpusStore

__all__ = [
    "CorpusError",
    "CorpusFacade",
    "CorpusStore",
    "DuplicateRelation",
    "HeadingClass",
    "InvalidRelation",
    "NotFound",
    "ReferencedDocument",
    "StructuralError",
    "ValidationError",
    "classify_heading",
    "roman_to_int",
]
