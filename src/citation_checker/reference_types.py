"""Citation type keys, labels and the Crossref type lookup."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReferenceType:
    key: str
    label: str


REFERENCE_TYPES = {
    "journal": ReferenceType("journal", "Journal Article"),
    "book": ReferenceType("book", "Book"),
    "chapter": ReferenceType("chapter", "Book Chapter"),
    "conference": ReferenceType("conference", "Conference Presentation"),
    "dissertation": ReferenceType("dissertation", "Dissertation or Thesis"),
    "report": ReferenceType("report", "Report"),
    "web": ReferenceType("web", "Web Page"),
    "unknown": ReferenceType("unknown", "Unknown"),
}

CITATION_TYPES = frozenset(REFERENCE_TYPES)

# Types whose title is folded into a type-specific trailing clause.
TITLE_FOLDED_TYPES = frozenset({"conference", "dissertation", "report"})


_CROSSREF_TYPE_MAP = {
    "journal-article": "journal",
    "book-chapter": "chapter",
    "proceedings-article": "chapter",
    "book": "book",
    "monograph": "book",
    "edited-book": "book",
}


def map_crossref_type(crossref_type: str | None) -> str:
    """Map a Crossref work type onto a citation type, ``unknown`` when unmapped."""
    if not crossref_type:
        return "unknown"
    return _CROSSREF_TYPE_MAP.get(crossref_type.strip().lower(), "unknown")


def label_for_type(type_key: str | None) -> str:
    if not type_key:
        return REFERENCE_TYPES["unknown"].label
    ref_type = REFERENCE_TYPES.get(type_key, REFERENCE_TYPES["unknown"])
    return ref_type.label
