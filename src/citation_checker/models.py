"""Data models for citation validation workflows."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

SEVERITIES = ("error", "warning", "info")


@dataclass
class Author:
    """A single author or editor as it appears in a reference entry."""

    last_name: str
    initials: str = ""
    is_group_author: bool = False


@dataclass
class Citation:
    """Structured view of one reference list entry.

    The record is permissive: which optional fields matter depends on ``type``
    and is enforced by the rule engine, not here.
    """

    raw_text: str
    authors: List[Author] = field(default_factory=list)
    year: str = ""
    year_suffix: Optional[str] = None
    full_date: Optional[str] = None
    title: str = ""
    type: str = "unknown"
    source: str = ""
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    publisher: Optional[str] = None
    editors: List[Author] = field(default_factory=list)
    edition: Optional[str] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    bracket_type: Optional[str] = None
    conference_name: Optional[str] = None
    institution: Optional[str] = None
    database_name: Optional[str] = None
    report_number: Optional[str] = None

    @property
    def is_group_author(self) -> bool:
        return any(author.is_group_author for author in self.authors)


@dataclass
class Violation:
    """Represents a single rule failure."""

    rule: str
    field: str
    message: str
    severity: str = "warning"
    original: str = ""
    suggested: Optional[str] = None
    auto_fixable: bool = False

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {self.severity!r}")
        if self.auto_fixable and self.suggested is None:
            raise ValueError(
                f"Violation {self.rule!r} is marked auto-fixable without a suggested value"
            )


@dataclass
class AppliedFix:
    rule: str
    field: str
    original: str
    fixed: str
    description: str


@dataclass
class FixHint:
    rule: str
    field: str
    message: str
    hint: str


@dataclass
class ExternalWork:
    """Best-guess bibliographic record returned by Crossref."""

    doi: str
    title: str = ""
    authors: List[Author] = field(default_factory=list)
    year: str = ""
    source: str = ""
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    type: str = ""
    publisher: Optional[str] = None
    editors: List[Author] = field(default_factory=list)
    edition: Optional[str] = None


@dataclass
class ValidationResult:
    """Everything the caller receives for one citation."""

    id: str
    citation: Citation
    violations: List[Violation]
    applied_fixes: List[AppliedFix]
    hints: List[FixHint]
    formatted: str
    score: int
