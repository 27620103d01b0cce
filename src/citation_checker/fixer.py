"""Auto-fix application, APA 7 reconstruction and compliance scoring."""
from __future__ import annotations

import copy
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from .models import AppliedFix, Author, Citation, FixHint, Violation
from .normalization import collapse_whitespace, to_ordinal
from .reference_types import TITLE_FOLDED_TYPES

PENALTIES = {"error": 15.0, "warning": 10.0, "info": 5.0}
MAX_LISTED_AUTHORS = 20
EDITOR_PLACEHOLDER = "[Editor, F. M.] (Ed.), "


def _author_hint(violation: Violation) -> str:
    if "missing initials" in violation.message:
        return (
            'Add first and middle initials in format "F. M." after the last name, '
            "or provide the full organization name for group authors."
        )
    if "missing last name" in violation.message:
        return "Provide the author's last name."
    return "Format author as: LastName, F. M."


HINTS: Dict[str, Union[str, Callable[[Violation], str]]] = {
    "author-format": _author_hint,
    "year-format": 'Provide a 4-digit year (YYYY), "n.d." for no date, or "in press" in parentheses.',
    "title-case": "Verify proper nouns are still capitalized correctly in the converted title.",
    "doi-presence": "Search for the DOI on Crossref or the publisher's website. If unavailable, this is acceptable.",
    "doi-format": "DOI should be in format: https://doi.org/10.xxxx/xxxxx",
    "volume-format": 'Volume should be just the number (e.g., "23" not "Vol. 23").',
    "issue-format": 'Issue should be just the number in parentheses (e.g., "(4)" not "No. 4").',
    "page-format": 'Use en dash (–) for page ranges and remove "pp." prefix for journal articles.',
    "journal-name-case": 'Journal names use Title Case (e.g., "Journal of Educational Psychology").',
    "conference-name-case": "Conference and proceedings names are proper nouns and use Title Case.",
    "chapter-editors": (
        "Look up the book on the publisher's website to find the editor(s). "
        "Format: In F. M. Editor (Ed.), for one editor, or In F. Editor & G. Editor (Eds.), for several."
    ),
    "in-prefix": 'Chapter source should start with "In " followed by editors and book title.',
    "ampersand": "Use ampersand (&) before the last author in reference lists.",
    "terminal-period": "End the reference with a period unless it ends with a DOI or URL.",
    "type-mismatch": (
        "Crossref metadata indicates this citation is a different type than detected. "
        "Verify the citation format matches the actual publication type."
    ),
    "publisher-required": "Add the publisher name after the title/edition.",
    "publisher-location": "Drop the publisher location; APA 7 lists only the publisher name.",
    "edition-format": "Edition should be a number formatted as ordinal (e.g., 2nd ed.).",
    "full-date-required": "Conference presentations require the full date including month and day(s) (e.g., 2024, March 15).",
    "bracket-type": (
        "Add a type descriptor in brackets after the title "
        "(e.g., [Paper presentation], [Doctoral dissertation, University Name])."
    ),
    "conference-info": (
        "Add the conference name and location after the bracket descriptor "
        "(e.g., Annual Meeting of APA, Washington, DC, United States)."
    ),
    "dissertation-info": (
        "Include the institution name in brackets "
        "(e.g., [Doctoral dissertation, Massachusetts Institute of Technology])."
    ),
    "report-number": "Include the report number if available (e.g., Report No. 2024-01) in parentheses after the title.",
}


def hint_for(violation: Violation) -> str:
    hint = HINTS.get(violation.rule)
    if hint is None:
        return violation.message
    return hint(violation) if callable(hint) else hint


@dataclass(frozen=True)
class FieldAccessor:
    """Reads and writes one string field of a ``Citation``."""

    name: str

    def get(self, citation: Citation) -> str:
        return getattr(citation, self.name) or ""

    def set(self, citation: Citation, value: str) -> None:
        setattr(citation, self.name, value)


FIELD_ACCESSORS: Dict[str, FieldAccessor] = {
    "year-format": FieldAccessor("year"),
    "title-case": FieldAccessor("title"),
    "doi-format": FieldAccessor("doi"),
    "volume-format": FieldAccessor("volume"),
    "issue-format": FieldAccessor("issue"),
    "page-format": FieldAccessor("pages"),
    "journal-name-case": FieldAccessor("source"),
    "conference-name-case": FieldAccessor("source"),
    "publisher-location": FieldAccessor("publisher"),
}

FIX_DESCRIPTIONS: Dict[str, Callable[[Violation], str]] = {
    "year-format": lambda v: f'Corrected year format to "{v.suggested}"',
    "title-case": lambda v: "Converted title to sentence case (verify proper nouns)",
    "doi-format": lambda v: f'Corrected DOI format to "{v.suggested}"',
    "volume-format": lambda v: 'Removed "Vol." prefix from volume',
    "issue-format": lambda v: 'Removed "No." prefix from issue',
    "page-format": lambda v: 'Removed "pp." prefix' if "pp." in v.message else "Changed hyphen to en dash",
    "journal-name-case": lambda v: "Converted journal name to Title Case",
    "conference-name-case": lambda v: "Converted conference/proceedings name to Title Case",
    "publisher-location": lambda v: "Removed publisher location (APA 7th change)",
}


def _fix_author(citation: Citation, violation: Violation) -> Optional[AppliedFix]:
    match = re.search(r"Author (\d+)", violation.message)
    if not match:
        return None
    index = int(match.group(1)) - 1
    if not 0 <= index < len(citation.authors):
        return None
    author = citation.authors[index]
    original = author.initials
    author.initials = violation.suggested
    return AppliedFix(
        rule=violation.rule,
        field=violation.field,
        original=original,
        fixed=violation.suggested,
        description=f'Corrected initials format to "{violation.suggested}"',
    )


def _fix_ampersand(citation: Citation, violation: Violation) -> AppliedFix:
    # Reconstruction always joins the last author with "&".
    return AppliedFix(
        rule=violation.rule,
        field=violation.field,
        original="and",
        fixed="&",
        description='Changed "and" to "&" before last author',
    )


def _fix_terminal_period(citation: Citation, violation: Violation) -> AppliedFix:
    original = citation.raw_text
    citation.raw_text = violation.suggested
    return AppliedFix(
        rule=violation.rule,
        field=violation.field,
        original=original,
        fixed=violation.suggested,
        description="Added terminal period",
    )


SPECIAL_FIXES: Dict[str, Callable[[Citation, Violation], Optional[AppliedFix]]] = {
    "author-format": _fix_author,
    "ampersand": _fix_ampersand,
    "terminal-period": _fix_terminal_period,
}


@dataclass
class FixOutcome:
    corrected: Citation
    formatted: str
    applied_fixes: List[AppliedFix]
    hints: List[FixHint]


def apply_fixes(citation: Citation, violations: Sequence[Violation]) -> FixOutcome:
    """Apply every auto-fixable violation to a copy of ``citation``.

    Violations that cannot be fixed mechanically become hints. The caller's
    citation is left untouched.
    """
    corrected = copy.deepcopy(citation)
    applied: List[AppliedFix] = []
    hints: List[FixHint] = []

    for violation in violations:
        if not violation.auto_fixable:
            hints.append(
                FixHint(
                    rule=violation.rule,
                    field=violation.field,
                    message=violation.message,
                    hint=hint_for(violation),
                )
            )
            continue

        special = SPECIAL_FIXES.get(violation.rule)
        if special is not None:
            fix = special(corrected, violation)
            if fix is not None:
                applied.append(fix)
            continue

        accessor = FIELD_ACCESSORS.get(violation.rule)
        if accessor is None:
            hints.append(
                FixHint(violation.rule, violation.field, violation.message, hint_for(violation))
            )
            continue
        original = accessor.get(corrected)
        accessor.set(corrected, violation.suggested)
        describe = FIX_DESCRIPTIONS.get(violation.rule)
        applied.append(
            AppliedFix(
                rule=violation.rule,
                field=accessor.name,
                original=original,
                fixed=violation.suggested,
                description=describe(violation) if describe else violation.message,
            )
        )

    return FixOutcome(
        corrected=corrected,
        formatted=format_citation(corrected),
        applied_fixes=applied,
        hints=hints,
    )


def _sentence(text: str) -> str:
    text = text.strip()
    if not text or text.endswith((".", "?", "!")):
        return text
    return f"{text}."


def _join_names(names: List[str]) -> str:
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]}, & {names[1]}"
    return ", ".join(names[:-1]) + f", & {names[-1]}"


def _author_name(author: Author) -> str:
    if author.is_group_author or not author.initials:
        return author.last_name
    return f"{author.last_name}, {author.initials}"


def format_authors(authors: List[Author]) -> str:
    names = [_author_name(author) for author in authors]
    if not names:
        return ""
    if len(names) > MAX_LISTED_AUTHORS:
        block = ", ".join(names[: MAX_LISTED_AUTHORS - 1]) + f", ... {names[-1]}"
    else:
        block = _join_names(names)
    return _sentence(block)


def format_editors(editors: List[Author]) -> str:
    if not editors:
        return EDITOR_PLACEHOLDER
    names = [
        f"{editor.initials} {editor.last_name}".strip() for editor in editors
    ]
    if len(names) == 1:
        joined = names[0]
    elif len(names) == 2:
        joined = f"{names[0]} & {names[1]}"
    else:
        joined = ", ".join(names[:-1]) + f", & {names[-1]}"
    label = "Ed." if len(editors) == 1 else "Eds."
    return f"{joined} ({label}), "


def _format_year(citation: Citation) -> str:
    if not citation.year:
        return ""
    if citation.full_date:
        return f"({citation.full_date})."
    if citation.year_suffix:
        return f"({citation.year}{citation.year_suffix})."
    return f"({citation.year})."


def _with_publisher(text: str, publisher: Optional[str]) -> str:
    text = f"{text}."
    if publisher:
        text += f" {_sentence(publisher)}"
    return text


def _format_journal(citation: Citation) -> str:
    part = f"*{citation.source}*"
    if citation.volume:
        part += f", *{citation.volume}*"
        if citation.issue:
            part += f"({citation.issue})"
    if citation.pages:
        part += f", {citation.pages}"
    return f"{part}."


def _format_chapter(citation: Citation) -> str:
    book_title = citation.source[3:] if citation.source.startswith("In ") else citation.source
    part = f"In {format_editors(citation.editors)}*{book_title}*"
    details = []
    if citation.edition:
        details.append(f"{to_ordinal(citation.edition)} ed.")
    if citation.pages:
        details.append(f"pp. {citation.pages}")
    if details:
        part += f" ({', '.join(details)})"
    return _with_publisher(part, citation.publisher)


def _format_book(citation: Citation) -> str:
    part = f"*{citation.source or citation.title}*"
    if citation.edition:
        part += f" ({to_ordinal(citation.edition)} ed.)"
    return _with_publisher(part, citation.publisher)


def _format_report(citation: Citation) -> str:
    part = f"*{citation.title}*"
    if citation.report_number:
        part += f" (Report No. {citation.report_number})"
    return _with_publisher(part, citation.publisher or citation.source)


def _format_conference(citation: Citation) -> str:
    part = citation.title
    if citation.bracket_type:
        part += f" [{citation.bracket_type}]"
    return _with_publisher(part, citation.conference_name)


def _format_dissertation(citation: Citation) -> str:
    part = f"*{citation.title}*"
    if citation.bracket_type:
        part += f" [{citation.bracket_type}]"
    return _with_publisher(part, citation.database_name)


def _title_is_folded(citation: Citation) -> bool:
    if citation.type in TITLE_FOLDED_TYPES:
        return True
    return citation.type == "book" and citation.source in ("", citation.title)


def format_citation(citation: Citation) -> str:
    """Rebuild an APA 7 reference string from the structured fields.

    Italics are marked with single asterisks.
    """
    parts = [format_authors(citation.authors), _format_year(citation)]

    if citation.title and not _title_is_folded(citation):
        parts.append(_sentence(citation.title))

    if citation.type == "journal":
        if citation.source:
            parts.append(_format_journal(citation))
    elif citation.type == "chapter":
        if citation.source:
            parts.append(_format_chapter(citation))
    elif citation.type == "book":
        parts.append(_format_book(citation))
    elif citation.type == "report":
        parts.append(_format_report(citation))
    elif citation.type == "conference":
        parts.append(_format_conference(citation))
    elif citation.type == "dissertation":
        parts.append(_format_dissertation(citation))
    elif citation.source:
        parts.append(citation.source)

    locator = citation.doi or citation.url
    if locator:
        parts.append(locator)

    formatted = collapse_whitespace(" ".join(part for part in parts if part))
    if not locator:
        formatted = _sentence(formatted)
    return formatted


def calculate_score(violations: Sequence[Violation], applied_fixes: Sequence[AppliedFix]) -> int:
    """Score from 0 to 100; each fix earns back half its violation's penalty."""
    score = 100.0
    for violation in violations:
        score -= PENALTIES.get(violation.severity, 0.0)
    for fix in applied_fixes:
        source = next(
            (v for v in violations if v.rule == fix.rule and v.field == fix.field),
            None,
        )
        if source is not None:
            score += PENALTIES.get(source.severity, 0.0) / 2
    # Round half up; Python's round() would send 92.5 to 92.
    return max(0, min(100, math.floor(score + 0.5)))


__all__ = [
    "FIELD_ACCESSORS",
    "FieldAccessor",
    "FixOutcome",
    "HINTS",
    "SPECIAL_FIXES",
    "apply_fixes",
    "calculate_score",
    "format_authors",
    "format_citation",
    "format_editors",
    "hint_for",
]
