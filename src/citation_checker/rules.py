"""APA 7 rule functions and the type-routed rule registry."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional

from .casing import is_likely_title_case, needs_title_case, to_sentence_case, to_title_case
from .models import Citation, Violation
from .normalization import DOI_RESOLVER, doi_url, normalize_initials

CANONICAL_INITIALS = re.compile(r"^([A-Z]\.\s)*[A-Z]\.$")
YEAR_DIGITS = re.compile(r"^\d{4}$")
BARE_DOI = re.compile(r"^10\.\d+/")
DOI_LABEL = re.compile(r"^doi:\s*", re.IGNORECASE)
OTHER_RESOLVER = re.compile(r"^https?://(?:dx\.)?doi\.org/", re.IGNORECASE)
YEAR_OPENING = re.compile(r"\((?:\d{4}|n\.d\.|in press)")
TRAILING_LOCATOR = re.compile(r"(?:https?://\S+|doi:\s*10\.\S+|10\.\d+/\S+)$", re.IGNORECASE)
PUBLISHER_LOCATION = re.compile(r"^[A-Z][A-Za-z.'\- ]+(?:,\s*[A-Z][A-Za-z.]*(?:\s[A-Z][A-Za-z.]*)*)?:\s*(.+)$")

RuleCheck = Callable[[Citation], List[Violation]]


def check_author_format(citation: Citation) -> List[Violation]:
    violations: List[Violation] = []
    for index, author in enumerate(citation.authors, start=1):
        if not author.last_name.strip():
            violations.append(
                Violation(
                    rule="author-format",
                    field="authors",
                    message=f"Author {index} missing last name",
                    severity="error",
                    original=author.initials,
                )
            )
        if author.is_group_author:
            continue
        if not author.initials:
            violations.append(
                Violation(
                    rule="author-format",
                    field="authors",
                    message=f"Author {index} ({author.last_name}) missing initials",
                    severity="error",
                    original=author.last_name,
                )
            )
        elif not CANONICAL_INITIALS.match(author.initials):
            suggested = normalize_initials(author.initials) or None
            violations.append(
                Violation(
                    rule="author-format",
                    field="authors",
                    message=f'Author {index} initials should be formatted as "F. M." (with spaces and periods)',
                    severity="error",
                    original=author.initials,
                    suggested=suggested,
                    auto_fixable=suggested is not None,
                )
            )
    return violations


def check_year_format(citation: Citation) -> List[Violation]:
    year = citation.year
    if not year:
        return [
            Violation(
                rule="year-format",
                field="year",
                message="Year is missing",
                severity="error",
            )
        ]
    if year in ("n.d.", "in press") or YEAR_DIGITS.match(year):
        return []
    digits = re.search(r"\d{4}", year)
    suggested = digits.group(0) if digits else None
    return [
        Violation(
            rule="year-format",
            field="year",
            message="Year should be 4-digit format (YYYY)",
            severity="error",
            original=year,
            suggested=suggested,
            auto_fixable=suggested is not None,
        )
    ]


def check_title_case(citation: Citation) -> List[Violation]:
    if not citation.title:
        return [
            Violation(
                rule="title-case",
                field="title",
                message="Title is missing",
                severity="error",
            )
        ]
    if not is_likely_title_case(citation.title):
        return []
    return [
        Violation(
            rule="title-case",
            field="title",
            message="Title should use sentence case (only first word and proper nouns capitalized)",
            severity="warning",
            original=citation.title,
            suggested=to_sentence_case(citation.title),
            auto_fixable=True,
        )
    ]


def check_doi_format(citation: Citation) -> List[Violation]:
    if not citation.doi:
        return []
    doi = citation.doi.strip()
    cleaned = doi.rstrip(".")
    violations: List[Violation] = []

    if doi.endswith("."):
        violations.append(
            Violation(
                rule="doi-format",
                field="doi",
                message="DOI should not end with a period",
                severity="error",
                original=doi,
                suggested=cleaned,
                auto_fixable=True,
            )
        )

    if DOI_LABEL.match(cleaned):
        violations.append(
            Violation(
                rule="doi-format",
                field="doi",
                message=f"DOI should use format {DOI_RESOLVER}...",
                severity="error",
                original=doi,
                suggested=DOI_RESOLVER + DOI_LABEL.sub("", cleaned),
                auto_fixable=True,
            )
        )
    elif not cleaned.startswith(DOI_RESOLVER):
        if OTHER_RESOLVER.match(cleaned):
            violations.append(
                Violation(
                    rule="doi-format",
                    field="doi",
                    message=f"DOI should use format {DOI_RESOLVER}...",
                    severity="error",
                    original=doi,
                    suggested=doi_url(cleaned),
                    auto_fixable=True,
                )
            )
        elif BARE_DOI.match(cleaned):
            violations.append(
                Violation(
                    rule="doi-format",
                    field="doi",
                    message=f"DOI should include full URL {DOI_RESOLVER}...",
                    severity="error",
                    original=doi,
                    suggested=DOI_RESOLVER + cleaned,
                    auto_fixable=True,
                )
            )
        else:
            violations.append(
                Violation(
                    rule="doi-format",
                    field="doi",
                    message=f"DOI should start with {DOI_RESOLVER}",
                    severity="error",
                    original=doi,
                )
            )
    return violations


def check_page_format(citation: Citation) -> List[Violation]:
    if not citation.pages:
        return []
    pages = citation.pages.strip()
    violations: List[Violation] = []
    cleaned = re.sub(r"^pp\.?\s*", "", pages, flags=re.IGNORECASE)

    if citation.type == "journal" and pages.lower().startswith("pp"):
        violations.append(
            Violation(
                rule="page-format",
                field="pages",
                message='Page numbers should not include "pp." prefix for journal articles',
                severity="error",
                original=pages,
                suggested=cleaned,
                auto_fixable=True,
            )
        )

    if "-" in cleaned and "–" not in cleaned:
        violations.append(
            Violation(
                rule="page-format",
                field="pages",
                message="Page range should use en dash (–) not hyphen (-)",
                severity="warning",
                original=pages,
                suggested=cleaned.replace("-", "–"),
                auto_fixable=True,
            )
        )
    return violations


def check_ampersand(citation: Citation) -> List[Violation]:
    count = len(citation.authors)
    if count < 2:
        return []
    if count > 20:
        return [
            Violation(
                rule="ampersand",
                field="authors",
                message="For 21+ authors, use first 19 authors, ellipsis (...), then last author",
                severity="info",
                original=f"{count} authors listed",
                suggested="first 19 authors, ..., final author",
                auto_fixable=True,
            )
        ]

    # Only the text before the year counts; titles often contain "and".
    opening = YEAR_OPENING.search(citation.raw_text)
    author_block = citation.raw_text[: opening.start()].strip() if opening else ""
    if " and " not in author_block:
        return []
    return [
        Violation(
            rule="ampersand",
            field="authors",
            message='Use ampersand (&) not "and" before last author in reference list',
            severity="error",
            original=author_block,
            suggested=author_block.replace(" and ", " & "),
            auto_fixable=True,
        )
    ]


def check_terminal_period(citation: Citation) -> List[Violation]:
    raw = citation.raw_text.rstrip()
    if not raw or raw.endswith(".") or TRAILING_LOCATOR.search(raw):
        return []
    return [
        Violation(
            rule="terminal-period",
            field="raw_text",
            message="Reference should end with a period unless it ends with a DOI or URL",
            severity="warning",
            original=raw,
            suggested=f"{raw}.",
            auto_fixable=True,
        )
    ]


def check_doi_presence(citation: Citation) -> List[Violation]:
    if citation.doi:
        return []
    return [
        Violation(
            rule="doi-presence",
            field="doi",
            message="DOI should be included when available for journal articles",
            severity="warning",
        )
    ]


def check_journal_name_case(citation: Citation) -> List[Violation]:
    if not citation.source or not needs_title_case(citation.source):
        return []
    return [
        Violation(
            rule="journal-name-case",
            field="source",
            message="Journal name should use Title Case (capitalize major words)",
            severity="warning",
            original=citation.source,
            suggested=to_title_case(citation.source),
            auto_fixable=True,
        )
    ]


def check_volume_issue_format(citation: Citation) -> List[Violation]:
    violations: List[Violation] = []
    if citation.volume:
        volume = citation.volume.strip()
        cleaned = re.sub(r"vol\.?\s*", "", volume, flags=re.IGNORECASE)
        if cleaned != volume:
            violations.append(
                Violation(
                    rule="volume-format",
                    field="volume",
                    message='Volume should not include "Vol." prefix',
                    severity="error",
                    original=volume,
                    suggested=cleaned,
                    auto_fixable=True,
                )
            )
        if not cleaned.isdigit():
            violations.append(
                Violation(
                    rule="volume-format",
                    field="volume",
                    message="Volume should be a number",
                    severity="warning",
                    original=volume,
                )
            )
    if citation.issue:
        issue = citation.issue.strip()
        cleaned = re.sub(r"^no\.?\s*", "", issue, flags=re.IGNORECASE)
        if cleaned != issue:
            violations.append(
                Violation(
                    rule="issue-format",
                    field="issue",
                    message='Issue should not include "No." prefix',
                    severity="error",
                    original=issue,
                    suggested=cleaned,
                    auto_fixable=True,
                )
            )
    return violations


def check_conference_name_case(citation: Citation) -> List[Violation]:
    if not citation.source:
        return []
    name = citation.source[3:] if citation.source.startswith("In ") else citation.source
    if not needs_title_case(name):
        return []
    return [
        Violation(
            rule="conference-name-case",
            field="source",
            message="Conference/proceedings name should use Title Case (proper noun)",
            severity="warning",
            original=citation.source,
            suggested=f"In {to_title_case(name)}",
            auto_fixable=True,
        )
    ]


def check_chapter_editors(citation: Citation) -> List[Violation]:
    if citation.editors:
        return []
    return [
        Violation(
            rule="chapter-editors",
            field="editors",
            message="Book chapter should include editor(s): In F. M. Editor (Ed.), Book title",
            severity="warning",
        )
    ]


def check_in_prefix(citation: Citation) -> List[Violation]:
    if not citation.source or citation.source.startswith("In "):
        return []
    return [
        Violation(
            rule="in-prefix",
            field="source",
            message='Chapter source should start with "In "',
            severity="warning",
            original=citation.source,
        )
    ]


def check_publisher_required(citation: Citation) -> List[Violation]:
    if citation.publisher or citation.source:
        return []
    return [
        Violation(
            rule="publisher-required",
            field="publisher",
            message="Publisher is required for this reference type",
            severity="error",
        )
    ]


def check_publisher_location(citation: Citation) -> List[Violation]:
    if not citation.publisher:
        return []
    match = PUBLISHER_LOCATION.match(citation.publisher.strip())
    if not match:
        return []
    return [
        Violation(
            rule="publisher-location",
            field="publisher",
            message="APA 7 omits the publisher location",
            severity="warning",
            original=citation.publisher,
            suggested=match.group(1).strip(),
            auto_fixable=True,
        )
    ]


def check_edition_format(citation: Citation) -> List[Violation]:
    if not citation.edition or citation.edition.strip().isdigit():
        return []
    return [
        Violation(
            rule="edition-format",
            field="edition",
            message="Edition should be a number (rendered as 2nd ed., 3rd ed.)",
            severity="warning",
            original=citation.edition,
        )
    ]


def check_bracket_type(citation: Citation) -> List[Violation]:
    if citation.bracket_type:
        return []
    return [
        Violation(
            rule="bracket-type",
            field="bracket_type",
            message="Missing bracketed description after the title",
            severity="error",
        )
    ]


def check_full_date_required(citation: Citation) -> List[Violation]:
    if citation.full_date:
        return []
    return [
        Violation(
            rule="full-date-required",
            field="full_date",
            message="Conference presentations should include the full date (e.g., 2024, March 15)",
            severity="warning",
            original=citation.year,
        )
    ]


def check_conference_info(citation: Citation) -> List[Violation]:
    if citation.conference_name:
        return []
    return [
        Violation(
            rule="conference-info",
            field="conference_name",
            message="Conference name and location are missing",
            severity="error",
        )
    ]


def check_dissertation_info(citation: Citation) -> List[Violation]:
    if citation.institution:
        return []
    return [
        Violation(
            rule="dissertation-info",
            field="institution",
            message="Dissertation should name the degree-granting institution in brackets",
            severity="error",
            original=citation.bracket_type or "",
        )
    ]


def check_report_number(citation: Citation) -> List[Violation]:
    if citation.report_number:
        return []
    return [
        Violation(
            rule="report-number",
            field="report_number",
            message="Report number is missing (include it if one exists)",
            severity="info",
        )
    ]


@dataclass(frozen=True)
class Rule:
    """A rule check and the citation types it applies to (``None`` means all)."""

    name: str
    check: RuleCheck
    types: Optional[FrozenSet[str]] = None

    def applies_to(self, citation_type: str) -> bool:
        return self.types is None or citation_type in self.types


def _types(*names: str) -> FrozenSet[str]:
    return frozenset(names)


ALL_RULES: List[Rule] = [
    Rule("author-format", check_author_format),
    Rule("year-format", check_year_format),
    Rule("title-case", check_title_case),
    Rule("journal-name-case", check_journal_name_case, _types("journal")),
    Rule("conference-name-case", check_conference_name_case, _types("chapter")),
    Rule("chapter-editors", check_chapter_editors, _types("chapter")),
    Rule("in-prefix", check_in_prefix, _types("chapter")),
    Rule("doi-presence", check_doi_presence, _types("journal")),
    Rule("doi-format", check_doi_format),
    Rule("volume-issue-format", check_volume_issue_format, _types("journal")),
    Rule("page-format", check_page_format),
    Rule("ampersand", check_ampersand),
    Rule("terminal-period", check_terminal_period),
    Rule("publisher-required", check_publisher_required, _types("book", "chapter", "report")),
    Rule("publisher-location", check_publisher_location, _types("book", "chapter", "report")),
    Rule("edition-format", check_edition_format, _types("book", "chapter")),
    Rule("bracket-type", check_bracket_type, _types("conference", "dissertation")),
    Rule("full-date-required", check_full_date_required, _types("conference")),
    Rule("conference-info", check_conference_info, _types("conference")),
    Rule("dissertation-info", check_dissertation_info, _types("dissertation")),
    Rule("report-number", check_report_number, _types("report")),
]


def rules_for_type(citation_type: str) -> List[Rule]:
    return [rule for rule in ALL_RULES if rule.applies_to(citation_type)]


def run_rules(citation: Citation) -> List[Violation]:
    """Run every rule routed to the citation's type and concatenate the findings."""
    violations: List[Violation] = []
    for rule in rules_for_type(citation.type):
        violations.extend(rule.check(citation))
    return violations


__all__ = [
    "ALL_RULES",
    "Rule",
    "rules_for_type",
    "run_rules",
]
