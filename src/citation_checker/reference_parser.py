"""Parser turning one pasted APA reference into a structured ``Citation``."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Match, Pattern

from .models import Author, Citation
from .normalization import normalize_apostrophes, normalize_initials

logger = logging.getLogger(__name__)

NAME_CHARS = "[A-Za-zÀ-ÖØ-öø-ɏ'\\-]+"
NAME_PARTICLE = "(?i:van|von|de|der|den|du|da|di|del|della|dos|la|le|el|al|bin|ibn)"
SURNAME = (
    f"(?:{NAME_PARTICLE}\\s+)*{NAME_CHARS}"
    f"(?:\\s+{NAME_PARTICLE}\\s+{NAME_CHARS})?"
)
# One initial: capital with or without a period, or a lowercase letter with one.
INITIAL = r"(?:[A-Z](?:\.|(?=[\s,&]|$))|[a-z]\.)"
AUTHOR_PATTERN = re.compile(
    rf"(?<![\w'\-])({SURNAME}),\s*((?:{INITIAL}(?:\s*-\s*|[ \t]*))+)"
)
EDITOR_PATTERN = re.compile(r"^((?:[A-Z]\.\s*(?:-\s*)?)+)\s*(.+)$")

YEAR_PATTERN = re.compile(
    r"\((n\.d\.|in press|\d{4}[a-z]?"
    r"(?:,\s*[A-Z][a-z]+(?:\s+\d{1,2}(?:[–-]\d{1,2})?)?)?)\)"
)
EDITION_PATTERN = re.compile(r"\((\d+)(?:st|nd|rd|th)\s+ed\.\)", re.IGNORECASE)
# "(pp. 20-31)" or "(2nd ed., pp. 20-31)" after a chapter's book title.
CHAPTER_LOCATOR = r"\((?:(?P<edition>\d+)(?:st|nd|rd|th)\s+ed\.,\s*)?pp\.\s*(?P<pages>[\d–-]+)\)"
BLOCK_SEPARATOR = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class SourcePattern:
    """A source-shape matcher and the extractor that consumes its match."""

    name: str
    regex: Pattern[str]
    extract: Callable[[Match[str], Citation], None]


def _clean_publisher(value: str) -> str:
    publisher = re.sub(r"\.$", "", value.strip())
    if ":" in publisher:
        return publisher
    return publisher.split(",")[0].strip()


def _parse_editors(block: str) -> List[Author]:
    block = normalize_apostrophes(block)
    editors = [
        Author(last_name=m.group(1).strip(), initials=normalize_initials(m.group(2)))
        for m in AUTHOR_PATTERN.finditer(block)
    ]
    if editors:
        return editors
    for part in re.split(r"\s*(?:,\s*&|&|,|\band\b)\s*", block):
        match = EDITOR_PATTERN.match(part.strip())
        if match:
            editors.append(
                Author(last_name=match.group(2).strip(), initials=normalize_initials(match.group(1)))
            )
    return editors


def _chapter_locator(m: Match[str], c: Citation) -> None:
    c.pages = m.group("pages").strip()
    if m.group("edition"):
        c.edition = m.group("edition")
    c.type = "chapter"


def _edited_chapter(m: Match[str], c: Citation) -> None:
    editors = _parse_editors(m.group("editors"))
    book_title = m.group("book").strip()
    if editors:
        c.editors = editors
        c.source = f"In {book_title}"
    else:
        c.source = f"In {m.group('editors').strip()} (Ed.), {book_title}"
    c.publisher = _clean_publisher(m.group("publisher"))
    _chapter_locator(m, c)


def _chapter_with_publisher(m: Match[str], c: Citation) -> None:
    c.source = f"In {m.group('book').strip()}"
    c.publisher = _clean_publisher(m.group("publisher"))
    _chapter_locator(m, c)


def _chapter_without_publisher(m: Match[str], c: Citation) -> None:
    c.source = f"In {m.group('book').strip()}"
    _chapter_locator(m, c)


def _vol_no_pp(m: Match[str], c: Citation) -> None:
    c.source = m.group(1).strip()
    c.volume = f"Vol. {m.group(2)}"
    c.issue = f"No. {m.group(3)}"
    c.pages = f"pp. {m.group(4)}" if m.group(4) else None
    c.type = "journal"


def _vol_issue_pp(m: Match[str], c: Citation) -> None:
    c.source = m.group(1).strip()
    c.volume = f"Vol. {m.group(2)}"
    c.issue = m.group(3)
    c.pages = f"pp. {m.group(4)}" if m.group(4) else None
    c.type = "journal"


def _vol_pp(m: Match[str], c: Citation) -> None:
    c.source = m.group(1).strip()
    c.volume = f"Vol. {m.group(2)}"
    c.pages = f"pp. {m.group(3)}" if m.group(3) else None
    c.type = "journal"


def _volume_issue_pages(m: Match[str], c: Citation) -> None:
    c.source = m.group(1).strip()
    c.volume = m.group(2)
    c.issue = m.group(3)
    c.pages = m.group(4)
    c.type = "journal"


def _volume_pages(m: Match[str], c: Citation) -> None:
    c.source = m.group(1).strip()
    c.volume = m.group(2)
    c.pages = m.group(3)
    c.type = "journal"


# Most specific first; the first pattern that matches claims the source segment.
SOURCE_PATTERNS: List[SourcePattern] = [
    SourcePattern(
        "edited-chapter",
        re.compile(
            r"^In\s+(?P<editors>.+?)\s*\((?:Eds?\.|Trans\.)\),?\s*(?P<book>.+?)\s*"
            + CHAPTER_LOCATOR
            + r"\.\s*(?P<publisher>.+)$",
            re.IGNORECASE,
        ),
        _edited_chapter,
    ),
    SourcePattern(
        "chapter-with-publisher",
        re.compile(
            r"^In\s+(?P<book>.+?)\s*" + CHAPTER_LOCATOR + r"\.\s*(?P<publisher>.+)$",
            re.IGNORECASE,
        ),
        _chapter_with_publisher,
    ),
    SourcePattern(
        "chapter",
        re.compile(r"^In\s+(?P<book>.+?)\s*" + CHAPTER_LOCATOR, re.IGNORECASE),
        _chapter_without_publisher,
    ),
    SourcePattern(
        "vol-no-pp",
        re.compile(
            r"^(.+?),?\s+Vol\.?\s*(\d+),?\s*No\.?\s*(\d+),?\s*pp\.?\s*([\d–-]+)?",
            re.IGNORECASE,
        ),
        _vol_no_pp,
    ),
    SourcePattern(
        "vol-issue-pp",
        re.compile(
            r"^(.+?),?\s+Vol\.?\s*(\d+)\((\d+)\),?\s*(?:pp\.?\s*)?([\d–-]+)?",
            re.IGNORECASE,
        ),
        _vol_issue_pp,
    ),
    SourcePattern(
        "vol-pp",
        re.compile(r"^(.+?),?\s+Vol\.?\s*(\d+),?\s*pp\.?\s*([\d–-]+)?", re.IGNORECASE),
        _vol_pp,
    ),
    SourcePattern(
        "volume-issue-pages",
        re.compile(r"^(.+?),?\s+(\d+)\((\d+)\),?\s*([\d–-]+)?"),
        _volume_issue_pages,
    ),
    SourcePattern(
        "volume-pages",
        re.compile(r"^(.+?),?\s+(\d+),?\s*([\d–-]+)?"),
        _volume_pages,
    ),
]


def split_by_periods(text: str) -> List[str]:
    """Split on ". " outside parentheses, so "(pp. 20-31)" stays whole."""
    segments: List[str] = []
    current: List[str] = []
    depth = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "." and depth == 0 and text[index + 1 : index + 2] == " ":
            segments.append("".join(current).strip())
            current = []
            index += 2
            continue
        current.append(char)
        index += 1
    tail = "".join(current).strip()
    if tail:
        segments.append(tail)
    return segments


class CitationParser:
    """Parses raw citation text into ``Citation`` records."""

    DOI_URL_PATTERN = re.compile(r"https?://(?:dx\.)?doi\.org/\S+", re.IGNORECASE)
    DOI_LABEL_PATTERN = re.compile(r"doi:\s*10\.\S+", re.IGNORECASE)
    URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
    BRACKET_PATTERN = re.compile(r"\[(.+?)\]")
    REPORT_NUMBER_PATTERN = re.compile(r"\(Report No\.\s*([^)]+)\)", re.IGNORECASE)
    CONFERENCE_TERMS = re.compile(r"paper presentation|poster session|symposium|conference session")
    DISSERTATION_TERMS = re.compile(r"doctoral dissertation|master[’']?s thesis")
    BOOK_TERMS = re.compile(r"Press|Publisher|Books")

    def parse(self, text: str) -> Citation:
        raw = text.strip()
        try:
            return self._parse(raw)
        except Exception:
            logger.exception("Failed to parse citation, falling back to raw text")
            return Citation(raw_text=raw, title=raw)

    def parse_many(self, text: str) -> List[Citation]:
        blocks = [block.strip() for block in BLOCK_SEPARATOR.split(text)]
        return [self.parse(block) for block in blocks if block]

    def _parse(self, raw: str) -> Citation:
        citation = Citation(raw_text=raw)
        # Markdown emphasis from formatted output carries no bibliographic data.
        working = raw.replace("*", "")

        year_match = YEAR_PATTERN.search(working)
        if not year_match:
            citation.title = raw
            return citation

        self._apply_year(year_match.group(1), citation)
        before = working[: year_match.start()].strip()
        after = working[year_match.end() :].strip()
        citation.authors = self.parse_authors(before)
        self._parse_remaining(after, citation)
        return citation

    @staticmethod
    def _apply_year(token: str, citation: Citation) -> None:
        if token in ("n.d.", "in press"):
            citation.year = token
            return
        citation.year = token[:4]
        if len(token) > 4 and token[4].isalpha():
            citation.year_suffix = token[4]
        if "," in token:
            citation.full_date = token

    def parse_authors(self, block: str) -> List[Author]:
        block = normalize_apostrophes(block.strip())
        block = re.sub(r",?\s*(?:et al\.|\.\.\.|…)\s*$", "", block)

        authors: List[Author] = []
        for part in re.split(r"\s*&\s*", block):
            for match in AUTHOR_PATTERN.finditer(part):
                authors.append(
                    Author(
                        last_name=match.group(1).strip(),
                        initials=normalize_initials(match.group(2)),
                    )
                )

        if not authors and block:
            group_name = re.sub(r"\.\s*$", "", block).strip()
            if group_name:
                authors.append(Author(last_name=group_name, initials="", is_group_author=True))
        return authors

    def _parse_remaining(self, after_year: str, citation: Citation) -> None:
        remaining = re.sub(r"^\.\s*", "", after_year).strip()

        remaining = self._extract_identifiers(remaining, citation)
        remaining = self._extract_edition(remaining, citation)
        remaining = self._extract_bracket(remaining, citation)
        remaining = self._extract_report_number(remaining, citation)

        segments = split_by_periods(remaining)
        if segments:
            citation.title = segments[0] if len(segments) > 1 else re.sub(r"\.$", "", segments[0])

        if len(segments) > 1:
            source_segment = ". ".join(segments[1:]).strip()
            self._parse_source(source_segment, citation)

        if citation.type == "unknown" and citation.url and not citation.doi:
            citation.type = "web"

    def _extract_identifiers(self, remaining: str, citation: Citation) -> str:
        doi_url = self.DOI_URL_PATTERN.search(remaining)
        if doi_url:
            citation.doi = doi_url.group(0)
            citation.url = doi_url.group(0)
            return remaining.replace(doi_url.group(0), "", 1).strip()

        doi_label = self.DOI_LABEL_PATTERN.search(remaining)
        if doi_label:
            citation.doi = doi_label.group(0)
            return remaining.replace(doi_label.group(0), "", 1).strip()

        url = self.URL_PATTERN.search(remaining)
        if url:
            citation.url = re.sub(r"\.$", "", url.group(0))
            return remaining.replace(url.group(0), "", 1).strip()
        return remaining

    @staticmethod
    def _extract_edition(remaining: str, citation: Citation) -> str:
        match = EDITION_PATTERN.search(remaining)
        # Only an edition sitting in the title-looking lead segment is claimed here.
        if not match or ". " in remaining[: match.start()]:
            return remaining
        citation.edition = match.group(1)
        return remaining.replace(match.group(0), "", 1).strip()

    def _extract_bracket(self, remaining: str, citation: Citation) -> str:
        match = self.BRACKET_PATTERN.search(remaining)
        if not match:
            return remaining
        content = match.group(1)
        citation.bracket_type = content
        lowered = content.lower()
        if self.CONFERENCE_TERMS.search(lowered):
            citation.type = "conference"
        if self.DISSERTATION_TERMS.search(lowered):
            citation.type = "dissertation"
            institution = re.search(r",\s*(.+)$", content)
            if institution:
                citation.institution = institution.group(1).strip()
        return remaining.replace(match.group(0), "", 1).strip()

    def _extract_report_number(self, remaining: str, citation: Citation) -> str:
        match = self.REPORT_NUMBER_PATTERN.search(remaining)
        if not match:
            return remaining
        citation.report_number = match.group(1).strip()
        if citation.type == "unknown":
            citation.type = "report"
        return remaining.replace(match.group(0), "", 1).strip()

    def _parse_source(self, segment: str, citation: Citation) -> None:
        trimmed = re.sub(r"\.\s*$", "", re.sub(r"^\.\s*", "", segment)).strip()

        if citation.type == "conference":
            if trimmed:
                citation.conference_name = trimmed
            return
        if citation.type == "dissertation":
            if trimmed:
                citation.database_name = trimmed
            return
        if citation.type == "report":
            if trimmed:
                citation.publisher = trimmed
                citation.source = trimmed
            return

        for pattern in SOURCE_PATTERNS:
            match = pattern.regex.search(segment)
            if match:
                pattern.extract(match, citation)
                return

        if self._parse_book(segment, citation):
            return

        citation.source = segment
        if citation.volume or citation.issue:
            citation.type = "journal"
        elif citation.url and not citation.doi:
            citation.type = "web"

    def _parse_book(self, segment: str, citation: Citation) -> bool:
        edition = EDITION_PATTERN.search(segment)
        if edition:
            citation.edition = edition.group(1)
        if not (citation.edition or self.BOOK_TERMS.search(segment)):
            return False

        book_source = segment
        if edition:
            full = re.match(
                r"^(.+?)\s*\(\d+(?:st|nd|rd|th)\s+ed\.\)\.?\s*(.*?)\.?\s*$",
                segment,
                re.IGNORECASE,
            )
            if full:
                book_source = full.group(1).strip()
                citation.publisher = full.group(2).strip() or None
        else:
            cleaned = re.sub(r"\.\s*$", "", segment).strip()
            head, separator, tail = cleaned.rpartition(". ")
            if separator:
                book_source = head.strip()
                citation.publisher = tail.strip()
            else:
                citation.publisher = cleaned
                book_source = citation.title

        citation.source = book_source
        citation.type = "book"
        return True


_default_parser = CitationParser()


def parse_citation(text: str) -> Citation:
    return _default_parser.parse(text)


def parse_citations(text: str) -> List[Citation]:
    """Parse citations separated by blank lines."""
    return _default_parser.parse_many(text)


__all__ = [
    "CitationParser",
    "SOURCE_PATTERNS",
    "SourcePattern",
    "parse_citation",
    "parse_citations",
    "split_by_periods",
]
