"""Normalization helpers for citation parsing, fixing and Crossref matching."""
from __future__ import annotations

import re
import unicodedata

DOI_RESOLVER = "https://doi.org/"

_APOSTROPHES = re.compile("[‘’‚‛`´]")
_RESOLVER_PREFIX = re.compile(r"^https?://(?:dx\.)?doi\.org/", re.IGNORECASE)
_DOI_LABEL = re.compile(r"^doi:\s*", re.IGNORECASE)


def normalize_text(value: str | None) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", value)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.replace("&", " and ").lower()
    text = re.sub(r"[^\w\s]", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def collapse_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def normalize_apostrophes(value: str) -> str:
    return _APOSTROPHES.sub("'", value)


def normalize_initials(initials: str) -> str:
    """Return initials in the canonical ``F. M.`` form.

    Only the letters are kept, so ``b.y.``, ``B.Y.`` and ``B Y`` all become
    ``B. Y.``.
    """
    letters = re.findall(r"[^\W\d_]", initials)
    return " ".join(f"{letter.upper()}." for letter in letters)


def initials_from_given_name(given: str | None) -> str:
    """Turn a given name such as ``John Andrew`` into ``J. A.``."""
    if not given:
        return ""
    parts = [part for part in re.split(r"[\s\-]+", given.strip()) if part]
    return " ".join(f"{part[0].upper()}." for part in parts)


def bare_doi(doi: str) -> str:
    """Strip resolver URL and ``doi:`` label, keeping the ``10.x/...`` part."""
    value = doi.strip()
    value = _RESOLVER_PREFIX.sub("", value)
    value = _DOI_LABEL.sub("", value)
    return value


def doi_url(doi: str) -> str:
    """Return the resolver URL form of a DOI."""
    return f"{DOI_RESOLVER}{bare_doi(doi)}"


def to_ordinal(value: str) -> str:
    """Convert ``"2"`` to ``"2nd"``; non-numeric strings are returned unchanged."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return value
    if 11 <= number % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def significant_words(title: str) -> set[str]:
    return {word for word in normalize_text(title).split(" ") if len(word) > 3}


def title_similarity(a: str, b: str) -> float:
    """Jaccard index over the words of each title longer than three characters."""
    words_a = significant_words(a)
    words_b = significant_words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)
