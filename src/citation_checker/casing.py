"""Sentence case and Title Case helpers used by the casing rules."""
from __future__ import annotations

import re

# Stay lowercase in Title Case unless first or last word.
MINOR_WORDS = frozenset(
    {
        "a", "an", "the",
        "and", "but", "or", "nor", "for", "yet", "so",
        "of", "in", "on", "at", "to", "by", "up", "as", "if", "is",
        "it", "its", "vs", "via", "per", "with", "from",
    }
)

_ACRONYM = re.compile(r"^[A-Z]{2,5}$")
_SUBTITLE_BREAK = re.compile(r"([:.]\s)")


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def to_sentence_case(title: str) -> str:
    """Capitalize the first word of the title and of each subtitle only.

    Runs of two to five capitals are treated as acronyms and kept.
    """
    parts = _SUBTITLE_BREAK.split(title)
    converted = []
    for part in parts:
        if _SUBTITLE_BREAK.fullmatch(part):
            converted.append(part)
            continue
        words = part.split(" ")
        out = []
        for index, word in enumerate(words):
            if _ACRONYM.match(word):
                out.append(word)
            elif index == 0:
                out.append(_capitalize(word))
            else:
                out.append(word.lower())
        converted.append(" ".join(out))
    return "".join(converted)


def is_likely_title_case(title: str) -> bool:
    words = [word for word in title.split() if len(word) > 3]
    capitalized = [word for word in words if word[:1].isupper()]
    return len(capitalized) >= 3 and len(capitalized) >= len(words) * 0.6


def to_title_case(text: str) -> str:
    words = text.split()
    out = []
    for index, word in enumerate(words):
        if _ACRONYM.match(word):
            out.append(word)
        elif index == 0 or index == len(words) - 1:
            out.append(_capitalize(word))
        elif word.lower() in MINOR_WORDS:
            out.append(word.lower())
        else:
            out.append(_capitalize(word))
    return " ".join(out)


def needs_title_case(name: str) -> bool:
    """True when two or more major words of a source name start lowercase."""
    words = name.split()
    if len(words) < 2:
        return False
    lowercase_major = 0
    for index, word in enumerate(words):
        if 0 < index < len(words) - 1 and word.lower() in MINOR_WORDS:
            continue
        if word[:1].islower():
            lowercase_major += 1
    return lowercase_major >= 2
