"""Trust-gated Crossref enrichment of parsed citations."""
from __future__ import annotations

import asyncio
import copy
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .crossref import CrossrefClient
from .models import Citation, ExternalWork, Violation
from .normalization import doi_url, title_similarity
from .reference_types import label_for_type, map_crossref_type

logger = logging.getLogger(__name__)

# Jaccard threshold over significant title words; tunable, not a law.
SIMILARITY_THRESHOLD = 0.5
DEFAULT_MAX_CONCURRENT = 3


def _surname_key(name: str) -> str:
    return name.lower().strip()


def first_authors_agree(local: Sequence[str], external: Sequence[str]) -> bool:
    """Loose first-author check: either surname contains the other.

    Passes when either side has no authors to compare.
    """
    if not local or not external:
        return True
    mine = _surname_key(local[0])
    theirs = _surname_key(external[0])
    return mine in theirs or theirs in mine


def is_trusted(citation: Citation, work: ExternalWork) -> bool:
    if not work.doi:
        return False
    if title_similarity(citation.title, work.title) < SIMILARITY_THRESHOLD:
        return False
    return first_authors_agree(
        [author.last_name for author in citation.authors],
        [author.last_name for author in work.authors],
    )


@dataclass
class MergeOutcome:
    citation: Citation
    type_changed: bool
    previous_type: str


def _has_range(pages: str) -> bool:
    return "-" in pages or "–" in pages


def _merge_pages(citation: Citation, work: ExternalWork) -> None:
    if not work.pages:
        return
    if not citation.pages:
        citation.pages = work.pages
        return
    current = "".join(citation.pages.split())
    if not _has_range(current) and _has_range(work.pages):
        citation.pages = work.pages


def _edition_from(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        number = int(value)
    except ValueError:
        return None
    return value if number > 1 else None


def _reinterpret_journal_as_chapter(citation: Citation, work: ExternalWork) -> None:
    # A journal-shaped parse of a chapter reads the start page as the volume.
    if citation.volume and citation.pages:
        citation.pages = f"{citation.volume}-{citation.pages.lstrip('-–')}"
    elif citation.volume:
        citation.pages = citation.volume
    citation.volume = None
    citation.issue = None
    if citation.source and not citation.source.startswith("In "):
        citation.source = f"In {citation.source}"
    if work.publisher:
        citation.publisher = work.publisher
    if work.editors:
        citation.editors = copy.deepcopy(work.editors)
    edition = _edition_from(work.edition)
    if edition:
        citation.edition = edition


def merge_external_work(citation: Citation, work: ExternalWork) -> MergeOutcome:
    """Merge a trusted Crossref record into a copy of ``citation``."""
    merged = copy.deepcopy(citation)
    if not merged.doi and work.doi:
        merged.doi = doi_url(work.doi)
    _merge_pages(merged, work)

    external_type = map_crossref_type(work.type)
    if external_type in ("unknown", citation.type):
        return MergeOutcome(merged, False, citation.type)

    merged.type = external_type
    if citation.type == "journal" and external_type == "chapter":
        _reinterpret_journal_as_chapter(merged, work)
    return MergeOutcome(merged, True, citation.type)


def type_mismatch_violation(previous_type: str, new_type: str) -> Violation:
    return Violation(
        rule="type-mismatch",
        field="type",
        message=(
            f"Crossref indicates this is a {label_for_type(new_type).lower()}, "
            f"not a {label_for_type(previous_type).lower()}. Citation format has been corrected."
        ),
        severity="info",
        original=previous_type,
    )


class ConcurrencyGate:
    """Process-wide cap on in-flight lookups.

    Waiters poll instead of queueing on an ``asyncio`` primitive, so one gate
    can be shared by requests running on different event loops.
    """

    def __init__(self, permits: int = DEFAULT_MAX_CONCURRENT, poll_interval: float = 0.1) -> None:
        if permits < 1:
            raise ValueError("permits must be at least 1")
        self.permits = permits
        self.poll_interval = poll_interval
        self._running = 0
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> int:
        return self._running

    def try_acquire(self) -> bool:
        with self._lock:
            if self._running >= self.permits:
                return False
            self._running += 1
            return True

    async def acquire(self) -> None:
        while not self.try_acquire():
            await asyncio.sleep(self.poll_interval)

    def release(self) -> None:
        with self._lock:
            if self._running > 0:
                self._running -= 1

    async def __aenter__(self) -> "ConcurrencyGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


_gates: Dict[int, ConcurrencyGate] = {}
_gates_lock = threading.Lock()


def shared_gate(permits: int = DEFAULT_MAX_CONCURRENT) -> ConcurrencyGate:
    """Return the process-wide gate for the given permit count."""
    with _gates_lock:
        gate = _gates.get(permits)
        if gate is None:
            gate = _gates[permits] = ConcurrencyGate(permits)
        return gate


ENRICHMENT_GATE = shared_gate(DEFAULT_MAX_CONCURRENT)


class CitationEnricher:
    """Look up a citation on Crossref and merge the result when it can be trusted."""

    def __init__(
        self,
        client: CrossrefClient,
        gate: Optional[ConcurrencyGate] = None,
        timeout: float = 10.0,
    ) -> None:
        self.client = client
        self.gate = gate or ENRICHMENT_GATE
        self.timeout = timeout

    async def lookup(self, citation: Citation) -> Optional[ExternalWork]:
        async with self.gate:
            return await asyncio.wait_for(
                self.client.search_by_title(citation.title), timeout=self.timeout
            )

    async def enrich(self, citation: Citation) -> Optional[MergeOutcome]:
        if not citation.title:
            return None
        try:
            work = await self.lookup(citation)
        except asyncio.TimeoutError:
            logger.warning("Crossref lookup timed out after %.1fs", self.timeout)
            return None
        except Exception as exc:
            logger.warning("Crossref lookup failed: %s", exc)
            return None
        if work is None:
            return None
        if not is_trusted(citation, work):
            logger.info("Ignoring untrusted Crossref match %s", work.doi or "<no DOI>")
            return None
        return merge_external_work(citation, work)


async def find_doi(client: CrossrefClient, title: str, authors: List[str]) -> Optional[str]:
    """Return the DOI of the best title match, or ``None`` when it does not agree."""
    try:
        work = await client.search_by_title(title)
    except Exception as exc:
        logger.warning("Crossref DOI search failed: %s", exc)
        return None
    if work is None or not work.doi:
        return None
    if title_similarity(title, work.title) < SIMILARITY_THRESHOLD:
        return None
    if not first_authors_agree(authors, [author.last_name for author in work.authors]):
        return None
    return work.doi


__all__ = [
    "CitationEnricher",
    "ConcurrencyGate",
    "ENRICHMENT_GATE",
    "MergeOutcome",
    "SIMILARITY_THRESHOLD",
    "find_doi",
    "first_authors_agree",
    "is_trusted",
    "merge_external_work",
    "shared_gate",
    "type_mismatch_violation",
]
