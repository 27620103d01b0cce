"""Async Crossref client used to enrich parsed citations."""
from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .models import Author, ExternalWork
from .normalization import bare_doi, initials_from_given_name

logger = logging.getLogger(__name__)

CROSSREF_API_BASE = "https://api.crossref.org"
DEFAULT_USER_AGENT = "citation-checker/0.1"

Fetcher = Callable[[str, float], Awaitable[Optional[str]]]


def _first_value(value: Any) -> str:
    if isinstance(value, list):
        return str(value[0]) if value else ""
    if isinstance(value, str):
        return value
    return ""


def _people(entries: Any) -> List[Author]:
    people: List[Author] = []
    for person in entries or []:
        family = person.get("family") if isinstance(person, dict) else None
        if family:
            people.append(
                Author(last_name=family, initials=initials_from_given_name(person.get("given")))
            )
    return people


def _year(item: Dict[str, Any]) -> str:
    for key in ("published-print", "published-online", "issued"):
        parts = (item.get(key) or {}).get("date-parts") or []
        if parts and parts[0] and parts[0][0]:
            return str(parts[0][0])
    return ""


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def parse_work(item: Dict[str, Any]) -> ExternalWork:
    """Convert one Crossref ``message`` item into an ``ExternalWork``."""
    return ExternalWork(
        doi=item.get("DOI") or "",
        title=_first_value(item.get("title")),
        authors=_people(item.get("author")),
        year=_year(item),
        source=_first_value(item.get("container-title")),
        volume=_optional_str(item.get("volume")),
        issue=_optional_str(item.get("issue")),
        pages=_optional_str(item.get("page")),
        type=item.get("type") or "",
        publisher=_optional_str(item.get("publisher")),
        editors=_people(item.get("editor")),
        edition=_optional_str(item.get("edition-number")),
    )


class CrossrefClient:
    """Minimal async client for the Crossref works API.

    Every failure mode (transport error, rate limiting, non-2xx status,
    malformed JSON, empty result set) yields ``None``.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        timeout: float = 10.0,
        mailto: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.fetcher = fetcher or self._http_get
        self.timeout = timeout
        self.mailto = mailto
        self.user_agent = user_agent
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "CrossrefClient":
        return cls(
            timeout=settings.crossref_timeout,
            mailto=settings.crossref_mailto,
            user_agent=settings.crossref_user_agent,
        )

    async def search_by_title(self, title: str) -> Optional[ExternalWork]:
        if not title.strip():
            return None
        message = await self._get_message(self.search_url(title))
        if not message:
            return None
        items = message.get("items") or []
        if not items:
            return None
        return parse_work(items[0])

    async def lookup_by_doi(self, doi: str) -> Optional[ExternalWork]:
        if not doi.strip():
            return None
        message = await self._get_message(self.doi_url(doi))
        if not message:
            return None
        return parse_work(message)

    def search_url(self, title: str) -> str:
        params = {"query.title": title, "rows": "1"}
        if self.mailto:
            params["mailto"] = self.mailto
        return f"{CROSSREF_API_BASE}/works?{urllib.parse.urlencode(params)}"

    def doi_url(self, doi: str) -> str:
        url = f"{CROSSREF_API_BASE}/works/{urllib.parse.quote(bare_doi(doi), safe='')}"
        if self.mailto:
            url += f"?{urllib.parse.urlencode({'mailto': self.mailto})}"
        return url

    async def _get_message(self, url: str) -> Optional[Dict[str, Any]]:
        try:
            payload = await self.fetcher(url, self.timeout)
        except httpx.HTTPError as exc:
            logger.warning("Crossref request failed for %s: %s", url, exc)
            return None
        if not payload:
            return None
        try:
            data = json.loads(payload)
        except ValueError:
            logger.warning("Crossref returned malformed JSON for %s", url)
            return None
        message = data.get("message") if isinstance(data, dict) else None
        return message if isinstance(message, dict) else None

    @property
    def user_agent_header(self) -> str:
        """User-Agent with a ``mailto:`` contact when one is configured."""
        if self.mailto and "mailto:" not in self.user_agent:
            return f"{self.user_agent} (mailto:{self.mailto})"
        return self.user_agent

    async def _http_get(self, url: str, timeout: float) -> Optional[str]:
        headers = {"User-Agent": self.user_agent_header, "Accept": "application/json"}
        async with httpx.AsyncClient(
            timeout=timeout, headers=headers, transport=self.transport
        ) as client:
            response = await client.get(url)
        if response.status_code == 429:
            logger.warning("Crossref rate limit exceeded")
            return None
        if not response.is_success:
            logger.warning("Crossref API error: %s", response.status_code)
            return None
        return response.text


__all__ = ["CROSSREF_API_BASE", "CrossrefClient", "Fetcher", "parse_work"]
