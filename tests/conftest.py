import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import pytest

from citation_checker.config import Settings
from citation_checker.models import Author, ExternalWork


class FakeCrossrefClient:
    """Stands in for ``CrossrefClient`` with canned works keyed by title."""

    def __init__(self, works=None, failures=(), delay: float = 0.0):
        self.works = works or {}
        self.failures = set(failures)
        self.delay = delay
        self.calls = []

    async def search_by_title(self, title: str):
        self.calls.append(title)
        if self.delay:
            await asyncio.sleep(self.delay)
        if title in self.failures:
            raise RuntimeError(f"lookup exploded for {title}")
        return self.works.get(title)


@pytest.fixture()
def fake_client_cls():
    return FakeCrossrefClient


@pytest.fixture()
def quick_settings() -> Settings:
    return Settings(pacing_delay=0.0, crossref_timeout=1.0)


@pytest.fixture()
def proceedings_work() -> ExternalWork:
    return ExternalWork(
        doi="10.1145/3366423.3380000",
        title="Deep learning for citation parsing",
        authors=[Author("Doe", "J.")],
        year="2020",
        source="Proceedings of the Web Conference",
        type="proceedings-article",
        publisher="ACM",
        editors=[Author("Editor", "E.")],
        edition="0",
    )
