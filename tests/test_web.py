import pytest

fastapi = pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from citation_checker import web
from citation_checker.app import CitationCheckerApp
from citation_checker.config import Settings

client = TestClient(web.app)

CITATION = (
    "Kim, B. Y., & Lee, S. H. (2024). The impact of AI on education. "
    "Journal of Educational Technology, 45(2), 123-145."
)


@pytest.fixture(autouse=True)
def offline_checker(monkeypatch):
    monkeypatch.setattr(
        web, "_build_checker", lambda: CitationCheckerApp(settings=Settings(pacing_delay=0.0))
    )


def test_homepage_renders_form():
    response = client.get("/")

    assert response.status_code == 200
    assert "Citation Checker" in response.text
    assert "tailwind" in response.text.lower()
    assert 'name="text"' in response.text


def test_analyze_text_returns_report():
    response = client.post("/analyze-text", data={"text": CITATION})

    assert response.status_code == 200
    assert "Citation Validation Report" in response.text
    assert "page-format" in response.text


@pytest.mark.parametrize("payload", [{}, {"text": "   "}, {"text": 42}, {"text": None}])
def test_api_rejects_missing_text(payload):
    response = client.post("/api/validate", json=payload)

    assert response.status_code == 400
    assert response.json() == {"detail": "Citation text is required"}


def test_api_rejects_invalid_json():
    response = client.post(
        "/api/validate", content="{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Citation text is required"}


def test_api_validates_citations():
    response = client.post(
        "/api/validate", json={"text": f"{CITATION}\n\n{CITATION}", "use_enrichment": False}
    )

    assert response.status_code == 200
    results = response.json()["results"]
    assert len(results) == 2
    first = results[0]
    assert first["citation"]["type"] == "journal"
    assert first["citation"]["is_group_author"] is False
    assert {v["rule"] for v in first["violations"]} >= {"page-format", "doi-presence"}
    assert first["formatted"].startswith("Kim, B. Y., & Lee, S. H. (2024).")
    assert 0 <= first["score"] <= 100
    assert first["id"] != results[1]["id"]


def test_api_reports_internal_errors(monkeypatch):
    class BrokenChecker:
        async def validate_many(self, text, use_enrichment=True):
            raise RuntimeError("boom")

    monkeypatch.setattr(web, "_build_checker", lambda: BrokenChecker())

    response = client.post("/api/validate", json={"text": CITATION, "use_enrichment": False})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error during validation"}
