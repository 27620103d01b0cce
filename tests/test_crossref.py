import asyncio
import json

import httpx

from citation_checker.crossref import CrossrefClient, parse_work
from citation_checker.enrichment import find_doi
from citation_checker.normalization import title_similarity


def _work_item(**overrides):
    item = {
        "DOI": "10.5555/example",
        "title": ["Trusted article title about testing"],
        "author": [{"family": "Doe", "given": "Jane Ann"}, {"family": "Roe"}],
        "container-title": ["Journal of Trust"],
        "published-print": {"date-parts": [[2022, 3]]},
        "issued": {"date-parts": [[2021]]},
        "volume": "4",
        "issue": "2",
        "page": "101-110",
        "type": "journal-article",
        "publisher": "Trust Press",
    }
    item.update(overrides)
    return item


def _search_payload(*items) -> str:
    return json.dumps({"status": "ok", "message": {"items": list(items)}})


def test_parse_work_maps_fields():
    work = parse_work(
        _work_item(editor=[{"family": "Editor", "given": "Eve"}], **{"edition-number": "2"})
    )

    assert work.doi == "10.5555/example"
    assert work.title == "Trusted article title about testing"
    assert [(a.last_name, a.initials) for a in work.authors] == [("Doe", "J. A."), ("Roe", "")]
    assert work.year == "2022"
    assert work.source == "Journal of Trust"
    assert (work.volume, work.issue, work.pages) == ("4", "2", "101-110")
    assert work.type == "journal-article"
    assert work.publisher == "Trust Press"
    assert [(e.last_name, e.initials) for e in work.editors] == [("Editor", "E.")]
    assert work.edition == "2"


def test_parse_work_year_falls_back_to_issued():
    item = _work_item()
    del item["published-print"]

    assert parse_work(item).year == "2021"


def test_search_by_title_uses_fetcher_and_builds_url():
    seen = []

    async def fetcher(url, timeout):
        seen.append((url, timeout))
        return _search_payload(_work_item())

    client = CrossrefClient(fetcher=fetcher, timeout=4.0, mailto="lab@example.org")
    work = asyncio.run(client.search_by_title("Trusted article title"))

    assert work is not None
    assert work.doi == "10.5555/example"
    url, timeout = seen[0]
    assert url.startswith("https://api.crossref.org/works?")
    assert "query.title=Trusted+article+title" in url
    assert "rows=1" in url
    assert "mailto=lab%40example.org" in url
    assert timeout == 4.0


def test_empty_result_set_returns_none():
    async def fetcher(url, timeout):
        return _search_payload()

    client = CrossrefClient(fetcher=fetcher)

    assert asyncio.run(client.search_by_title("Anything")) is None


def test_lookup_by_doi_strips_resolver():
    seen = []

    async def fetcher(url, timeout):
        seen.append(url)
        return json.dumps({"message": _work_item()})

    client = CrossrefClient(fetcher=fetcher)
    work = asyncio.run(client.lookup_by_doi("https://doi.org/10.5555/example"))

    assert work.title == "Trusted article title about testing"
    assert seen == ["https://api.crossref.org/works/10.5555%2Fexample"]


def test_transport_errors_and_bad_json_return_none():
    async def broken(url, timeout):
        raise httpx.ConnectError("connection refused")

    async def garbage(url, timeout):
        return "<html>not json</html>"

    assert asyncio.run(CrossrefClient(fetcher=broken).search_by_title("Title")) is None
    assert asyncio.run(CrossrefClient(fetcher=garbage).search_by_title("Title")) is None


def _client_for(status_code, body="", mailto=""):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(status_code, text=body)

    client = CrossrefClient(
        transport=httpx.MockTransport(handler), user_agent="checker-tests/1.0", mailto=mailto
    )
    return client, requests


def test_rate_limited_response_returns_none():
    client, requests = _client_for(429)

    assert asyncio.run(client.search_by_title("Title")) is None
    assert requests[0].headers["User-Agent"] == "checker-tests/1.0"


def test_server_error_returns_none():
    client, _ = _client_for(503)

    assert asyncio.run(client.search_by_title("Title")) is None


def test_successful_http_response_is_parsed():
    client, _ = _client_for(200, _search_payload(_work_item()))

    work = asyncio.run(client.search_by_title("Trusted article title about testing"))

    assert work.source == "Journal of Trust"


def test_title_similarity():
    assert title_similarity("The impact of AI on education", "The Impact of AI on Education") == 1.0
    assert title_similarity("Cats and dogs", "") == 0.0
    assert title_similarity("Deep learning models", "Shallow learning methods") == 0.2


def test_find_doi_requires_agreement():
    async def fetcher(url, timeout):
        return _search_payload(_work_item())

    client = CrossrefClient(fetcher=fetcher)

    assert asyncio.run(find_doi(client, "Trusted article title about testing", ["Doe"])) == "10.5555/example"
    assert asyncio.run(find_doi(client, "Trusted article title about testing", ["Smith"])) is None
    assert asyncio.run(find_doi(client, "Completely unrelated words", [])) is None


def test_user_agent_carries_contact_when_mailto_configured():
    client, requests = _client_for(200, _search_payload(_work_item()), mailto="lab@example.org")

    asyncio.run(client.search_by_title("Trusted article title about testing"))

    assert requests[0].headers["User-Agent"] == "checker-tests/1.0 (mailto:lab@example.org)"
    assert requests[0].url.params["mailto"] == "lab@example.org"
