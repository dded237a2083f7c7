import json

import httpx
import pytest

from tech_analyst.config import Config
from tech_analyst.errors import SessionLostError
from tech_analyst.scrape.fetch import normalize_scrape_output
from tech_analyst.search.firecrawl_client import FIRECRAWL_BASE_URL, search_firecrawl
from tech_analyst.tools.backends import FirecrawlBackend, FreeWebBackend, build_tool_backend


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=FIRECRAWL_BASE_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_firecrawl_search_slices_the_requested_page():
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        web = [{"title": f"R{i}", "url": f"https://r{i}.com", "description": ""} for i in range(6)]
        return httpx.Response(200, json={"success": True, "data": {"web": web}})

    async with _client(handler) as client:
        results = await search_firecrawl(client, "vector databases", page=2, per_page=3)

    assert requests == [{"query": "vector databases", "limit": 6}]
    assert [r["url"] for r in results] == ["https://r3.com", "https://r4.com", "https://r5.com"]
    assert [r["position"] for r in results] == [4, 5, 6]


@pytest.mark.asyncio
async def test_firecrawl_unsuccessful_search_raises():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "Insufficient credits"})

    async with _client(handler) as client:
        with pytest.raises(RuntimeError, match="Insufficient credits"):
            await search_firecrawl(client, "q")


@pytest.mark.asyncio
async def test_firecrawl_http_errors_propagate():
    def handler(request):
        return httpx.Response(429, json={"error": "Too many requests"})

    async with _client(handler) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await search_firecrawl(client, "q")


@pytest.mark.asyncio
async def test_session_not_found_response_maps_to_session_lost():
    backend = FirecrawlBackend(Config(firecrawl_key="fc-test"))

    def handler(request):
        return httpx.Response(404, text='{"error": "Session not found"}')

    backend._session = _client(handler)
    with pytest.raises(SessionLostError):
        await backend._scrape({"url": "https://acme.io"})
    await backend.close()


@pytest.mark.asyncio
async def test_firecrawl_scrape_returns_markdown():
    backend = FirecrawlBackend(Config(firecrawl_key="fc-test"))

    def handler(request):
        assert json.loads(request.content)["url"] == "https://acme.io"
        return httpx.Response(200, json={"success": True, "data": {"markdown": "# Acme"}})

    backend._session = _client(handler)
    assert await backend._scrape({"url": "https://acme.io"}) == {"markdown": "# Acme"}
    await backend.close()


@pytest.mark.asyncio
async def test_closed_backend_reports_session_lost():
    backend = FirecrawlBackend(Config(firecrawl_key="fc-test"))

    with pytest.raises(SessionLostError):
        await backend._search({"query": "q", "cursor": "1"})


@pytest.mark.asyncio
async def test_backend_selection_and_tool_names():
    firecrawl = build_tool_backend(Config(firecrawl_key="fc-test"))
    free = build_tool_backend(Config())

    assert isinstance(firecrawl, FirecrawlBackend)
    assert isinstance(free, FreeWebBackend)
    assert [t.name for t in await firecrawl.list_tools()] == [
        "firecrawl_search_engine", "firecrawl_scrape_as_markdown",
    ]
    assert [t.name for t in await free.list_tools()] == ["ddg_search_engine", "web_scrape_as_markdown"]


@pytest.mark.parametrize("raw, expected", [
    ("  # Title  ", "# Title"),
    ({"content": "body"}, "body"),
    ({"markdown": "md", "content": "body"}, "md"),
    ({"unexpected": 1}, '{"unexpected": 1}'),
    (None, None),
    ("", None),
])
def test_normalize_scrape_output(raw, expected):
    assert normalize_scrape_output(raw) == expected
