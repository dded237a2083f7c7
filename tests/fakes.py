"""In-memory stand-ins for the LLM and the tool backend."""

from __future__ import annotations

import json

import httpx

from tech_analyst.analysis.prompts import EXTRACTION_SYSTEM_PROMPT, REFLECTION_SYSTEM_PROMPT
from tech_analyst.config import Config
from tech_analyst.errors import SessionLostError
from tech_analyst.tools.backends import RemoteTool, ToolBackend


class FakeLLM:
    """Answers ``complete`` through a ``responder(system, user)`` callable.

    A responder returning an exception instance makes the call raise it.
    """

    def __init__(self, responder=None):
        self.responder = responder or (lambda system, user: "")
        self.calls: list[tuple[str, str, float]] = []
        self.closed = False

    async def complete(self, system, user, temperature=0.0, max_tokens=None):
        self.calls.append((system, user, temperature))
        result = self.responder(system, user)
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self):
        self.closed = True


class FakeBackend(ToolBackend):
    """Search answers from a callable, scrapes from a url -> markdown dict.

    Unknown URLs scrape to an empty document.
    """

    name = "fake"

    def __init__(self, config=None, search=None, pages=None, tools=("search", "scrape")):
        super().__init__(config or Config())
        self.search_handler = search or (lambda args: {"results": []})
        self.pages = pages or {}
        self.tool_kinds = tools
        self.search_calls: list[dict] = []
        self.scrape_calls: list[str] = []
        self.closed = False

    def _open_session(self) -> httpx.AsyncClient:
        return httpx.AsyncClient()

    async def list_tools(self) -> list[RemoteTool]:
        tools = []
        if "search" in self.tool_kinds:
            tools.append(RemoteTool("fake_search_engine", "search", self._search))
        if "scrape" in self.tool_kinds:
            tools.append(RemoteTool("fake_Scrape_As_Markdown", "scrape", self._scrape))
        return tools

    async def _search(self, args: dict) -> dict:
        self.search_calls.append(args)
        result = self.search_handler(args)
        if isinstance(result, BaseException):
            raise result
        return result

    async def _scrape(self, args: dict) -> dict:
        url = args["url"]
        self.scrape_calls.append(url)
        content = self.pages.get(url, "")
        if isinstance(content, BaseException):
            raise content
        return {"markdown": content}

    async def close(self) -> None:
        self.closed = True
        await super().close()


class LostSessionBackend(FakeBackend):
    """Every scrape fails as if the upstream session had expired."""

    async def _scrape(self, args: dict) -> dict:
        self.scrape_calls.append(args["url"])
        raise SessionLostError('{"error": {"code":-32001, "message": "Session not found"}}')


# ---------------------------------------------------------------------------
# A small, fully scripted market: two search hits worth scraping, one video
# ---------------------------------------------------------------------------

PAGE = "Vector search platform with hybrid retrieval, filtering and managed hosting. " * 3

SEARCH_RESULTS = {"results": [
    {"title": "Acme Vector - Home", "url": "https://acme.io", "description": "Acme vector DB"},
    {"title": "Top 10 vector databases", "url": "https://beta.dev/blog/top-10"},
    {"title": "Vector DBs explained", "url": "https://www.youtube.com/watch?v=abc"},
]}

PAGES = {
    "https://acme.io/": PAGE,
    "https://beta.dev/blog/top-10": PAGE,
    "https://acme.io/pricing": "Plans: Free, Pro, Enterprise. " * 4,
    "https://acme.io/about": "Acme was founded in 2015 in San Francisco. " * 3,
    "https://gamma.ai/docs": "Gamma API reference and SDK guides. " * 4,
}

REFLECTIONS = {
    "https://acme.io/": {"isCompanyPage": True, "companyName": "Acme", "extractedCompanies": []},
    "https://beta.dev/blog/top-10": {
        "isCompanyPage": False,
        "companyName": None,
        "extractedCompanies": [
            {"name": "Gamma", "url": "https://gamma.ai/docs"},
            {"name": "Acme Cloud", "url": "https://cloud.acme.io/login"},
            {"name": "Beta", "url": "https://beta.dev"},
            {"name": "Nameless Corp", "url": None},
        ],
    },
}

EXTRACTIONS = {
    "Acme": {
        "company": "Acme",
        "businessModel": "SaaS",
        "pricingTiers": ["Free", "Pro", "Enterprise"],
        "keyFeatures": [f"feature {i}" for i in range(8)],
        "technicalCapabilities": {
            "scalability": "Handles billions of vectors",
            "security": "SOC 2",
            "integrations": ["LangChain", "Kafka", "Spark"],
        },
        "foundingYear": 2015,
        "enterpriseCustomers": ["Netflix", "Uber"],
    },
    "Gamma": {
        "company": "Gamma",
        "businessModel": "Open Source",
        "keyFeatures": ["SDK", "API"],
        "foundingYear": 2022,
    },
}

QUERIES = [f"vector database query {i}" for i in range(12)]


def world_responder(system: str, user: str):
    if system == REFLECTION_SYSTEM_PROMPT:
        for url, verdict in REFLECTIONS.items():
            if f"URL: {url}\n" in user:
                return json.dumps(verdict)
        return "{}"
    if system == EXTRACTION_SYSTEM_PROMPT:
        for name, data in EXTRACTIONS.items():
            if f"Company: {name}\n" in user:
                return "```json\n" + json.dumps(data) + "\n```"
        return "Sorry, not enough information."
    return json.dumps(QUERIES)


def world_backend(config=None, search=None) -> FakeBackend:
    return FakeBackend(config, search=search or (lambda args: SEARCH_RESULTS), pages=dict(PAGES))
