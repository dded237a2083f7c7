"""Remote tool sets the ToolClient discovers search/scrape handles from.

A backend owns one httpx session. ``list_tools`` exposes named async
callables; the client picks them by partial name, so a backend only has to
follow the ``*search_engine`` / ``*scrape_as_markdown`` naming convention.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

import httpx

from tech_analyst.config import Config
from tech_analyst.errors import SESSION_LOST_MARKERS, SessionLostError
from tech_analyst.scrape.extractor import extract_markdown
from tech_analyst.scrape.http_scraper import open_web_session
from tech_analyst.search.duckduckgo_client import DuckDuckGoSearch
from tech_analyst.search.firecrawl_client import (
    open_firecrawl_session,
    scrape_firecrawl,
    search_firecrawl,
)

logger = logging.getLogger(__name__)

ToolFunc = Callable[[dict], Awaitable[Any]]


class RemoteTool:
    """A named remote operation bound to its backend session."""

    def __init__(self, name: str, description: str, func: ToolFunc):
        self.name = name
        self.description = description
        self._func = func

    async def invoke(self, args: dict) -> Any:
        return await self._func(args)

    def __repr__(self) -> str:
        return f"RemoteTool({self.name!r})"


class ToolBackend:
    """Base class: one session, a fixed tool list."""

    name = "base"

    def __init__(self, config: Config):
        self.config = config
        self._session: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        if self._session is None or self._session.is_closed:
            self._session = self._open_session()
            logger.debug("Opened %s tool session", self.name)

    def _open_session(self) -> httpx.AsyncClient:
        raise NotImplementedError

    async def list_tools(self) -> list[RemoteTool]:
        raise NotImplementedError

    async def close(self) -> None:
        if self._session is not None:
            await self._session.aclose()
            self._session = None

    def check_session(self) -> None:
        if self._session is None or self._session.is_closed:
            raise SessionLostError(f"Session not found: {self.name} session is closed")

    @property
    def session(self) -> httpx.AsyncClient:
        """The live session, or SessionLostError if it has gone away."""
        self.check_session()
        return self._session

    async def _guarded(self, call: Callable[[], Awaitable[Any]]) -> Any:
        """Map upstream session-loss responses onto SessionLostError."""
        try:
            return await call()
        except httpx.HTTPStatusError as e:
            if any(marker in e.response.text for marker in SESSION_LOST_MARKERS):
                raise SessionLostError(str(e)) from e
            raise
        except RuntimeError as e:
            # httpx raises RuntimeError when a request hits a closed client
            if "client has been closed" in str(e):
                raise SessionLostError(f"Session not found: {e}") from e
            raise


class FirecrawlBackend(ToolBackend):
    """Search + scrape through the Firecrawl REST API."""

    name = "firecrawl"

    def _open_session(self) -> httpx.AsyncClient:
        return open_firecrawl_session(self.config.firecrawl_key, timeout=max(60, self.config.scrape_timeout))

    async def list_tools(self) -> list[RemoteTool]:
        return [
            RemoteTool("firecrawl_search_engine", "Web search via Firecrawl", self._search),
            RemoteTool("firecrawl_scrape_as_markdown", "Scrape a page to markdown", self._scrape),
        ]

    async def _search(self, args: dict) -> dict:
        query = args["query"]
        page = int(args.get("cursor") or 1)
        results = await self._guarded(lambda: search_firecrawl(
            self.session, query, page=page, per_page=self.config.search_results_per_page,
        ))
        return {"results": results}

    async def _scrape(self, args: dict) -> dict:
        url = args["url"]
        markdown = await self._guarded(lambda: scrape_firecrawl(self.session, url))
        return {"markdown": markdown}


class FreeWebBackend(ToolBackend):
    """DuckDuckGo search plus direct fetch / trafilatura / Jina scraping."""

    name = "freeweb"

    def __init__(self, config: Config):
        super().__init__(config)
        self._ddg = DuckDuckGoSearch()

    def _open_session(self) -> httpx.AsyncClient:
        return open_web_session(timeout=self.config.scrape_timeout)

    async def list_tools(self) -> list[RemoteTool]:
        return [
            RemoteTool("ddg_search_engine", "Web search via DuckDuckGo", self._search),
            RemoteTool("web_scrape_as_markdown", "Fetch a page and extract markdown", self._scrape),
        ]

    async def _search(self, args: dict) -> dict:
        # DDG runs on its own client; the session only signals liveness
        self.check_session()
        page = int(args.get("cursor") or 1)
        results = await self._ddg.search(
            args["query"], page=page, per_page=self.config.search_results_per_page,
        )
        return {"results": results}

    async def _scrape(self, args: dict) -> dict:
        url = args["url"]
        markdown = await self._guarded(lambda: extract_markdown(self.session, url))
        return {"markdown": markdown}


def build_tool_backend(config: Config) -> ToolBackend:
    """Firecrawl when a key is configured, otherwise the free web backend."""
    if config.firecrawl_key:
        return FirecrawlBackend(config)
    logger.info("FIRECRAWL_KEY not set, using free DuckDuckGo search and direct scraping")
    return FreeWebBackend(config)
