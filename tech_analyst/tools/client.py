"""Resilient handle to the search/scrape tool backend with session recovery."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from tech_analyst.errors import ToolNotFoundError, is_session_lost
from tech_analyst.tools.backends import RemoteTool, ToolBackend

logger = logging.getLogger(__name__)

CAPABILITY_TOOLS = {
    "search": "search_engine",
    "scrape": "scrape_as_markdown",
}


class ToolClient:
    """Lazily connects to a backend and resolves capabilities to tool handles.

    Handles are matched by case-insensitive substring against the backend's
    tool names and cached. When a call fails because the upstream session
    was lost, the client reconnects (close, drop handles, rediscover) and
    retries that one call exactly once. Concurrent session losses share a
    single reconnect: a generation counter tells late arrivals that the
    reset they wanted has already happened.
    """

    def __init__(self, backend_factory: Callable[[], ToolBackend]):
        self._backend_factory = backend_factory
        self._backend: ToolBackend | None = None
        self._tools: list[RemoteTool] | None = None
        self._handles: dict[str, RemoteTool] = {}
        self._generation = 0
        self._connect_lock = asyncio.Lock()
        self._reset_lock = asyncio.Lock()
        self.reconnects = 0

    async def _ensure_tools(self) -> list[RemoteTool]:
        if self._tools is not None:
            return self._tools
        async with self._connect_lock:
            if self._tools is None:
                backend = self._backend_factory()
                try:
                    await backend.connect()
                    tools = await backend.list_tools()
                except Exception:
                    await backend.close()
                    raise
                self._backend = backend
                self._tools = tools
                logger.info(
                    "Connected to %s tools: %s",
                    backend.name, ", ".join(t.name for t in tools),
                )
        return self._tools

    async def get_tool(self, partial_name: str) -> RemoteTool:
        """Resolve a partial tool name, e.g. "scrape_as_markdown"."""
        cached = self._handles.get(partial_name)
        if cached is not None:
            return cached
        tools = await self._ensure_tools()
        needle = partial_name.lower()
        for tool in tools:
            if needle in tool.name.lower():
                self._handles[partial_name] = tool
                return tool
        raise ToolNotFoundError(partial_name, [t.name for t in tools])

    async def invoke(self, capability: str, args: dict) -> Any:
        partial_name = CAPABILITY_TOOLS.get(capability)
        if partial_name is None:
            raise ToolNotFoundError(capability, sorted(CAPABILITY_TOOLS))

        generation = self._generation
        tool = await self.get_tool(partial_name)
        try:
            return await tool.invoke(args)
        except Exception as e:
            if not is_session_lost(e):
                raise
            logger.info("Tool session lost during %s, reconnecting: %s", capability, e)
            await self.reset(generation)
            fresh = await self.get_tool(partial_name)
            return await fresh.invoke(args)

    async def reset(self, generation: int | None = None) -> None:
        """Drop the backend and every cached handle.

        With ``generation`` given, the reset is skipped if another caller
        already reset past that generation.
        """
        async with self._reset_lock:
            if generation is not None and generation != self._generation:
                return
            self._generation += 1
            backend = self._backend
            self._backend = None
            self._tools = None
            self._handles = {}
            if generation is not None:
                self.reconnects += 1
            if backend is not None:
                try:
                    await backend.close()
                except Exception as e:
                    logger.debug("Ignoring error while closing %s backend: %s", backend.name, e)

    async def close(self) -> None:
        await self.reset()
