import asyncio

import pytest

from fakes import FakeBackend, LostSessionBackend
from tech_analyst.errors import SessionLostError, ToolNotFoundError
from tech_analyst.tools.client import ToolClient


class BackendSequence:
    """Factory handing out the given backends in order, recording each one."""

    def __init__(self, *backends):
        self.pending = list(backends)
        self.created = []

    def __call__(self):
        backend = self.pending.pop(0)
        self.created.append(backend)
        return backend


@pytest.mark.asyncio
async def test_tools_resolve_by_case_insensitive_substring():
    factory = BackendSequence(FakeBackend(pages={"https://acme.io": "# Acme"}))
    client = ToolClient(factory)

    tool = await client.get_tool("scrape_as_markdown")
    again = await client.get_tool("scrape_as_markdown")
    result = await client.invoke("scrape", {"url": "https://acme.io"})

    assert tool is again
    assert tool.name == "fake_Scrape_As_Markdown"
    assert result == {"markdown": "# Acme"}
    assert len(factory.created) == 1
    await client.close()


@pytest.mark.asyncio
async def test_missing_tool_lists_available_ones():
    client = ToolClient(BackendSequence(FakeBackend(tools=("search",))))

    with pytest.raises(ToolNotFoundError) as excinfo:
        await client.invoke("scrape", {"url": "https://acme.io"})

    assert "scrape_as_markdown" in str(excinfo.value)
    assert "fake_search_engine" in str(excinfo.value)
    await client.close()


@pytest.mark.asyncio
async def test_unknown_capability_is_rejected():
    client = ToolClient(BackendSequence(FakeBackend()))

    with pytest.raises(ToolNotFoundError):
        await client.invoke("translate", {})


class UnlistableBackend(FakeBackend):
    async def list_tools(self):
        raise RuntimeError("tool listing unavailable")


@pytest.mark.asyncio
async def test_failed_tool_listing_closes_the_backend():
    backend = UnlistableBackend()
    client = ToolClient(BackendSequence(backend, FakeBackend(pages={"https://acme.io": "# Acme"})))

    with pytest.raises(RuntimeError, match="tool listing unavailable"):
        await client.get_tool("search_engine")

    assert backend.closed
    assert backend._session is None
    assert await client.invoke("scrape", {"url": "https://acme.io"}) == {"markdown": "# Acme"}
    await client.close()


@pytest.mark.asyncio
async def test_session_loss_reconnects_and_retries_once():
    stale = LostSessionBackend()
    fresh = FakeBackend(pages={"https://acme.io": "# Acme"})
    factory = BackendSequence(stale, fresh)
    client = ToolClient(factory)

    result = await client.invoke("scrape", {"url": "https://acme.io"})

    assert result == {"markdown": "# Acme"}
    assert stale.closed
    assert client.reconnects == 1
    assert factory.created == [stale, fresh]
    await client.close()
    assert fresh.closed


@pytest.mark.asyncio
async def test_second_session_loss_propagates():
    factory = BackendSequence(LostSessionBackend(), LostSessionBackend())
    client = ToolClient(factory)

    with pytest.raises(SessionLostError):
        await client.invoke("scrape", {"url": "https://acme.io"})

    assert client.reconnects == 1
    await client.close()


@pytest.mark.asyncio
async def test_concurrent_session_losses_share_one_reconnect():
    stale = LostSessionBackend()
    fresh = FakeBackend(pages={f"https://site{i}.com": f"page {i}" for i in range(5)})
    factory = BackendSequence(stale, fresh)
    client = ToolClient(factory)

    results = await asyncio.gather(*(
        client.invoke("scrape", {"url": f"https://site{i}.com"}) for i in range(5)
    ))

    assert [r["markdown"] for r in results] == [f"page {i}" for i in range(5)]
    assert client.reconnects == 1
    assert len(factory.created) == 2
    await client.close()


@pytest.mark.asyncio
async def test_closed_session_is_reported_as_lost():
    backend = FakeBackend()
    await backend.connect()
    await backend.close()

    with pytest.raises(SessionLostError):
        backend.check_session()
