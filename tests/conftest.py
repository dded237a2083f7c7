from __future__ import annotations

import pytest

from fakes import FakeBackend, FakeLLM
from tech_analyst.cache.store import PageCache
from tech_analyst.config import Config
from tech_analyst.context import RunContext
from tech_analyst.progress import ProgressEmitter
from tech_analyst.tools.client import ToolClient

LONG_PAGE = "This is a reasonably long page body about a technology vendor. " * 4


@pytest.fixture
def config() -> Config:
    return Config(
        anthropic_api_key="test-key",
        cache_db_path="",
        retry_max_attempts=1,
    )


@pytest.fixture
def make_ctx(config):
    """Build a RunContext around fakes; pass ``events`` (a list) to record progress."""

    def _make(llm=None, backend=None, cache=None, events=None):
        backend = backend or FakeBackend(config)
        return RunContext(
            config=config,
            llm=llm or FakeLLM(),
            tools=ToolClient(lambda: backend),
            cache=cache or PageCache(""),
            progress=ProgressEmitter(events.append if events is not None else None),
        )

    return _make
