import asyncio

import pytest

from fakes import FakeLLM, world_backend, world_responder
from tech_analyst.cache.store import PageCache
from tech_analyst.config import Config
from tech_analyst.pipeline import PipelineOrchestrator

SECTOR = "vector databases"
STAGES = ["discovery", "enrichment", "extraction", "synthesis", "visualization"]


class BackendFactory:
    def __init__(self, config, **kwargs):
        self.config = config
        self.kwargs = kwargs
        self.created = []

    def __call__(self):
        backend = world_backend(self.config, **self.kwargs)
        self.created.append(backend)
        return backend


@pytest.mark.asyncio
async def test_full_run_completes(config, tmp_path):
    events = []
    factory = BackendFactory(config)
    llm = FakeLLM(world_responder)
    cache = PageCache(str(tmp_path / "pages.db"))
    orchestrator = PipelineOrchestrator(config, backend_factory=factory, llm=llm, cache=cache)

    result = await orchestrator.run(SECTOR, progress_callback=events.append)

    assert result.status == "completed"
    assert result.error is None
    assert result.finished_at is not None
    assert len(result.queries) == 12
    assert len(result.leads) == 3
    assert sorted(c.name for c in result.companies) == ["Acme", "Beta", "Gamma"]
    assert result.enrichment_stats.skipped_urls == 1
    assert len(result.extracted_data) == 3
    assert len(result.scores) == 3
    assert len(result.chart_data.quadrant.data) == 3
    assert result.chart_data.radar.data[0].company == "Acme"

    seen = []
    for event in events:
        if event.stage not in seen:
            seen.append(event.stage)
    assert seen == STAGES

    assert len(factory.created) == 1
    assert factory.created[0].closed
    assert not llm.closed
    assert cache.get_content("https://acme.io/", "enrichment") is not None
    cache.close()


@pytest.mark.asyncio
async def test_missing_llm_keys_fail_before_discovery():
    config = Config(cache_db_path="")
    factory = BackendFactory(config)
    events = []

    result = await PipelineOrchestrator(config, backend_factory=factory).run(
        SECTOR, progress_callback=events.append,
    )

    assert result.status == "failed"
    assert "ANTHROPIC_API_KEY" in result.error
    assert factory.created == []
    assert events == []


@pytest.mark.asyncio
async def test_stage_failure_ends_run(config):
    factory = BackendFactory(config, search=lambda args: RuntimeError("search backend down"))
    orchestrator = PipelineOrchestrator(config, backend_factory=factory, llm=FakeLLM(world_responder))

    result = await orchestrator.run(SECTOR)

    assert result.status == "failed"
    assert "search requests failed" in result.error
    assert result.companies == []
    assert result.scores == []
    assert factory.created[0].closed


@pytest.mark.asyncio
async def test_empty_sector_fails_the_run(config):
    orchestrator = PipelineOrchestrator(
        config, backend_factory=BackendFactory(config), llm=FakeLLM(world_responder),
    )

    result = await orchestrator.run("   ")

    assert result.status == "failed"
    assert "market_sector" in result.error


@pytest.mark.asyncio
async def test_cancel_event_fails_run_with_cancellation(config):
    cancel = asyncio.Event()
    cancel.set()
    orchestrator = PipelineOrchestrator(
        config, backend_factory=BackendFactory(config), llm=FakeLLM(world_responder),
    )

    result = await orchestrator.run(SECTOR, cancel_event=cancel)

    assert result.status == "failed"
    assert "cancelled" in result.error.lower()


@pytest.mark.asyncio
async def test_cancel_mid_run_stops_later_stages(config):
    cancel = asyncio.Event()

    def on_progress(event):
        if event.stage == "enrichment":
            cancel.set()

    factory = BackendFactory(config)
    orchestrator = PipelineOrchestrator(config, backend_factory=factory, llm=FakeLLM(world_responder))

    result = await asyncio.wait_for(
        orchestrator.run(SECTOR, progress_callback=on_progress, cancel_event=cancel), timeout=5,
    )

    assert result.status == "failed"
    assert "cancelled" in result.error.lower()
    assert result.leads
    assert result.extracted_data == []


@pytest.mark.asyncio
async def test_no_progress_after_run_returns(config):
    cancel = asyncio.Event()
    events = []
    finished = False
    late = []

    def on_progress(event):
        if finished:
            late.append(event)
        events.append(event)
        if event.stage == "extraction":
            cancel.set()

    orchestrator = PipelineOrchestrator(
        config, backend_factory=BackendFactory(config), llm=FakeLLM(world_responder),
    )

    result = await orchestrator.run(SECTOR, progress_callback=on_progress, cancel_event=cancel)
    finished = True
    await asyncio.sleep(0.05)

    assert result.status == "failed"
    assert events
    assert late == []


@pytest.mark.asyncio
async def test_broken_progress_subscriber_does_not_break_the_run(config):
    def explode(event):
        raise RuntimeError("subscriber crashed")

    orchestrator = PipelineOrchestrator(
        config, backend_factory=BackendFactory(config), llm=FakeLLM(world_responder),
    )

    result = await orchestrator.run(SECTOR, progress_callback=explode)

    assert result.status == "completed"


@pytest.mark.asyncio
async def test_raw_scores_when_normalization_disabled(config):
    normalized = await PipelineOrchestrator(
        config, backend_factory=BackendFactory(config), llm=FakeLLM(world_responder),
    ).run(SECTOR)
    raw = await PipelineOrchestrator(
        config, backend_factory=BackendFactory(config), llm=FakeLLM(world_responder), normalize=False,
    ).run(SECTOR)

    assert max(s.vision for s in normalized.scores) == 100
    assert min(s.vision for s in normalized.scores) == 0
    assert max(s.vision for s in raw.scores) < 100
