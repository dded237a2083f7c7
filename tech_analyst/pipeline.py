"""Async pipeline orchestration: discovery -> enrichment -> extraction -> synthesis -> charts."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable

from tech_analyst.analysis.llm_client import LLMClient
from tech_analyst.cache.store import PageCache
from tech_analyst.config import Config
from tech_analyst.context import RunContext
from tech_analyst.errors import PipelineCancelled
from tech_analyst.models import AnalysisResult, CompanyInput
from tech_analyst.progress import ProgressCallback, ProgressEmitter
from tech_analyst.stages.discovery import run_discovery
from tech_analyst.stages.enrichment import run_enrichment
from tech_analyst.stages.extraction import run_extraction
from tech_analyst.stages.synthesis import run_synthesis, run_visualization
from tech_analyst.tools.backends import ToolBackend, build_tool_backend
from tech_analyst.tools.client import ToolClient

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Runs one market-sector analysis end to end.

    Stages run strictly in order; each starts only after the previous one has
    aggregated. Any stage exception ends the run ``failed`` with its message
    and skips the remaining stages. Setting ``cancel_event`` aborts in-flight
    work and ends the run ``failed`` with a cancellation message.

    ``llm`` and ``cache`` may be injected (tests, shared web instances); the
    orchestrator only closes what it created itself. The tool client is
    always per run.
    """

    def __init__(
        self,
        config: Config,
        backend_factory: Callable[[], ToolBackend] | None = None,
        llm: LLMClient | None = None,
        cache: PageCache | None = None,
        normalize: bool = True,
    ):
        self.config = config
        self.backend_factory = backend_factory or (lambda: build_tool_backend(config))
        self._llm = llm
        self._cache = cache
        self.normalize = normalize

    async def run(
        self,
        market_sector: str,
        progress_callback: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AnalysisResult:
        market_sector = (market_sector or "").strip()
        result = AnalysisResult(market_sector=market_sector)
        progress = ProgressEmitter(progress_callback)
        start = time.monotonic()

        llm = self._llm or LLMClient(self.config)
        cache = self._cache or PageCache(self.config.cache_db_path, self.config.cache_ttl_days)
        tools = ToolClient(self.backend_factory)
        ctx = RunContext(
            config=self.config,
            llm=llm,
            tools=tools,
            cache=cache,
            progress=progress,
            cancel_event=cancel_event,
        )

        try:
            self.config.require_llm()
            await self._run_stages(ctx, result)
            result.status = "completed"
            logger.info(
                "Analysis of %s completed in %.1fs: %d companies scored",
                market_sector, time.monotonic() - start, len(result.scores),
            )
        except PipelineCancelled as e:
            logger.warning("Analysis of %s cancelled during %s", market_sector, result.status)
            result.error = str(e) or "Analysis cancelled"
            result.status = "failed"
        except Exception as e:
            logger.exception("Analysis of %s failed during %s", market_sector, result.status)
            result.error = str(e) or type(e).__name__
            result.status = "failed"
        finally:
            result.finished_at = datetime.now().isoformat()
            progress.close()
            await self._teardown(tools, llm, cache)

        return result

    async def _run_stages(self, ctx: RunContext, result: AnalysisResult) -> None:
        result.status = "discovery"
        discovery = await run_discovery(ctx, result.market_sector)
        result.queries = discovery.queries
        result.leads = discovery.leads

        ctx.check_cancelled()
        result.status = "enrichment"
        enrichment = await run_enrichment(ctx, result.market_sector, discovery.leads)
        result.enrichment_stats = enrichment.stats
        result.companies = [
            CompanyInput(name=company.name, url=company.url) for company in enrichment.companies
        ]

        ctx.check_cancelled()
        result.status = "extraction"
        result.extracted_data = await run_extraction(ctx, result.companies)

        ctx.check_cancelled()
        result.status = "synthesis"
        result.scores = run_synthesis(ctx, result.extracted_data, normalize=self.normalize)

        ctx.check_cancelled()
        result.status = "visualization"
        result.chart_data = run_visualization(ctx, result.scores, result.market_sector)

    async def _teardown(self, tools: ToolClient, llm: LLMClient, cache: PageCache) -> None:
        try:
            await tools.close()
        except Exception as e:
            logger.debug("Tool client close failed: %s", e)
        if self._llm is None:
            try:
                await llm.close()
            except Exception as e:
                logger.debug("LLM client close failed: %s", e)
        if self._cache is None:
            cache.close()
