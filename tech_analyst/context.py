"""Run-scoped dependencies passed through every stage and fan-out worker."""

from __future__ import annotations

import asyncio

from tech_analyst.analysis.llm_client import LLMClient
from tech_analyst.cache.store import PageCache
from tech_analyst.concurrency.retry import RetryExecutor, RetryPolicy
from tech_analyst.config import Config
from tech_analyst.errors import PipelineCancelled
from tech_analyst.progress import ProgressEmitter
from tech_analyst.tools.client import ToolClient


class RunContext:
    """Everything a single analysis run shares: config, clients, cache, progress.

    One instance per run. Nothing here is module-global, so concurrent runs
    (e.g. two web requests) never share a tool session or progress channel.
    """

    def __init__(
        self,
        config: Config,
        llm: LLMClient,
        tools: ToolClient,
        cache: PageCache,
        progress: ProgressEmitter | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self.config = config
        self.llm = llm
        self.tools = tools
        self.cache = cache
        self.progress = progress or ProgressEmitter()
        self.cancel_event = cancel_event or asyncio.Event()

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise PipelineCancelled("Analysis cancelled")

    def retrier(self, policy: RetryPolicy, on_retry=None) -> RetryExecutor:
        """A RetryExecutor bound to this run's cancel event and attempt limit."""
        policy = policy.model_copy(update={"max_attempts": self.config.retry_max_attempts})
        return RetryExecutor(policy=policy, on_retry=on_retry, cancel_event=self.cancel_event)
