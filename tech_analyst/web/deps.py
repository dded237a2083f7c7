"""Dependency injection for FastAPI: shared config and the pipeline factory."""

from __future__ import annotations

from functools import lru_cache
from typing import Callable

from tech_analyst.config import Config, load_config
from tech_analyst.pipeline import PipelineOrchestrator

OrchestratorFactory = Callable[[], PipelineOrchestrator]


@lru_cache
def get_config() -> Config:
    return load_config()


def get_orchestrator_factory() -> OrchestratorFactory:
    """A fresh orchestrator per request; runs never share clients or progress."""
    config = get_config()
    return lambda: PipelineOrchestrator(config)
