"""Analysis API: run the pipeline, or stream its progress via SSE."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from tech_analyst.models import ProgressEvent
from tech_analyst.web.deps import OrchestratorFactory, get_orchestrator_factory

logger = logging.getLogger(__name__)
router = APIRouter(tags=["analysis"])


class AnalysisRequest(BaseModel):
    market_sector: str


def _require_sector(req: AnalysisRequest) -> str:
    sector = req.market_sector.strip()
    if not sector:
        raise HTTPException(status_code=400, detail="market_sector must not be empty")
    return sector


@router.post("/analysis")
async def run_analysis(
    req: AnalysisRequest,
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """Run a full analysis and return the AnalysisResult."""
    sector = _require_sector(req)
    result = await factory().run(sector)
    return result.model_dump(mode="json")


@router.post("/analysis/stream")
async def stream_analysis(
    req: AnalysisRequest,
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """SSE stream: ``progress`` events, then one ``complete`` or ``error``."""
    sector = _require_sector(req)
    orchestrator = factory()

    async def event_generator():
        queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        cancel_event = asyncio.Event()
        task = asyncio.create_task(orchestrator.run(
            sector, progress_callback=queue.put_nowait, cancel_event=cancel_event,
        ))
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield {"event": "progress", "data": event.model_dump_json()}

            try:
                result = task.result()
            except Exception as e:
                logger.exception("Streaming analysis of %s crashed", sector)
                yield {"event": "error", "data": json.dumps({"status": "failed", "error": str(e)})}
                return

            if result.status == "completed":
                yield {"event": "complete", "data": result.model_dump_json()}
            else:
                yield {
                    "event": "error",
                    "data": json.dumps({"status": result.status, "error": result.error}),
                }
        finally:
            # Client went away mid-run
            if not task.done():
                cancel_event.set()
                await asyncio.gather(task, return_exceptions=True)

    return EventSourceResponse(event_generator())
