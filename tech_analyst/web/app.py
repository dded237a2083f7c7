"""FastAPI application for market-sector analysis."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tech_analyst.web.routers.analysis import router as analysis_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting tech analyst API...")
    yield
    logger.info("Tech analyst API shut down.")


app = FastAPI(
    title="Tech Analyst",
    description="Market-sector discovery, company extraction and vision/execution scoring",
    lifespan=lifespan,
)

app.include_router(analysis_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}
