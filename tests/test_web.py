import json

import pytest
import sse_starlette.sse as sse_module
from fastapi.testclient import TestClient

from tech_analyst.models import AnalysisResult, ProgressEvent
from tech_analyst.web.app import app
from tech_analyst.web.deps import get_orchestrator_factory


class StubOrchestrator:
    def __init__(self, result: AnalysisResult, events=()):
        self.result = result
        self.events = list(events)
        self.sectors = []

    async def run(self, market_sector, progress_callback=None, cancel_event=None):
        self.sectors.append(market_sector)
        for event in self.events:
            if progress_callback is not None:
                progress_callback(event)
        return self.result.model_copy(update={"market_sector": market_sector})


EVENTS = [
    ProgressEvent(stage="discovery", substage="queries", message="Generating search queries"),
    ProgressEvent(stage="enrichment", substage="scraping", message="Scraped Acme", progress=1, total=1),
]


def parse_sse(body: str) -> list[tuple[str, str]]:
    events = []
    for block in body.replace("\r\n", "\n").split("\n\n"):
        name, data = None, []
        for line in block.split("\n"):
            if line.startswith("event:"):
                name = line[len("event:"):].strip()
            elif line.startswith("data:"):
                data.append(line[len("data:"):].strip())
        if name:
            events.append((name, "\n".join(data)))
    return events


@pytest.fixture
def stub():
    return StubOrchestrator(AnalysisResult(market_sector="", status="completed"), EVENTS)


@pytest.fixture
def client(stub, monkeypatch):
    # sse-starlette keeps a process-wide exit event bound to the first loop it saw
    status = getattr(sse_module, "AppStatus", None)
    if status is not None:
        monkeypatch.setattr(status, "should_exit_event", None, raising=False)
    app.dependency_overrides[get_orchestrator_factory] = lambda: (lambda: stub)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_run_analysis_returns_result(client, stub):
    response = client.post("/api/analysis", json={"market_sector": "  vector databases "})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["market_sector"] == "vector databases"
    assert stub.sectors == ["vector databases"]


@pytest.mark.parametrize("path", ["/api/analysis", "/api/analysis/stream"])
def test_empty_sector_is_rejected(client, stub, path):
    response = client.post(path, json={"market_sector": "   "})

    assert response.status_code == 400
    assert stub.sectors == []


def test_missing_sector_is_a_validation_error(client):
    response = client.post("/api/analysis", json={})

    assert response.status_code == 422


def test_stream_sends_progress_then_complete(client):
    response = client.post("/api/analysis/stream", json={"market_sector": "vector databases"})

    assert response.status_code == 200
    events = parse_sse(response.text)
    assert [name for name, _ in events] == ["progress", "progress", "complete"]
    first = json.loads(events[0][1])
    assert (first["stage"], first["substage"]) == ("discovery", "queries")
    final = json.loads(events[-1][1])
    assert final["status"] == "completed"
    assert final["market_sector"] == "vector databases"


def test_stream_reports_failed_run_as_error(client, stub):
    stub.result = AnalysisResult(market_sector="", status="failed", error="All 36 search requests failed")
    stub.events = []

    response = client.post("/api/analysis/stream", json={"market_sector": "vector databases"})

    events = parse_sse(response.text)
    assert [name for name, _ in events] == ["error"]
    assert json.loads(events[0][1]) == {"status": "failed", "error": "All 36 search requests failed"}
