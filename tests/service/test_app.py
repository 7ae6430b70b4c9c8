"""Tests for the FastAPI service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Iterator, List, Tuple

import pytest
from fastapi.testclient import TestClient

from cartograph.coordinator import AnalysisCoordinator
from cartograph.service import create_app
from tests._fixtures.repo_builder import RepoBuilder

SAMPLE_REPO = {
    "src/api/users.ts": """
        import { UserService } from "../services/user";

        export function getUsers(req, res) {
          return new UserService().list();
        }
    """,
    "src/services/user.ts": """
        export class UserService {
          list() { return []; }
        }
    """,
}


@pytest.fixture
def coordinator(repo_builder: RepoBuilder) -> Iterator[AnalysisCoordinator]:
    repo_builder.write(SAMPLE_REPO)
    coordinator = repo_builder.coordinator()
    coordinator.analyze_full()
    yield coordinator
    coordinator.close()


@pytest.fixture
def client(coordinator: AnalysisCoordinator) -> TestClient:
    app = create_app(lambda: coordinator)
    assert app.state.coordinator is coordinator
    return TestClient(app)


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "files": 2, "stale": False}


def test_status_reports_last_outcome(client: TestClient) -> None:
    response = client.get("/api/status")
    assert response.status_code == 200
    assert response.json() == {
        "mode": "full",
        "accepted": True,
        "file_count": 2,
        "skipped": 0,
        "reason": None,
        "stale": False,
        "recent_changes": [],
    }


def test_status_before_any_pass(repo_builder: RepoBuilder) -> None:
    coordinator = repo_builder.coordinator()
    client = TestClient(create_app(lambda: coordinator))

    data = client.get("/api/status").json()

    assert data["mode"] is None
    assert data["stale"] is True


def test_model_and_graph_endpoints(client: TestClient) -> None:
    model = client.get("/api/model").json()
    assert [entry["path"] for entry in model["files"]] == ["src/api/users.ts", "src/services/user.ts"]
    assert model["edges"] == [{"source": "src/api/users.ts", "target": "src/services/user.ts"}]

    graph = client.get("/api/graph").json()
    assert graph["aggregated"] is False
    assert [node["id"] for node in graph["nodes"]] == ["src/api/users.ts", "src/services/user.ts"]


def test_diagram_listing_and_lookup(client: TestClient) -> None:
    listing = client.get("/api/diagrams").json()
    ids = [record["id"] for record in listing["diagrams"]]
    assert ids[0] == "layer-overview"
    assert "flow-getUsers" in ids

    response = client.get("/api/diagrams/layer-overview")
    assert response.status_code == 200
    assert response.json()["markup"].startswith("graph TD\n")

    assert client.get("/api/diagrams/missing").status_code == 404


def test_merge_and_delete_endpoints(client: TestClient) -> None:
    response = client.post(
        "/api/diagrams",
        json={"type": "architecture", "markup": "```mermaid\nflowchart TD\n  A --> B\n```"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "architecture"
    assert data["markup"] == "flowchart TD\n  A --> B"
    assert data["labels"] == ["architecture", "generated"]
    assert client.get("/api/diagrams/architecture").status_code == 200

    rejected = client.post("/api/diagrams", json={"type": "timeline", "markup": "graph TD"})
    assert rejected.status_code == 400
    assert "Unknown diagram type" in rejected.json()["detail"]

    deleted = client.delete("/api/diagrams/architecture")
    assert deleted.status_code == 200
    assert deleted.json() == {"status": "deleted", "id": "architecture"}
    assert client.delete("/api/diagrams/architecture").status_code == 404


def test_merge_and_delete_run_off_the_event_loop(
    client: TestClient, coordinator: AnalysisCoordinator, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: List[Tuple[str, bool]] = []

    def _on_event_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    original_merge = coordinator.merge_diagram
    original_delete = coordinator.delete_diagram

    def merge(*args: Any) -> Any:
        calls.append(("merge", _on_event_loop()))
        return original_merge(*args)

    def delete(*args: Any) -> Any:
        calls.append(("delete", _on_event_loop()))
        return original_delete(*args)

    monkeypatch.setattr(coordinator, "merge_diagram", merge)
    monkeypatch.setattr(coordinator, "delete_diagram", delete)

    assert client.post(
        "/api/diagrams", json={"type": "architecture", "markup": "flowchart TD\n  A --> B"}
    ).status_code == 200
    assert client.delete("/api/diagrams/architecture").status_code == 200

    assert calls == [("merge", False), ("delete", False)]


def test_analyze_endpoint_queues_passes(
    client: TestClient, coordinator: AnalysisCoordinator, repo_builder: RepoBuilder
) -> None:
    repo_builder.write({"src/models/user.ts": "export interface User { id: string }\n"})

    response = client.post("/api/analyze", json={"paths": ["src/models/user.ts"]})
    assert response.status_code == 202
    assert response.json() == {"status": "accepted", "mode": "incremental"}
    assert coordinator.wait(timeout=10)
    assert len(coordinator.model.files) == 3
    assert coordinator.recent_changes == ["src/models/user.ts"]

    response = client.post("/api/analyze", json={"full": True})
    assert response.json() == {"status": "accepted", "mode": "full"}
    assert coordinator.wait(timeout=10)
    assert coordinator.last_outcome is not None
    assert coordinator.last_outcome.mode == "full"
