from datetime import datetime

import pytest
from fastapi.testclient import TestClient

import pitch_runs
from app import app
from pitch_pipeline.orchestrator import PitchOrchestrator
from pitch_pipeline.state import InMemoryCheckpointStore, InMemoryRunHistory, RunContext
from pitch_pipeline.agents import AGENT_REGISTRY
from pitch_pipeline.workflows.pipeline import ASSESSMENT_STAGES, STAGE_KEYS
from task_manager import TaskStatus, task_manager

from conftest import FakeGateway, PITCH_CARD


@pytest.fixture()
def orchestrator():
    return PitchOrchestrator(
        FakeGateway(),
        checkpoint_store=InMemoryCheckpointStore(),
        history=InMemoryRunHistory(),
    )


@pytest.fixture()
def client(orchestrator):
    app.dependency_overrides[pitch_runs.get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    for task_id in list(task_manager._tasks):
        task_manager.delete_task(task_id)


def test_run_completes_in_background(client):
    response = client.post("/api/pitches/runs", json={
        "seed_input": "An octopus that steals coconut shells",
        "options": {"audience": "Netflix", "max_revisions": 2},
    })
    assert response.status_code == 200
    task_id = response.json()["task_id"]

    status = client.get(f"/api/pitches/runs/{task_id}").json()

    assert status["status"] == "completed"
    assert status["progress"] == 100
    assert status["result"]["text"] == PITCH_CARD
    assert status["metadata"]["options"]["audience"] == "Netflix"


def test_history_lists_completed_runs(client):
    client.post("/api/pitches/runs", json={"seed_input": "octopus"})

    runs = client.get("/api/pitches/history").json()

    assert len(runs) == 1
    assert runs[0]["seed_input"] == "octopus"


def test_invalid_options_are_rejected(client):
    response = client.post("/api/pitches/runs", json={"seed_input": "octopus", "options": {"max_revisions": 11}})
    assert response.status_code == 422

    response = client.post("/api/pitches/runs", json={"seed_input": ""})
    assert response.status_code == 422


def test_cancel_unknown_and_finished_runs(client):
    assert client.post("/api/pitches/runs/nope/cancel").status_code == 404

    task_id = client.post("/api/pitches/runs", json={"seed_input": "octopus"}).json()["task_id"]
    assert client.post(f"/api/pitches/runs/{task_id}/cancel").status_code == 409


def test_cancel_pending_run_sets_token(client):
    task_manager.create_task("pitch_run_manual", "pitch_run")

    response = client.post("/api/pitches/runs/pitch_run_manual/cancel")

    assert response.status_code == 200
    assert task_manager.get_token("pitch_run_manual").is_set


def test_checkpoint_endpoints(client, orchestrator):
    assert client.get("/api/pitches/checkpoint").status_code == 404

    orchestrator.checkpoints.save(RunContext(seed_input="octopus"), "fact_sheet", datetime(2026, 3, 1))
    body = client.get("/api/pitches/checkpoint").json()
    assert body["last_completed_stage"] == "fact_sheet"
    assert body["seed_input"] == "octopus"
    assert body["mode"] == "pitch"
    assert body["next_stage"] == "logistics"

    assert client.delete("/api/pitches/checkpoint").status_code == 200
    assert client.get("/api/pitches/checkpoint").status_code == 404


def test_stage_registry_listing(client):
    stages = client.get("/api/pitches/stages").json()

    assert [s["key"] for s in stages] == STAGE_KEYS
    gates = {s["key"]: s["gate"] for s in stages if s["gate"]}
    assert gates == {
        "fact_sheet": "rejection",
        "logistics": "rejection",
        "greenlight_review": "score",
        "gatekeeper_verdict": "score",
    }


def test_assessment_stage_listing(client):
    stages = client.get("/api/pitches/stages", params={"mode": "assessment"}).json()

    assert [s["key"] for s in stages] == [s.key for s in ASSESSMENT_STAGES]
    assert {s["key"]: s["gate"] for s in stages if s["gate"]} == {"final_review": "score"}
    assert client.get("/api/pitches/stages", params={"mode": "remix"}).status_code == 422


def test_role_listing(client):
    roles = client.get("/api/pitches/roles").json()

    assert [r["name"] for r in roles] == list(AGENT_REGISTRY)
    scientist = next(r for r in roles if r["name"] == "chief_scientist")
    assert scientist["label"]
    assert "search" in scientist["capabilities"]
    assert all("system_prompt" not in r for r in roles)


def test_unknown_run_is_404(client):
    assert client.get("/api/pitches/runs/missing").status_code == 404
    assert client.delete("/api/pitches/runs/missing").status_code == 404


def test_cleanup_drops_only_old_finished_runs(client):
    task_manager.create_task("pitch_run_old", "pitch_run")
    task_manager.update_task("pitch_run_old", status=TaskStatus.COMPLETED)
    task_manager._tasks["pitch_run_old"]["updated_at"] = "2020-01-01T00:00:00"
    task_manager.create_task("pitch_run_stale_pending", "pitch_run")
    task_manager._tasks["pitch_run_stale_pending"]["updated_at"] = "2020-01-01T00:00:00"

    task_manager.cleanup_old_tasks()

    assert task_manager.get_task("pitch_run_old") is None
    assert task_manager.get_token("pitch_run_old") is None
    assert task_manager.get_task("pitch_run_stale_pending") is not None
