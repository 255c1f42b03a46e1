"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from orgsim.api.app import create_app
from orgsim.environment.engine import SimulationEnvironment
from orgsim.models.organization import SimulationConfig


@pytest.fixture
def client():
    """Create a test client on a fresh environment."""
    environment = SimulationEnvironment(SimulationConfig(seed=1))
    app = create_app(environment=environment)
    return TestClient(app)


def _add_knowledge(client, knowledge_id: int = 1, length: int = 10):
    return client.post("/knowledges", json={"id": knowledge_id, "name": "k", "length": length})


class TestSimulationEndpoints:
    def test_status(self, client):
        response = client.get("/simulation/status")
        assert response.status_code == 200
        data = response.json()
        assert data["step"] == 0
        assert data["agents"] == 0

    def test_step(self, client):
        response = client.post("/simulation/step", params={"count": 3})
        assert response.status_code == 200
        data = response.json()
        assert data["step"] == 3
        assert len(data["results"]) == 3

    def test_step_count_must_be_positive(self, client):
        response = client.post("/simulation/step", params={"count": 0})
        assert response.status_code == 422


class TestMurphyEndpoints:
    def test_get_defaults(self, client):
        response = client.get("/murphies")
        assert response.status_code == 200
        assert response.json()["incomplete_knowledge"]["on"] is False

    def test_update(self, client):
        response = client.put("/murphies", json={
            "incomplete_knowledge": {"on": True, "limit_number_of_tries": 2},
            "multiple_blockers": True,
        })
        assert response.status_code == 200
        data = client.get("/murphies").json()
        assert data["incomplete_knowledge"]["on"] is True
        assert data["incomplete_knowledge"]["limit_number_of_tries"] == 2
        assert data["multiple_blockers"] is True

    def test_invalid_update(self, client):
        response = client.put("/murphies", json={
            "incomplete_knowledge": {"limit_number_of_tries": -5},
        })
        assert response.status_code == 422


class TestKnowledgeEndpoints:
    def test_create_and_list(self, client):
        assert _add_knowledge(client).status_code == 200
        _add_knowledge(client, knowledge_id=2, length=5)
        response = client.get("/knowledges")
        assert response.status_code == 200
        assert [k["id"] for k in response.json()] == [1, 2]

    def test_length_bounds(self, client):
        response = client.post("/knowledges", json={"id": 1, "length": 0})
        assert response.status_code == 422


class TestAgentEndpoints:
    def test_create_agent(self, client):
        _add_knowledge(client)
        response = client.post("/agents", json={
            "key": 1,
            "worker": True,
            "knowledges": [{"knowledge_id": 1, "level": 1.0}],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "1:1"
        assert len(data["knowledge"]["1"]) == 10

    def test_duplicate_agent(self, client):
        client.post("/agents", json={"key": 1})
        response = client.post("/agents", json={"key": 1})
        assert response.status_code == 422

    def test_unknown_knowledge(self, client):
        response = client.post("/agents", json={
            "key": 1,
            "knowledges": [{"knowledge_id": 42}],
        })
        assert response.status_code == 404

    def test_get_agent(self, client):
        client.post("/agents", json={"key": 1})
        client.post("/agents", json={"key": 2})
        assert len(client.get("/agents").json()) == 2
        response = client.get("/agents/2")
        assert response.status_code == 200
        assert response.json()["key"] == 2

    def test_missing_agent(self, client):
        assert client.get("/agents/99").status_code == 404


class TestTaskEndpoints:
    def test_post_task(self, client):
        _add_knowledge(client)
        client.post("/agents", json={"key": 1})
        response = client.post("/agents/1/tasks", json={
            "weight": 0.5,
            "key_activity": "report",
            "knowledges": [{"knowledge_id": 1, "mandatory": [0], "required": [0, 1]}],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["weight"] == 0.5
        assert data["assigned"] == "1:1"
        assert data["knowledges_bits"][0]["required"] == [0, 1]

    def test_post_task_unknown_knowledge(self, client):
        client.post("/agents", json={"key": 1})
        response = client.post("/agents/1/tasks", json={
            "knowledges": [{"knowledge_id": 7}],
        })
        assert response.status_code == 404

    @pytest.mark.parametrize("bits", [
        {"mandatory": [10]},
        {"mandatory": [-1]},
        {"required": [0, 50]},
    ])
    def test_post_task_bit_out_of_range(self, client, bits):
        _add_knowledge(client, length=10)
        client.post("/agents", json={"key": 1})
        response = client.post("/agents/1/tasks", json={
            "knowledges": [{"knowledge_id": 1, **bits}],
        })
        assert response.status_code == 422
        assert client.get("/agents/1").json()["tasks"]["to_do"] == 0
        assert client.post("/simulation/step").status_code == 200

    def test_post_task_to_agent_that_cannot_work(self, client):
        client.post("/agents", json={
            "key": 1,
            "cognitive": {"tasks_and_performance": {"can_perform_task": False}},
        })
        response = client.post("/agents/1/tasks", json={"weight": 1.0})
        assert response.status_code == 422

    def test_task_is_worked(self, client):
        client.post("/agents", json={"key": 1})
        client.post("/agents/1/tasks", json={"weight": 1.0})
        client.post("/simulation/step")
        agent = client.get("/agents/1").json()
        assert agent["tasks"]["done"] == 1


class TestResultsEndpoints:
    def test_iterations(self, client):
        client.post("/simulation/step", params={"count": 4})
        response = client.get("/results/iterations", params={"start": 1, "end": 2})
        assert response.status_code == 200
        assert [r["step"] for r in response.json()] == [1, 2]

    def test_blocker_events(self):
        config = SimulationConfig(seed=2)
        config.models.knowledge.on = True
        client = TestClient(create_app(config=config))
        client.put("/murphies", json={"incomplete_knowledge": {"on": True}})
        _add_knowledge(client)
        client.post("/agents", json={"key": 1})
        client.post("/agents/1/tasks", json={
            "knowledges": [{"knowledge_id": 1, "mandatory": [0], "required": [0]}],
        })
        client.post("/simulation/step")
        response = client.get("/results/blockers", params={"kind": "incomplete_knowledge"})
        assert response.status_code == 200
        events = response.json()
        assert events[0]["event"] == "added"
        assert events[0]["agent_id"] == "1:1"
