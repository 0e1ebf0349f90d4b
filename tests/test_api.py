# =============================================================================
# Integration Tests — FastAPI surface
# =============================================================================

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from concord.api import app, get_api_key, get_backend, get_policy_store
from concord.policy import FAST_MODELS, InMemoryPolicyStore

PARIS = "The capital of France is Paris."


@pytest.fixture
def store():
    return InMemoryPolicyStore()


@pytest.fixture
def client(store, make_backend):
    backend = make_backend({m: PARIS for m in FAST_MODELS})
    app.dependency_overrides[get_policy_store] = lambda: store
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_api_key] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSettings:
    def test_defaults(self, client):
        data = client.get("/api/consensus/acme/settings").json()
        assert data["success"] is True
        assert data["settings"]["model_count"] == 3
        assert data["settings"]["tier"] == "fast"
        assert data["availableModels"]["fast"] == FAST_MODELS

    def test_patch_merges(self, client):
        client.patch("/api/consensus/acme/settings", json={"model_count": 4})
        data = client.patch("/api/consensus/acme/settings", json={"tier": "default"}).json()
        assert data["settings"]["model_count"] == 4
        assert data["settings"]["tier"] == "default"
        assert data["message"] == "Consensus settings updated"

    def test_patch_validates(self, client):
        response = client.patch("/api/consensus/acme/settings", json={"agreement_threshold": 2})
        assert response.status_code == 422

    def test_patch_null_rejected(self, client):
        response = client.patch("/api/consensus/acme/settings", json={"enabled": None})
        assert response.status_code == 422


class TestConsensusChat:
    def test_answer_with_metadata(self, client):
        response = client.post(
            "/api/consensus/acme",
            json={
                "messages": [{"role": "user", "content": "What is the capital of France?"}],
                "context": [{"source": "Atlas", "content": "Paris is the capital."}],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["choices"][0]["message"]["content"] == PARIS
        assert data["consensus"]["method"] == "consensus"
        assert data["consensus"]["responsesReceived"] == 3
        assert data["consensus"]["outliers"] == []
        assert data["sources"] == [{"title": "Atlas"}]

    def test_messages_required(self, client):
        response = client.post("/api/consensus/acme", json={"messages": []})
        assert response.status_code == 400

    def test_disabled_tenant(self, client, store):
        client.patch("/api/consensus/acme/settings", json={"enabled": False})
        response = client.post(
            "/api/consensus/acme",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Consensus mode is not enabled"

    def test_missing_api_key(self, client):
        app.dependency_overrides[get_backend] = lambda: None
        response = client.post(
            "/api/consensus/acme",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )
        assert response.status_code == 500
        assert "OPENROUTER_API_KEY" in response.json()["detail"]["hint"]


class TestConsensusTest:
    def test_debug_result(self, client):
        data = client.post("/api/consensus/acme/test", json={}).json()
        assert data["query"] == "What is 2 + 2?"
        assert data["result"]["method"] == "consensus"
        assert len(data["result"]["responses"]) == 3


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_settings_persisted_by_file_store(client, tmp_path):
    from concord.policy import JsonFilePolicyStore

    path = tmp_path / "policies.json"
    app.dependency_overrides[get_policy_store] = lambda: JsonFilePolicyStore(path)
    response = client.patch("/api/consensus/acme/settings", json={"model_count": 2})

    assert response.status_code == 200
    assert JsonFilePolicyStore(path).get("acme").model_count == 2


def test_settings_update_runs_in_threadpool():
    import asyncio

    from concord.api import update_settings

    assert not asyncio.iscoroutinefunction(update_settings)


def test_no_models_hint(client, monkeypatch):
    monkeypatch.setattr("concord.policy.resolve_models", lambda policy: [])
    response = client.post(
        "/api/consensus/acme",
        json={"messages": [{"role": "user", "content": "hi"}]},
    )
    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["error"] == "No models configured for consensus"
    assert "OPENROUTER_API_KEY" not in detail["hint"]
