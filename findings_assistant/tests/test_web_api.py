# test_web_api.py
"""Tests for the web API endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from findings_assistant.data import reset_db_manager
from findings_assistant.web.app import app, get_query_router, get_repository


@pytest.fixture
def client(test_env, temp_db, router, store):
    """Test client wired to an in-memory store and a mock-LLM router."""
    reset_db_manager()
    app.dependency_overrides[get_query_router] = lambda: router
    app.dependency_overrides[get_repository] = lambda: store
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        reset_db_manager()


class TestWebHealth:
    """Test cases for web API health endpoints."""

    def test_health_endpoint(self, client):
        """Test health check endpoint."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_database_health_endpoint(self, client):
        """Test database health check endpoint."""
        response = client.get("/health/database")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database_info"]["tables_ready"] is True


class TestAskEndpoints:
    """Question answering over HTTP."""

    def test_ask_lookup(self, client):
        response = client.post(
            "/ask", json={"question": "Is there any findings about APAR fire in 2024 in hotel"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "lookup"
        assert data["status"] == "ok"
        assert [row["id"] for row in data["rows"]] == ["F-2024-001", "F-2024-004", "F-2024-002"]
        assert data["metadata"]["strategy"] == "lookup"

    def test_ask_blank_question(self, client):
        response = client.post("/ask", json={"question": "   "})
        assert response.status_code == 400

    def test_ask_deep_mode_analytical(self, client):
        response = client.post(
            "/ask",
            json={
                "question": "What should a new hotel in 2025 care about based on 2024 hotel findings",
                "thinking_mode": "deep",
            },
        )

        data = response.json()
        assert data["type"] == "analytical"
        assert data["answer"].startswith("Based on 6 relevant findings")

    def test_ask_store_down_returns_fallback(self, client, store):
        store.available = False

        response = client.post("/ask", json={"question": "IT findings 2025"})

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "STORE_UNAVAILABLE"
        assert {row["id"] for row in data["fallback_data"]} == {"F-2025-001", "F-2025-002"}

    def test_stream_ndjson(self, client):
        response = client.post(
            "/ask/stream",
            json={"question": "What should a new hotel in 2025 care about based on 2024 hotel findings"},
        )

        assert response.status_code == 200
        lines = [json.loads(line) for line in response.text.splitlines() if line]
        chunks = [line["chunk"] for line in lines[:-1]]
        final = lines[-1]["response"]
        assert chunks
        assert final["answer"] == "".join(chunks).strip()

    def test_stream_blank_question(self, client):
        response = client.post("/ask/stream", json={"question": ""})
        assert response.status_code == 400


class TestConfirmationEndpoints:
    """Ambiguous project names over HTTP."""

    def test_confirm_round_trip(self, client, router):
        router.entity_extractor.update_known_projects(["Oakland", "Oakmont"])
        question = "Show findings for project Oakwood"

        first = client.post("/ask", json={"question": question, "session_id": "web-1"}).json()
        assert first["status"] == "confirmation_required"
        assert [c["value"] for c in first["candidates"]] == ["Oakland", "Oakmont"]

        second = client.post(
            "/confirm", json={"question": question, "candidate": "Oakmont", "session_id": "web-1"}
        ).json()
        assert second["status"] == "ok"
        assert second["metadata"]["filters"] == {"project": "Oakmont"}

    def test_end_session(self, client):
        response = client.delete("/sessions/web-2")

        assert response.status_code == 200
        assert response.json() == {"session_id": "web-2", "status": "ended"}


class TestUtilityEndpoints:
    """Classification and data loading."""

    def test_classify(self, client):
        response = client.post("/classify", json={"question": "IT findings 2025"})

        assert response.status_code == 200
        classification = response.json()["classification"]
        assert classification["query_type"] == "lookup"
        assert classification["extracted_filters"] == {"department": "IT", "year": 2025}

    def test_classify_blank(self, client):
        response = client.post("/classify", json={"question": ""})
        assert response.status_code == 400

    def test_load_mock_data(self, client, store):
        store.clear()

        response = client.post("/load_mock_data")

        assert response.status_code == 200
        assert response.json() == {"loaded": 14, "status": "success"}
        assert store.count() == 14
