"""Tests for pending, agent, status and debug endpoints."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from toolrelay.pending.models import PendingCallStatus


@pytest.fixture
def turn(client: TestClient) -> dict:
    provider = client.app.state.runtime.provider
    provider.script_tool_calls("find leads", [("scrape_leads", {"query": "dentists"})])
    return client.post("/api/ask", json={"message": "find leads", "agent_id": "brenden"}).json()


class TestPendingRoutes:
    def test_list(self, client: TestClient, turn: dict) -> None:
        data = client.get("/api/pending").json()

        assert data["count"] == 1
        call = data["pending_calls"][0]
        assert call["id"] == turn["tool_calls"][0]["id"]
        assert call["status"] == "pending"
        assert call["arguments"] == {"query": "dentists"}

    def test_get_one(self, client: TestClient, turn: dict) -> None:
        call_id = turn["tool_calls"][0]["id"]

        response = client.get(f"/api/pending/{call_id}")

        assert response.status_code == 200
        assert response.json()["thread_id"] == turn["thread_id"]

    def test_get_missing(self, client: TestClient) -> None:
        response = client.get("/api/pending/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_statistics(self, client: TestClient, turn: dict) -> None:
        data = client.get("/api/pending/statistics").json()

        assert data["total_pending"] == 1
        assert data["pending_by_agent"]["brenden"] == 1
        assert data["pending_by_age"]["under_1min"] == 1
        assert data["retry_policy"]["max_attempts"] == 5

    def test_archived(self, client: TestClient, make_call) -> None:
        runtime = client.app.state.runtime
        client.portal.call(
            runtime.store.put,
            make_call(
                created_at=datetime.now(UTC) - timedelta(hours=3),
                status=PendingCallStatus.FAILED,
            ),
        )
        client.portal.call(runtime.sweeper.sweep)

        data = client.get("/api/pending/archived").json()

        assert data["count"] == 1
        assert data["archived"][0]["id"] == "call_1"
        assert data["last_sweep"]["archived"] == ["call_1"]

    def test_redeliver_failed_call(self, client: TestClient, make_call, executor) -> None:
        runtime = client.app.state.runtime
        client.portal.call(runtime.store.put, make_call(status=PendingCallStatus.FAILED))

        response = client.post("/api/pending/call_1/redeliver")

        assert response.status_code == 200
        assert response.json()["status"] == "sent"
        assert executor.requests[-1].headers["X-Tool-Call-ID"] == "call_1"
        assert client.get("/api/pending/call_1").json()["status"] == "pending"

    def test_redeliver_exhausted_again(self, client: TestClient, make_call, executor) -> None:
        runtime = client.app.state.runtime
        client.portal.call(runtime.store.put, make_call(status=PendingCallStatus.FAILED))
        executor.script.extend([503] * 5)

        response = client.post("/api/pending/call_1/redeliver")

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "delivery_error"
        assert error["context"]["tool_call_id"] == "call_1"

    def test_redeliver_pending_call_rejected(self, client: TestClient, turn: dict) -> None:
        call_id = turn["tool_calls"][0]["id"]

        response = client.post(f"/api/pending/{call_id}/redeliver")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    def test_redeliver_missing(self, client: TestClient) -> None:
        response = client.post("/api/pending/nope/redeliver")

        assert response.status_code == 404


class TestAgentRoutes:
    def test_list(self, client: TestClient) -> None:
        agents = client.get("/api/agents").json()["agents"]

        assert set(agents) == {"brenden", "angel", "nova"}
        assert agents["angel"]["assistant_configured"] is False

    def test_health(self, client: TestClient, executor) -> None:
        data = client.get("/api/agents/health").json()

        assert data["healthy"] == 1
        assert data["total"] == 3
        assert data["agents"]["nova"]["status"] == "not_configured"

    def test_single_agent_unreachable(self, client: TestClient, executor) -> None:
        executor.script.append(httpx.ConnectError("refused"))

        data = client.get("/api/agents/brenden/health").json()

        assert data["status"] == "unhealthy"
        assert data["reachable"] is False

    def test_unknown_agent(self, client: TestClient) -> None:
        assert client.get("/api/agents/ghost/health").status_code == 404


class TestStatusRoute:
    def test_status(self, client: TestClient, turn: dict) -> None:
        data = client.get("/api/status").json()

        assert data["status"] == "ok"
        assert data["environment"] == "test"
        assert data["provider"] == {"kind": "mock", "configured": True}
        assert data["pending"]["count"] == 1
        assert data["sweeper"]["enabled"] is False


class TestDebugRoutes:
    def test_simulate_oldest_pending(self, client: TestClient, turn: dict) -> None:
        response = client.post("/api/debug/simulate-tool-result")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["tool_call_id"] == turn["tool_calls"][0]["id"]

    def test_simulate_without_pending(self, client: TestClient) -> None:
        assert client.post("/api/debug/simulate-tool-result").status_code == 404

    def test_hidden_without_debug(self, build_app) -> None:
        app, _ = build_app(debug=False)

        with TestClient(app) as client:
            response = client.post("/api/debug/simulate-tool-result")

        assert response.status_code == 404
