"""End-to-end relay flows over HTTP: ask, deliver, report back, resume."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import WEBHOOK_URL

pytestmark = pytest.mark.integration


@pytest.fixture
def relay(build_app, executor):
    app, runtime = build_app(debug=True)
    runtime.provider.script_tool_calls(
        "find leads", [("scrape_leads", {"query": "dentists", "city": "Austin"})]
    )
    runtime.provider.script_tool_calls(
        "find and call",
        [("scrape_leads", {"query": "roofers"}), ("place_call", {"phone": "+15550100"})],
    )
    with TestClient(app) as client:
        yield client, runtime


class TestRelayFlow:
    def test_plain_conversation(self, relay) -> None:
        client, runtime = relay

        first = client.post("/api/ask", json={"message": "ping", "agent_id": "brenden"}).json()
        second = client.post(
            "/api/ask",
            json={"message": "ping again", "agent_id": "brenden", "thread_id": first["thread_id"]},
        ).json()

        assert first["status"] == second["status"] == "completed"
        assert second["thread_id"] == first["thread_id"]
        assert client.get("/api/pending").json()["count"] == 0

    def test_delivery_retry_then_result(self, relay, executor, sleeps) -> None:
        """One tool call, delivered on attempt 2, answered, run completed."""
        client, runtime = relay
        executor.script.append(500)

        turn = client.post(
            "/api/ask", json={"message": "find leads", "agent_id": "brenden"}
        ).json()

        assert turn["status"] == "requires_action"
        assert turn["dispatch_results"][0]["attempts"] == 2
        assert sleeps.calls == [2.0]
        pending = client.get("/api/pending").json()
        assert pending["count"] == 1
        assert pending["pending_calls"][0]["status"] == "pending"
        assert pending["pending_calls"][0]["retry_count"] == 1

        delivered = json.loads(executor.requests[-1].content)
        assert str(executor.requests[-1].url) == WEBHOOK_URL
        response = client.post(
            "/api/webhook-response",
            json={
                "tool_call_id": delivered["tool_call_id"],
                "output": {"leads": [{"name": "Smile Dental"}]},
                "thread_id": delivered["thread_id"],
                "run_id": delivered["run_id"],
            },
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert client.get("/api/pending").json()["count"] == 0
        outputs = runtime.provider.submitted_outputs(delivered["run_id"])
        assert "Smile Dental" in outputs[0].output

    def test_parallel_tool_calls(self, relay, executor) -> None:
        client, runtime = relay

        turn = client.post(
            "/api/ask", json={"message": "find and call", "agent_id": "brenden"}
        ).json()
        assert turn["pending_count"] == 2

        bodies = [json.loads(r.content) for r in executor.requests]
        responses = [
            client.post(
                "/api/webhook-response",
                json={
                    "tool_call_id": body["tool_call_id"],
                    "output": f"{body['function_name']} ok",
                    "thread_id": body["thread_id"],
                    "run_id": body["run_id"],
                },
            ).json()
            for body in bodies
        ]

        assert [r["status"] for r in responses] == ["awaiting_results", "completed"]
        assert len(runtime.provider.submitted_outputs(turn["run_id"])) == 2

    def test_follow_up_while_waiting_is_rejected(self, relay) -> None:
        client, runtime = relay
        turn = client.post(
            "/api/ask", json={"message": "find leads", "agent_id": "brenden"}
        ).json()
        runtime.provider.clear_history()

        response = client.post(
            "/api/ask",
            json={"message": "status?", "agent_id": "brenden", "thread_id": turn["thread_id"]},
        )

        assert response.status_code == 409
        assert runtime.provider.calls_to("add_message") == []

        client.post("/api/debug/simulate-tool-result")
        response = client.post(
            "/api/ask",
            json={"message": "status?", "agent_id": "brenden", "thread_id": turn["thread_id"]},
        )
        assert response.status_code == 200

    def test_exhausted_delivery_is_kept_for_inspection(self, relay, executor) -> None:
        client, runtime = relay
        executor.script.extend([503] * 5)

        turn = client.post(
            "/api/ask", json={"message": "find leads", "agent_id": "brenden"}
        ).json()

        result = turn["dispatch_results"][0]
        assert result["status"] == "error"
        assert result["attempts"] == 5
        call = client.get(f"/api/pending/{result['tool_call_id']}").json()
        assert call["status"] == "failed"
        assert call["last_error"] == "HTTP 503: Service Unavailable"
        stats = client.get("/api/pending/statistics").json()
        assert stats["pending_by_status"] == {"failed": 1}
