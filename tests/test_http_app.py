# tests/test_http_app.py
"""Tests for bizpilot/transport/http_app.py — the HTTP dispatch boundary."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bizpilot.core.dispatch import PromptDispatcher
from bizpilot.transport.http_app import app, get_prompt_dispatcher

ORIGIN = {"Origin": "https://dashboard.example.com"}


class _BrokenDispatcher:
    async def dispatch(self, request):
        raise RuntimeError("renderer bug")


@pytest.fixture
def client_for(make_gateway):
    """TestClient whose dispatcher talks to the upstream stub."""
    def _client(api_key: str | None = "test-key") -> TestClient:
        dispatcher = PromptDispatcher(make_gateway(api_key=api_key))
        app.dependency_overrides[get_prompt_dispatcher] = lambda: dispatcher
        return TestClient(app)
    yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_for):
    return client_for()


# ============================================================================
# POST /ai-assistant
# ============================================================================

class TestAiAssistant:
    def test_hashtags_scenario(self, client, upstream):
        upstream.content = "#vegan #bakery #plantbased"
        resp = client.post("/ai-assistant", json={"kind": "hashtags", "prompt": "vegan bakery"})
        assert resp.status_code == 200
        assert resp.json() == {"content": "#vegan #bakery #plantbased", "kind": "hashtags"}

    def test_dashboard_type_field_and_function_path(self, client, upstream, lead_payload):
        upstream.content = '{"score": 77, "reason": "ok", "priority": "medium"}'
        resp = client.post(
            "/functions/v1/ai-assistant",
            json={"type": "lead_score", "leadData": lead_payload},
        )
        assert resp.status_code == 200
        assert resp.json()["content"] == '{"score": 77, "reason": "ok", "priority": "medium"}'
        assert resp.json()["kind"] == "lead_score"
        user_prompt = upstream.sent_json()["messages"][1]["content"]
        assert "Company: Acme Bakery" in user_prompt

    def test_unknown_kind_is_not_an_error(self, client, upstream):
        resp = client.post("/ai-assistant", json={"kind": "nonsense", "prompt": "hello"})
        assert resp.status_code == 200
        assert resp.json()["kind"] == "nonsense"

    def test_rate_limited(self, client, upstream):
        upstream.status = 429
        resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"})
        assert resp.status_code == 429
        assert resp.json() == {"error": "Rate limit exceeded. Please try again later."}

    def test_payment_required(self, client, upstream):
        upstream.status = 402
        resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"})
        assert resp.status_code == 402
        assert resp.json() == {"error": "Please add credits to continue using AI features."}

    def test_generic_upstream_error(self, client, upstream):
        upstream.status = 500
        resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "AI gateway error"}

    def test_missing_credential(self, client_for, upstream):
        client = client_for(api_key=None)
        resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"})
        assert resp.status_code == 500
        assert "not configured" in resp.json()["error"]
        assert upstream.calls == 0

    def test_numeric_text_field_is_dispatched(self, client, upstream):
        resp = client.post("/ai-assistant", json={"kind": "content", "postData": {"topic": 2024, "platform": "instagram"}})
        assert resp.status_code == 200
        assert upstream.calls == 1
        assert "2024" in upstream.sent_json()["messages"][1]["content"]

    def test_numeric_kind_falls_back_to_chat(self, client, upstream):
        resp = client.post("/ai-assistant", json={"kind": 7, "prompt": "hi"})
        assert resp.status_code == 200
        assert resp.json()["kind"] == "7"

    @pytest.mark.parametrize("body", ['{"choices": 5}', '{"choices": {"a": 1}}'])
    def test_unreadable_upstream_body_is_gateway_error(self, client, upstream, body):
        upstream.body = body
        resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"}, headers=ORIGIN)
        assert resp.status_code == 500
        assert resp.json() == {"error": "AI gateway error"}
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_invalid_json_body(self, client, upstream):
        resp = client.post("/ai-assistant", content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert upstream.calls == 0

    def test_non_object_body(self, client):
        resp = client.post("/ai-assistant", json=["hashtags"])
        assert resp.status_code == 400

    def test_invalid_payload_field(self, client, upstream):
        resp = client.post("/ai-assistant", json={"kind": "lead_score", "leadData": {"value": "a lot"}})
        assert resp.status_code == 400
        assert "leadData" in resp.json()["error"] or "value" in resp.json()["error"]
        assert upstream.calls == 0

    def test_request_id_header(self, client):
        resp = client.post("/ai-assistant", json={"kind": "chat"}, headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"


# ============================================================================
# POST /ai-assistant/structured
# ============================================================================

class TestStructured:
    def test_parsed_data_returned(self, client, upstream, lead_payload):
        upstream.content = '{"score": 77, "reason": "ok", "priority": "medium"}'
        resp = client.post("/ai-assistant/structured", json={"kind": "lead_score", "leadData": lead_payload})
        assert resp.status_code == 200
        body = resp.json()
        assert body["data"] == {"score": 77, "reason": "ok", "priority": "medium"}
        assert body["kind"] == "lead_score"

    def test_malformed_reply_is_502(self, client, upstream, lead_payload):
        upstream.content = "Great lead, call them!"
        resp = client.post("/ai-assistant/structured", json={"kind": "lead_score", "leadData": lead_payload})
        assert resp.status_code == 502
        assert "error" in resp.json()

    def test_free_text_kind_is_400(self, client, upstream):
        resp = client.post("/ai-assistant/structured", json={"kind": "hashtags", "prompt": "x"})
        assert resp.status_code == 400
        assert upstream.calls == 0


# ============================================================================
# CORS, probes, metrics, catch-all
# ============================================================================

class TestCors:
    def test_preflight_allows_dashboard_headers(self, client):
        resp = client.options(
            "/ai-assistant",
            headers={
                "Origin": "https://dashboard.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, x-client-info, apikey, content-type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    @pytest.mark.parametrize("status, code", [(429, 429), (402, 402), (503, 500)])
    def test_error_responses_readable_from_browser(self, client, upstream, status, code):
        upstream.status = status
        resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"}, headers=ORIGIN)
        assert resp.status_code == code
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "error" in resp.json()

    def test_unhandled_failure_readable_from_browser(self):
        app.dependency_overrides[get_prompt_dispatcher] = lambda: _BrokenDispatcher()
        try:
            client = TestClient(app, raise_server_exceptions=False)
            resp = client.post("/ai-assistant", json={"kind": "chat", "prompt": "hi"}, headers=ORIGIN)
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 500
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.json()["error"] == "Internal server error"


class TestProbes:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_ready_without_key(self, client, monkeypatch):
        monkeypatch.setattr("bizpilot.config.settings.ai_gateway_api_key", None)
        assert client.get("/ready").status_code == 503

    def test_ready_with_key(self, client, monkeypatch):
        monkeypatch.setattr("bizpilot.config.settings.ai_gateway_api_key", "sk-test")
        assert client.get("/ready").status_code == 200

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["Cache-Control"] == "no-store"


class TestMetricsEndpoint:
    def test_token_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr("bizpilot.config.settings.metrics_token", "metrics-secret")
        assert client.get("/metrics").status_code == 401
        assert client.get("/metrics", headers={"Authorization": "Bearer wrong"}).status_code == 401

    def test_counts_dispatches(self, client, monkeypatch):
        monkeypatch.setattr("bizpilot.config.settings.metrics_token", "metrics-secret")
        client.post("/ai-assistant", json={"kind": "hashtags", "prompt": "x"})

        resp = client.get("/metrics", headers={"Authorization": "Bearer metrics-secret"})
        assert resp.status_code == 200
        assert resp.json()["counters"]["ai_dispatch_total{kind=hashtags}"] == 1

    def test_external_client_without_token_forbidden(self, client, monkeypatch):
        monkeypatch.setattr("bizpilot.config.settings.metrics_token", None)
        # TestClient's peer address "testclient" is not an internal IP
        assert client.get("/metrics").status_code == 403


class TestCatchAll:
    def test_unknown_route(self, client):
        resp = client.get("/wp-admin")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}
