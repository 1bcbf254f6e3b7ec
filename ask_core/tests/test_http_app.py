import json

import httpx
import pytest
from fastapi.testclient import TestClient

from ask_core.api import http_app, service
from ask_core.domain.models import StreamIncrement
from ask_core.infrastructure import http as http_pool


class FakeAgent:
    def __init__(self):
        self.requests = []

    def ask(self, question, session_id):
        self.requests.append((question, session_id))
        yield StreamIncrement("你")
        yield StreamIncrement("好", True)


def test_health():
    client = TestClient(http_app.app)
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"code": 0, "message": "ok", "data": "ok"}


@pytest.fixture
def fake_agent():
    agent = FakeAgent()
    service.set_default_agent(agent)
    yield agent
    service.set_default_agent(None)


def test_ask_streams_sse_increments(fake_agent):
    agent = fake_agent
    client = TestClient(http_app.app)
    resp = client.post("/api/ask", json={"question": "hi", "sessionId": "s-1"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = [json.loads(line[len("data:"):]) for line in resp.text.splitlines() if line.startswith("data:")]
    assert events == [{"delta": "你", "finish": False}, {"delta": "好", "finish": True}]
    assert agent.requests == [("hi", "s-1")]


def test_ask_rejects_empty_question():
    client = TestClient(http_app.app)
    resp = client.post("/api/ask", json={"question": "", "sessionId": "s"})
    assert resp.status_code == 422


def test_errors_before_streaming_become_result(monkeypatch):
    def broken(question, session_id):
        raise RuntimeError("agent unavailable")

    monkeypatch.setattr(service, "ask", broken)
    client = TestClient(http_app.app, raise_server_exceptions=False)
    resp = client.post("/api/ask", json={"question": "hi", "sessionId": "s"})
    assert resp.status_code == 500
    assert resp.json() == {"code": 500, "message": "服务异常，请稍后重试", "data": None}


def test_shutdown_closes_shared_http_pool(monkeypatch):
    pool = httpx.Client()
    monkeypatch.setattr(http_pool, "_client", pool)
    with TestClient(http_app.app) as client:
        assert client.get("/api/health").status_code == 200
        assert not pool.is_closed
    assert pool.is_closed
    assert http_pool._client is None
