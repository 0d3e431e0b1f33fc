import pytest
from fastapi.testclient import TestClient

import main
from main import app, sessions
from app.state import Stage


@pytest.fixture
def client(monkeypatch, dispatcher):
    sessions.clear()
    monkeypatch.setattr(main.engine, "dispatcher", dispatcher)
    monkeypatch.setattr(main.settings, "greeting_delay", 30.0)
    yield TestClient(app)
    sessions.clear()


def _turn(response_id, text=None):
    transcript = [{"role": "user", "content": text}] if text is not None else []
    return {"interaction_type": "response_required", "response_id": response_id, "transcript": transcript}


def test_cors_preflight(client):
    response = client.options(
        "/retell-llm",
        headers={"Origin": "https://dashboard.example.com", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_post_turn_over_http(client):
    response = client.post(
        "/retell-llm",
        json={"conversation_id": "conv-1", "messages": [], "callee": {"name": "Dana"}},
        headers={"Origin": "https://dashboard.example.com"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.json()["response"].startswith("Hi Dana")


def test_non_json_post_still_answers_200(client):
    response = client.post("/retell-llm", content=b"garbage", headers={"Content-Type": "text/plain"})
    assert response.status_code == 200
    assert response.json()["end_call"] is False
    assert len(sessions) == 0


def test_stream_keyed_by_path_segment(client):
    with client.websocket_connect("/retell-llm/call-abc") as ws:
        assert ws.receive_json()["response_type"] == "config"
        ws.send_json(_turn(1))
        message = ws.receive_json()
    assert message["response_type"] == "response"
    assert message["response_id"] == 1
    assert message["end_call"] is False
    assert sessions.get("call-abc").stage is Stage.INTRO_WAIT


def test_stream_keyed_by_query_parameter(client):
    with client.websocket_connect("/retell-llm?call_id=call-q") as ws:
        ws.receive_json()
        ws.send_json(_turn(1))
        ws.receive_json()
    assert sessions.get("call-q") is not None


def test_stream_drops_malformed_and_keeps_connection(client):
    with client.websocket_connect("/retell-llm/call-m") as ws:
        ws.receive_json()
        ws.send_text("{not json")
        ws.send_json(_turn(2))
        message = ws.receive_json()
    assert message["response_id"] == 2


def test_http_and_stream_share_a_session(client):
    client.post("/retell-llm", json={"conversation_id": "call-mix", "messages": []})
    client.post(
        "/retell-llm",
        json={"conversation_id": "call-mix", "messages": [{"role": "user", "content": "yes"}]},
    )
    assert sessions.get("call-mix").stage is Stage.COMPARE

    with client.websocket_connect("/retell-llm/call-mix") as ws:
        ws.receive_json()
        ws.send_json(_turn(5, "about what i expected"))
        message = ws.receive_json()
    assert "15-minute" in message["content"]
    assert sessions.get("call-mix").stage is Stage.OFFER


def test_debug_sessions_lists_live_sessions(client):
    client.post("/retell-llm", json={"conversation_id": "conv-d", "messages": []})
    response = client.get("/_debug/sessions")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["sessions"][0]["key"] == "conv-d"
    assert data["sessions"][0]["stage"] == "intro_wait"


def test_debug_logs_tail(client):
    response = client.get("/_debug/logs", params={"n": 5})
    assert response.status_code == 200
    assert len(response.text.splitlines()) <= 5
