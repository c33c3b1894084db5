import json
import uuid

from conftest import FULL_REPLY


def _session_id():
    return f"test-{uuid.uuid4()}"


def _activate_claude(client):
    response = client.put("/api/providers/claude-1", json={
        "name": "Claude",
        "api_key": "claude-key",
        "model": "claude-3-sonnet-20240229",
        "is_active": True,
    })
    assert response.status_code == 200
    return response


def _sse_events(body):
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


def test_health_check(client):
    assert client.get("/api/health").json() == {"status": "ok"}


# ----- providers --------------------------------------------------------


def test_provider_update_masks_key_and_activates(client):
    providers = _activate_claude(client).json()
    assert providers == [{
        "id": "claude-1",
        "name": "Claude",
        "model": "claude-3-sonnet-20240229",
        "cost_per_token": 0.0,
        "endpoint": None,
        "has_api_key": True,
        "is_active": True,
    }]


def test_activate_switches_single_active_provider(client):
    _activate_claude(client)
    client.put("/api/providers/openai-1", json={"name": "OpenAI"})

    providers = client.post("/api/providers/openai-1/activate").json()

    active = [p["id"] for p in providers if p["is_active"]]
    assert active == ["openai-1"]


def test_activate_unknown_provider_is_404(client):
    response = client.post("/api/providers/nope/activate")
    assert response.status_code == 404


# ----- chat -------------------------------------------------------------


def test_validate_endpoint(client):
    ok = client.post("/api/chat/validate", json={"message": "cash flow"})
    assert ok.json() == {"is_valid": True, "errors": []}

    bad = client.post("/api/chat/validate", json={"message": ""})
    assert bad.json()["is_valid"] is False


def test_chat_rejects_invalid_query(client, vendor):
    response = client.post("/api/chat", json={"message": "DROP TABLE x"})
    assert response.status_code == 400
    assert "errors" in response.json()["detail"]
    assert vendor.requests == []


def test_chat_turn_returns_enriched_response(client, vendor):
    _activate_claude(client)
    session_id = _session_id()

    response = client.post("/api/chat", json={
        "message": "Who are our top 10 customers by revenue this year?",
        "session_id": session_id,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["session_id"] == session_id
    assert body["response"]["summary"] == FULL_REPLY["summary"]
    user_msg, assistant_msg = body["messages"]
    assert user_msg["role"] == "user"
    assert assistant_msg["role"] == "assistant"
    assert assistant_msg["content"] == FULL_REPLY["summary"]
    assert assistant_msg["visualizations"][-1]["type"] == "bar"
    assert len(vendor.requests) == 1


def test_chat_failure_becomes_assistant_reply(client, vendor):
    response = client.post("/api/chat", json={"message": "cash flow"})

    assert response.status_code == 200
    body = response.json()
    assert body["response"] is None
    reply = body["messages"][1]["content"]
    assert reply.startswith("Error: Query processing failed:")
    assert "No active AI provider" in reply
    assert vendor.requests == []


def test_history_clear_and_export(client):
    _activate_claude(client)
    session_id = _session_id()
    for text in ["cash flow", "top 5 customers"]:
        client.post("/api/chat", json={
            "message": text, "session_id": session_id,
        })

    history = client.get(f"/api/chat/{session_id}/messages").json()
    assert [m["role"] for m in history] == [
        "user", "assistant", "user", "assistant",
    ]
    assert history[0]["content"] == "cash flow"

    export = client.get(
        f"/api/chat/{session_id}/export", params={"user": "dana"},
    ).json()
    assert export["user"] == {"name": "dana"}
    assert len(export["messages"]) == 4
    assert "timestamp" in export

    cleared = client.delete(f"/api/chat/{session_id}").json()
    assert cleared == {"session_id": session_id, "deleted": 4}
    assert client.get(f"/api/chat/{session_id}/messages").json() == []
    assert client.get(
        f"/api/chat/{session_id}/export",
    ).status_code == 404


def test_stream_emits_update_result_done(client):
    _activate_claude(client)
    session_id = _session_id()

    response = client.post("/api/chat/stream", json={
        "message": "Show me the cash flow for Q3 2024",
        "session_id": session_id,
    })

    assert response.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(response.text)
    assert [name for name, _ in events] == ["update", "result", "done"]
    assert events[0][1]["is_loading"] is True
    assert events[1][1]["summary"] == FULL_REPLY["summary"]
    assert events[2][1]["session_id"] == session_id
    assert len(events[2][1]["messages"]) == 2


def test_stream_emits_error_event(client):
    response = client.post("/api/chat/stream", json={"message": "cash flow"})

    events = _sse_events(response.text)
    assert [name for name, _ in events] == ["update", "error", "done"]
    assert events[1][1]["message"].startswith("Error: ")


# ----- settings ---------------------------------------------------------


def test_settings_round_trip_masks_and_keeps_secrets(client):
    saved = client.put("/api/settings", json={
        "claude_api_key": "secret",
        "active_provider": "claude",
        "theme": "dark",
    }).json()
    assert saved["claude_api_key"] == "********"
    assert saved["theme"] == "dark"

    providers = client.get("/api/providers").json()
    assert [p["id"] for p in providers if p["is_active"]] == ["claude-1"]

    fetched = client.get("/api/settings").json()
    assert fetched["claude_api_key"] == "********"

    # Sending the mask back keeps the stored key.
    client.put("/api/settings", json=fetched)
    providers = client.get("/api/providers").json()
    assert providers[0]["has_api_key"] is True


def test_chat_rejects_empty_message_with_error_list(client):
    response = client.post("/api/chat", json={"message": ""})
    assert response.status_code == 400
    assert response.json()["detail"] == {"errors": ["Query cannot be empty"]}


def test_put_inactive_deactivates_current_provider(client):
    _activate_claude(client)

    providers = client.put("/api/providers/claude-1", json={
        "name": "Claude", "api_key": "claude-key", "is_active": False,
    }).json()

    assert providers[0]["is_active"] is False


def test_stream_result_whose_summary_looks_like_an_error(client, vendor):
    vendor.reply = json.dumps({
        **FULL_REPLY, "summary": "Error processing query",
    })
    _activate_claude(client)

    response = client.post("/api/chat/stream", json={"message": "cash flow"})

    events = _sse_events(response.text)
    assert [name for name, _ in events] == ["update", "result", "done"]
    assert events[1][1]["summary"] == "Error processing query"


def test_clearing_credentials_stops_vendor_calls(client, vendor):
    client.put("/api/settings", json={
        "claude_api_key": "secret", "active_provider": "claude",
    })
    client.put("/api/settings", json={
        "claude_api_key": "", "active_provider": "",
    })

    assert client.get("/api/providers").json() == []
    body = client.post("/api/chat", json={"message": "cash flow"}).json()
    assert "No active AI provider" in body["messages"][1]["content"]
    assert vendor.requests == []
