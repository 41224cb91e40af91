"""Tests for the workspace chat API."""

import json
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.core.schemas_scoring import ScoreResults
from app.main import app

client = TestClient(app)


@pytest.fixture
def session(fake_supabase):
    return fake_supabase.seed(
        "sessions",
        {"name": "CDC launch", "product_context": "Managed CDC for Postgres.", "status": "completed"},
    )


def _events(body: str) -> list[dict]:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


def _streaming(chunks: list[str], seen: list | None = None):
    async def stream(messages, **kwargs):
        if seen is not None:
            seen.append((messages, kwargs))
        for chunk in chunks:
            yield chunk

    return stream


def test_chat_streams_reply_and_saves_both_messages(fake_supabase, session):
    fake_supabase.seed(
        "session_messages",
        {"session_id": session["id"], "role": "user", "content": "Earlier question.", "metadata": {}},
    )
    seen: list = []

    with patch("app.api.chat.stream_chat", _streaming(["Stop ", "babysitting Debezium."], seen)):
        response = client.post(
            f"/v1/sessions/{session['id']}/chat",
            json={"message": "Make the opener punchier.", "asset_type": "battlecard"},
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _events(response.text)
    assert [e["type"] for e in events] == ["delta", "delta", "done"]
    assert events[-1]["fullText"] == "Stop babysitting Debezium."

    messages, kwargs = seen[0]
    assert messages == [
        {"role": "user", "content": "Earlier question."},
        {"role": "user", "content": "Make the opener punchier."},
    ]
    assert "---PROPOSED---" in kwargs["system"]

    user, assistant = fake_supabase.rows("session_messages")[1:]
    assert user["role"] == "user"
    assert user["asset_type"] == "battlecard"
    assert assistant["role"] == "assistant"
    assert assistant["content"] == "Stop babysitting Debezium."
    assert assistant["id"] == events[-1]["messageId"]
    assert "model" in assistant["metadata"]


def test_chat_failure_is_reported_as_error_event(fake_supabase, session):
    async def failing(messages, **kwargs):
        raise RuntimeError("overloaded")
        yield

    with patch("app.api.chat.stream_chat", failing):
        response = client.post(f"/v1/sessions/{session['id']}/chat", json={"message": "Hi"})

    events = _events(response.text)
    assert events == [{"type": "error", "message": "overloaded"}]
    assert [m["role"] for m in fake_supabase.rows("session_messages")] == ["user"]


def test_chat_on_missing_session_is_404(fake_supabase):
    response = client.post(f"/v1/sessions/{uuid.uuid4()}/chat", json={"message": "Hi"})

    assert response.status_code == 404
    assert fake_supabase.rows("session_messages") == []


def test_empty_message_is_422(session):
    response = client.post(f"/v1/sessions/{session['id']}/chat", json={"message": ""})
    assert response.status_code == 422


def test_accept_creates_chat_version(fake_supabase, session):
    message = fake_supabase.seed(
        "session_messages",
        {
            "session_id": session["id"],
            "role": "assistant",
            "content": "---PROPOSED---\nStop babysitting Debezium.\n---PROPOSED---",
            "asset_type": "battlecard",
            "metadata": {},
        },
    )
    scores = ScoreResults(
        slop_score=2.0,
        vendor_speak_score=2.0,
        authenticity_score=8.0,
        specificity_score=8.0,
        persona_avg_score=8.0,
    )

    with patch("app.services.workspace_actions.score_content", AsyncMock(return_value=scores)):
        response = client.post(f"/v1/sessions/{session['id']}/chat/{message['id']}/accept")

    assert response.status_code == 201
    version = response.json()["version"]
    assert version["source"] == "chat"
    assert version["content"] == "Stop babysitting Debezium."


def test_accept_user_message_is_404(fake_supabase, session):
    message = fake_supabase.seed(
        "session_messages",
        {"session_id": session["id"], "role": "user", "content": "Hi", "asset_type": "battlecard"},
    )

    response = client.post(f"/v1/sessions/{session['id']}/chat/{message['id']}/accept")
    assert response.status_code == 404


def test_accept_without_asset_type_is_400(fake_supabase, session):
    message = fake_supabase.seed(
        "session_messages",
        {"session_id": session["id"], "role": "assistant", "content": "Copy.", "asset_type": None},
    )

    response = client.post(f"/v1/sessions/{session['id']}/chat/{message['id']}/accept")
    assert response.status_code == 400


def test_list_messages(fake_supabase, session):
    for role, content in (("user", "Hi"), ("assistant", "Hello")):
        fake_supabase.seed(
            "session_messages",
            {"session_id": session["id"], "role": role, "content": content, "metadata": {}},
        )

    response = client.get(f"/v1/sessions/{session['id']}/messages")

    data = response.json()
    assert data["count"] == 2
    assert [m["content"] for m in data["messages"]] == ["Hi", "Hello"]


def test_list_messages_for_missing_session_is_404(fake_supabase):
    response = client.get(f"/v1/sessions/{uuid.uuid4()}/messages")
    assert response.status_code == 404
