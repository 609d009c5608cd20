import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx_sse import connect_sse

from backend.dependencies import get_chat_gateway
from backend.routers import health, chat, conversations
from backend.services.assistant_router import AssistantRouter
from backend.services.chat_gateway import ChatGateway


def _create_test_app(gateway: ChatGateway) -> FastAPI:
    """Create a minimal FastAPI app without the full lifespan."""
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(conversations.router)
    app.dependency_overrides[get_chat_gateway] = lambda: gateway
    return app


@pytest.fixture
def maxkb_routes(stream_body):
    return {
        ("POST", "maxkb.test", "/api/v1/chat/completions"): lambda: httpx.Response(
            200,
            content=stream_body(
                b'data: {"answer":"Hel',
                b'lo"}\n\n',
                b"data: not json\n\n",
                b'data: {"done":true}\n\n',
                b'data: {"answer":"after done"}\n\n',
            ),
        ),
        ("GET", "maxkb.test", "/api/v1/conversations/c-1"): lambda: httpx.Response(
            200, json={"messages": [{"role": "user", "content": "hi"}]}
        ),
        ("DELETE", "maxkb.test", "/api/v1/conversations/c-1"): lambda: httpx.Response(
            200, json={"deleted": True}
        ),
        ("POST", "dify.test", "/v1/chat-messages"): lambda: httpx.Response(
            200, content=stream_body(b"plain ", b"chunks")
        ),
        ("GET", "dify.test", "/v1/conversations"): lambda: httpx.Response(
            200, json={"data": [{"id": "d-1", "name": "First"}], "has_more": False}
        ),
        ("POST", "sqlbot.test", "/api/v1/chat/question"): lambda: httpx.Response(503),
    }


@pytest.fixture
def handler(make_handler, maxkb_routes):
    return make_handler(maxkb_routes)


@pytest.fixture
def client(handler, make_registry):
    gateway = ChatGateway(AssistantRouter(make_registry(handler)))
    with TestClient(_create_test_app(gateway)) as c:
        yield c


class TestHealthEndpoint:
    def test_health_lists_providers(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["providers"] == ["dify", "maxkb", "ragflow", "sqlbot"]


class TestChatEndpoint:
    def test_unsupported_assistant_type(self, client, handler):
        response = client.post("/chat", json={"assistantId": "demo:1", "message": "hi"})
        assert response.status_code == 400
        assert "unsupported assistant type" in response.json()["detail"].lower()
        assert handler.requests == []

    def test_assistant_id_without_prefix(self, client):
        response = client.post("/chat", json={"assistantId": "maxkb", "message": "hi"})
        assert response.status_code == 400

    def test_empty_message_without_files_rejected(self, client):
        response = client.post("/chat", json={"assistantId": "maxkb:kb", "message": ""})
        assert response.status_code == 422

    def test_sse_stream_normalized(self, client, sse_frames):
        response = client.post("/chat", json={"assistantId": "maxkb:kb", "message": "hi"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        frames = sse_frames(response.text)
        assert frames == [{"text": "Hello"}, {"text": "not json"}, {"done": True}]
        assert response.text.rstrip("\n").endswith('data: {"done": true}')

    def test_raw_stream_gets_synthetic_done(self, client):
        payloads = []
        with connect_sse(
            client, "POST", "/chat",
            json={"assistantId": "dify:app", "message": "hi"},
        ) as event_source:
            for sse in event_source.iter_sse():
                payloads.append(sse.json())
        assert payloads == [{"text": "plain "}, {"text": "chunks"}, {"done": True}]

    def test_files_only_message_accepted(self, client, handler):
        response = client.post("/chat", json={
            "assistantId": "maxkb:kb",
            "message": "",
            "files": [{"name": "report.csv", "content": "a,b", "type": "text/csv"}],
        })
        assert response.status_code == 200
        body = handler.last_json()
        assert body["files"] == [{"name": "report.csv", "content": "a,b", "type": "text/csv"}]

    def test_identity_defaults_to_anonymous(self, client, handler):
        client.post("/chat", json={"assistantId": "maxkb:kb", "message": "hi"})
        assert handler.last_json()["user_id"] == "anonymous"

    def test_identity_from_header(self, client, handler):
        client.post(
            "/chat",
            json={"assistantId": "maxkb:kb", "message": "hi"},
            headers={"X-User-Id": "alice"},
        )
        assert handler.last_json()["user_id"] == "alice"

    def test_provider_failure_is_generic_500(self, client):
        response = client.post("/chat", json={"assistantId": "sqlbot:db", "message": "hi"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Chat request failed"
        assert "503" not in response.text


class TestConversationsEndpoint:
    def test_history(self, client, handler):
        response = client.get("/conversations/maxkb:kb/c-1/history", headers={"X-User-Id": "bob"})
        assert response.status_code == 200
        assert response.json()["messages"][0]["content"] == "hi"
        assert handler.requests[-1].url.params["user_id"] == "bob"

    def test_history_provider_failure(self, client):
        response = client.get("/conversations/ragflow:chat-1/c-1/history")
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to get conversation history"

    def test_list_camel_case_records(self, client):
        response = client.get("/conversations/dify:app")
        assert response.status_code == 200
        assert response.json() == [{
            "id": "d-1",
            "userId": "anonymous",
            "assistantId": "dify:app",
            "metadata": {"name": "First"},
        }]

    def test_list_maxkb_is_empty_by_policy(self, client, handler):
        response = client.get("/conversations/maxkb:kb")
        assert response.status_code == 200
        assert response.json() == []
        assert handler.requests == []

    def test_list_unsupported(self, client):
        response = client.get("/conversations/demo:1")
        assert response.status_code == 400

    def test_delete(self, client):
        response = client.delete("/conversations/maxkb:kb/c-1")
        assert response.status_code == 200
        assert response.json() == {"deleted": True}

    def test_delete_unsupported(self, client):
        response = client.delete("/conversations/unknown/c-1")
        assert response.status_code == 400
