import json

import httpx
import pytest

TEST_PROVIDERS_YAML = {
    "providers": {
        "maxkb": {"enabled": True, "stream": True, "stream_framing": "sse", "list_upstream": False},
        "dify": {"enabled": True, "stream": True, "stream_framing": "raw"},
        "ragflow": {"enabled": True, "stream": True, "stream_framing": "raw"},
        "sqlbot": {"enabled": True, "stream": True, "stream_framing": "raw"},
    }
}


@pytest.fixture(autouse=True)
def reset_sse_app_status(monkeypatch):
    """sse-starlette keeps a module-level exit event bound to the first loop."""
    import sse_starlette.sse as sse_module
    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None:
        monkeypatch.setattr(app_status, "should_exit_event", None, raising=False)


@pytest.fixture
def test_settings():
    from backend.config import Settings
    return Settings(
        maxkb_api_key="mk-test-fake",
        maxkb_base_url="http://maxkb.test",
        dify_api_key="app-test-fake",
        dify_base_url="http://dify.test",
        ragflow_api_key="ragflow-test-fake",
        ragflow_base_url="http://ragflow.test",
        sqlbot_api_key="sqlbot-test-fake",
        sqlbot_base_url="http://sqlbot.test",
        request_timeout_seconds=5.0,
        yaml_config=TEST_PROVIDERS_YAML,
    )


def _stream_body(*chunks: bytes):
    """Response content that arrives in exactly the given chunks."""
    async def gen():
        for chunk in chunks:
            yield chunk
    return gen()


def _sse_frames(text: str) -> list[dict]:
    """Parse a gateway SSE body into its JSON payloads."""
    frames = []
    for block in text.split("\n\n"):
        for line in block.split("\n"):
            if line.startswith("data:"):
                frames.append(json.loads(line[len("data:"):].strip()))
    return frames


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays routes."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.host, request.url.path)
        responder = self.routes.get(key)
        if responder is None:
            return httpx.Response(404, json={"error": "no route"})
        if isinstance(responder, BaseException):
            raise responder
        return responder() if callable(responder) else responder

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def stream_body():
    return _stream_body


@pytest.fixture
def sse_frames():
    return _sse_frames


@pytest.fixture
def make_handler():
    return RecordingHandler


@pytest.fixture
def make_registry(test_settings):
    from backend.services.providers.registry import build_adapter_registry

    def _make(handler, settings=None):
        return build_adapter_registry(settings or test_settings, transport=httpx.MockTransport(handler))
    return _make
