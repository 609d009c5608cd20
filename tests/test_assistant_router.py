import pytest

from backend.errors import UnsupportedAssistantType
from backend.services.assistant_router import AssistantRouter
from backend.services.providers.dify_provider import DifyProvider
from backend.services.providers.maxkb_provider import MaxKBProvider
from backend.services.providers.ragflow_provider import RAGFlowProvider
from backend.services.providers.registry import build_adapter_registry
from backend.services.providers.sqlbot_provider import SQLBotProvider
from backend.services.stream_normalizer import StreamFraming


@pytest.fixture
def registry(test_settings):
    return build_adapter_registry(test_settings)


@pytest.fixture
def router(registry):
    return AssistantRouter(registry)


class TestResolve:
    @pytest.mark.parametrize("assistant_id, expected", [
        ("maxkb:kb-1", MaxKBProvider),
        ("dify:app", DifyProvider),
        ("ragflow:chat-42", RAGFlowProvider),
        ("sqlbot:sales-db", SQLBotProvider),
    ])
    def test_registered_tags_resolve(self, router, assistant_id, expected):
        assert isinstance(router.resolve(assistant_id), expected)

    def test_same_instance_for_same_tag(self, router):
        assert router.resolve("maxkb:a") is router.resolve("maxkb:b")

    def test_only_first_colon_splits(self, router):
        adapter = router.resolve("ragflow:chat:with:colons")
        assert adapter.name == "ragflow"

    @pytest.mark.parametrize("assistant_id", ["demo:1", "openai:gpt", ":x", "MAXKB:1"])
    def test_unregistered_tag_raises(self, router, assistant_id):
        with pytest.raises(UnsupportedAssistantType):
            router.resolve(assistant_id)

    @pytest.mark.parametrize("assistant_id", ["maxkb", "", "no-prefix-here"])
    def test_missing_separator_raises(self, router, assistant_id):
        with pytest.raises(UnsupportedAssistantType) as exc:
            router.resolve(assistant_id)
        assert exc.value.http_status == 400

    def test_registered_tags_sorted(self, router):
        assert router.registered_tags() == ["dify", "maxkb", "ragflow", "sqlbot"]


class TestRegistry:
    def test_registry_is_read_only(self, registry):
        with pytest.raises(TypeError):
            registry["demo"] = registry["maxkb"]

    def test_disabled_provider_not_registered(self, test_settings):
        test_settings.yaml_config = {"providers": {"sqlbot": {"enabled": False}}}
        registry = build_adapter_registry(test_settings)
        assert "sqlbot" not in registry
        with pytest.raises(UnsupportedAssistantType):
            AssistantRouter(registry).resolve("sqlbot:db")

    def test_framing_defaults_and_overrides(self, test_settings):
        registry = build_adapter_registry(test_settings)
        assert registry["maxkb"].stream_framing is StreamFraming.SSE
        assert registry["dify"].stream_framing is StreamFraming.RAW

        test_settings.yaml_config = {"providers": {"dify": {"stream_framing": "sse"}}}
        registry = build_adapter_registry(test_settings)
        assert registry["dify"].stream_framing is StreamFraming.SSE

    def test_credentials_resolved_at_construction(self, registry):
        assert registry["maxkb"].base_url == "http://maxkb.test"
        assert registry["maxkb"].list_upstream is False

    def test_extensible_with_new_adapter(self, registry):
        extended = dict(registry)
        extended["demo"] = registry["dify"]
        assert AssistantRouter(extended).resolve("demo:1") is registry["dify"]
