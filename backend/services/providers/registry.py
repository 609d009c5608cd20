"""Provider tag -> adapter registry, built once at startup."""
import logging
from types import MappingProxyType
from typing import Mapping, Optional

import httpx

from backend.config import Settings
from backend.services.providers.base import BaseProviderAdapter
from backend.services.providers.dify_provider import DifyProvider
from backend.services.providers.maxkb_provider import MaxKBProvider
from backend.services.providers.ragflow_provider import RAGFlowProvider
from backend.services.providers.sqlbot_provider import SQLBotProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Mapping[str, type[BaseProviderAdapter]] = {
    "maxkb": MaxKBProvider,
    "dify": DifyProvider,
    "ragflow": RAGFlowProvider,
    "sqlbot": SQLBotProvider,
}


def build_adapter(
    tag: str,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseProviderAdapter:
    cls = PROVIDER_CLASSES[tag]
    api_key, base_url = settings.provider_credentials(tag)
    options = settings.provider_options(tag)

    kwargs = {
        "timeout": settings.request_timeout_seconds,
        "stream": options.get("stream", True),
        "stream_framing": options.get("stream_framing"),
        "transport": transport,
    }
    if cls is MaxKBProvider:
        kwargs["list_upstream"] = options.get("list_upstream", False)

    if not api_key:
        logger.warning("No API key configured for provider '%s'", tag)
    return cls(api_key, base_url, **kwargs)


def build_adapter_registry(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Mapping[str, BaseProviderAdapter]:
    """Instantiate every enabled provider; the result is read-only."""
    adapters: dict[str, BaseProviderAdapter] = {}
    for tag in PROVIDER_CLASSES:
        if not settings.provider_options(tag).get("enabled", True):
            logger.info("Provider '%s' disabled by configuration", tag)
            continue
        adapters[tag] = build_adapter(tag, settings, transport)
    logger.info("Registered providers: %s", ", ".join(adapters) or "(none)")
    return MappingProxyType(adapters)


async def close_adapters(registry: Mapping[str, BaseProviderAdapter]) -> None:
    for adapter in registry.values():
        await adapter.aclose()
