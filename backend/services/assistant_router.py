import logging
from typing import Mapping

from backend.errors import UnsupportedAssistantType
from backend.services.providers.base import BaseProviderAdapter

logger = logging.getLogger(__name__)


class AssistantRouter:
    """Routes assistant identifiers (``<provider>:<rest>``) to adapters."""

    def __init__(self, registry: Mapping[str, BaseProviderAdapter]):
        self._registry = registry

    @staticmethod
    def provider_tag(assistant_id: str) -> str:
        if ":" not in assistant_id:
            raise UnsupportedAssistantType(assistant_id)
        return assistant_id.split(":", 1)[0]

    def resolve(self, assistant_id: str) -> BaseProviderAdapter:
        tag = self.provider_tag(assistant_id)
        adapter = self._registry.get(tag)
        if adapter is None:
            raise UnsupportedAssistantType(assistant_id)
        return adapter

    def registered_tags(self) -> list[str]:
        return sorted(self._registry)
