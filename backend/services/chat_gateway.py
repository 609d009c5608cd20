import logging
from typing import Any, AsyncGenerator

from backend.errors import HistoryLookupFailed, ProviderCallFailed
from backend.models.schemas import ChatRequest, Conversation
from backend.services.assistant_router import AssistantRouter
from backend.services.providers.base import BaseProviderAdapter, ChatResult
from backend.services.stream_normalizer import StreamEvent, normalize_stream

logger = logging.getLogger(__name__)


class ChatGateway:
    """Dispatches chat and conversation calls to the adapter behind an assistant id."""

    def __init__(self, router: AssistantRouter):
        self._router = router

    @property
    def router(self) -> AssistantRouter:
        return self._router

    async def chat(self, request: ChatRequest) -> tuple[BaseProviderAdapter, ChatResult]:
        adapter = self._router.resolve(request.assistant_id)
        logger.info(
            "Routing chat for %s to %s (conversation=%s, files=%d)",
            request.assistant_id, adapter.name,
            request.conversation_id or "new", len(request.files),
        )

        if request.conversation_id:
            try:
                await self._lookup_history(adapter, request)
            except HistoryLookupFailed as e:
                logger.warning("%s; sending without prior context", e)

        return adapter, await adapter.chat(request)

    async def _lookup_history(self, adapter: BaseProviderAdapter, request: ChatRequest) -> Any:
        try:
            history = await adapter.get_history(
                request.conversation_id, request.user_id, request.assistant_id
            )
        except ProviderCallFailed as e:
            raise HistoryLookupFailed(request.conversation_id, e.cause) from e
        logger.debug("Resolved history for conversation %s", request.conversation_id)
        return history

    def stream_events(
        self, adapter: BaseProviderAdapter, result: ChatResult
    ) -> AsyncGenerator[StreamEvent, None]:
        """Normalized event sequence for a streaming result.

        Closing the returned generator releases the upstream stream.
        """
        return normalize_stream(result.stream, adapter.stream_framing, adapter.name)

    async def get_history(self, assistant_id: str, conversation_id: str, user_id: str) -> Any:
        adapter = self._router.resolve(assistant_id)
        return await adapter.get_history(conversation_id, user_id, assistant_id)

    async def list_conversations(self, assistant_id: str, user_id: str) -> list[Conversation]:
        adapter = self._router.resolve(assistant_id)
        return await adapter.list_conversations(user_id, assistant_id)

    async def delete_conversation(self, assistant_id: str, conversation_id: str, user_id: str) -> Any:
        adapter = self._router.resolve(assistant_id)
        return await adapter.delete_conversation(conversation_id, user_id, assistant_id)
