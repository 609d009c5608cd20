import logging
from typing import Any, Optional

from backend.models.schemas import ChatRequest, Conversation
from backend.services.providers.base import BaseProviderAdapter, ChatResult
from backend.services.stream_normalizer import StreamFraming

logger = logging.getLogger(__name__)


class MaxKBProvider(BaseProviderAdapter):
    """MaxKB knowledge-base assistants.

    MaxKB streams SSE events whose ``data:`` lines carry JSON with an
    ``answer`` delta and a ``done`` flag on the last event.

    Conversation listing is disabled by default (``list_upstream=False``):
    MaxKB's listing endpoint returns each thread more than once, so the
    adapter reports an empty list instead of querying it. This is a
    MaxKB-specific workaround and is not applied to other providers.
    """

    name = "maxkb"
    default_framing = StreamFraming.SSE

    def __init__(self, api_key: str, base_url: str, list_upstream: bool = False, **kwargs):
        super().__init__(api_key, base_url, **kwargs)
        self.list_upstream = list_upstream

    async def chat(self, request: ChatRequest) -> ChatResult:
        payload = {
            "message": request.message,
            "assistant_id": request.assistant_id,
            "conversation_id": request.conversation_id,
            "user_id": request.user_id,
            "files": self._files_payload(request),
            "context": request.context,
        }
        return await self._send_chat("/api/v1/chat/completions", payload)

    async def get_history(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        return await self._request(
            "GET",
            f"/api/v1/conversations/{conversation_id}",
            params={"user_id": user_id},
        )

    async def list_conversations(self, user_id: str, assistant_id: str) -> list[Conversation]:
        if not self.list_upstream:
            return []

        data = await self._request(
            "GET",
            "/api/v1/conversations",
            params={"user_id": user_id, "assistant_id": assistant_id},
        )
        conversations = []
        seen = set()
        for item in self._list_items(data):
            conv_id = str(item.get("id", ""))
            if not conv_id or conv_id in seen:
                continue
            seen.add(conv_id)
            metadata = {k: v for k, v in item.items() if k != "id"}
            conversations.append(
                Conversation(
                    id=conv_id,
                    user_id=user_id,
                    assistant_id=assistant_id,
                    metadata=metadata,
                )
            )
        return conversations

    async def delete_conversation(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        return await self._request(
            "DELETE",
            f"/api/v1/conversations/{conversation_id}",
            accept_statuses=(404,),
            params={"user_id": user_id},
        )
