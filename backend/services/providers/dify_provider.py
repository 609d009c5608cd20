from typing import Any, Optional

from backend.models.schemas import ChatRequest, Conversation
from backend.services.providers.base import BaseProviderAdapter, ChatResult
from backend.services.stream_normalizer import StreamFraming

# Dify caps conversation pages at 100.
_LIST_LIMIT = 100


class DifyProvider(BaseProviderAdapter):
    """Dify app API. The app is selected by the API key."""

    name = "dify"
    default_framing = StreamFraming.RAW

    async def chat(self, request: ChatRequest) -> ChatResult:
        payload = {
            "query": request.message,
            "inputs": request.context,
            "response_mode": "streaming" if self.stream else "blocking",
            "conversation_id": request.conversation_id or "",
            "user": request.user_id,
            "files": self._files_payload(request),
        }
        return await self._send_chat("/v1/chat-messages", payload)

    async def get_history(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        return await self._request(
            "GET",
            "/v1/messages",
            params={"conversation_id": conversation_id, "user": user_id},
        )

    async def list_conversations(self, user_id: str, assistant_id: str) -> list[Conversation]:
        data = await self._request(
            "GET",
            "/v1/conversations",
            params={"user": user_id, "limit": _LIST_LIMIT},
        )
        return [
            Conversation(
                id=str(item["id"]),
                user_id=user_id,
                assistant_id=assistant_id,
                metadata={k: v for k, v in item.items() if k != "id"},
            )
            for item in self._list_items(data)
            if item.get("id") is not None
        ]

    async def delete_conversation(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        return await self._request(
            "DELETE",
            f"/v1/conversations/{conversation_id}",
            accept_statuses=(404,),
            json={"user": user_id},
        )
