from typing import Any, Optional

from backend.models.schemas import ChatRequest, Conversation
from backend.services.providers.base import BaseProviderAdapter, ChatResult
from backend.services.stream_normalizer import StreamFraming


class SQLBotProvider(BaseProviderAdapter):
    """SQLBot text-to-SQL assistants. Streams plain text chunks."""

    name = "sqlbot"
    default_framing = StreamFraming.RAW

    async def chat(self, request: ChatRequest) -> ChatResult:
        payload = {
            "question": request.message,
            "chat_id": request.conversation_id,
            "assistant_id": request.assistant_id,
            "user_id": request.user_id,
            "files": self._files_payload(request),
            "context": request.context,
            "stream": self.stream,
        }
        return await self._send_chat("/api/v1/chat/question", payload)

    async def get_history(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        return await self._request(
            "GET",
            f"/api/v1/chat/record/{conversation_id}",
            params={"user_id": user_id},
        )

    async def list_conversations(self, user_id: str, assistant_id: str) -> list[Conversation]:
        data = await self._request(
            "GET",
            "/api/v1/chat/list",
            params={"user_id": user_id, "assistant_id": assistant_id},
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
            f"/api/v1/chat/{conversation_id}",
            accept_statuses=(404,),
            params={"user_id": user_id},
        )
