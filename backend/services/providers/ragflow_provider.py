import logging
from typing import Any, Optional

from backend.models.schemas import ChatRequest, Conversation
from backend.services.providers.base import BaseProviderAdapter, ChatResult
from backend.services.stream_normalizer import StreamFraming

logger = logging.getLogger(__name__)


class RAGFlowProvider(BaseProviderAdapter):
    """RAGFlow chat assistants.

    RAGFlow scopes sessions by chat assistant, so the adapter reads the chat
    id from the part of the assistant identifier after ``ragflow:``.
    Sessions map onto conversations.
    """

    name = "ragflow"
    default_framing = StreamFraming.RAW

    def _chat_path(self, assistant_id: Optional[str]) -> str:
        chat_id = self.assistant_suffix(assistant_id)
        if not chat_id:
            logger.warning("RAGFlow call without chat id (assistant_id=%r)", assistant_id)
        return f"/api/v1/chats/{chat_id}"

    async def chat(self, request: ChatRequest) -> ChatResult:
        payload = {
            "question": request.message,
            "stream": self.stream,
            "user_id": request.user_id,
        }
        if request.conversation_id:
            payload["session_id"] = request.conversation_id
        if request.files:
            payload["files"] = self._files_payload(request)
        if request.context:
            payload.update(request.context)
        return await self._send_chat(f"{self._chat_path(request.assistant_id)}/completions", payload)

    async def get_history(
        self, conversation_id: str, user_id: str, assistant_id: Optional[str] = None
    ) -> Any:
        return await self._request(
            "GET",
            f"{self._chat_path(assistant_id)}/sessions",
            params={"id": conversation_id, "user_id": user_id},
        )

    async def list_conversations(self, user_id: str, assistant_id: str) -> list[Conversation]:
        data = await self._request(
            "GET",
            f"{self._chat_path(assistant_id)}/sessions",
            params={"user_id": user_id, "orderby": "update_time", "desc": "true"},
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
            f"{self._chat_path(assistant_id)}/sessions",
            accept_statuses=(404,),
            json={"ids": [conversation_id]},
        )
