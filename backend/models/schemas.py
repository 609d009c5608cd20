from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Chat ---
class FileAttachment(CamelModel):
    name: str
    content: str = ""
    mime_type: str = Field(default="application/octet-stream", alias="type")


class ChatRequestBody(CamelModel):
    """Inbound body of POST /chat."""
    message: str = Field(default="", max_length=50000)
    assistant_id: str = Field(..., min_length=1)
    conversation_id: Optional[str] = None
    files: list[FileAttachment] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_message_or_files(self):
        if not self.message.strip() and not self.files:
            raise ValueError("Either message or files must be provided")
        return self


class ChatRequest(ChatRequestBody):
    """Chat request as dispatched to an adapter, with the caller identity."""
    user_id: str = "anonymous"

    @classmethod
    def from_body(cls, body: ChatRequestBody, user_id: str) -> "ChatRequest":
        return cls(**body.model_dump(), user_id=user_id)


# --- Conversations ---
class Conversation(CamelModel):
    id: str
    user_id: str
    assistant_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str = "0.1.0"
    providers: list[str] = []
