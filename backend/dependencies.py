from functools import lru_cache
from typing import Mapping, Optional

from fastapi import Header, Request

from backend.config import get_settings
from backend.services.assistant_router import AssistantRouter
from backend.services.chat_gateway import ChatGateway
from backend.services.providers.base import BaseProviderAdapter
from backend.services.providers.registry import build_adapter_registry

ANONYMOUS_USER = "anonymous"


@lru_cache
def get_adapter_registry() -> Mapping[str, BaseProviderAdapter]:
    return build_adapter_registry(get_settings())


def get_assistant_router() -> AssistantRouter:
    return AssistantRouter(get_adapter_registry())


def get_chat_gateway() -> ChatGateway:
    return ChatGateway(get_assistant_router())


def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    """Identity set by an upstream auth layer, else the X-User-Id header."""
    user_id = getattr(request.state, "user_id", None) or x_user_id
    return user_id or ANONYMOUS_USER
