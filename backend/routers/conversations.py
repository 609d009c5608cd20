import logging

from fastapi import APIRouter, Depends, HTTPException

from backend.errors import ProviderCallFailed, UnsupportedAssistantType
from backend.models.schemas import Conversation
from backend.services.chat_gateway import ChatGateway
from backend.dependencies import get_chat_gateway, get_current_user_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("/{assistant_id}", response_model=list[Conversation])
async def list_conversations(
    assistant_id: str,
    user_id: str = Depends(get_current_user_id),
    gateway: ChatGateway = Depends(get_chat_gateway),
):
    try:
        return await gateway.list_conversations(assistant_id, user_id)
    except UnsupportedAssistantType as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ProviderCallFailed as e:
        logger.error("Listing conversations failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list conversations")


@router.get("/{assistant_id}/{conversation_id}/history")
async def get_history(
    assistant_id: str,
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    gateway: ChatGateway = Depends(get_chat_gateway),
):
    try:
        return await gateway.get_history(assistant_id, conversation_id, user_id)
    except UnsupportedAssistantType as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ProviderCallFailed as e:
        logger.error("Fetching history of %s failed: %s", conversation_id, e)
        raise HTTPException(status_code=500, detail="Failed to get conversation history")


@router.delete("/{assistant_id}/{conversation_id}")
async def delete_conversation(
    assistant_id: str,
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    gateway: ChatGateway = Depends(get_chat_gateway),
):
    try:
        return await gateway.delete_conversation(assistant_id, conversation_id, user_id)
    except UnsupportedAssistantType as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ProviderCallFailed as e:
        logger.error("Deleting conversation %s failed: %s", conversation_id, e)
        raise HTTPException(status_code=500, detail="Failed to delete conversation")
