import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from backend.errors import ProviderCallFailed, UnsupportedAssistantType
from backend.models.schemas import ChatRequest, ChatRequestBody
from backend.services.chat_gateway import ChatGateway
from backend.dependencies import get_chat_gateway, get_current_user_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@router.post("")
async def chat(
    body: ChatRequestBody,
    user_id: str = Depends(get_current_user_id),
    gateway: ChatGateway = Depends(get_chat_gateway),
):
    """Send a message to the assistant; streams SSE when the provider does."""
    request = ChatRequest.from_body(body, user_id)
    try:
        adapter, result = await gateway.chat(request)
    except UnsupportedAssistantType as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ProviderCallFailed as e:
        logger.error("Chat request failed: %s", e)
        raise HTTPException(status_code=500, detail="Chat request failed")

    if not result.is_stream:
        return JSONResponse(result.payload)

    async def event_generator():
        events = gateway.stream_events(adapter, result)
        try:
            async for event in events:
                yield {"data": json.dumps(event.to_dict(), ensure_ascii=False)}
        finally:
            await events.aclose()

    return EventSourceResponse(event_generator(), headers=SSE_HEADERS, sep="\n")
