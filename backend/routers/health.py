from fastapi import APIRouter, Depends

from backend.models.schemas import HealthResponse
from backend.services.chat_gateway import ChatGateway
from backend.dependencies import get_chat_gateway

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(gateway: ChatGateway = Depends(get_chat_gateway)):
    """Report liveness and the provider tags that can be routed to."""
    return HealthResponse(providers=gateway.router.registered_tags())
