"""Assistant gateway API endpoint."""

from fastapi import APIRouter, Depends

from familyhub.api.deps import get_assistant
from familyhub.schemas.assistant import AssistantChatRequest, AssistantChatResponse
from familyhub.services.assistant_service import AssistantGateway

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.post("/chat", response_model=AssistantChatResponse)
async def assistant_chat(
    request: AssistantChatRequest,
    assistant: AssistantGateway = Depends(get_assistant),
):
    return AssistantChatResponse(reply=await assistant.chat(request))
