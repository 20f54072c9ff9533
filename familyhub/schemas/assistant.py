"""Assistant gateway schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    role: str = "user"  # 'user' | 'assistant' | 'model'
    text: str = ""


class AssistantChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)
    system: Optional[str] = None
    temperature: Optional[float] = None


class AssistantChatResponse(BaseModel):
    reply: str
