from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from learnboard.chat.chat_service import ChatService
from learnboard.core.dependencies import get_chat_service

router = APIRouter(prefix="/api/chat", tags=["Chat"])


class ChatRequest(BaseModel):
    message: Optional[str] = Field(default="", max_length=4000)
    email: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    text: str
    model: str


@router.post("", response_model=ChatResponse)
async def chat(data: ChatRequest, service: ChatService = Depends(get_chat_service)):
    return await service.reply(data.email, data.message)
