"""Chat API v1 endpoint."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from naikkelas.api.deps import get_chat_service
from naikkelas.auth.middleware import require_auth
from naikkelas.auth.models import Identity
from naikkelas.chat.service import ChatService

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str = Field(..., max_length=20000)
    chat_id: str | None = None


class ChatResponse(BaseModel):
    chat_id: str
    message_id: str
    text: str
    tokens_used: int


@router.post("", response_model=ChatResponse)
def send_message(
    body: ChatRequest,
    identity: Identity = Depends(require_auth),
    chats: ChatService = Depends(get_chat_service),
):
    """Send a message. Requires the minimum credit balance; usage is debited after the reply."""
    reply = chats.send_message(identity.user_id, body.message, chat_id=body.chat_id)
    return ChatResponse(
        chat_id=reply.chat_id,
        message_id=reply.message_id,
        text=reply.text,
        tokens_used=reply.tokens_used,
    )
