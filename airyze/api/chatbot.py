"""Air-quality chatbot endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from airyze.core.context import AppContext, get_context
from airyze.core.errors import ValidationError
from airyze.schemas.personalization import ChatClearRequest, ChatMessageRequest
from airyze.services.chatbot_service import generate_reply

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chatbot", tags=["chatbot"])


@router.post("/message")
def send_message(data: ChatMessageRequest, ctx: AppContext = Depends(get_context)):
    if not data.message or not data.message.strip():
        raise ValidationError("Message is required")
    if not data.session_id:
        raise ValidationError("Session ID is required")

    logger.info("Chat message for session %s", data.session_id)
    reply = generate_reply(
        ctx.chain,
        ctx.conversations,
        data.message,
        data.session_id,
        context=data.context.model_dump(by_alias=True),
        timeout=ctx.settings.chat_timeout_seconds,
    )
    return {"success": True, "response": reply, "sessionId": data.session_id}


@router.post("/clear")
def clear_conversation(data: ChatClearRequest, ctx: AppContext = Depends(get_context)):
    if not data.session_id:
        raise ValidationError("Session ID is required")
    ctx.conversations.clear(data.session_id)
    return {"success": True, "message": "Conversation history cleared"}
