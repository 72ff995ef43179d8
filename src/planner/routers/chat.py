from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import ValidationError

from ..actions import action_to_wire
from ..assistant import ChatService, get_chat_service
from ..dispatcher import dispatch
from ..schemas import ChatRequest, ChatResponse
from ..store import RecordStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/chat",
    tags=["chat"],
)

REJECTED_ACTION_REPLY = "I couldn't save that. Could you rephrase it with a shorter title?"


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=ChatResponse,
    summary="Chat",
    description=(
        "Interpret a free-text message. Recognized requests ('add task: ...', "
        "'schedule ... on ...') are applied to the store before the reply is returned."
    ),
)
async def chat(
    payload: ChatRequest,
    service: ChatService = Depends(get_chat_service),
    store: RecordStore = Depends(get_store),
) -> ChatResponse:
    """
    Answer a chat message and apply the action it carries, if any.
    """
    outcome = await service.respond(payload.message, payload.history)
    try:
        dispatch(store, outcome.action)
    except ValidationError as e:
        logger.warning("Rejected chat action %r: %s", outcome.action, e)
        return ChatResponse(message=REJECTED_ACTION_REPLY, action=None)
    return ChatResponse(message=outcome.reply, action=action_to_wire(outcome.action))
