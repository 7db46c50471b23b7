from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from exchange_chat.api.deps import CurrentPrincipal, UoWDep
from exchange_chat.api.v1.schemas.conversation import ConversationResponse
from exchange_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[ConversationResponse]:
    convs = await conversation_service.list_user_conversations(principal, limit, uow)
    return [ConversationResponse.from_entity(c) for c in convs]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ConversationResponse.from_entity(conv)
