from __future__ import annotations

from exchange_chat.application.exceptions import ForbiddenError, NotFoundError
from exchange_chat.domain.entities.conversation import Conversation


def assert_conversation_access(
    user_id: int,
    conversation: Conversation | None,
) -> Conversation:
    """Raise if conversation doesn't exist or the user is not one of its two participants."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if not conversation.has_participant(user_id):
        raise ForbiddenError("User not authorized")

    return conversation
