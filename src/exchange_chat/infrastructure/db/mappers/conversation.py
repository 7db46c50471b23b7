from __future__ import annotations

from exchange_chat.domain.entities.conversation import Conversation
from exchange_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        book_id=model.book_id,
        participant_low=model.participant_low,
        participant_high=model.participant_high,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        book_id=entity.book_id,
        participant_low=entity.participant_low,
        participant_high=entity.participant_high,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
