from __future__ import annotations

from exchange_chat.domain.entities.exchange_request import ExchangeRequest
from exchange_chat.infrastructure.db.models.exchange_request import ExchangeRequestModel


def model_to_entity(model: ExchangeRequestModel) -> ExchangeRequest:
    return ExchangeRequest(
        id=model.id,
        requester_id=model.requester_id,
        book_id=model.book_id,
        status=model.status,
        message=model.message,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: ExchangeRequest) -> ExchangeRequestModel:
    return ExchangeRequestModel(
        id=entity.id,
        requester_id=entity.requester_id,
        book_id=entity.book_id,
        status=entity.status,
        message=entity.message,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
