from __future__ import annotations

from exchange_chat.domain.entities.book import Book
from exchange_chat.infrastructure.db.models.book import BookModel


def model_to_entity(model: BookModel) -> Book:
    return Book(
        id=model.id,
        title=model.title,
        lister_id=model.lister_id,
        status=model.status,
        created_at=model.created_at,
    )


def entity_to_model(entity: Book) -> BookModel:
    return BookModel(
        id=entity.id,
        title=entity.title,
        lister_id=entity.lister_id,
        status=entity.status,
        created_at=entity.created_at,
    )
