"""Seed development data: a few listed books and one conversation with history."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from exchange_chat.domain.entities.book import Book
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.value_objects.enums import BookStatus
from exchange_chat.infrastructure.db.session import AsyncSessionLocal
from exchange_chat.infrastructure.db.uow import SqlAlchemyUoW
from exchange_chat.logging_config import configure_logging
from exchange_chat.services import conversation_service

logger = logging.getLogger(__name__)

LISTER_ID = 1
REQUESTER_ID = 2

BOOK_TITLES = [
    "Introduction to Algorithms",
    "Linear Algebra Done Right",
    "Organic Chemistry",
]


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        now = datetime.now(timezone.utc)

        books = []
        for title in BOOK_TITLES:
            book = await uow.books_w.create(
                Book(
                    id=uuid.uuid4(),
                    title=title,
                    lister_id=LISTER_ID,
                    status=BookStatus.AVAILABLE,
                    created_at=now,
                )
            )
            books.append(book)

        conversation, _ = await conversation_service.get_or_create_book_conversation(
            books[0].id, REQUESTER_ID, LISTER_ID, uow,
        )

        messages_data = [
            (REQUESTER_ID, "Hi! Is the algorithms book still available?"),
            (LISTER_ID, "Yes, it is. Some pencil notes in chapter 3."),
            (REQUESTER_ID, "Great, can we meet at the library tomorrow?"),
        ]
        for offset, (sender_id, content) in enumerate(messages_data):
            await uow.messages_w.create_if_not_exists(
                Message(
                    id=uuid.uuid4(),
                    conversation_id=conversation.id,
                    sender_id=sender_id,
                    content=content,
                    client_msg_id=None,
                    created_at=now + timedelta(seconds=offset),
                )
            )

        await uow.commit()
        logger.info(
            "Seeded %d books and conversation %s with %d messages",
            len(books), conversation.id, len(messages_data),
        )


def main() -> None:
    configure_logging()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
