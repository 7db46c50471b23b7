from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from exchange_chat.application.uow import UnitOfWork
from exchange_chat.domain.entities.exchange_request import ExchangeRequest
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.value_objects.enums import BookStatus, RequestStatus
from exchange_chat.services import conversation_service
from exchange_chat.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

DEFAULT_OPENING_MESSAGE = "I am interested in this book."
MAX_MESSAGE_LENGTH = 200


async def create_request(
    book_id: uuid.UUID,
    message: str | None,
    principal: Principal,
    uow: UnitOfWork,
    dispatcher: NotificationDispatcher,
) -> ExchangeRequest:
    """Create an exchange request, open the chat for it and notify the lister.

    The request is committed first. Conversation setup runs in a second commit
    and may fail without undoing the request; the lister is only notified when
    both exist. Notification is best-effort and never affects the result.
    """
    requester_id = principal.subject_id
    message = (message or "").strip()
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

    book = await uow.books.get_by_id(book_id)
    if book is None:
        raise NotFoundError("Book not found")

    if book.lister_id == requester_id:
        raise ValidationError("You cannot request your own book")

    if await uow.requests.find_active(book_id, requester_id) is not None:
        raise ConflictError("You already have an active request for this book")

    now = datetime.now(timezone.utc)
    request = await uow.requests_w.create(
        ExchangeRequest(
            id=uuid.uuid4(),
            requester_id=requester_id,
            book_id=book_id,
            status=RequestStatus.PENDING,
            message=message,
            created_at=now,
            updated_at=now,
        )
    )
    await uow.commit()

    conversation_id: uuid.UUID | None = None
    try:
        conversation, created = await conversation_service.get_or_create_book_conversation(
            book_id, requester_id, book.lister_id, uow,
        )
        if created:
            logger.info("Created conversation %s for book %s", conversation.id, book_id)
        await uow.messages_w.create_if_not_exists(
            Message(
                id=uuid.uuid4(),
                conversation_id=conversation.id,
                sender_id=requester_id,
                content=message or DEFAULT_OPENING_MESSAGE,
                client_msg_id=None,
                created_at=datetime.now(timezone.utc),
            )
        )
        await uow.conversations_w.touch(conversation.id)
        await uow.commit()
        conversation_id = conversation.id
    except Exception:
        logger.exception("Chat creation failed for request %s", request.id)
        await uow.rollback()

    if conversation_id is not None:
        await dispatcher.notify_new_request(
            book.lister_id,
            book.title,
            principal.display_name,
            book.id,
            conversation_id,
        )

    return request


async def list_received_requests(
    principal: Principal,
    uow: UnitOfWork,
) -> list[ExchangeRequest]:
    """Requests for any book the caller lists, newest first."""
    book_ids = await uow.books.list_ids_for_lister(principal.subject_id)
    return await uow.requests.list_for_books(book_ids)


async def list_sent_requests(
    principal: Principal,
    uow: UnitOfWork,
) -> list[ExchangeRequest]:
    return await uow.requests.list_for_requester(principal.subject_id)


async def respond_to_request(
    request_id: uuid.UUID,
    status: RequestStatus,
    principal: Principal,
    uow: UnitOfWork,
) -> ExchangeRequest:
    """Accept or decline a pending request. Accepting marks the book sold."""
    if status not in (RequestStatus.ACCEPTED, RequestStatus.DECLINED):
        raise ValidationError("Invalid status. Must be 'Accepted' or 'Declined'")

    request = await uow.requests.get_by_id(request_id)
    if request is None:
        raise NotFoundError("Request not found")

    book = await uow.books.get_by_id(request.book_id)
    if book is None:
        raise NotFoundError("Book not found")

    if book.lister_id != principal.subject_id:
        raise ForbiddenError("Not authorized to respond to this request")

    if request.status != RequestStatus.PENDING:
        raise ValidationError(f"This request has already been {request.status.lower()}")

    updated = await uow.requests_w.set_status(request_id, status)
    if status == RequestStatus.ACCEPTED:
        await uow.books_w.set_status(book.id, BookStatus.SOLD)
    await uow.commit()
    return updated


async def check_request_status(
    book_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> str | None:
    latest = await uow.requests.latest_for(book_id, principal.subject_id)
    return latest.status if latest else None
