from __future__ import annotations

from typing import AsyncContextManager, Callable, Protocol

from exchange_chat.application.repositories.book import BookReader, BookWriter
from exchange_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from exchange_chat.application.repositories.exchange_request import (
    ExchangeRequestReader,
    ExchangeRequestWriter,
)
from exchange_chat.application.repositories.message import MessageReader, MessageWriter


class UnitOfWork(Protocol):
    books: BookReader
    books_w: BookWriter
    requests: ExchangeRequestReader
    requests_w: ExchangeRequestWriter
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


# Opens a fresh unit of work for code that runs outside a request scope.
UnitOfWorkFactory = Callable[[], AsyncContextManager[UnitOfWork]]
