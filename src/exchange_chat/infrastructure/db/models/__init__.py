"""Import all models so Base.metadata knows every table."""
from exchange_chat.infrastructure.db.models.book import BookModel
from exchange_chat.infrastructure.db.models.conversation import ConversationModel
from exchange_chat.infrastructure.db.models.exchange_request import ExchangeRequestModel
from exchange_chat.infrastructure.db.models.message import MessageModel

__all__ = [
    "BookModel",
    "ConversationModel",
    "ExchangeRequestModel",
    "MessageModel",
]
