"""Names of the realtime events exchanged with clients."""
from __future__ import annotations

from enum import StrEnum


class ClientEvent(StrEnum):
    JOIN = "join"
    SEND_MESSAGE = "sendMessage"
    PING = "ping"


class ServerEvent(StrEnum):
    NEW_NOTIFICATION = "new_notification"
    NEW_CONVERSATION = "new_conversation"
    RECEIVE_MESSAGE = "receiveMessage"
    MESSAGE_SENT = "messageSent"
    MESSAGE_FAILED = "messageFailed"
    PONG = "pong"
    ERROR = "error"
