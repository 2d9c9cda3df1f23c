"""
Message record stored per conversation.
"""

import enum

from .base import RecordModel


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(RecordModel):
    """
    Represents a single chat turn.

    ``seq`` is assigned by the message store on insert and breaks ties between
    messages that share a ``created_at`` instant.
    """

    conversation_id: str
    role: MessageRole
    content: str
    seq: int = 0

    def sort_key(self) -> tuple:
        return (self.created_at, self.seq)
