"""
Models package initialization.
"""

from .base import RecordModel, from_epoch_millis, to_epoch_millis, utcnow
from .conversation import UNTITLED, Conversation, ConversationSummary
from .message import Message, MessageRole

__all__ = [
    "RecordModel",
    "utcnow",
    "to_epoch_millis",
    "from_epoch_millis",
    # Chat models
    "Conversation",
    "ConversationSummary",
    "Message",
    "MessageRole",
    "UNTITLED",
]
