"""
Conversation record for the chat directory.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_serializer, field_validator

from .base import RecordModel, to_epoch_millis

UNTITLED = "Untitled"

# Fields a metadata patch may change; id, owner and created_at are fixed.
MUTABLE_FIELDS = frozenset({"title", "preset_id", "version_graph", "updated_at"})


class Conversation(RecordModel):
    """
    Represents a conversation owned by a single user.

    The message count is derived from the message store and never stored here.
    """

    user_id: str
    title: str | None = None
    preset_id: str | None = None
    version_graph: dict[str, Any] | None = None
    updated_at: datetime

    @field_validator("updated_at")
    @classmethod
    def ensure_updated_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_serializer("updated_at", when_used="json")
    def serialize_updated_at(self, value: datetime) -> int:
        return to_epoch_millis(value)

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED


class ConversationSummary(Conversation):
    """Conversation annotated with its current message count."""

    message_count: int = Field(default=0, ge=0)
