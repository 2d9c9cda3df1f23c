"""Chat schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_serializer

from models.base import to_epoch_millis
from models.conversation import UNTITLED
from models.message import Message, MessageRole

from .base import BaseSchema


class MessageInput(BaseSchema):
    """Schema for a message to append to a conversation."""

    role: MessageRole = Field(default=MessageRole.USER, description="Message role")
    content: str = Field(..., description="Message content, stored verbatim")


class AppendMessagesRequest(BaseSchema):
    """Schema for appending messages with a retention cap."""

    messages: list[MessageInput] = Field(default=[], description="Messages in append order")
    cap: int | None = Field(None, description="Maximum messages to retain, defaults to configured cap")


class AppendResult(BaseSchema):
    """Schema for the outcome of a capped append."""

    created: list[Message] = Field(default=[], description="Messages created by this call")
    deleted_ids: list[str] = Field(default=[], description="Ids evicted to honour the cap")


class ConversationCreate(BaseSchema):
    """Schema for creating a new conversation."""

    title: str | None = Field(None, max_length=255, description="Optional conversation title")
    user_id: str | None = Field(None, description="Owner, defaults to the local user")
    preset_id: str | None = Field(None, description="Prompt preset the conversation was started from")


class ConversationUpdate(BaseSchema):
    """Schema for patching conversation metadata."""

    title: str | None = Field(None, max_length=255)
    preset_id: str | None = None
    version_graph: dict[str, Any] | None = None


class ConversationDetail(BaseSchema):
    """Schema for a conversation joined with its most recent messages."""

    id: str
    title: str = Field(default=UNTITLED)
    user_id: str | None = None
    preset_id: str | None = None
    version_graph: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    messages: list[Message] = Field(default=[], description="Messages, oldest first")

    @field_serializer("created_at", "updated_at", when_used="json")
    def serialize_timestamps(self, value: datetime | None) -> int | None:
        return to_epoch_millis(value) if value is not None else None


class DeleteConversationsRequest(BaseSchema):
    """Schema for bulk conversation deletion."""

    ids: list[str] = Field(default=[], description="Conversation ids to delete")


ConversationDetail.model_rebuild()
AppendResult.model_rebuild()
