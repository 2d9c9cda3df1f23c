"""Capped append service for conversation messages."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.ids import new_message_id
from app.exceptions.base import ValidationError
from app.schemas.chat import AppendResult, MessageInput
from app.storage.base import DataStore, RecordStore
from models.base import utcnow
from models.message import Message

if TYPE_CHECKING:
    from app.domains.conversation.service import ConversationDirectory


logger = logging.getLogger(__name__)


class CappedAppendService:
    """Append messages to a conversation and trim it to a retention cap.

    Append and trim run as a single mutation on the message store, so no other
    append, update or delete against that store can interleave with them.
    """

    def __init__(
        self,
        messages: RecordStore[Message],
        directory: ConversationDirectory | None = None,
        default_cap: int | None = None,
    ):
        """Initialize the service.

        Args:
            messages: Store holding every message record.
            directory: Conversation directory notified after each append.
            default_cap: Cap used when a call does not pass one.
        """
        self.messages = messages
        self.directory = directory
        self.default_cap = settings.message_cap if default_cap is None else default_cap

    async def append_capped(
        self,
        conversation_id: str,
        new_messages: Iterable[MessageInput | dict[str, Any]],
        cap: int | None = None,
    ) -> AppendResult:
        """Append messages, then evict the oldest ones beyond ``cap``.

        Args:
            conversation_id: Conversation the messages belong to. It does not
                need to exist in the directory.
            new_messages: Role/content pairs in the order they should be kept.
            cap: Maximum messages retained for the conversation.

        Returns:
            AppendResult with the created messages (even those evicted by this
            same call) and the ids that were deleted.

        Raises:
            ValidationError: If any message has an unknown role or is missing its content.
        """
        cap = self.default_cap if cap is None else cap
        try:
            items = [MessageInput.model_validate(item) for item in new_messages]
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid message payload",
                details={"conversation_id": conversation_id, "errors": e.error_count()},
            ) from e

        def apply(store: DataStore[Message]) -> tuple[list[Message], list[str]]:
            now = utcnow()
            next_seq = max((m.seq for m in store.data.values()), default=0) + 1
            created = []
            for offset, item in enumerate(items):
                message_id = new_message_id()
                while message_id in store.data:
                    message_id = new_message_id()
                message = Message(
                    id=message_id,
                    conversation_id=conversation_id,
                    role=item.role,
                    content=item.content,
                    created_at=now,
                    seq=next_seq + offset,
                )
                store.data[message.id] = message
                created.append(message.model_copy(deep=True))

            owned = sorted(
                (m for m in store.data.values() if m.conversation_id == conversation_id),
                key=Message.sort_key,
            )
            overflow = len(owned) - cap
            deleted_ids = [m.id for m in owned[:overflow]] if overflow > 0 else []
            for message_id in deleted_ids:
                del store.data[message_id]
            return created, deleted_ids

        try:
            created, deleted_ids = await self.messages.mutate(apply)
        except Exception as e:
            logger.error(f"Failed to append messages to conversation {conversation_id}: {str(e)}")
            return AppendResult(created=[], deleted_ids=[])

        logger.info(
            f"Appended {len(created)} messages to conversation {conversation_id}, "
            f"evicted {len(deleted_ids)}"
        )
        await self._touch_conversation(conversation_id)
        return AppendResult(created=created, deleted_ids=deleted_ids)

    async def _touch_conversation(self, conversation_id: str) -> None:
        """Bump the conversation's ``updated_at``; failures are logged and ignored."""
        if self.directory is None:
            return
        try:
            await self.directory.touch(conversation_id)
        except Exception as e:
            logger.warning(f"Could not refresh conversation {conversation_id} timestamp: {str(e)}")
