"""Conversation directory: metadata, listing and cascading deletes."""

import logging
from collections import Counter
from collections.abc import Iterable
from typing import Any

from app.core.config import settings
from app.core.ids import new_conversation_id
from app.schemas.chat import ConversationDetail, ConversationUpdate
from app.storage.base import DataStore, RecordStore
from models.base import utcnow
from models.conversation import MUTABLE_FIELDS, UNTITLED, Conversation, ConversationSummary
from models.message import Message


logger = logging.getLogger(__name__)


class ConversationDirectory:
    """Service class for conversation metadata backed by record stores."""

    def __init__(
        self,
        conversations: RecordStore[Conversation],
        messages: RecordStore[Message],
        local_user_id: str | None = None,
        default_message_limit: int | None = None,
    ):
        """Initialize the directory.

        Args:
            conversations: Store holding conversation metadata.
            messages: Store holding messages, used for counts and cascades.
            local_user_id: Owner used when callers do not name one.
            default_message_limit: Messages returned by ``get`` by default.
        """
        self.conversations = conversations
        self.messages = messages
        self.local_user_id = local_user_id or settings.local_user_id
        self.default_message_limit = default_message_limit or settings.default_message_limit

    async def create(
        self,
        title: str | None = None,
        user_id: str | None = None,
        preset_id: str | None = None,
    ) -> Conversation:
        """Create a conversation stamped with the current time."""
        now = utcnow()
        conversation = Conversation(
            id=new_conversation_id(),
            user_id=user_id or self.local_user_id,
            title=title,
            preset_id=preset_id,
            created_at=now,
            updated_at=now,
        )
        created = await self.conversations.upsert(conversation.id, conversation)
        logger.info(f"Created conversation {created.id} for user {created.user_id}")
        return created

    async def list_by_user(self, user_id: str | None = None) -> list[ConversationSummary]:
        """Conversations owned by ``user_id``, most recently updated first.

        Each entry carries a message count derived from the message store.
        """
        user_id = user_id or self.local_user_id
        try:
            owned = await self.conversations.find_many(lambda c: c.user_id == user_id)
            counts = Counter(m.conversation_id for m in await self.messages.find_many())
        except Exception as e:
            logger.error(f"Failed to list conversations for user {user_id}: {str(e)}")
            return []

        summaries = [
            ConversationSummary(**conversation.model_dump(), message_count=counts.get(conversation.id, 0))
            for conversation in owned
        ]
        summaries.sort(key=lambda c: c.updated_at, reverse=True)
        logger.debug(f"Found {len(summaries)} conversations for user {user_id}")
        return summaries

    async def get(self, conversation_id: str, message_limit: int | None = None) -> ConversationDetail:
        """Join a conversation's metadata with its newest ``message_limit`` messages.

        Missing conversations and load failures both come back as an
        ``"Untitled"`` conversation, with whatever messages could be read.
        """
        limit = self.default_message_limit if message_limit is None else message_limit
        try:
            conversation = await self.conversations.find_by_id(conversation_id)
            messages = await self.find_messages(conversation_id, limit)
        except Exception as e:
            logger.error(f"Failed to load conversation {conversation_id}: {str(e)}")
            return ConversationDetail(id=conversation_id, title=UNTITLED, messages=[])

        if conversation is None:
            return ConversationDetail(id=conversation_id, title=UNTITLED, messages=messages)

        return ConversationDetail(
            id=conversation.id,
            title=conversation.display_title,
            user_id=conversation.user_id,
            preset_id=conversation.preset_id,
            version_graph=conversation.version_graph,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            messages=messages,
        )

    async def find_messages(self, conversation_id: str, limit: int) -> list[Message]:
        """Newest ``limit`` messages of a conversation, oldest first."""
        if limit <= 0:
            return []
        messages = await self.messages.find_many(lambda m: m.conversation_id == conversation_id)
        messages.sort(key=Message.sort_key)
        return messages[-limit:]

    async def count_messages(self, conversation_id: str) -> int:
        return await self.messages.count(lambda m: m.conversation_id == conversation_id)

    async def update_metadata(
        self, conversation_id: str, patch: ConversationUpdate | dict[str, Any]
    ) -> Conversation | None:
        """Apply a metadata patch and bump ``updated_at``.

        Returns:
            The updated conversation, or None if it does not exist.
        """
        if isinstance(patch, ConversationUpdate):
            patch = patch.model_dump(exclude_unset=True)
        changes = {key: value for key, value in patch.items() if key in MUTABLE_FIELDS}
        changes["updated_at"] = utcnow()

        updated = await self.conversations.update(conversation_id, changes)
        if updated:
            logger.info(f"Updated conversation {conversation_id}")
        return updated

    async def touch(self, conversation_id: str) -> Conversation | None:
        """Bump ``updated_at`` only. A missing conversation is a no-op."""
        return await self.conversations.update(conversation_id, {"updated_at": utcnow()})

    async def delete(self, conversation_id: str) -> bool:
        """Delete a conversation and every message that references it.

        Returns:
            True if the conversation existed.
        """

        def remove_owned(store: DataStore[Message]) -> int:
            owned = [mid for mid, m in store.data.items() if m.conversation_id == conversation_id]
            for message_id in owned:
                del store.data[message_id]
            return len(owned)

        removed = await self.messages.mutate(remove_owned)
        deleted = await self.conversations.delete(conversation_id)
        if deleted:
            logger.info(f"Deleted conversation {conversation_id} and {removed} messages")
        return deleted

    async def delete_many(self, conversation_ids: Iterable[str]) -> int:
        """Delete each conversation in turn; one failure does not stop the rest.

        Returns:
            Number of conversations that existed and were deleted.
        """
        deleted = 0
        for conversation_id in conversation_ids:
            try:
                if await self.delete(conversation_id):
                    deleted += 1
            except Exception as e:
                logger.error(f"Failed to delete conversation {conversation_id}: {str(e)}")
        return deleted
