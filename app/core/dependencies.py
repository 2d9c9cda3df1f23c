# app/core/dependencies.py
import logging
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import Request

from app.core.config import Settings, StorageBackendEnum, settings
from app.domains.conversation.service import ConversationDirectory
from app.domains.message.service import CappedAppendService
from app.storage import (
    CONVERSATIONS_KEY,
    MESSAGES_KEY,
    DocumentRecordStore,
    FileKeyValueBackend,
    KeyValueRecordStore,
    KeyValueStorage,
    MemoryKeyValueBackend,
    RecordStore,
)
from models import Conversation, Message

logger = logging.getLogger(__name__)


@dataclass
class StoreContainer:
    """Stores and services wired for one process.

    Built once at startup and closed at shutdown; nothing here is a module
    level singleton.
    """

    conversations: RecordStore[Conversation]
    messages: RecordStore[Message]
    directory: ConversationDirectory = field(init=False)
    append_service: CappedAppendService = field(init=False)
    backend: str = StorageBackendEnum.memory.value
    kv_storage: KeyValueStorage | None = None

    def __post_init__(self):
        self.directory = ConversationDirectory(self.conversations, self.messages)
        self.append_service = CappedAppendService(self.messages, directory=self.directory)

    async def close(self) -> None:
        """Flush every store to its substrate."""
        for store in (self.conversations, self.messages):
            try:
                await store.close()
            except Exception as e:
                logger.error("Failed to close store %s: %s", store.location, str(e))


def build_container(config: Settings | None = None) -> StoreContainer:
    """Select the persistence substrate from configuration and wire the services."""
    config = config or settings
    backend = config.storage_backend
    data_dir: Path | None = config.data_dir

    if backend == StorageBackendEnum.kv:
        kv_backend = FileKeyValueBackend(data_dir) if data_dir else MemoryKeyValueBackend()
        storage = KeyValueStorage(kv_backend)
        container = StoreContainer(
            conversations=KeyValueRecordStore("chats", Conversation, storage, CONVERSATIONS_KEY),
            messages=KeyValueRecordStore("chat-messages", Message, storage, MESSAGES_KEY),
            backend=backend.value,
            kv_storage=storage,
        )
    else:
        directory = data_dir if backend == StorageBackendEnum.document else None
        container = StoreContainer(
            conversations=DocumentRecordStore("chats", Conversation, directory),
            messages=DocumentRecordStore("chat-messages", Message, directory),
            backend=backend.value,
        )

    logger.info(
        "Record stores ready: backend=%s conversations=%s messages=%s",
        container.backend,
        container.conversations.location,
        container.messages.location,
    )
    return container


def get_container(request: Request) -> StoreContainer:
    """Container attached to the application during startup."""
    return request.app.state.stores


def get_directory(request: Request) -> ConversationDirectory:
    return get_container(request).directory


def get_append_service(request: Request) -> CappedAppendService:
    return get_container(request).append_service


def get_current_user_id() -> str:
    """The desktop deployment has a single implicit local user."""
    return settings.local_user_id
