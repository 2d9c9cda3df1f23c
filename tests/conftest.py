# tests/conftest.py
import os

# Set up test environment variables BEFORE any other imports
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.dependencies import StoreContainer
from app.domains.conversation.service import ConversationDirectory
from app.domains.message.service import CappedAppendService
from app.storage import (
    CONVERSATIONS_KEY,
    MESSAGES_KEY,
    DocumentRecordStore,
    KeyValueRecordStore,
    KeyValueStorage,
    MemoryKeyValueBackend,
)
from models import Conversation, Message


@pytest.fixture
def kv_backend():
    """In-memory key/value backend standing in for localStorage."""
    return MemoryKeyValueBackend()


@pytest.fixture
def kv_storage(kv_backend):
    return KeyValueStorage(kv_backend)


@pytest.fixture(params=["document", "kv"])
def substrate(request, kv_storage):
    """Conversation and message stores for each persistence substrate."""
    if request.param == "kv":
        return (
            KeyValueRecordStore("chats", Conversation, kv_storage, CONVERSATIONS_KEY),
            KeyValueRecordStore("chat-messages", Message, kv_storage, MESSAGES_KEY),
        )
    return (
        DocumentRecordStore("chats", Conversation),
        DocumentRecordStore("chat-messages", Message),
    )


@pytest.fixture
def conversation_store(substrate):
    return substrate[0]


@pytest.fixture
def message_store(substrate):
    return substrate[1]


@pytest.fixture
def directory(conversation_store, message_store):
    """Conversation directory over the parametrized substrate."""
    return ConversationDirectory(conversation_store, message_store, local_user_id="local-user")


@pytest.fixture
def append_service(message_store, directory):
    """Capped append service with a generous default cap."""
    return CappedAppendService(message_store, directory=directory, default_cap=50)


@pytest.fixture
def container():
    return StoreContainer(
        conversations=DocumentRecordStore("chats", Conversation),
        messages=DocumentRecordStore("chat-messages", Message),
    )


@pytest_asyncio.fixture
async def client(container):
    """Create a test client bound to a fresh in-memory store container."""
    from app.main import create_app

    app = create_app(stores=container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
