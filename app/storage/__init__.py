"""Record stores and the substrates behind them."""

from .base import DataStore, RecordStore
from .document_store import DocumentRecordStore
from .kv_store import (
    CONVERSATIONS_KEY,
    MESSAGES_KEY,
    FileKeyValueBackend,
    KeyValueBackend,
    KeyValueRecordStore,
    KeyValueStorage,
    MemoryKeyValueBackend,
)
from .serializer import MutationSerializer

__all__ = [
    "DataStore",
    "RecordStore",
    "MutationSerializer",
    "DocumentRecordStore",
    "KeyValueRecordStore",
    "KeyValueStorage",
    "KeyValueBackend",
    "MemoryKeyValueBackend",
    "FileKeyValueBackend",
    "CONVERSATIONS_KEY",
    "MESSAGES_KEY",
]
