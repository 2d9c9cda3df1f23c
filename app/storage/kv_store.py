"""Key/value record store, modelled on a browser ``localStorage``.

Every collection is a single JSON blob under one key. Reads deserialize the
blob each time and writes replace it whole, so several processes of the same
desktop shell (or the shell and a devtools console) see each other's writes.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from app.exceptions.storage import StorageWriteError
from app.storage.base import RecordStore, T
from app.storage.files import atomic_write_text

logger = logging.getLogger(__name__)

CONVERSATIONS_KEY = "PC_CHATS"
MESSAGES_KEY = "PC_MESSAGES"


class KeyValueBackend(Protocol):
    """Synchronous string key/value API."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...


class MemoryKeyValueBackend:
    """Process-local key/value backend."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileKeyValueBackend:
    """One file per key inside a directory."""

    suffix = ".json"

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}{self.suffix}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        atomic_write_text(self._path(key), value)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob(f"*{self.suffix}"))

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)


class KeyValueStorage:
    """JSON helpers over a backend that never raise to the caller."""

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend
        self._factory_reset_in_progress = False

    @property
    def factory_reset_in_progress(self) -> bool:
        return self._factory_reset_in_progress

    def get_json(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.backend.get_item(key)
            if not raw:
                return default
            return json.loads(raw)
        except Exception as e:
            logger.warning("Could not read key %s: %s", key, e)
            return default

    def set_json(self, key: str, value: Any) -> bool:
        """Serialize and store ``value``; returns False if the write was dropped."""
        if self._factory_reset_in_progress:
            logger.debug("Write to %s blocked during factory reset", key)
            return False
        try:
            self.backend.set_item(key, json.dumps(value, ensure_ascii=False))
        except Exception as e:
            logger.error("Could not write key %s: %s", key, e)
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            self.backend.remove_item(key)
        except Exception as e:
            logger.warning("Could not remove key %s: %s", key, e)

    def clear_all_for_factory_reset(self) -> None:
        """Wipe every key and block further writes for the rest of the process."""
        self._factory_reset_in_progress = True
        try:
            self.backend.clear()
        except Exception as e:
            logger.error("Factory reset could not clear storage: %s", e)
        logger.info("All key/value storage cleared for factory reset")


class KeyValueRecordStore(RecordStore[T]):
    """Client-side store persisting a collection as one blob under ``key``."""

    reload_on_read = True

    def __init__(self, name: str, model: type[T], storage: KeyValueStorage, key: str):
        super().__init__(name, model)
        self.storage = storage
        self.key = key
        logger.debug("Created key/value store %s", self.location)

    @property
    def location(self) -> str:
        return f"kv://{self.key}"

    async def _read_raw(self) -> dict[str, Any] | None:
        return self.storage.get_json(self.key, None)

    async def _write_raw(self, payload: dict[str, Any], last_modified: int) -> None:
        if not self.storage.set_json(self.key, payload):
            raise StorageWriteError(f"Could not write {self.key}", details={"key": self.key})
