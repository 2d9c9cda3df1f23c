"""Record store contract shared by every persistence substrate.

A store holds one keyed collection of a single record type. The live mapping
is only changed from inside serializer-wrapped operations; reads take a
point-in-time copy without queueing.
"""

import asyncio
import inspect
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import ValidationError as PydanticValidationError

from app.exceptions.storage import StorageReadError, StorageWriteError
from app.storage.serializer import MutationSerializer
from models.base import RecordModel

logger = logging.getLogger(__name__)

STORE_VERSION = "2.0"

T = TypeVar("T", bound=RecordModel)

Predicate = Callable[[T], bool]


def now_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class DataStore(Generic[T]):
    """Snapshot of a collection: records by id plus a last-modified stamp."""

    data: dict[str, T] = field(default_factory=dict)
    last_modified: int = field(default_factory=now_millis)
    version: str = STORE_VERSION

    def copy(self) -> "DataStore[T]":
        return DataStore(
            data={rid: rec.model_copy(deep=True) for rid, rec in self.data.items()},
            last_modified=self.last_modified,
            version=self.version,
        )


class RecordStore(ABC, Generic[T]):
    """Keyed collection of ``model`` records with serialized mutations.

    Subclasses supply raw persistence through ``_read_raw`` and ``_write_raw``.
    Read failures degrade to an empty collection and write failures are logged
    and swallowed, leaving the in-memory view authoritative.
    """

    # Re-read the backing blob on every access instead of trusting the cache.
    reload_on_read: bool = False

    def __init__(self, name: str, model: type[T]):
        self.name = name
        self.model = model
        self._cache: DataStore[T] | None = None
        self._dirty = False
        self._serializer = MutationSerializer(name)
        self._load_lock = asyncio.Lock()

    # ----- persistence hooks -----

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable location of the backing collection."""

    @abstractmethod
    async def _read_raw(self) -> dict[str, Any] | None:
        """Return the persisted ``{id: record}`` mapping, or None if absent.

        Raises:
            StorageReadError: If the collection exists but cannot be decoded.
        """

    @abstractmethod
    async def _write_raw(self, payload: dict[str, Any], last_modified: int) -> None:
        """Persist the whole ``{id: record}`` mapping.

        Raises:
            StorageWriteError: If the collection could not be written.
        """

    # ----- internals -----

    @property
    def dirty(self) -> bool:
        """True when the last write failed and memory is ahead of the backing store."""
        return self._dirty

    @property
    def serializer(self) -> MutationSerializer:
        return self._serializer

    async def _ensure_loaded(self) -> DataStore[T]:
        if self._cache is not None and (self._dirty or not self.reload_on_read):
            return self._cache
        previous = self._cache
        async with self._load_lock:
            # Another load or a committed mutation replaced the cache while we waited.
            if self._cache is not previous:
                return self._cache
            data = await self._read_collection()
            if self._cache is not previous:
                return self._cache
            self._install(previous, data)
        return self._cache

    def _install(self, previous: DataStore[T] | None, data: dict[str, T]) -> None:
        if previous is not None:
            self._cache = DataStore(data=data, last_modified=previous.last_modified, version=previous.version)
        else:
            self._cache = DataStore(data=data)

    async def _read_collection(self) -> dict[str, T]:
        try:
            raw = await self._read_raw()
        except StorageReadError as e:
            logger.warning("Treating %s as empty: %s", self.location, e.message)
            return {}
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            logger.warning("Treating %s as empty: expected an object keyed by id", self.location)
            return {}

        records: dict[str, T] = {}
        for record_id, item in raw.items():
            if not isinstance(item, dict):
                logger.warning("Skipping malformed record %s in %s", record_id, self.location)
                continue
            try:
                records[record_id] = self.model.model_validate({**item, "id": record_id})
            except PydanticValidationError as e:
                logger.warning(
                    "Skipping invalid record %s in %s: %s", record_id, self.location, e.error_count()
                )
        return records

    async def _persist(self, store: DataStore[T]) -> None:
        store.last_modified = max(now_millis(), store.last_modified + 1)
        self._cache = store
        payload = {rid: rec.to_storage() for rid, rec in store.data.items()}
        try:
            await self._write_raw(payload, store.last_modified)
        except StorageWriteError as e:
            self._dirty = True
            logger.error("Failed to persist %s, keeping in-memory state: %s", self.location, e.message)
        else:
            self._dirty = False

    def _coerce(self, record_id: str, item: T | dict[str, Any]) -> T:
        raw = item.model_dump() if isinstance(item, RecordModel) else dict(item)
        raw["id"] = record_id
        return self.model.model_validate(raw)

    # ----- contract -----

    async def load(self) -> DataStore[T]:
        """Current snapshot of the collection."""
        store = await self._ensure_loaded()
        return store.copy()

    async def upsert(self, record_id: str, item: T | dict[str, Any]) -> T:
        record = self._coerce(record_id, item)

        async def operation():
            store = await self._ensure_loaded()
            store.data[record_id] = record
            await self._persist(store)
            return record.model_copy(deep=True)

        return await self._serializer.run(operation)

    async def find_by_id(self, record_id: str) -> T | None:
        store = await self._ensure_loaded()
        record = store.data.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def find_many(self, predicate: Predicate | None = None) -> list[T]:
        store = await self._ensure_loaded()
        return [
            rec.model_copy(deep=True)
            for rec in list(store.data.values())
            if predicate is None or predicate(rec)
        ]

    async def update(self, record_id: str, partial: dict[str, Any]) -> T | None:
        async def operation():
            store = await self._ensure_loaded()
            existing = store.data.get(record_id)
            if existing is None:
                return None
            merged = self.model.model_validate({**existing.model_dump(), **partial, "id": record_id})
            store.data[record_id] = merged
            await self._persist(store)
            return merged.model_copy(deep=True)

        return await self._serializer.run(operation)

    async def delete(self, record_id: str) -> bool:
        async def operation():
            store = await self._ensure_loaded()
            if record_id not in store.data:
                return False
            del store.data[record_id]
            await self._persist(store)
            return True

        return await self._serializer.run(operation)

    async def count(self, predicate: Predicate | None = None) -> int:
        store = await self._ensure_loaded()
        if predicate is None:
            return len(store.data)
        return sum(1 for rec in list(store.data.values()) if predicate(rec))

    async def clear(self) -> None:
        async def operation():
            store = await self._ensure_loaded()
            store.data = {}
            await self._persist(store)

        await self._serializer.run(operation)

    async def mutate(self, mutator: Callable[[DataStore[T]], Any | Awaitable[Any]]) -> Any:
        """Apply several structural changes as one serialized unit.

        The mutator works on a copy of the live mapping; its changes replace the
        live state only if it returns without raising.
        """

        async def operation():
            store = await self._ensure_loaded()
            working = store.copy()
            result = mutator(working)
            if inspect.isawaitable(result):
                result = await result
            await self._persist(working)
            return result

        return await self._serializer.run(operation)

    async def flush(self) -> None:
        """Write the in-memory state to the backing substrate."""

        async def operation():
            if self._cache is not None:
                await self._persist(self._cache)

        await self._serializer.run(operation)

    async def close(self) -> None:
        await self._serializer.join()
        await self.flush()
        logger.debug("Closed record store %s", self.location)
