"""JSON document record store.

One document per collection. Without a data directory the store is memory
only (``memory://<name>.json``); with one, every mutation rewrites
``<data_dir>/<name>.json`` through an atomic temp-file rename.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from app.exceptions.storage import StorageReadError, StorageWriteError
from app.storage.base import STORE_VERSION, RecordStore, T
from app.storage.files import atomic_write_text, quarantine

logger = logging.getLogger(__name__)


class DocumentRecordStore(RecordStore[T]):
    """Server-side store backed by a JSON document."""

    def __init__(self, name: str, model: type[T], data_dir: Path | None = None):
        super().__init__(name, model)
        self.path: Path | None = Path(data_dir) / f"{name}.json" if data_dir else None
        logger.debug("Created JSON document store %s", self.location)

    @property
    def location(self) -> str:
        return str(self.path) if self.path else f"memory://{self.name}.json"

    @property
    def in_memory(self) -> bool:
        return self.path is None

    async def _read_raw(self) -> dict[str, Any] | None:
        if self.path is None:
            logger.info("Initialized empty in-memory JSON store %s", self.location)
            return None
        return await asyncio.to_thread(self._read_document)

    def _read_document(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self._repair()
            raise StorageReadError(
                f"Could not decode {self.path.name}", details={"path": str(self.path), "error": str(e)}
            ) from e

        if isinstance(document, dict) and isinstance(document.get("data"), dict):
            return document["data"]
        self._repair()
        raise StorageReadError(
            f"{self.path.name} is not a collection document", details={"path": str(self.path)}
        )

    def _repair(self) -> None:
        moved = quarantine(self.path)
        if moved is not None:
            logger.warning("Moved corrupt document %s to %s", self.path, moved)

    async def _write_raw(self, payload: dict[str, Any], last_modified: int) -> None:
        if self.path is None:
            return
        document = {"version": STORE_VERSION, "lastModified": last_modified, "data": payload}
        try:
            text = json.dumps(document, ensure_ascii=False)
            await asyncio.to_thread(atomic_write_text, self.path, text)
        except (OSError, TypeError, ValueError) as e:
            raise StorageWriteError(
                f"Could not write {self.path.name}", details={"path": str(self.path), "error": str(e)}
            ) from e
        logger.debug("Saved JSON store %s (%d records)", self.location, len(payload))
