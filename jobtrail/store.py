"""Key/value persistence.

Entities are serialized as JSON strings under prefixed keys
(``application_*``, ``event_*``, ``followup_*``). Each entity type also
keeps a parallel ``*_index`` key holding the JSON array of its ids, which
must be updated on every insert and delete.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger("jobtrail")


class Store(ABC):
    """Durable string-to-string map."""

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def remove(self, key: str) -> None: ...

    @abstractmethod
    async def keys(self) -> list[str]: ...


class MemoryStore(Store):
    """Non-durable store, handy for tests and dry runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(Store):
    """Store backed by a single JSON file, rewritten atomically on each change."""

    def __init__(self, path: Path | str):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._data: dict[str, str] = {}
        if self._path.exists() and self._path.stat().st_size > 0:
            with open(self._path, encoding="utf-8") as f:
                self._data = json.load(f)
        logger.debug("Loaded %d keys from %s", len(self._data), self._path)

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    async def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    async def keys(self) -> list[str]:
        return list(self._data)

    def _flush(self) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except BaseException:
            os.unlink(tmp_path)
            raise


class IndexedCollection:
    """One entity key space plus its id index, on top of a Store."""

    def __init__(self, store: Store, prefix: str, index_key: str):
        self._store = store
        self._prefix = prefix
        self._index_key = index_key

    def key_for(self, entity_id: str) -> str:
        return f"{self._prefix}{entity_id}"

    async def ids(self) -> list[str]:
        raw = await self._store.get(self._index_key)
        if not raw:
            return []
        return list(json.loads(raw))

    async def get(self, entity_id: str) -> dict[str, Any] | None:
        raw = await self._store.get(self.key_for(entity_id))
        return json.loads(raw) if raw else None

    async def put(self, entity_id: str, data: dict[str, Any]) -> None:
        await self._store.set(self.key_for(entity_id), json.dumps(data))
        index = await self.ids()
        if entity_id not in index:
            index.append(entity_id)
            await self._store.set(self._index_key, json.dumps(index))

    async def delete(self, entity_id: str) -> None:
        await self._store.remove(self.key_for(entity_id))
        index = await self.ids()
        if entity_id in index:
            index = [i for i in index if i != entity_id]
            await self._store.set(self._index_key, json.dumps(index))

    async def all(self) -> list[dict[str, Any]]:
        """Return every indexed record, skipping ids whose record is gone."""
        records = []
        for entity_id in await self.ids():
            data = await self.get(entity_id)
            if data is not None:
                records.append(data)
        return records
