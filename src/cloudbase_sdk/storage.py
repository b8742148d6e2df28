"""Key/value storage primitives backing the credential cache.

``MemoryStorage`` lives as long as the object that owns it; ``FileStorage``
persists a JSON document on disk and survives process restarts.
"""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Storage primitive provided by a platform adapter."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    async def set_item_async(self, key: str, value: str) -> None: ...

    async def remove_item_async(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def set_item_async(self, key: str, value: str) -> None:
        self.set_item(key, value)

    async def remove_item_async(self, key: str) -> None:
        self.remove_item(key)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class FileStorage:
    """Durable storage in a single JSON file.

    Reads go through an in-memory copy loaded on first access; every write
    rewrites the file. Async writes run in a worker thread.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._items: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._items is None:
            try:
                raw = self.path.read_text(encoding="utf-8")
                data = json.loads(raw) if raw.strip() else {}
            except FileNotFoundError:
                data = {}
            self._items = {str(k): str(v) for k, v in data.items()}
        return self._items

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._items or {}), encoding="utf-8")
        tmp.replace(self.path)

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._load()[key] = value
            self._flush()

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self._load().pop(key, None) is not None:
                self._flush()

    async def set_item_async(self, key: str, value: str) -> None:
        await asyncio.to_thread(self.set_item, key, value)

    async def remove_item_async(self, key: str) -> None:
        await asyncio.to_thread(self.remove_item, key)
