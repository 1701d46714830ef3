"""
Key-Value Store

Asynchronous store used to persist the sync enabled flag, the remote
version marker and cached credentials.

Implementations:
- MemoryStore: dict-backed, for tests and embedding
- JsonFileStore: single JSON document on disk
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .models import StoreKey

Key = Union[StoreKey, str]


def _key(key: Key) -> str:
    return key.value if isinstance(key, StoreKey) else str(key)


class Store(ABC):
    """Async key-value store contract."""

    @abstractmethod
    async def get(self, key: Key, default: Any = None) -> Any:
        ...

    @abstractmethod
    async def set(self, key: Key, value: Any) -> None:
        ...

    @abstractmethod
    async def remove(self, key: Key) -> None:
        ...


class MemoryStore(Store):
    """Store kept entirely in memory."""

    def __init__(self, initial: Optional[Dict[Key, Any]] = None):
        self._data: Dict[str, Any] = {_key(k): v for k, v in (initial or {}).items()}

    async def get(self, key: Key, default: Any = None) -> Any:
        return self._data.get(_key(key), default)

    async def set(self, key: Key, value: Any) -> None:
        self._data[_key(key)] = value

    async def remove(self, key: Key) -> None:
        self._data.pop(_key(key), None)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._data)


class JsonFileStore(Store):
    """
    Store persisted as one JSON document.

    Usage:
        store = JsonFileStore(Path("~/.sync_engine/store.json").expanduser())
        await store.set(StoreKey.SYNC_ENABLED, True)
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, Any]:
        """Load store from disk."""
        if self._data is None:
            if self.path.exists():
                self._data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            else:
                self._data = {}
        return self._data

    def _save(self) -> None:
        """Save store to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    async def get(self, key: Key, default: Any = None) -> Any:
        async with self._lock:
            return self._load().get(_key(key), default)

    async def set(self, key: Key, value: Any) -> None:
        async with self._lock:
            self._load()[_key(key)] = value
            self._save()

    async def remove(self, key: Key) -> None:
        async with self._lock:
            data = self._load()
            if _key(key) in data:
                del data[_key(key)]
                self._save()
