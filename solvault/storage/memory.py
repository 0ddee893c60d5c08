"""In-memory backends: a plain dict store and a write-through mirror."""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional

from .base import StorageBackend


class MemoryStorage(StorageBackend):
    """Dict-backed store. Values are deep-copied so callers cannot alias state."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {}
        for k, v in (initial or {}).items():
            self._data[k] = self._coerce(v)

    @staticmethod
    def _coerce(value: Any) -> Any:
        # Same JSON round-trip the file backend imposes
        return json.loads(json.dumps(value))

    async def get(self, key: str) -> Optional[Any]:
        v = self._data.get(key)
        return copy.deepcopy(v)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = self._coerce(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self) -> List[str]:
        return list(self._data)

    async def has(self, key: str) -> bool:
        return key in self._data

    async def clear(self) -> None:
        self._data.clear()


class MirroredStorage(StorageBackend):
    """
    Wrap an async backend with an in-memory mirror.

    Call `await load()` once at startup; afterwards `get_sync`/`list_sync` are
    served from memory while every mutation writes through to the backend.
    """

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend
        self._mirror = MemoryStorage()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        await self._mirror.clear()
        for key in await self._backend.list():
            value = await self._backend.get(key)
            if value is not None:
                await self._mirror.set(key, value)
        self._loaded = True

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("MirroredStorage.load() must be awaited before synchronous access")

    def get_sync(self, key: str) -> Optional[Any]:
        self._require_loaded()
        return copy.deepcopy(self._mirror._data.get(key))

    def list_sync(self) -> List[str]:
        self._require_loaded()
        return list(self._mirror._data)

    async def get(self, key: str) -> Optional[Any]:
        if self._loaded:
            return await self._mirror.get(key)
        return await self._backend.get(key)

    async def set(self, key: str, value: Any) -> None:
        await self._backend.set(key, value)
        await self._mirror.set(key, value)

    async def remove(self, key: str) -> None:
        await self._backend.remove(key)
        await self._mirror.remove(key)

    async def list(self) -> List[str]:
        if self._loaded:
            return await self._mirror.list()
        return await self._backend.list()


__all__ = ["MemoryStorage", "MirroredStorage"]
