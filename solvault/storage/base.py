"""
Storage backend contract.

A backend is an async key-value store of JSON-compatible values. Two
realizations ship with the package (process-local files, in-memory); a
browser-style synchronous store is obtained by wrapping any backend in
`MirroredStorage`.
"""

from __future__ import annotations

import abc
from typing import Any, List, Optional


class StorageBackend(abc.ABC):
    @abc.abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under `key`, or None."""

    @abc.abstractmethod
    async def set(self, key: str, value: Any) -> None:
        ...

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        """Delete `key`; removing a missing key is a no-op."""

    @abc.abstractmethod
    async def list(self) -> List[str]:
        ...

    async def has(self, key: str) -> bool:
        return key in await self.list()

    async def clear(self) -> None:
        for key in await self.list():
            await self.remove(key)


__all__ = ["StorageBackend"]
