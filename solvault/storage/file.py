"""
File-backed storage: one JSON document per key plus an index file.

Layout under `base_dir`:

    _index.json             ["solana_wallet", "squads_multisigs", ...]
    <base64url(key)>.json   the value, pretty-printed JSON

Writes are atomic (same-dir temp file + fsync + replace) and value files are
chmod 0600 on POSIX. Blocking file I/O runs in a worker thread so callers on
an event loop are not stalled.

Concurrent writers from several processes are not coordinated: the last
writer wins.
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Set, Union

from ..config import Config
from ..errors import StorageError
from .base import StorageBackend

INDEX_FILENAME = "_index.json"


def key_filename(key: str) -> str:
    safe = base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{safe}.json"


def _fsync_dir(directory: Path) -> None:
    if os.name != "posix":
        return
    dir_fd = os.open(str(directory), os.O_RDONLY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def atomic_write_json(path: Path, obj: Any, *, private: bool = False) -> None:
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(obj, indent=2).encode("utf-8")
        with tempfile.NamedTemporaryFile("wb", delete=False, dir=str(path.parent)) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        if private and os.name == "posix":
            os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)  # atomic on POSIX
        # Ensure directory entry is durable
        _fsync_dir(path.parent)
    except OSError as e:
        raise StorageError(f"failed to write {path.name}: {e}") from e
    finally:
        if tmp_name is not None:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)  # if replace failed


def _read_json(path: Path) -> Optional[Any]:
    try:
        with open(path, "rb") as f:
            return json.loads(f.read().decode("utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        raise StorageError(f"failed to read {path.name}: {e}") from e


class FileStorage(StorageBackend):
    def __init__(self, base_dir: Union[str, Path], *, logger: Optional[logging.Logger] = None) -> None:
        self.base_dir = Path(base_dir).expanduser()
        self.index_file = self.base_dir / INDEX_FILENAME
        self._index: Set[str] = set()
        self._initialized = False
        self._lock = asyncio.Lock()
        self._log = logger or logging.getLogger("solvault.storage.file")

    @classmethod
    def from_config(cls, config: Config, *, logger: Optional[logging.Logger] = None) -> "FileStorage":
        return cls(config.data_dir, logger=logger)

    def path_for(self, key: str) -> Path:
        return self.base_dir / key_filename(key)

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        await asyncio.to_thread(self.base_dir.mkdir, parents=True, exist_ok=True)
        keys = await asyncio.to_thread(_read_json, self.index_file)
        if keys is not None and not isinstance(keys, list):
            raise StorageError(f"{INDEX_FILENAME} is not a JSON list")
        self._index = set(keys or [])
        self._initialized = True
        self._log.debug("storage ready at %s (%d keys)", self.base_dir, len(self._index))

    async def _save_index(self) -> None:
        await asyncio.to_thread(atomic_write_json, self.index_file, sorted(self._index))

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            await self._ensure_initialized()
            return await asyncio.to_thread(_read_json, self.path_for(key))

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            await self._ensure_initialized()
            await asyncio.to_thread(atomic_write_json, self.path_for(key), value, private=True)
            if key not in self._index:
                self._index.add(key)
                await self._save_index()

    async def remove(self, key: str) -> None:
        async with self._lock:
            await self._ensure_initialized()
            with contextlib.suppress(FileNotFoundError):
                await asyncio.to_thread(os.unlink, self.path_for(key))
            if key in self._index:
                self._index.discard(key)
                await self._save_index()

    async def list(self) -> List[str]:
        async with self._lock:
            await self._ensure_initialized()
            return sorted(self._index)

    async def has(self, key: str) -> bool:
        async with self._lock:
            await self._ensure_initialized()
            return key in self._index

    async def clear(self) -> None:
        async with self._lock:
            await self._ensure_initialized()
            for key in list(self._index):
                with contextlib.suppress(FileNotFoundError):
                    await asyncio.to_thread(os.unlink, self.path_for(key))
            self._index.clear()
            await self._save_index()


__all__ = ["FileStorage", "INDEX_FILENAME", "key_filename", "atomic_write_json"]
