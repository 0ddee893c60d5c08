"""
solvault.storage
================

Async key-value backends behind a single contract:

- StorageBackend: get/set/remove/list (+ has/clear).
- FileStorage: one JSON file per key with an index file.
- MemoryStorage: dict-backed, for tests and embedding.
- MirroredStorage: in-memory mirror for callers that need synchronous reads.
"""

from .base import StorageBackend
from .file import FileStorage
from .memory import MemoryStorage, MirroredStorage

__all__ = ["StorageBackend", "FileStorage", "MemoryStorage", "MirroredStorage"]
