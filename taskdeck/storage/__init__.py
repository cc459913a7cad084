from __future__ import annotations

from .file_store import FileKeyValueStore
from .interface import KeyValueStore
from .memory import InMemoryKeyValueStore
from .redis_store import RedisKeyValueStore
from .service import BACKUP_VERSION, DEFAULT_STORAGE_KEY, StorageService

__all__ = [
    "BACKUP_VERSION",
    "DEFAULT_STORAGE_KEY",
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "StorageService",
]
