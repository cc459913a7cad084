from __future__ import annotations

from typing import Any, cast

import redis

from taskdeck.errors import QuotaExceeded, StorageUnavailable

from .interface import KeyValueStore


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed key-value store.

    Data structures:
    - one string per key: ``{prefix}:{key}`` holding the raw bytes

    Redis OOM replies (``maxmemory`` reached) surface as ``QuotaExceeded``; every
    other Redis error surfaces as ``StorageUnavailable``.
    """

    def __init__(
        self,
        *,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "taskdeck",
        client: Any | None = None,
    ) -> None:
        self._redis: redis.Redis = client if client is not None else redis.Redis.from_url(url)
        self._prefix = key_prefix.rstrip(":")

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> bytes | None:
        try:
            raw = cast(bytes | str | None, self._redis.get(self._key(key)))
        except redis.exceptions.RedisError as exc:
            raise StorageUnavailable(f"redis get failed: {exc}") from exc
        if isinstance(raw, str):
            return raw.encode("utf-8")
        return raw

    def set(self, key: str, value: bytes) -> None:
        try:
            self._redis.set(self._key(key), value)
        except redis.exceptions.ResponseError as exc:
            if "OOM" in str(exc):
                raise QuotaExceeded(f"redis out of memory: {exc}") from exc
            raise StorageUnavailable(f"redis set failed: {exc}") from exc
        except redis.exceptions.RedisError as exc:
            raise StorageUnavailable(f"redis set failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except redis.exceptions.RedisError as exc:
            raise StorageUnavailable(f"redis delete failed: {exc}") from exc


__all__ = ["RedisKeyValueStore"]
