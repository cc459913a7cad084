from __future__ import annotations

from typing import Any

import pytest
import redis

from taskdeck.errors import QuotaExceeded, StorageUnavailable
from taskdeck.storage import RedisKeyValueStore, StorageService


def test_roundtrip_against_real_redis(redis_url: str, unique_prefix: str) -> None:
    store = RedisKeyValueStore(url=redis_url, key_prefix=unique_prefix)
    try:
        assert store.get("tasks") is None
        store.set("tasks", b"[1,2,3]")
        assert store.get("tasks") == b"[1,2,3]"

        # A second client with the same prefix sees the same value
        other = RedisKeyValueStore(url=redis_url, key_prefix=unique_prefix)
        assert other.get("tasks") == b"[1,2,3]"
        raw = redis.Redis.from_url(redis_url).get(f"{unique_prefix}:tasks")
        assert raw == b"[1,2,3]"
    finally:
        store.delete("tasks")
    assert store.get("tasks") is None


@pytest.mark.asyncio
async def test_storage_service_over_redis(redis_url: str, unique_prefix: str) -> None:
    service = StorageService(
        RedisKeyValueStore(url=redis_url, key_prefix=unique_prefix), "taskManager_v2"
    )
    assert service.is_available
    try:
        await service.save([{"id": "task_1"}])
        assert await service.load() == [{"id": "task_1"}]
    finally:
        await service.clear()


class _ErroringClient:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def get(self, key: str) -> Any:
        raise self._exc

    def set(self, key: str, value: bytes) -> Any:
        raise self._exc

    def delete(self, key: str) -> Any:
        raise self._exc


def test_oom_reply_maps_to_quota_exceeded() -> None:
    oom = redis.exceptions.ResponseError("OOM command not allowed when used memory > 'maxmemory'.")
    store = RedisKeyValueStore(client=_ErroringClient(oom))

    with pytest.raises(QuotaExceeded):
        store.set("k", b"v")


def test_connection_errors_map_to_storage_unavailable() -> None:
    store = RedisKeyValueStore(client=_ErroringClient(redis.exceptions.ConnectionError("down")))

    with pytest.raises(StorageUnavailable):
        store.get("k")
    with pytest.raises(StorageUnavailable):
        store.set("k", b"v")
    with pytest.raises(StorageUnavailable):
        store.delete("k")
    assert StorageService(store, "k").is_available is False
