from __future__ import annotations

from taskdeck.errors import QuotaExceeded

from .interface import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. ``max_bytes`` caps the total size of all values."""

    def __init__(self, *, max_bytes: int | None = None) -> None:
        self._items: dict[str, bytes] = {}
        self._max_bytes = max_bytes

    def get(self, key: str) -> bytes | None:
        return self._items.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self._max_bytes is not None:
            used = sum(len(v) for k, v in self._items.items() if k != key)
            if used + len(value) > self._max_bytes:
                raise QuotaExceeded(
                    f"Storage quota exceeded: {used + len(value)} > {self._max_bytes} bytes"
                )
        self._items[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items.keys())


__all__ = ["InMemoryKeyValueStore"]
