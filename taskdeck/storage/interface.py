from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    """Minimal byte key-value store the StorageService persists through.

    Keep this tiny so backends can be swapped without touching callers.
    Implementations raise ``QuotaExceeded`` when a write does not fit and
    ``StorageUnavailable`` for any other backend failure.
    """

    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key is missing."""

    def set(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""


__all__ = ["KeyValueStore"]
