from __future__ import annotations

import asyncio
import json
from typing import Any

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.errors import (
    InvalidBackupFormat,
    QuotaExceeded,
    SerializationError,
    StorageError,
    StorageUnavailable,
)
from taskdeck.observability import get_json_logger

from .interface import KeyValueStore

DEFAULT_STORAGE_KEY = "taskManager_v2"
BACKUP_VERSION = "2.0"
_PROBE_KEY = "__storage_test__"


class StorageService:
    """JSON persistence of one value under ``storage_key`` in a key-value store.

    Availability is probed once on construction with a write/delete round trip.
    When the store is unavailable, ``save`` fails fast and ``load`` returns None
    without touching the store. Store calls run in a worker thread so blocking
    backends (files, Redis) do not stall the event loop.
    """

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str = DEFAULT_STORAGE_KEY,
        *,
        max_bytes: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._key = storage_key
        self._max_bytes = max_bytes
        self._clock = clock or SYSTEM_CLOCK
        self._logger = get_json_logger("taskdeck.storage")
        self._available = self._check_availability()

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def is_available(self) -> bool:
        return self._available

    def _check_availability(self) -> bool:
        try:
            self._store.set(_PROBE_KEY, _PROBE_KEY.encode("utf-8"))
            self._store.delete(_PROBE_KEY)
            return True
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "storage not available",
                extra={
                    "event": "storage_unavailable",
                    "storage_key": self._key,
                    "attributes": {"error": str(exc), "error_type": type(exc).__name__},
                },
            )
            return False

    def _encode(self, data: Any) -> bytes:
        try:
            text = json.dumps(data, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Failed to serialize data: {exc}") from exc
        payload = text.encode("utf-8")
        if self._max_bytes is not None and len(payload) > self._max_bytes:
            raise QuotaExceeded(
                f"Storage quota exceeded: {len(payload)} > {self._max_bytes} bytes"
            )
        return payload

    async def save(self, data: Any) -> None:
        if not self._available:
            raise StorageUnavailable("Storage is not available")
        payload = self._encode(data)
        try:
            await asyncio.to_thread(self._store.set, self._key, payload)
        except StorageError:
            raise
        except OSError as exc:
            raise StorageUnavailable(f"Failed to save data: {exc}") from exc
        self._logger.debug(
            "data saved",
            extra={"event": "storage_saved", "storage_key": self._key, "count": len(payload)},
        )

    async def load(self) -> Any | None:
        if not self._available:
            return None
        try:
            raw = await asyncio.to_thread(self._store.get, self._key)
        except (StorageError, OSError) as exc:
            self._logger.error(
                "failed to read stored data",
                extra={
                    "event": "storage_read_failed",
                    "storage_key": self._key,
                    "attributes": {"error": str(exc)},
                },
            )
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            self._logger.error(
                "stored data is not valid JSON",
                extra={
                    "event": "storage_parse_failed",
                    "storage_key": self._key,
                    "attributes": {"error": str(exc)},
                },
            )
            return None

    async def clear(self) -> None:
        if not self._available:
            return
        await asyncio.to_thread(self._store.delete, self._key)

    async def backup(self) -> str | None:
        """Return a JSON snapshot of the stored value, or None when nothing is stored."""
        data = await self.load()
        if data is None:
            return None
        snapshot = {
            "data": data,
            "timestamp": self._clock.now().isoformat(),
            "version": BACKUP_VERSION,
        }
        return json.dumps(snapshot, ensure_ascii=False, indent=2)

    @staticmethod
    def parse_backup(snapshot: str | bytes) -> list[Any]:
        """Extract the record list from a backup snapshot.

        Raises ``InvalidBackupFormat`` if the snapshot is not JSON, is not an object,
        or its ``data`` entry is missing or not a list.
        """
        try:
            parsed = json.loads(snapshot)
        except (TypeError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidBackupFormat(f"Invalid backup format: {exc}") from exc
        if not isinstance(parsed, dict) or "data" not in parsed:
            raise InvalidBackupFormat("Invalid backup format: missing data")
        data = parsed["data"]
        if not isinstance(data, list):
            raise InvalidBackupFormat("Invalid backup format: data must be a list")
        return data

    async def restore(self, snapshot: str | bytes) -> list[Any]:
        data = self.parse_backup(snapshot)
        await self.save(data)
        return data


__all__ = ["BACKUP_VERSION", "DEFAULT_STORAGE_KEY", "StorageService"]
