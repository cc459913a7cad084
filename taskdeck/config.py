from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from taskdeck.models import SORT_KEYS
from taskdeck.storage import DEFAULT_STORAGE_KEY

STORAGE_BACKENDS = ("memory", "file", "redis")
DEFAULT_AUTO_SAVE_DELAY_MS = 1000
DEFAULT_MAX_STORAGE_BYTES = 5 * 1024 * 1024


@dataclass(slots=True)
class AppConfig:
    storage_key: str = DEFAULT_STORAGE_KEY
    storage_backend: str = "file"
    data_dir: Path = Path("~/.taskdeck").expanduser()
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "taskdeck"
    auto_save_delay: float = DEFAULT_AUTO_SAVE_DELAY_MS / 1000
    max_storage_bytes: int = DEFAULT_MAX_STORAGE_BYTES
    default_sort: str = "priority"


def _read_int(raw: str | None, default: int) -> int:
    raw = (raw or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _read_choice(raw: str | None, choices: tuple[str, ...], default: str) -> str:
    value = (raw or "").strip()
    return value if value in choices else default


def load_config(env: dict[str, str] | None = None) -> AppConfig:
    e: dict[str, Any] = dict(os.environ)
    if env:
        e.update(env)
    # Unparseable or out-of-range numbers fall back to safe values
    delay_ms = max(0, _read_int(e.get("TASKDECK_AUTO_SAVE_DELAY_MS"), DEFAULT_AUTO_SAVE_DELAY_MS))
    max_bytes = max(1, _read_int(e.get("TASKDECK_MAX_STORAGE_BYTES"), DEFAULT_MAX_STORAGE_BYTES))
    data_dir = (e.get("TASKDECK_DATA_DIR") or "").strip() or "~/.taskdeck"
    return AppConfig(
        storage_key=(e.get("TASKDECK_STORAGE_KEY") or "").strip() or DEFAULT_STORAGE_KEY,
        storage_backend=_read_choice(e.get("TASKDECK_STORAGE_BACKEND"), STORAGE_BACKENDS, "file"),
        data_dir=Path(data_dir).expanduser(),
        redis_url=e.get("REDIS_URL", "redis://localhost:6379/0"),
        key_prefix=(e.get("TASKDECK_KEY_PREFIX") or "").strip() or "taskdeck",
        auto_save_delay=delay_ms / 1000,
        max_storage_bytes=max_bytes,
        default_sort=_read_choice(e.get("TASKDECK_DEFAULT_SORT"), SORT_KEYS, "priority"),
    )


__all__ = ["AppConfig", "STORAGE_BACKENDS", "load_config"]
