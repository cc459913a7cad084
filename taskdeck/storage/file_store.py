from __future__ import annotations

import errno
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

from taskdeck.errors import QuotaExceeded, StorageUnavailable

from .interface import KeyValueStore

_QUOTA_ERRNOS = {errno.ENOSPC, errno.EDQUOT} if hasattr(errno, "EDQUOT") else {errno.ENOSPC}


class FileKeyValueStore(KeyValueStore):
    """One file per key under ``root``.

    Writes go to a temp file in the same directory and are moved into place, so a
    reader never sees a half-written value.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> bytes | None:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailable(f"cannot read {key!r}: {exc}") from exc

    def set(self, key: str, value: bytes) -> None:
        target = self._path(key)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(value)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            if exc.errno in _QUOTA_ERRNOS:
                raise QuotaExceeded(f"no space left to write {key!r}") from exc
            raise StorageUnavailable(f"cannot write {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"cannot delete {key!r}: {exc}") from exc


__all__ = ["FileKeyValueStore"]
