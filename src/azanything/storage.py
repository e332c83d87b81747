"""Durable keyed storage backends.

Values are JSON text, one blob per key, mirroring the browser storage the
web client used. :class:`JsonFileStorage` keeps one file per key and
replaces it atomically so a crash never leaves a half-written blob.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from azanything.exceptions import AzStorageError

_logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class KeyValueStorage(Protocol):
    """Minimal durable keyed storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class JsonFileStorage:
    """One ``<key>.json`` file per key inside *root*."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root)
        self._lock = threading.Lock()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise AzStorageError(f"cannot create storage directory {self._root}: {exc}") from exc

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise AzStorageError(f"invalid storage key {key!r}", key=key)
        return self._root / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except OSError as exc:
                raise AzStorageError(f"cannot read {path}: {exc}", key=key) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self._root)
            except OSError as exc:
                raise AzStorageError(f"cannot write {path}: {exc}", key=key) from exc
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except OSError as exc:
                Path(tmp_name).unlink(missing_ok=True)
                raise AzStorageError(f"cannot write {path}: {exc}", key=key) from exc
        _logger.debug("Wrote %d bytes to storage key %s", len(value), key)

    def delete(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return
            except OSError as exc:
                raise AzStorageError(f"cannot delete {path}: {exc}", key=key) from exc
