"""Key-value persistence for the journal blob.

Backends mimic browser local storage: string keys, string values, and a
size quota whose exhaustion is reported as ``QuotaExceededError``.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024

_SAFE_KEY_RE = re.compile(r"[^a-zA-Z0-9_\-.]+")


class StorageError(Exception):
    """A write could not be completed."""


class QuotaExceededError(StorageError):
    """The write would exceed the storage quota."""


class KeyValueStorage(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, text: str) -> None: ...

    def remove(self, key: str) -> None: ...


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


class MemoryStorage:
    """In-process storage with an optional quota across all keys."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, text: str) -> None:
        if self.quota_bytes is not None:
            used = sum(_size(v) for k, v in self._data.items() if k != key)
            if used + _size(text) > self.quota_bytes:
                raise QuotaExceededError(f"quota of {self.quota_bytes} bytes exceeded")
        self._data[key] = text

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage:
    """One file per key under ``directory``.

    Writes go through a temp file and ``os.replace`` so a failed write
    leaves the previous value in place.
    """

    def __init__(self, directory: str | Path, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES):
        self.directory = Path(directory).expanduser().resolve()
        self.directory.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        safe = _SAFE_KEY_RE.sub("_", key.strip()) or "default"
        return self.directory / f"{safe}.json"

    def read(self, key: str) -> Optional[str]:
        p = self._path(key)
        try:
            with open(p, encoding="utf-8", newline="") as fh:
                return fh.read()
        except (OSError, UnicodeDecodeError):
            # missing or unreadable both read as "no journal yet"
            return None

    def write(self, key: str, text: str) -> None:
        target = self._path(key)
        if self.quota_bytes is not None:
            used = sum(
                f.stat().st_size for f in self.directory.glob("*.json") if f != target
            )
            if used + _size(text) > self.quota_bytes:
                raise QuotaExceededError(f"quota of {self.quota_bytes} bytes exceeded")

        try:
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                    fh.write(text)
                os.replace(tmp, target)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"{type(e).__name__}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
