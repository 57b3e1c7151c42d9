"""Key-value blob stores backing "reload last track".

The engine only needs ``get``/``set``/``delete`` on text values. Durability is
not assumed: a missing or unreadable entry simply means there is nothing to
reload.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from .config import LAST_TRACK_STORE_DIR

_LOGGER = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class TrackStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryTrackStore:
    """Process-local store, used by default and in tests."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class FileTrackStore:
    """One file per key inside ``directory``; writes replace atomically."""

    def __init__(self, directory: Union[str, Path] = LAST_TRACK_STORE_DIR) -> None:
        base = Path(directory)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._base_dir

    def _file_path(self, key: str) -> Path:
        return self._base_dir / f"{_SAFE_KEY.sub('_', key)}.txt"

    def get(self, key: str) -> Optional[str]:
        path = self._file_path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            _LOGGER.error("Failed reading stored track %s: %s", path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        path = self._file_path(key)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            temp_path.write_text(value, encoding="utf-8")
            temp_path.replace(path)
        _LOGGER.debug("Stored %d characters under %s", len(value), path)

    def delete(self, key: str) -> None:
        with self._lock:
            self._file_path(key).unlink(missing_ok=True)


__all__ = ["FileTrackStore", "InMemoryTrackStore", "TrackStore"]
