"""
Key-value persistence for the domain store.

Each logical collection ("students", "activities", ...) is stored under a
key as a JSON document. Repositories report writes made by another
process or session through subscriber callbacks, so an open store can
refresh itself.

Backends:
- JsonFileRepository: one ``<key>.json`` file per key under a directory
- MemoryRepository: dict-backed, for tests and embedding
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

ChangeCallback = Callable[[str], None]


class Repository(Protocol):
    """Protocol for key-value JSON stores."""

    def get(self, key: str) -> Any | None:
        """Return the stored JSON value, or None when absent or unreadable."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under ``key``."""
        ...

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a callback for external changes. Returns an unsubscribe function."""
        ...

    def poll_changes(self) -> list[str]:
        """Detect external writes, notify subscribers and return the changed keys."""
        ...


class _Subscribers:
    """Callback registry shared by the backends."""

    def __init__(self) -> None:
        self._callbacks: list[ChangeCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def notify(self, key: str) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(key)


# =============================================================================
# JSON files
# =============================================================================


class JsonFileRepository:
    """
    Stores each key as ``<data_dir>/<key>.json``.

    Writes go through a temporary file and an atomic replace. External
    changes are detected by comparing each file's (mtime, size) with the
    fingerprint recorded at the last read or write.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._subscribers = _Subscribers()
        self._fingerprints: dict[str, tuple[int, int] | None] = {}
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _fingerprint(self, key: str) -> tuple[int, int] | None:
        try:
            stat = self._path(key).stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def get(self, key: str) -> Any | None:
        filepath = self._path(key)
        with self._lock:
            self._fingerprints[key] = self._fingerprint(key)
            if not filepath.exists():
                return None
            try:
                with open(filepath, encoding="utf-8") as f:
                    return json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable state file {filepath}: {e}")
                return None

    def set(self, key: str, value: Any) -> None:
        filepath = self._path(key)
        with self._lock:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, filepath)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            self._fingerprints[key] = self._fingerprint(key)

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        return self._subscribers.subscribe(callback)

    def poll_changes(self) -> list[str]:
        changed = []
        with self._lock:
            for key, known in list(self._fingerprints.items()):
                current = self._fingerprint(key)
                if current != known:
                    self._fingerprints[key] = current
                    changed.append(key)
        for key in changed:
            logger.debug(f"External change detected for '{key}'")
            self._subscribers.notify(key)
        return changed


# =============================================================================
# In-memory
# =============================================================================


class MemoryRepository:
    """
    Dict-backed repository.

    Values are stored as JSON text so callers never share mutable state
    with the repository. ``external_set`` simulates a write from another
    session and is reported on the next ``poll_changes``.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        self._pending: list[str] = []
        self._subscribers = _Subscribers()
        self._lock = threading.Lock()
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value, ensure_ascii=False)

    def get(self, key: str) -> Any | None:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable value for '{key}': {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = json.dumps(value, ensure_ascii=False)

    def set_raw(self, key: str, raw: str) -> None:
        """Store raw text as-is (used to simulate corrupt state)."""
        with self._lock:
            self._data[key] = raw

    def external_set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = json.dumps(value, ensure_ascii=False)
            self._pending.append(key)

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        return self._subscribers.subscribe(callback)

    def poll_changes(self) -> list[str]:
        with self._lock:
            changed = list(dict.fromkeys(self._pending))
            self._pending.clear()
        for key in changed:
            self._subscribers.notify(key)
        return changed
