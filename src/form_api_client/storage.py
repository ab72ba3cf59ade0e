"""Persisted key-value storage for session state."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

from .constants import StorageKey
from .exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal persisted storage contract used by the client."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


class JsonFileStore:
    """Stores string values in a JSON file.

    Every read goes back to disk so a value written by another process (or
    another client instance) is seen on the very next call.
    """

    def __init__(self, path: Path):
        """Initialize store with file path."""
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict:
        """Load all values from file."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            raise StorageError("read", reason=str(e)) from e
        if not isinstance(data, dict):
            raise StorageError("read", reason=f"expected a JSON object in {self.path}")
        return data

    def _write(self, data: dict) -> None:
        """Replace file contents with data."""
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(data, f, indent=4)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise StorageError("write", reason=str(e)) from e

    def get_item(self, key: str) -> Optional[str]:
        """Get a value, or None if the key is absent."""
        value = self._read().get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        """Set a value."""
        logger.debug(f"Storing key '{key}'")
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        """Remove a key if present."""
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def clear(self) -> None:
        """Erase all keys."""
        with self._lock:
            self._write({})


class MemoryStore:
    """In-process store with the same contract as JsonFileStore."""

    def __init__(self, initial: Optional[dict] = None):
        self._data = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


def get_access_token(store: KeyValueStore) -> Optional[str]:
    """Read the persisted session credential."""
    return store.get_item(StorageKey.ACCESS_TOKEN.value)


def set_access_token(store: KeyValueStore, token: str) -> None:
    """Persist the session credential (written at login)."""
    store.set_item(StorageKey.ACCESS_TOKEN.value, token)


def invalidate_session(store: KeyValueStore) -> None:
    """Clear all session state and mark the app as freshly opened.

    The ``firstOpened`` flag is written unconditionally after the clear, so an
    invalidated session looks like a fresh install to the rest of the app.
    Clearing an already cleared store leaves it in the same state.
    """
    store.clear()
    store.set_item(StorageKey.FIRST_OPENED.value, "true")
    logger.info("Session storage cleared")
