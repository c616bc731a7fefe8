"""Cache persistence backends."""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .exceptions import CacheStoreError
from .models import CacheEntry

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".tar.gz"


class CacheStore(ABC):
    """Interface for storing cache blobs by key.

    Stores must allow concurrent reads and resolve concurrent writes of
    the same key as last-writer-wins. Eviction is the store's concern.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key``, or None on a miss.

        Raises:
            CacheStoreError: If the backend cannot be read.
        """
        pass

    @abstractmethod
    def store(self, entry: CacheEntry) -> None:
        """Persist ``entry``, replacing any existing entry for its key.

        Raises:
            CacheStoreError: If the backend cannot be written.
        """
        pass


class InMemoryCacheStore(CacheStore):
    """Process-local store for tests and single-process use."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def store(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry

    def keys(self) -> set[str]:
        with self._lock:
            return set(self._entries)

    def clear(self) -> None:
        """Drop all entries. Useful for testing."""
        with self._lock:
            self._entries.clear()


class DirectoryCacheStore(CacheStore):
    """Stores each entry as ``<root>/<key>.tar.gz``.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so readers never see a partial archive and the
    last completed write wins.
    """

    def __init__(self, root: Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or os.sep in key or key.startswith("."):
            raise CacheStoreError(key, "invalid cache key")
        return self._root / f"{key}{ARCHIVE_SUFFIX}"

    def load(self, key: str) -> Optional[CacheEntry]:
        path = self._path_for(key)
        try:
            blob = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStoreError(key, str(e)) from e
        return CacheEntry(key=key, blob=blob)

    def store(self, entry: CacheEntry) -> None:
        path = self._path_for(entry.key)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{entry.key}.", dir=self._root)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(entry.blob)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheStoreError(entry.key, str(e)) from e
        logger.debug("Stored cache entry %s (%d bytes)", entry.key, entry.size)
