"""
Result cache for assembled crime tables.

A cache entry is addressed by a key derived from the data type, years
and cities of a validated request. Two stores share one interface:

    FileCacheStore - pickled DataFrames in a per-process temp directory (default)
    MemoryCacheStore - plain dict, for tests and embedding

Both hand out copies; a caller can never mutate what is cached.
"""

import abc
import atexit
import hashlib
import json
import os
import pickle
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

import pandas as pd
from filelock import FileLock

from crimedata.config import settings
from crimedata.data.models import CacheEntry, DataType
from crimedata.logging_config import get_logger

logger = get_logger(__name__)

CACHE_PREFIX = "crimedata_"


def make_key(data_type: DataType | str, years: Iterable, cities: Iterable[str]) -> str:
    """
    Deterministic fingerprint of a request.

    Years are cast to ``int`` so 2019, 2019.0 and numpy.int64(2019) hash
    alike; cities are stripped and lowercased; both are sorted.

    Returns:
        32-character hex MD5 digest.
    """
    data_type = DataType(data_type)
    canonical = [
        data_type.value,
        sorted({int(y) for y in years}),
        sorted({c.strip().lower() for c in cities}),
    ]
    payload = json.dumps(canonical, separators=(",", ":"))
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


class CacheStore(abc.ABC):
    """Interface every cache backend implements."""

    @abc.abstractmethod
    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key``, or None on a miss."""
        ...

    @abc.abstractmethod
    def store(self, key: str, table: pd.DataFrame) -> None:
        """Save ``table`` under ``key``, replacing any existing entry."""
        ...

    @abc.abstractmethod
    def invalidate(self, key: str) -> bool:
        """Remove the entry for ``key``. Returns True if one existed."""
        ...

    @abc.abstractmethod
    def lock(self, key: str):
        """Context manager held across lookup → fetch → store for one key."""
        ...

    @abc.abstractmethod
    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        ...

    def has(self, key: str) -> bool:
        return self.lookup(key) is not None


class MemoryCacheStore(CacheStore):
    """In-process cache backed by a dict."""

    def __init__(self):
        self._entries: dict[str, pd.DataFrame] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(key, threading.RLock())

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._lock_for(key):
            yield

    def lookup(self, key: str) -> Optional[CacheEntry]:
        with self._lock_for(key):
            table = self._entries.get(key)
            if table is None:
                return None
            return CacheEntry(key=key, data=table.copy())

    def store(self, key: str, table: pd.DataFrame) -> None:
        with self._lock_for(key):
            self._entries[key] = table.copy()
        logger.debug("Cached %d rows under %s", len(table), key)

    def invalidate(self, key: str) -> bool:
        with self._lock_for(key):
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Invalidated cache for %s", key)
        return removed

    def clear(self) -> int:
        with self._guard:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cleared %d cache entries", count)
        return count

    def __len__(self) -> int:
        return len(self._entries)


class FileCacheStore(CacheStore):
    """
    Pickled DataFrames on disk, one file per key.

    Layout:
        cache_dir/
            crimedata_<key>.pkl
            crimedata_<key>.pkl.lock
    """

    SUFFIX = ".pkl"

    def __init__(self, cache_dir: str | None = None, lock_timeout: float | None = None):
        """
        Args:
            cache_dir: Override cache directory from settings. With neither
                set, the per-process session directory is used.
            lock_timeout: Seconds lookup/store/invalidate wait for a per-key lock.
        """
        self.cache_dir = Path(cache_dir or settings.cache.dir or session_cache_dir())
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.cache.lock_timeout
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, FileLock] = {}
        self._guard = threading.Lock()

    def _path_for(self, key: str) -> Path:
        """Get the file path for a cache entry."""
        return self.cache_dir / f"{CACHE_PREFIX}{key}{self.SUFFIX}"

    def _lock_for(self, key: str) -> FileLock:
        # One FileLock object per key so nested acquisition is reentrant
        with self._guard:
            if key not in self._locks:
                path = self._path_for(key)
                self._locks[key] = FileLock(str(path) + ".lock", timeout=self.lock_timeout)
            return self._locks[key]

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """
        Hold the key across a whole download.

        Waits without a deadline; ``lock_timeout`` bounds only the short
        critical sections in lookup/store/invalidate.
        """
        with self._lock_for(key).acquire(timeout=-1):
            yield

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """
        Load a cached table.

        Returns:
            CacheEntry, or None if missing or unreadable.
        """
        path = self._path_for(key)
        if not path.exists():
            return None

        try:
            with self._lock_for(key):
                table = pd.read_pickle(path, compression=None)
        except (OSError, EOFError, ValueError, pickle.UnpicklingError) as e:
            logger.warning("Cache read error for %s: %s", key, e)
            return None
        return CacheEntry(key=key, data=table)

    def store(self, key: str, table: pd.DataFrame) -> None:
        """
        Write a table atomically: temp file in the cache dir, then rename.

        A failed write is logged and leaves no partial entry behind.
        """
        path = self._path_for(key)
        tmp_name = None
        try:
            with self._lock_for(key):
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f"{CACHE_PREFIX}{key}_", suffix=".tmp", dir=self.cache_dir
                )
                os.close(fd)
                table.to_pickle(tmp_name, compression=None)
                os.replace(tmp_name, path)
                tmp_name = None
            logger.debug("Cached %d rows under %s", len(table), key)
        except OSError as e:
            logger.error("Cache write error for %s: %s", key, e)
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)

    def invalidate(self, key: str) -> bool:
        """
        Remove a specific cache entry.

        Returns:
            True if the entry was removed, False if it didn't exist.
        """
        path = self._path_for(key)
        with self._lock_for(key):
            if path.exists():
                path.unlink()
                logger.debug("Invalidated cache for %s", key)
                return True
        return False

    def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries removed.
        """
        count = 0
        if self.cache_dir.exists():
            for f in self.cache_dir.glob(f"{CACHE_PREFIX}*{self.SUFFIX}"):
                f.unlink()
                count += 1
        logger.info("Cleared %d cache entries", count)
        return count

    def keys(self) -> list[str]:
        """Keys of all entries currently on disk."""
        start = len(CACHE_PREFIX)
        return sorted(
            f.name[start:-len(self.SUFFIX)]
            for f in self.cache_dir.glob(f"{CACHE_PREFIX}*{self.SUFFIX}")
        )


_session_dir: Path | None = None
_session_guard = threading.Lock()


def session_cache_dir() -> Path:
    """
    Temp directory owned by this process, created on first use.

    It is removed at interpreter exit, so a new session never reads a
    previous one's results.
    """
    global _session_dir
    with _session_guard:
        if _session_dir is None:
            _session_dir = Path(tempfile.mkdtemp(prefix=CACHE_PREFIX))
            atexit.register(shutil.rmtree, _session_dir, ignore_errors=True)
            logger.debug("Session cache directory: %s", _session_dir)
        return _session_dir


_default_store: CacheStore | None = None
_default_guard = threading.Lock()


def get_default_store() -> CacheStore:
    """
    Process-wide file cache, created on first use.

    Uses ``CACHE_DIR`` when configured, otherwise the session directory.
    """
    global _default_store
    with _default_guard:
        if _default_store is None:
            _default_store = FileCacheStore()
        return _default_store
