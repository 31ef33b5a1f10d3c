"""Process-local in-memory backend.

Entries live in a dict guarded by an ``RLock``, so one instance can be shared
between threads of a single process. Nothing survives the process; use
:class:`~cachepact.backends.file.FileCache` or
:class:`~cachepact.backends.redis.RedisCache` to share entries.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Any

from ..base import CacheBackend, key_in_prefix
from ..codec import CacheEntry
from ..config import CacheConfig
from ..locking import LockPolicy


class MemoryCache(CacheBackend):
    """Dict-backed cache.

    The configured ``dir`` is validated and created like for every backend
    but no data is written there.

    Example:
        cache = MemoryCache({"enabled": True, "compress": False, "dir": "/tmp/c", "expire": 60})
        cache.write("session/abc", {"user_id": 42})
        cache.read("session/abc")
    """

    backend_id = "memory"

    def __init__(
        self,
        cfg: Mapping[str, Any] | CacheConfig,
        *,
        lock_policy: LockPolicy | None = None,
    ):
        self._rows: dict[str, CacheEntry] = {}
        self._locks: set[str] = set()
        self._mutex = threading.RLock()
        super().__init__(cfg, lock_policy=lock_policy)

    def _is_locked(self, key: str) -> bool:
        with self._mutex:
            return key in self._locks

    def _lock(self, key: str) -> None:
        with self._mutex:
            self._locks.add(key)

    def _unlock(self, key: str) -> None:
        with self._mutex:
            self._locks.discard(key)

    def _store(self, entry: CacheEntry, ttl: int) -> None:
        with self._mutex:
            self._rows[entry.key] = entry

    def _fetch(self, key: str) -> CacheEntry | None:
        with self._mutex:
            return self._rows.get(key)

    def _remove(self, key: str) -> bool:
        with self._mutex:
            return self._rows.pop(key, None) is not None

    def _scan(self, prefix: str) -> Iterable[str]:
        with self._mutex:
            return [key for key in self._rows if key_in_prefix(key, prefix)]

    def size(self) -> int:
        """Number of stored entries, expired ones included until purged."""
        with self._mutex:
            return len(self._rows)


__all__ = ["MemoryCache"]
