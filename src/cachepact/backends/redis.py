"""Redis backend for caches shared between processes.

Requires the ``redis`` package (``pip install cachepact[redis]``).

Keys::

    <namespace>entry:<key>   packed envelope (see cachepact.codec), SET ... EX ttl
    <namespace>lock:<key>    lock token while a write is in flight

The namespace scopes the instance: ``clear()`` only ``SCAN``s keys under
``<namespace>entry:`` and never flushes the database. The configured ``dir``
is still validated and created; it is not used for data.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from ..base import CacheBackend, key_in_prefix
from ..codec import CacheEntry, pack_entry, unpack_entry
from ..config import CacheConfig
from ..errors import StorageUnavailableError
from ..locking import LockPolicy

T = TypeVar("T")

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(text: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisCache(CacheBackend):
    """Redis-backed cache.

    Args:
        cfg: Construction mapping (``enabled``, ``compress``, ``dir``, ``expire``).
        url: Redis connection URL, used when ``client`` is not given.
        namespace: Prefix for every Redis key this instance owns.
        client: Ready ``redis.Redis`` client (tests, shared pools).
        lock_policy: Spin-wait parameters.

    Raises:
        ImportError: If the ``redis`` package is not installed.
    """

    backend_id = "redis"

    def __init__(
        self,
        cfg: Mapping[str, Any] | CacheConfig,
        *,
        url: str = "redis://localhost:6379/0",
        namespace: str = "cachepact:",
        client: Any = None,
        lock_policy: LockPolicy | None = None,
    ):
        try:
            import redis
        except ImportError as exc:
            msg = (
                "Redis backend requires 'redis' package. "
                "Install with: pip install cachepact[redis]"
            )
            raise ImportError(msg) from exc

        self._errors: tuple[type[Exception], ...] = (redis.exceptions.RedisError, OSError)
        self._url = url
        self._namespace = namespace
        self._client = client if client is not None else redis.from_url(url, decode_responses=False)
        super().__init__(cfg, lock_policy=lock_policy)

    @property
    def client(self) -> Any:
        return self._client

    @property
    def url(self) -> str:
        return self._url

    @property
    def namespace(self) -> str:
        return self._namespace

    def entry_key(self, key: str) -> str:
        return f"{self._namespace}entry:{key}"

    def lock_key(self, key: str) -> str:
        return f"{self._namespace}lock:{key}"

    def _call(self, operation: str, key: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except self._errors as exc:
            raise StorageUnavailableError(f"Redis {operation} failed: {exc}", cause=exc).with_context(
                backend=self.backend_id,
                key=key,
                operation=operation,
                location=self._url,
            ) from exc

    # ------------------------------------------------------------------ #
    # Locking primitives
    # ------------------------------------------------------------------ #

    def _is_locked(self, key: str) -> bool:
        return bool(self._call("is_locked", key, self._client.exists, self.lock_key(key)))

    def _lock(self, key: str) -> None:
        self._call("lock", key, self._client.set, self.lock_key(key), str(os.getpid()).encode())

    def _unlock(self, key: str) -> None:
        self._call("unlock", key, self._client.delete, self.lock_key(key))

    # ------------------------------------------------------------------ #
    # Storage primitives
    # ------------------------------------------------------------------ #

    def _store(self, entry: CacheEntry, ttl: int) -> None:
        name = self.entry_key(entry.key)
        if ttl <= 0:
            # already expired: nothing to keep
            self._call("write", entry.key, self._client.delete, name)
            return
        self._call("write", entry.key, self._client.set, name, pack_entry(entry), ex=ttl)

    def _fetch(self, key: str) -> CacheEntry | None:
        blob = self._call("read", key, self._client.get, self.entry_key(key))
        if blob is None:
            return None
        if isinstance(blob, str):
            blob = blob.encode("latin-1")
        return unpack_entry(key, blob)

    def _remove(self, key: str) -> bool:
        return bool(self._call("delete", key, self._client.delete, self.entry_key(key)))

    def _scan(self, prefix: str) -> Iterable[str]:
        base = self.entry_key("")
        pattern = _escape_glob(base + prefix) + "*"
        names = self._call("clear", prefix, lambda: list(self._client.scan_iter(match=pattern)))
        for name in names:
            if isinstance(name, bytes):
                name = name.decode("utf-8")
            key = name[len(base):]
            if key_in_prefix(key, prefix):
                yield key

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            self._call("close", "", close)


__all__ = ["RedisCache"]
