"""
The cache contract every backend implements.

Manifesto:
    Application code should be able to swap a filesystem cache for Redis
    without touching a single call site. ``CacheBackend`` owns everything
    that must behave identically across storage technologies: the enabled
    flag, compression, expiration, advisory locking, key validation and
    instrumentation. Backends only move bytes.

Architecture:
    ::

        CacheBackend (ABC)
        ├── public contract ──────────────────────────────────────────
        │   write(key, value, expire=None) → bool
        │   read(key, default=None)        → value | default
        │   delete(key)
        │   clear(prefix="")               → int
        │   exists(key)                    → bool
        │   set_cache_dir(dir) / set_expire(seconds)  → self
        ├── locking (keys validated, then _is_locked/_lock/_unlock) ─────
        │   is_locked(key) / lock(key) / unlock(key)  → self
        └── storage primitives (abstract) ───────────────────────────
            _store(entry, ttl) / _fetch(key) / _remove(key) / _scan(prefix)

        write: enabled? → encode → check_lock → lock → _store → unlock → stats
        read:  enabled? → _fetch → expired? purge → decode → stats

        Implementations:
        ├── MemoryCache  (cachepact.backends.memory)
        ├── FileCache    (cachepact.backends.file)
        └── RedisCache   (cachepact.backends.redis)

Keys:
    Non-empty strings. ``/`` separates hierarchy levels, which is what
    ``clear(prefix)`` scopes on: ``clear("users")`` removes ``users`` and
    ``users/...`` but not ``users2``. Keys with ``..``/``.`` segments,
    backslashes or NUL bytes are rejected so no key can address storage
    outside the cache's own location.

Guardrails:
    ❌ DON'T: Mutate storage from a subclass without ``check_lock``
    ✅ DO: Implement the storage and lock hooks and let the base orchestrate

    ❌ DON'T: Cache live resources (sockets, files, locks)
    ✅ DO: Cache JSON-serializable scalars, lists and dicts

Tags:
    cache, contract, abc, locking, ttl, compression, cachepact

Doc-Types:
    - API Reference
    - Backend Implementation Guide
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from .codec import CacheEntry, CorruptEntryError, decode_value, make_entry
from .config import CacheConfig, coerce_expire, normalize_dir
from .errors import InvalidConfigError, InvalidKeyError
from .locking import LockPolicy, check_lock
from .logging import get_logger
from .stats import CacheStats

logger = get_logger(__name__)


def normalize_key(key: Any) -> str:
    """Validate a cache key and strip leading/trailing ``/``."""
    if not isinstance(key, str):
        raise InvalidKeyError(key, "must be a string")
    if "\x00" in key or "\\" in key:
        raise InvalidKeyError(key, "contains a NUL byte or backslash")
    cleaned = key.strip("/")
    if not cleaned:
        raise InvalidKeyError(key, "is empty")
    if any(part in ("", ".", "..") for part in cleaned.split("/")):
        raise InvalidKeyError(key, "contains an empty, '.' or '..' segment")
    return cleaned


def normalize_prefix(prefix: str) -> str:
    """Like :func:`normalize_key` but the empty prefix means "everything"."""
    if prefix is None or (isinstance(prefix, str) and not prefix.strip("/")):
        return ""
    return normalize_key(prefix)


def key_in_prefix(key: str, prefix: str) -> bool:
    """True if ``key`` is ``prefix`` itself or lives below it."""
    return not prefix or key == prefix or key.startswith(prefix + "/")


class CacheBackend(ABC):
    """Abstract cache with the shared configuration, locking and counters.

    Args:
        cfg: Mapping with the required keys ``enabled``, ``compress``,
            ``dir`` and ``expire`` (or a ready :class:`CacheConfig`).
        lock_policy: Spin-wait parameters for :meth:`check_lock`.

    Raises:
        MissingConfigError: a required key is absent.
        InvalidConfigError: a value has the wrong type.
    """

    backend_id: str = "abstract"

    def __init__(
        self,
        cfg: Mapping[str, Any] | CacheConfig,
        *,
        lock_policy: LockPolicy | None = None,
    ):
        config = CacheConfig.from_mapping(cfg)

        # Fixed for the lifetime of the instance
        self._enabled = config.enabled
        self._compress = config.compress

        self._cache_dir = config.dir
        self._expire = config.expire
        self._lock_policy = lock_policy or LockPolicy()
        self._stats = CacheStats()

        self.set_cache_dir(config.dir).set_expire(config.expire)

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def compress(self) -> bool:
        return self._compress

    @property
    def cache_dir(self) -> str:
        return self._cache_dir

    @property
    def expire(self) -> int:
        return self._expire

    @property
    def lock_policy(self) -> LockPolicy:
        return self._lock_policy

    @property
    def config(self) -> CacheConfig:
        """Current configuration, including setter changes."""
        return CacheConfig(
            enabled=self._enabled,
            compress=self._compress,
            dir=self._cache_dir,
            expire=self._expire,
        )

    def set_cache_dir(self, path: str | os.PathLike[str]) -> CacheBackend:
        """Set the storage directory, creating it if missing.

        Creation is best-effort: a failure is logged and resurfaces as a
        storage error on the first write.
        """
        if not os.fspath(path):
            raise InvalidConfigError("dir", path, "Cache directory must be a non-empty path")
        self._cache_dir = normalize_dir(path)
        if not os.path.isdir(self._cache_dir):
            try:
                os.makedirs(self._cache_dir, mode=0o755, exist_ok=True)
            except OSError as exc:
                logger.warning(
                    "cache_dir_create_failed",
                    backend=self.backend_id,
                    dir=self._cache_dir,
                    error=str(exc),
                )
        return self

    def set_expire(self, seconds: Any) -> CacheBackend:
        """Set the default expiration (seconds). Zero or negative is accepted."""
        try:
            self._expire = coerce_expire(seconds)
        except (TypeError, ValueError) as exc:
            raise InvalidConfigError("expire", seconds) from exc
        return self

    # ------------------------------------------------------------------ #
    # Instrumentation (read-only)
    # ------------------------------------------------------------------ #

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def read_times(self) -> int:
        return self._stats.read_times

    @property
    def write_times(self) -> int:
        return self._stats.write_times

    @property
    def exec_times(self) -> int:
        return self._stats.exec_times

    @property
    def read_size(self) -> float:
        return self._stats.read_size

    @property
    def write_size(self) -> float:
        return self._stats.write_size

    # ------------------------------------------------------------------ #
    # Locking
    # ------------------------------------------------------------------ #

    def check_lock(self, key: str) -> bool:
        """Wait (bounded) until ``key`` is unlocked; force-release on timeout.

        Returns ``True`` when the lock was forcibly released.
        """
        return check_lock(self, self._key(key), self._lock_policy)

    def is_locked(self, key: str) -> bool:
        """Whether a lock token exists for ``key``."""
        return self._is_locked(self._key(key))

    def lock(self, key: str) -> CacheBackend:
        """Create (or refresh) the lock token for ``key``."""
        self._lock(self._key(key))
        return self

    def unlock(self, key: str) -> CacheBackend:
        """Remove the lock token for ``key``; no-op if absent."""
        self._unlock(self._key(key))
        return self

    @abstractmethod
    def _is_locked(self, key: str) -> bool: ...

    @abstractmethod
    def _lock(self, key: str) -> None: ...

    @abstractmethod
    def _unlock(self, key: str) -> None: ...

    # ------------------------------------------------------------------ #
    # Storage primitives
    # ------------------------------------------------------------------ #

    def _validate_key(self, key: str) -> None:
        """Backend-specific key restrictions on top of :func:`normalize_key`."""

    def _key(self, key: Any) -> str:
        key = normalize_key(key)
        self._validate_key(key)
        return key

    @abstractmethod
    def _store(self, entry: CacheEntry, ttl: int) -> None:
        """Persist ``entry`` (replacing any previous one)."""

    @abstractmethod
    def _fetch(self, key: str) -> CacheEntry | None:
        """Load the raw entry for ``key`` or ``None``; may raise CorruptEntryError."""

    @abstractmethod
    def _remove(self, key: str) -> bool:
        """Remove the entry for ``key``. Returns whether it existed."""

    @abstractmethod
    def _scan(self, prefix: str) -> Iterable[str]:
        """Yield the keys of stored entries under ``prefix`` ("" = all)."""

    def _after_clear(self, prefix: str) -> None:
        """Hook for backends that need to tidy up after ``clear``."""

    # ------------------------------------------------------------------ #
    # Public contract
    # ------------------------------------------------------------------ #

    def write(self, key: str, value: Any, expire: int | None = None) -> bool:
        """Store ``value`` under ``key``.

        Args:
            key: Cache key.
            value: JSON-serializable scalar, list or dict.
            expire: Lifetime in seconds; ``None`` uses the configured
                default. Pass a large number for an effectively permanent
                entry. Zero or negative stores an already-expired entry.

        Returns:
            ``True``. A disabled cache returns ``True`` without storing.

        Raises:
            CacheValueError: ``value`` is not serializable.
            InvalidKeyError: malformed key.
            StorageUnavailableError: the backend medium failed.
        """
        if not self._enabled:
            return True

        key = self._key(key)
        if expire is None:
            ttl = self._expire
        else:
            try:
                ttl = coerce_expire(expire)
            except (TypeError, ValueError) as exc:
                raise InvalidConfigError("expire", expire) from exc
        entry = make_entry(key, value, expire=ttl, compress=self._compress)

        self.check_lock(key)
        self.lock(key)
        try:
            self._store(entry, ttl)
        finally:
            self.unlock(key)

        self._stats.record_write(entry.size)
        logger.debug("cache_write", backend=self.backend_id, key=key, bytes=entry.size, expire=ttl)
        return True

    def read(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default`` when absent.

        Missing, expired and undecodable entries all read as absent;
        expired ones are purged on the way out.
        """
        if not self._enabled:
            return default

        key = self._key(key)
        entry = self._load_live(key)
        if entry is None:
            return default

        try:
            value = decode_value(entry.payload, compressed=entry.compressed)
        except CorruptEntryError as exc:
            self._discard_corrupt(key, exc)
            return default

        self._stats.record_read(entry.size)
        logger.debug("cache_read", backend=self.backend_id, key=key, bytes=entry.size)
        return value

    def exists(self, key: str) -> bool:
        """Whether a non-expired entry exists. Does not touch the counters."""
        if not self._enabled:
            return False
        return self._load_live(self._key(key)) is not None

    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""
        if not self._enabled:
            return

        key = self._key(key)
        self.check_lock(key)
        self.lock(key)
        try:
            existed = self._remove(key)
        finally:
            self.unlock(key)
        logger.debug("cache_delete", backend=self.backend_id, key=key, existed=existed)

    def clear(self, prefix: str = "") -> int:
        """Remove every entry under ``prefix`` (``""`` = all entries of this cache).

        Returns:
            Number of entries removed.
        """
        if not self._enabled:
            return 0

        prefix = normalize_prefix(prefix)
        if prefix:
            self._validate_key(prefix)
        removed = 0
        for key in list(self._scan(prefix)):
            self.check_lock(key)
            if self._remove(key):
                removed += 1
        self._after_clear(prefix)
        logger.debug("cache_clear", backend=self.backend_id, prefix=prefix, removed=removed)
        return removed

    def close(self) -> None:
        """Release backend resources. The default has nothing to release."""

    def __enter__(self) -> CacheBackend:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(dir={self._cache_dir!r}, enabled={self._enabled}, "
            f"compress={self._compress}, expire={self._expire})"
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _load_live(self, key: str) -> CacheEntry | None:
        try:
            entry = self._fetch(key)
        except CorruptEntryError as exc:
            self._discard_corrupt(key, exc)
            return None
        if entry is None:
            return None
        if entry.is_expired():
            self._remove(key)
            return None
        return entry

    def _discard_corrupt(self, key: str, exc: Exception) -> None:
        logger.warning("cache_entry_corrupt", backend=self.backend_id, key=key, error=str(exc))
        self._remove(key)


__all__ = [
    "CacheBackend",
    "key_in_prefix",
    "normalize_key",
    "normalize_prefix",
]
