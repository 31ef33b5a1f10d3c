"""Filesystem backend: one file per key under the cache directory.

Layout::

    <dir>/users/42.cache        entry for key "users/42"
    <dir>/users/42.cache.lock   lock token while a write is in flight
    <dir>/users/.42.cache.<id>.tmp   staging file, renamed into place

Entries are written to a staging file in the same directory and moved into
place with ``os.replace``, so a reader sees either the old file or the new
one. The lock file only serializes writers.

Each entry file holds the envelope from :mod:`cachepact.codec` (magic,
compression flag, ``expires_at``, payload).
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Iterable

from ..base import CacheBackend
from ..codec import CacheEntry, pack_entry, unpack_entry
from ..errors import InvalidKeyError, StorageUnavailableError

ENTRY_SUFFIX = ".cache"
LOCK_SUFFIX = ".lock"


class FileCache(CacheBackend):
    """Cache stored as files below ``dir``.

    ``clear(prefix)`` maps to the ``<dir>/<prefix>`` subtree (plus the
    ``<dir>/<prefix>.cache`` entry itself), so nothing outside ``dir`` is
    ever touched.
    """

    backend_id = "file"

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    def entry_path(self, key: str) -> str:
        return os.path.join(self.cache_dir, *key.split("/")) + ENTRY_SUFFIX

    def lock_path(self, key: str) -> str:
        return self.entry_path(key) + LOCK_SUFFIX

    def _validate_key(self, key: str) -> None:
        # directory segments must not shadow entry or lock file names
        for part in key.split("/")[:-1]:
            if part.endswith((ENTRY_SUFFIX, LOCK_SUFFIX)):
                raise InvalidKeyError(
                    key, f"directory segment {part!r} ends with {ENTRY_SUFFIX!r} or {LOCK_SUFFIX!r}"
                )

    def _storage_error(self, message: str, key: str, operation: str, exc: OSError) -> StorageUnavailableError:
        return StorageUnavailableError(f"{message}: {exc}", cause=exc).with_context(
            backend=self.backend_id,
            key=key,
            operation=operation,
            location=self.cache_dir,
        )

    # ------------------------------------------------------------------ #
    # Locking primitives
    # ------------------------------------------------------------------ #

    def _is_locked(self, key: str) -> bool:
        return os.path.exists(self.lock_path(key))

    def _lock(self, key: str) -> None:
        path = self.lock_path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="ascii") as fh:
                fh.write(str(os.getpid()))
        except OSError as exc:
            raise self._storage_error("Cannot create lock file", key, "lock", exc) from exc

    def _unlock(self, key: str) -> None:
        try:
            os.remove(self.lock_path(key))
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise self._storage_error("Cannot remove lock file", key, "unlock", exc) from exc

    # ------------------------------------------------------------------ #
    # Storage primitives
    # ------------------------------------------------------------------ #

    def _store(self, entry: CacheEntry, ttl: int) -> None:
        path = self.entry_path(entry.key)
        directory, name = os.path.split(path)
        staging = os.path.join(directory, f".{name}.{uuid.uuid4().hex}.tmp")
        try:
            os.makedirs(directory, exist_ok=True)
            with open(staging, "wb") as fh:
                fh.write(pack_entry(entry))
            os.replace(staging, path)
        except OSError as exc:
            try:
                os.remove(staging)
            except OSError:
                pass
            raise self._storage_error("Cannot write cache entry", entry.key, "write", exc) from exc

    def _fetch(self, key: str) -> CacheEntry | None:
        try:
            with open(self.entry_path(key), "rb") as fh:
                blob = fh.read()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as exc:
            raise self._storage_error("Cannot read cache entry", key, "read", exc) from exc
        return unpack_entry(key, blob)

    def _remove(self, key: str) -> bool:
        try:
            os.remove(self.entry_path(key))
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as exc:
            raise self._storage_error("Cannot remove cache entry", key, "delete", exc) from exc
        return True

    def _scan(self, prefix: str) -> Iterable[str]:
        if prefix and os.path.isfile(self.entry_path(prefix)):
            yield prefix

        root = os.path.join(self.cache_dir, *prefix.split("/")) if prefix else self.cache_dir
        for dirpath, _dirnames, filenames in os.walk(root):
            rel = os.path.relpath(dirpath, self.cache_dir)
            parts = [] if rel == os.curdir else rel.split(os.sep)
            for filename in sorted(filenames):
                if not filename.endswith(ENTRY_SUFFIX):
                    continue
                yield "/".join(parts + [filename[: -len(ENTRY_SUFFIX)]])

    def _after_clear(self, prefix: str) -> None:
        """Drop directories left empty under the cleared subtree."""
        root = os.path.join(self.cache_dir, *prefix.split("/")) if prefix else self.cache_dir
        for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
            if os.path.normpath(dirpath) == os.path.normpath(self.cache_dir):
                continue
            try:
                os.rmdir(dirpath)
            except OSError:
                # not empty (lock or staging file present)
                continue


__all__ = ["ENTRY_SUFFIX", "FileCache", "LOCK_SUFFIX"]
