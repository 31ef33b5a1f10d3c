"""Value serialization and the stored entry envelope.

Values are JSON-encoded (scalars, lists, dicts) and optionally
zlib-compressed. The compression flag and the absolute expiration time travel
with the payload so a reader never has to guess how an entry was written.

Envelope layout (``pack_entry`` / ``unpack_entry``)::

    ┌────────┬───────┬──────────────────┬──────────────┐
    │ "CPK1" │ flags │ expires_at (f64) │ payload ...  │
    │ 4 B    │ 1 B   │ 8 B big-endian   │              │
    └────────┴───────┴──────────────────┴──────────────┘
    flags bit 0 = compressed

Used verbatim by the file and Redis backends; the memory backend keeps
:class:`CacheEntry` objects directly.
"""

from __future__ import annotations

import json
import struct
import time
import zlib
from dataclasses import dataclass
from typing import Any

from .errors import CacheValueError

MAGIC = b"CPK1"
_HEADER = struct.Struct(">4sBd")
_FLAG_COMPRESSED = 0x01

HEADER_SIZE = _HEADER.size


class CorruptEntryError(ValueError):
    """Stored bytes do not form a valid entry envelope."""


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One stored payload with its compression flag and expiration."""

    key: str
    payload: bytes
    compressed: bool
    expires_at: float

    def is_expired(self, now: float | None = None) -> bool:
        return (time.time() if now is None else now) > self.expires_at

    @property
    def size(self) -> int:
        return len(self.payload)


def encode_value(value: Any, *, compress: bool) -> bytes:
    """Serialize ``value`` to the stored payload bytes."""
    try:
        raw = json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise CacheValueError(
            f"Value of type {type(value).__name__} is not cacheable",
            cause=exc,
        ) from exc
    data = raw.encode("utf-8")
    return zlib.compress(data) if compress else data


def decode_value(payload: bytes, *, compressed: bool) -> Any:
    """Inverse of :func:`encode_value`."""
    try:
        data = zlib.decompress(payload) if compressed else payload
        return json.loads(data.decode("utf-8"))
    except (zlib.error, UnicodeDecodeError, ValueError) as exc:
        raise CorruptEntryError(f"Undecodable payload: {exc}") from exc


def make_entry(key: str, value: Any, *, expire: int, compress: bool, now: float | None = None) -> CacheEntry:
    """Build the entry for ``write``: serialize, compress, stamp expiry."""
    stored_at = time.time() if now is None else now
    return CacheEntry(
        key=key,
        payload=encode_value(value, compress=compress),
        compressed=compress,
        expires_at=stored_at + expire,
    )


def pack_entry(entry: CacheEntry) -> bytes:
    flags = _FLAG_COMPRESSED if entry.compressed else 0
    return _HEADER.pack(MAGIC, flags, entry.expires_at) + entry.payload


def unpack_entry(key: str, blob: bytes) -> CacheEntry:
    if len(blob) < HEADER_SIZE:
        raise CorruptEntryError(f"Entry too short ({len(blob)} bytes)")
    magic, flags, expires_at = _HEADER.unpack_from(blob)
    if magic != MAGIC:
        raise CorruptEntryError(f"Bad magic {magic!r}")
    return CacheEntry(
        key=key,
        payload=bytes(blob[HEADER_SIZE:]),
        compressed=bool(flags & _FLAG_COMPRESSED),
        expires_at=expires_at,
    )


__all__ = [
    "HEADER_SIZE",
    "MAGIC",
    "CacheEntry",
    "CorruptEntryError",
    "decode_value",
    "encode_value",
    "make_entry",
    "pack_entry",
    "unpack_entry",
]
