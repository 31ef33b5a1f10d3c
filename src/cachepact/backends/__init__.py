"""
Concrete cache backends.

- memory.py: process-local dict (tests, single process)
- file.py: one file per key under the cache directory
- redis.py: Redis key-value store (requires the ``redis`` extra)
"""

from .file import FileCache
from .memory import MemoryCache
from .redis import RedisCache

__all__ = [
    "FileCache",
    "MemoryCache",
    "RedisCache",
]
