"""cachepact -- one cache contract, interchangeable storage backends.

Manifesto:
    Application code talks to a cache through five verbs (write, read,
    delete, clear, exists). Whether the bytes land on local disk, in process
    memory or in Redis is a construction-time decision. Every backend shares
    the same configuration model, expiration policy, advisory locking and
    instrumentation counters, so swapping one for another never changes a
    call site.

Architecture::

    Layer 1 -- Errors & Logging
        errors.py      CacheError hierarchy (ConfigurationError, StorageUnavailableError)
        logging.py     structlog configuration + get_logger

    Layer 2 -- Shared model
        config.py      CacheConfig (frozen) + CacheSettings (CACHEPACT_* env)
        stats.py       CacheStats read/write counters
        codec.py       JSON + zlib payloads, entry envelope
        locking.py     LockPolicy + bounded spin-wait check_lock

    Layer 3 -- Contract & backends
        base.py        CacheBackend abstract contract
        backends/      MemoryCache, FileCache, RedisCache
        registry.py    create_cache() by backend id

    Layer 4 -- Tooling
        cli.py         ``cachepact`` typer CLI

Examples:
    >>> from cachepact import create_cache
    >>> cache = create_cache("file", {"enabled": True, "compress": True,
    ...                               "dir": "data/cache", "expire": 3600})
    >>> cache.write("users/42", {"name": "Alice"})
    True
    >>> cache.read("users/42")
    {'name': 'Alice'}
    >>> cache.stats.to_dict()["exec_times"]
    2
"""

__version__ = "0.1.0"

from .backends import FileCache, MemoryCache, RedisCache
from .base import CacheBackend, normalize_key
from .codec import CacheEntry
from .config import CacheConfig, CacheSettings, get_settings
from .errors import (
    CacheError,
    CacheValueError,
    ConfigurationError,
    InvalidConfigError,
    InvalidKeyError,
    MissingConfigError,
    StorageUnavailableError,
)
from .locking import LockPolicy, check_lock
from .logging import configure_logging, get_logger
from .registry import (
    create_cache,
    create_cache_from_settings,
    list_backends,
    register_backend,
)
from .stats import CacheStats

__all__ = [
    "__version__",
    # Contract
    "CacheBackend",
    "CacheEntry",
    "normalize_key",
    # Backends
    "FileCache",
    "MemoryCache",
    "RedisCache",
    # Config
    "CacheConfig",
    "CacheSettings",
    "get_settings",
    # Locking / stats
    "LockPolicy",
    "check_lock",
    "CacheStats",
    # Registry
    "create_cache",
    "create_cache_from_settings",
    "list_backends",
    "register_backend",
    # Logging
    "configure_logging",
    "get_logger",
    # Errors
    "CacheError",
    "CacheValueError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidKeyError",
    "MissingConfigError",
    "StorageUnavailableError",
]
