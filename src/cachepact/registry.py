"""Backend registry and factory.

Manifesto:
    Consumers should never hard-code backend class names. The registry maps
    backend ids to classes and :func:`create_cache` builds a configured
    instance from the four-key mapping, so switching from the filesystem to
    Redis is a configuration change.

Features:
    - ``BackendRegistry`` with pre-registered ``memory``, ``file``, ``redis``
    - ``register_backend()`` for custom / third-party backends
    - ``create_cache()`` factory: backend id + config mapping → cache
    - ``create_cache_from_settings()``: ``CACHEPACT_*`` env → cache

Tags:
    cachepact, registry, factory, backend-selection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from threading import Lock
from typing import Any

from .backends import FileCache, MemoryCache, RedisCache
from .base import CacheBackend
from .config import CacheConfig, CacheSettings, get_settings
from .errors import ConfigurationError


class BackendRegistry:
    """
    Registry of cache backend classes keyed by id.

    Pre-registered backends:
    - ``memory``: :class:`MemoryCache`
    - ``file`` / ``filesystem``: :class:`FileCache`
    - ``redis``: :class:`RedisCache`
    """

    def __init__(self):
        self._factories: dict[str, type[CacheBackend]] = {}
        self._lock = Lock()
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories["memory"] = MemoryCache
        self._factories["file"] = FileCache
        self._factories["filesystem"] = FileCache  # Alias
        self._factories["redis"] = RedisCache

    def register(self, name: str, backend_class: type[CacheBackend], *, overwrite: bool = False) -> None:
        """Register a backend class under ``name``."""
        key = name.strip().lower()
        if not key:
            raise ConfigurationError("Cache backend id must be non-empty")
        with self._lock:
            if key in self._factories and not overwrite:
                raise ConfigurationError(f"Cache backend already registered: {key}")
            self._factories[key] = backend_class

    def unregister(self, name: str) -> None:
        with self._lock:
            self._factories.pop(name.strip().lower(), None)

    def get(self, name: str) -> type[CacheBackend]:
        key = name.strip().lower()
        with self._lock:
            backend_class = self._factories.get(key)
        if backend_class is None:
            raise ConfigurationError(f"Unknown cache backend: {name}").with_context(
                available=self.list_backends()
            )
        return backend_class

    def create(self, name: str, cfg: Mapping[str, Any] | CacheConfig, **options: Any) -> CacheBackend:
        """Create a cache by backend id."""
        return self.get(name)(cfg, **options)

    def list_backends(self) -> list[str]:
        """List registered backend ids."""
        with self._lock:
            return sorted(self._factories.keys())


# Global registry
backend_registry = BackendRegistry()


def register_backend(name: str, backend_class: type[CacheBackend], *, overwrite: bool = False) -> None:
    backend_registry.register(name, backend_class, overwrite=overwrite)


def list_backends() -> list[str]:
    return backend_registry.list_backends()


def create_cache(
    backend: str | type[CacheBackend],
    cfg: Mapping[str, Any] | CacheConfig,
    **options: Any,
) -> CacheBackend:
    """
    Create a cache instance.

    Usage:
        cache = create_cache("file", {"enabled": True, "compress": True,
                                      "dir": "data/cache", "expire": 3600})
        cache = create_cache("redis", cfg, url="redis://cache:6379/2")
    """
    if isinstance(backend, type):
        return backend(cfg, **options)
    return backend_registry.create(backend, cfg, **options)


def create_cache_from_settings(settings: CacheSettings | None = None, **options: Any) -> CacheBackend:
    """Build the cache described by ``CACHEPACT_*`` settings."""
    settings = settings or get_settings()
    backend_class = backend_registry.get(settings.backend)
    if issubclass(backend_class, RedisCache):
        options.setdefault("url", settings.redis_url)
        options.setdefault("namespace", settings.redis_namespace)
    return backend_class(settings.to_config(), **options)


__all__ = [
    "BackendRegistry",
    "backend_registry",
    "create_cache",
    "create_cache_from_settings",
    "list_backends",
    "register_backend",
]
