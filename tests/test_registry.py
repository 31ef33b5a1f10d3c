"""Tests for cachepact.registry: backend lookup and factories."""

import pytest

from cachepact.backends import FileCache, MemoryCache
from cachepact.config import CacheSettings
from cachepact.errors import ConfigurationError
from cachepact.registry import (
    BackendRegistry,
    create_cache,
    create_cache_from_settings,
    list_backends,
)


class TestBackendRegistry:
    def test_defaults_registered(self):
        assert BackendRegistry().list_backends() == ["file", "filesystem", "memory", "redis"]

    def test_lookup_is_case_insensitive(self):
        assert BackendRegistry().get(" Memory ") is MemoryCache

    def test_filesystem_alias(self):
        assert BackendRegistry().get("filesystem") is FileCache

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BackendRegistry().get("memcached")
        assert "memcached" in exc_info.value.message
        assert exc_info.value.context.metadata["available"] == [
            "file",
            "filesystem",
            "memory",
            "redis",
        ]

    def test_register_custom(self, cfg):
        class TracingCache(MemoryCache):
            backend_id = "tracing"

        registry = BackendRegistry()
        registry.register("tracing", TracingCache)
        assert isinstance(registry.create("tracing", cfg), TracingCache)

    def test_register_refuses_duplicate(self):
        registry = BackendRegistry()
        with pytest.raises(ConfigurationError):
            registry.register("memory", FileCache)
        registry.register("memory", FileCache, overwrite=True)
        assert registry.get("memory") is FileCache

    def test_register_rejects_blank_name(self):
        with pytest.raises(ConfigurationError):
            BackendRegistry().register("  ", MemoryCache)

    def test_unregister(self):
        registry = BackendRegistry()
        registry.unregister("filesystem")
        registry.unregister("filesystem")
        assert "filesystem" not in registry.list_backends()


class TestFactories:
    def test_create_cache_by_id(self, cfg):
        cache = create_cache("memory", cfg)
        assert isinstance(cache, MemoryCache)
        assert cache.expire == 3600

    def test_create_cache_by_class(self, cfg):
        assert isinstance(create_cache(FileCache, cfg), FileCache)

    def test_global_list(self):
        assert "redis" in list_backends()

    def test_from_settings(self, tmp_path):
        settings = CacheSettings(backend="memory", dir=str(tmp_path / "c"), expire=42)
        cache = create_cache_from_settings(settings)
        assert isinstance(cache, MemoryCache)
        assert cache.expire == 42
        assert cache.cache_dir == str(tmp_path / "c")

    def test_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CACHEPACT_BACKEND", "file")
        monkeypatch.setenv("CACHEPACT_DIR", str(tmp_path / "env"))
        monkeypatch.setenv("CACHEPACT_COMPRESS", "0")
        cache = create_cache_from_settings()
        assert isinstance(cache, FileCache)
        assert cache.compress is False

    def test_from_settings_passes_redis_options(self, tmp_path, fake_redis):
        pytest.importorskip("redis")
        settings = CacheSettings(
            backend="redis",
            dir=str(tmp_path / "c"),
            redis_url="redis://cache:6379/2",
            redis_namespace="svc:",
        )
        cache = create_cache_from_settings(settings, client=fake_redis)
        assert cache.url == "redis://cache:6379/2"
        assert cache.namespace == "svc:"
