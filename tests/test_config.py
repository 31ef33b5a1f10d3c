"""Tests for cachepact.config module.

Covers:
- CacheConfig.from_mapping required keys and validation
- Directory normalization and expire coercion
- Immutability
- CacheSettings environment override and as_mapping()
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cachepact.backends import MemoryCache
from cachepact.config import (
    CacheConfig,
    CacheSettings,
    clear_settings_cache,
    coerce_expire,
    get_settings,
    normalize_dir,
)
from cachepact.errors import ConfigurationError, InvalidConfigError, MissingConfigError


@pytest.fixture
def raw(tmp_path):
    return {"enabled": True, "compress": True, "dir": str(tmp_path / "c"), "expire": 60}


class TestFromMapping:
    @pytest.mark.parametrize("missing", ["enabled", "compress", "dir", "expire"])
    def test_missing_required_key(self, raw, missing):
        del raw[missing]
        with pytest.raises(MissingConfigError) as exc_info:
            CacheConfig.from_mapping(raw)
        assert exc_info.value.key == missing
        assert isinstance(exc_info.value, ConfigurationError)
        assert exc_info.value.retryable is False

    def test_backend_construction_fails_fast(self, raw):
        del raw["dir"]
        with pytest.raises(MissingConfigError):
            MemoryCache(raw)

    def test_invalid_bool(self, raw):
        raw["enabled"] = "sometimes"
        with pytest.raises(InvalidConfigError) as exc_info:
            CacheConfig.from_mapping(raw)
        assert exc_info.value.key == "enabled"

    def test_invalid_expire(self, raw):
        raw["expire"] = "tomorrow"
        with pytest.raises(InvalidConfigError) as exc_info:
            CacheConfig.from_mapping(raw)
        assert exc_info.value.key == "expire"

    def test_empty_dir(self, raw):
        raw["dir"] = ""
        with pytest.raises(InvalidConfigError):
            CacheConfig.from_mapping(raw)

    def test_extra_keys_ignored(self, raw):
        raw["servers"] = ["127.0.0.1:11211"]
        cfg = CacheConfig.from_mapping(raw)
        assert cfg.expire == 60

    def test_accepts_ready_config(self, raw):
        cfg = CacheConfig.from_mapping(raw)
        assert CacheConfig.from_mapping(cfg) is cfg

    def test_path_objects_accepted(self, raw, tmp_path):
        raw["dir"] = tmp_path / "p"
        assert CacheConfig.from_mapping(raw).dir == str(tmp_path / "p")


class TestImmutability:
    def test_frozen(self, raw):
        cfg = CacheConfig.from_mapping(raw)
        with pytest.raises(ValidationError):
            cfg.enabled = False


class TestHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [("data/cache/", "data/cache"), ("data/cache///", "data/cache"), ("/", "/"), ("x", "x")],
    )
    def test_normalize_dir(self, value, expected):
        assert normalize_dir(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(10, 10), ("10", 10), (" 7 ", 7), (2.9, 2), (-3, -3), (0, 0), ("1e3", 1000)],
    )
    def test_coerce_expire(self, value, expected):
        assert coerce_expire(value) == expected

    def test_coerce_expire_rejects_bool(self):
        with pytest.raises(TypeError):
            coerce_expire(True)


class TestCacheSettings:
    def test_defaults(self):
        s = CacheSettings()
        assert s.backend == "file"
        assert s.enabled is True
        assert s.compress is True
        assert s.expire == 3600
        assert s.dir == "data/cache"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CACHEPACT_BACKEND", "memory")
        monkeypatch.setenv("CACHEPACT_ENABLED", "false")
        monkeypatch.setenv("CACHEPACT_EXPIRE", "90")
        s = CacheSettings()
        assert s.backend == "memory"
        assert s.enabled is False
        assert s.expire == 90

    def test_as_mapping_has_required_keys(self):
        assert set(CacheSettings().as_mapping()) == {"enabled", "compress", "dir", "expire"}

    def test_to_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CACHEPACT_DIR", str(tmp_path) + "/")
        assert CacheSettings().to_config().dir == str(tmp_path)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch):
        first = get_settings()
        clear_settings_cache()
        monkeypatch.setenv("CACHEPACT_BACKEND", "redis")
        second = get_settings()
        assert second is not first
        assert second.backend == "redis"


def test_dir_is_path_like_string(raw):
    assert isinstance(CacheConfig.from_mapping(raw).dir, str)
    assert Path(CacheConfig.from_mapping(raw).dir).name == "c"
