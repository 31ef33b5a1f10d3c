"""
Shared pytest fixtures for cachepact tests.

This module provides:
- ``cfg`` construction mappings rooted in a temporary directory
- ``FakeRedisClient``, a dict-backed stand-in for ``redis.Redis``
- ``any_cache`` parametrized over every built-in backend
- Auto-marking of tests (unit / integration / slow)
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Any

import pytest

from cachepact.backends import FileCache, MemoryCache
from cachepact.config import clear_settings_cache


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep CACHEPACT_* env vars from the host out of tests."""
    import os

    for name in list(os.environ):
        if name.startswith("CACHEPACT_"):
            monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Configuration fixtures
# =============================================================================


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def cfg(cache_dir: Path) -> dict[str, Any]:
    """Enabled, uncompressed, one-hour default."""
    return {"enabled": True, "compress": False, "dir": str(cache_dir), "expire": 3600}


# =============================================================================
# Redis test double
# =============================================================================


def _redis_glob_to_regex(pattern: str) -> re.Pattern[str]:
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


class FakeRedisClient:
    """Minimal in-process imitation of the redis-py client surface we use."""

    def __init__(self):
        self.data: dict[str, tuple[bytes, float | None]] = {}
        self.closed = False

    def _live(self, name: str) -> bytes | None:
        row = self.data.get(name)
        if row is None:
            return None
        value, expires_at = row
        if expires_at is not None and time.time() >= expires_at:
            del self.data[name]
            return None
        return value

    def set(self, name: str, value: bytes, ex: int | None = None) -> bool:
        self.data[name] = (value, time.time() + ex if ex else None)
        return True

    def get(self, name: str) -> bytes | None:
        return self._live(name)

    def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            if self._live(name) is not None:
                removed += 1
            self.data.pop(name, None)
        return removed

    def exists(self, *names: str) -> int:
        return sum(1 for name in names if self._live(name) is not None)

    def scan_iter(self, match: str | None = None):
        regex = _redis_glob_to_regex(match or "*")
        for name in list(self.data):
            if regex.match(name) and self._live(name) is not None:
                yield name.encode("utf-8")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


# =============================================================================
# Backend fixtures
# =============================================================================


def _make_cache(kind: str, cfg: dict[str, Any], **options: Any):
    if kind == "memory":
        return MemoryCache(cfg, **options)
    if kind == "file":
        return FileCache(cfg, **options)
    pytest.importorskip("redis")
    from cachepact.backends import RedisCache

    return RedisCache(cfg, client=FakeRedisClient(), **options)


@pytest.fixture(params=["memory", "file", "redis"])
def backend_kind(request: pytest.FixtureRequest) -> str:
    return request.param


@pytest.fixture
def make_cache(backend_kind: str, cfg: dict[str, Any]):
    """Factory: ``make_cache(enabled=False, compress=True, ...)`` for the current backend."""

    def factory(*, lock_policy=None, **overrides: Any):
        return _make_cache(backend_kind, {**cfg, **overrides}, lock_policy=lock_policy)

    return factory


@pytest.fixture
def any_cache(make_cache):
    return make_cache()
