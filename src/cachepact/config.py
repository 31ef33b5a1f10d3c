"""Cache configuration: the validated construction model and env-driven settings.

Two layers:

``CacheConfig``
    The four-key construction model every backend receives (``enabled``,
    ``compress``, ``dir``, ``expire``). Built once through
    :meth:`CacheConfig.from_mapping`; missing keys fail fast with
    :class:`~cachepact.errors.MissingConfigError`. The model is frozen:
    ``enabled`` and ``compress`` can never change for the lifetime of a
    cache, otherwise some entries would be compressed and others not.

``CacheSettings``
    pydantic-settings class that reads ``CACHEPACT_*`` environment variables
    and ``.env`` files. Used by the CLI and
    :func:`cachepact.registry.create_cache_from_settings`.

Examples:
    >>> cfg = CacheConfig.from_mapping(
    ...     {"enabled": True, "compress": False, "dir": "data/cache/", "expire": 600}
    ... )
    >>> cfg.dir
    'data/cache'

Tags:
    settings, configuration, pydantic, environment, cachepact
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

try:
    from pydantic_settings import BaseSettings, SettingsConfigDict
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "cachepact.config requires pydantic-settings. "
        "Install it with: pip install pydantic-settings"
    ) from exc

from .errors import InvalidConfigError, MissingConfigError

REQUIRED_KEYS: tuple[str, ...] = ("enabled", "compress", "dir", "expire")

DEFAULT_EXPIRE = 3600


def normalize_dir(path: str | os.PathLike[str]) -> str:
    """Strip trailing separators, keeping a bare root intact."""
    text = os.fspath(path)
    stripped = text.rstrip("/" + os.sep)
    return stripped or text[:1]


def coerce_expire(value: Any) -> int:
    """Coerce an expiration to whole seconds (``"90"`` → 90, ``2.7`` → 2)."""
    if isinstance(value, bool):
        raise TypeError("expire must be a number, not a bool")
    if isinstance(value, str):
        value = float(value.strip())
    return int(value)


class CacheConfig(BaseModel):
    """Immutable construction settings shared by every backend.

    Fields
    ──────
    enabled   : Cache on/off. Off turns every write into a no-op.
    compress  : zlib-compress payloads before storing.
    dir       : Storage location (normalized, no trailing separator)
    expire    : Default lifetime in seconds for ``write`` without ``expire``
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool
    compress: bool
    dir: str
    expire: int

    @field_validator("dir", mode="before")
    @classmethod
    def _normalize_dir(cls, value: Any) -> str:
        if not isinstance(value, (str, os.PathLike)) or not os.fspath(value):
            raise ValueError("dir must be a non-empty path")
        return normalize_dir(value)

    @field_validator("expire", mode="before")
    @classmethod
    def _coerce_expire(cls, value: Any) -> int:
        try:
            return coerce_expire(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"expire must be an integer number of seconds: {exc}") from exc

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> CacheConfig:
        """Validate a raw configuration mapping.

        Raises:
            MissingConfigError: one of ``enabled``, ``compress``, ``dir``,
                ``expire`` is absent.
            InvalidConfigError: a value has the wrong type.
        """
        if isinstance(cfg, CacheConfig):
            return cfg
        for key in REQUIRED_KEYS:
            if key not in cfg:
                raise MissingConfigError(key)
        try:
            return cls.model_validate({key: cfg[key] for key in REQUIRED_KEYS})
        except ValidationError as exc:
            first = exc.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else "config"
            raise InvalidConfigError(
                field,
                cfg.get(field),
                f"Invalid configuration for {field}: {first['msg']}",
            ) from exc


class CacheSettings(BaseSettings):
    """Environment-driven cache settings.

    All fields can be set via ``CACHEPACT_*`` environment variables (e.g.
    ``CACHEPACT_BACKEND=redis``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHEPACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend ──────────────────────────────────────────────────
    backend: str = Field(default="file", description="Registered backend id")

    # ── Contract ─────────────────────────────────────────────────
    enabled: bool = Field(default=True)
    compress: bool = Field(default=True)
    dir: str = Field(default="data/cache")
    expire: int = Field(default=DEFAULT_EXPIRE)

    # ── Redis ────────────────────────────────────────────────────
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_namespace: str = Field(default="cachepact:")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING")
    log_format: Literal["json", "console", "auto"] = Field(default="auto")

    def as_mapping(self) -> dict[str, Any]:
        """Return the four-key construction mapping."""
        return {
            "enabled": self.enabled,
            "compress": self.compress,
            "dir": self.dir,
            "expire": self.expire,
        }

    def to_config(self) -> CacheConfig:
        return CacheConfig.from_mapping(self.as_mapping())


_settings_cache: dict[str, CacheSettings] = {}


def get_settings(*, _force_reload: bool = False) -> CacheSettings:
    """Load, validate, and cache a :class:`CacheSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = CacheSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "DEFAULT_EXPIRE",
    "REQUIRED_KEYS",
    "CacheConfig",
    "CacheSettings",
    "clear_settings_cache",
    "coerce_expire",
    "get_settings",
    "normalize_dir",
]
