"""
Structured error types for cachepact.

Every failure a cache backend can surface is a ``CacheError`` carrying a
category, a retry hint, structured context and the chained low-level cause.
Callers can catch the whole family with one ``except CacheError`` or pick the
specific branch they care about.

Manifesto:
    A cache sits on the hot path of application code. When it fails, the
    caller needs to decide quickly whether to retry, fall through to the
    source of truth, or crash. Generic ``OSError``/``redis.ConnectionError``
    leak backend details into call sites that are supposed to be
    backend-agnostic.

    - **Typed hierarchy:** configuration, storage and validation branches
    - **Explicit retry semantics:** storage failures are retryable, config is not
    - **Rich context:** backend name, key and location ride along for logging
    - **Error chaining:** the original exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        CacheError                            │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigurationError     StorageUnavailableError   CacheValueError
        │  (CONFIG)               (STORAGE, retryable)      (VALIDATION)
        │       │                                                │
        │  MissingConfigError                              InvalidKeyError
        │  InvalidConfigError                                          │
        └─────────────────────────────────────────────────────────────┘

    Lock contention and missing keys are deliberately absent: the lock
    coordinator absorbs contention and a missing key reads as "absent".

Examples:
    >>> err = StorageUnavailableError("disk full").with_context(backend="file", key="a/b")
    >>> err.retryable
    True
    >>> err.to_dict()["context"]
    {'backend': 'file', 'key': 'a/b'}

Tags:
    error-handling, exception-hierarchy, retry-logic, cachepact

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and retry decisions."""

    CONFIG = "CONFIG"             # Missing or invalid settings
    STORAGE = "STORAGE"           # Disk, network store unreachable
    VALIDATION = "VALIDATION"     # Bad key or unserializable value
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a ``CacheError``.

    Attributes:
        backend: Backend id (``memory``, ``file``, ``redis``)
        key: Cache key involved in the failing operation
        operation: Contract operation (``write``, ``read``, ...)
        location: Storage location (directory or Redis URL)
        metadata: Any additional key/value pairs
    """

    backend: str | None = None
    key: str | None = None
    operation: str | None = None
    location: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["backend", "key", "operation", "location"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CacheError(Exception):
    """
    Base exception for all cachepact errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageUnavailableError("write failed").with_context(
                backend="file", key="users/42"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(CacheError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageUnavailableError(CacheError):
    """The backend could not reach its storage medium (disk, network store)."""

    default_category = ErrorCategory.STORAGE
    default_retryable = True


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class CacheValueError(CacheError):
    """Value cannot be serialized for storage."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class InvalidKeyError(CacheValueError):
    """Cache key is empty or escapes the storage location."""

    def __init__(self, key: Any, reason: str):
        self.key = key
        super().__init__(f"Invalid cache key {key!r}: {reason}")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, CacheError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CacheError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    if isinstance(error, KeyError):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CacheError",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "StorageUnavailableError",
    "CacheValueError",
    "InvalidKeyError",
    "is_retryable",
    "categorize_error",
]
