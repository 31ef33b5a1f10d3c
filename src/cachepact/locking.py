"""
Advisory per-key locking with a bounded spin-wait.

Manifesto:
    A cache write must not be observed half-done, and two writers to the
    same key should not interleave. A blocking OS mutex would give strict
    exclusion, but a crashed writer would then wedge the key forever (the
    lock token lives in the backend's medium, not in process memory). So the
    coordinator waits a short, bounded time and then force-releases the
    token.

    - **Bounded:** at most ``attempts × interval_s`` of sleeping (~1.6 ms)
    - **Never fails the caller:** contention is absorbed, not raised
    - **Advisory:** only operations that call ``check_lock`` honor it

Protocol::

    check_lock(cache, key)
      is_locked(key)? ──no──▶ return
          │yes
          ▼
      sleep(interval_s); is_locked(key)?   (up to `attempts` times)
          │still locked
          ▼
      unlock(key)  + warning "cache_lock_forced_release"

Weak consistency:
    Writers are serialized best-effort only. A writer that holds the token
    longer than the wait bound is treated as stalled and its token removed,
    so two writers can still race on one key under sustained contention.
    Readers never wait; during a write they see the previous value or
    "absent".

Tags:
    locking, advisory-lock, spin-wait, concurrency, cachepact
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_ATTEMPTS = 16
DEFAULT_LOCK_INTERVAL_S = 0.0001  # 100 microseconds


@runtime_checkable
class Lockable(Protocol):
    """The three locking primitives every backend provides."""

    def is_locked(self, key: str) -> bool: ...

    def lock(self, key: str) -> object: ...

    def unlock(self, key: str) -> object: ...


@dataclass(frozen=True)
class LockPolicy:
    """Spin-wait parameters.

    Attributes:
        attempts: Re-checks before the lock is force-released.
        interval_s: Sleep between re-checks, in seconds.
    """

    attempts: int = DEFAULT_LOCK_ATTEMPTS
    interval_s: float = DEFAULT_LOCK_INTERVAL_S

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")

    @property
    def max_wait_s(self) -> float:
        """Upper bound on time spent sleeping in one ``check_lock``."""
        return self.attempts * self.interval_s


def check_lock(
    target: Lockable,
    key: str,
    policy: LockPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Wait for ``key`` to become unlocked, force-releasing on timeout.

    Returns:
        ``True`` if the lock had to be forcibly released, else ``False``.
    """
    if not target.is_locked(key):
        return False

    policy = policy or LockPolicy()
    count = 0
    while count < policy.attempts:
        sleep(policy.interval_s)
        count += 1
        if not target.is_locked(key):
            return False

    logger.warning(
        "cache_lock_forced_release",
        key=key,
        attempts=count,
        waited_s=policy.max_wait_s,
    )
    target.unlock(key)
    return True


__all__ = [
    "DEFAULT_LOCK_ATTEMPTS",
    "DEFAULT_LOCK_INTERVAL_S",
    "LockPolicy",
    "Lockable",
    "check_lock",
]
