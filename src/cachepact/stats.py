"""Per-instance cache instrumentation counters.

Each cache instance owns one :class:`CacheStats`. Counters only grow; a new
cache instance starts from zero. Nothing is persisted or shared between
instances or processes.

Example:
    >>> stats = CacheStats()
    >>> stats.record_write(10240)
    >>> stats.record_read(10240)
    >>> stats.to_dict()
    {'read_times': 1, 'write_times': 1, 'exec_times': 2, 'read_size': 10.0, 'write_size': 10.0}
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of the counters."""

    read_times: int = 0
    write_times: int = 0
    exec_times: int = 0
    read_size: float = 0.0
    write_size: float = 0.0


@dataclass
class CacheStats:
    """Read/write call counts and transferred payload sizes (KB)."""

    read_times: int = 0
    write_times: int = 0
    exec_times: int = 0
    read_size: float = 0.0
    write_size: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_read(self, nbytes: int) -> None:
        """Count one successful read of ``nbytes`` stored bytes."""
        if nbytes < 0:
            raise ValueError("Payload size cannot be negative")
        with self._lock:
            self.read_times += 1
            self.exec_times += 1
            self.read_size += nbytes / 1024

    def record_write(self, nbytes: int) -> None:
        """Count one successful write of ``nbytes`` stored bytes."""
        if nbytes < 0:
            raise ValueError("Payload size cannot be negative")
        with self._lock:
            self.write_times += 1
            self.exec_times += 1
            self.write_size += nbytes / 1024

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                read_times=self.read_times,
                write_times=self.write_times,
                exec_times=self.exec_times,
                read_size=self.read_size,
                write_size=self.write_size,
            )

    def to_dict(self) -> dict[str, int | float]:
        """Convert to a plain dict for monitoring export."""
        return asdict(self.snapshot())


__all__ = ["CacheStats", "StatsSnapshot"]
