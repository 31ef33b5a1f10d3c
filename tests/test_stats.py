"""Tests for cachepact.stats counters."""

import threading

import pytest

from cachepact.stats import CacheStats, StatsSnapshot


class TestCacheStats:
    def test_starts_at_zero(self):
        assert CacheStats().snapshot() == StatsSnapshot()

    def test_sizes_in_kilobytes(self):
        stats = CacheStats()
        stats.record_write(2048)
        stats.record_read(512)
        assert stats.write_size == 2.0
        assert stats.read_size == 0.5

    def test_exec_times_is_reads_plus_writes(self):
        stats = CacheStats()
        for _ in range(3):
            stats.record_write(1)
        stats.record_read(1)
        assert stats.exec_times == 4
        assert stats.exec_times == stats.read_times + stats.write_times

    def test_negative_size_rejected(self):
        stats = CacheStats()
        with pytest.raises(ValueError):
            stats.record_read(-1)
        assert stats.read_times == 0

    def test_snapshot_is_a_copy(self):
        stats = CacheStats()
        snap = stats.snapshot()
        stats.record_write(10)
        assert snap.write_times == 0
        assert stats.write_times == 1

    def test_to_dict_excludes_lock(self):
        stats = CacheStats()
        stats.record_write(1024)
        assert stats.to_dict() == {
            "read_times": 0,
            "write_times": 1,
            "exec_times": 1,
            "read_size": 0.0,
            "write_size": 1.0,
        }

    def test_thread_safe_increments(self):
        stats = CacheStats()

        def hammer():
            for _ in range(1000):
                stats.record_write(1)

        threads = [threading.Thread(target=hammer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert stats.write_times == 4000
        assert stats.exec_times == 4000
