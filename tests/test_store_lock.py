"""
Tests for sidecar file locking.
"""

import json
import os
import threading
import time
from unittest.mock import patch

import pytest

from taskmaster.core.store import lock as lock_module
from taskmaster.core.store.errors import LockTimeoutError
from taskmaster.core.store.lock import (
    LockRecord,
    file_lock,
    is_lock_stale,
    lock_path_for,
    now_ms,
    read_lock_record,
    with_file_lock_sync,
)


def _write_lock(path, timestamp):
    lock_path = lock_path_for(path)
    lock_path.write_text(json.dumps({"pid": 99999, "timestamp": timestamp}))
    return lock_path


class TestWithFileLockSync:
    """Tests for with_file_lock_sync."""

    def test_sequential_calls_leave_no_lock(self, tmp_path):
        """Each call completes and releases before the next one starts."""
        target = tmp_path / "tasks.json"
        events = []

        for i in range(5):
            def callback(i=i):
                assert lock_path_for(target).exists()
                events.append(i)
                return i

            assert with_file_lock_sync(target, callback) == i
            assert not lock_path_for(target).exists()

        assert events == [0, 1, 2, 3, 4]

    def test_exception_propagates_and_lock_is_removed(self, tmp_path):
        target = tmp_path / "tasks.json"

        def boom():
            raise RuntimeError("callback failed")

        with pytest.raises(RuntimeError, match="callback failed"):
            with_file_lock_sync(target, boom)

        assert not lock_path_for(target).exists()

    def test_creates_missing_target_and_parent(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "tasks.json"

        with_file_lock_sync(target, lambda: None)

        assert target.exists()
        assert json.loads(target.read_text()) == {}

    def test_lock_record_holds_pid_and_timestamp(self, tmp_path):
        target = tmp_path / "tasks.json"

        def inspect():
            return read_lock_record(lock_path_for(target))

        before = now_ms()
        record = with_file_lock_sync(target, inspect)

        assert record.pid == os.getpid()
        assert record.timestamp >= before


class TestFileLockContention:
    """Tests for stale locks, backoff and timeouts."""

    def test_stale_lock_is_reclaimed(self, tmp_path):
        target = tmp_path / "tasks.json"
        target.write_text("{}")
        _write_lock(target, now_ms() - 60_000)

        with file_lock(target, stale_ms=10_000) as held:
            assert read_lock_record(held).pid == os.getpid()

        assert not lock_path_for(target).exists()

    def test_fresh_lock_times_out(self, tmp_path):
        target = tmp_path / "tasks.json"
        target.write_text("{}")
        lock_path = _write_lock(target, now_ms())

        with patch.object(lock_module.time, "sleep") as sleep:
            with pytest.raises(LockTimeoutError) as exc_info:
                with file_lock(target, max_attempts=3, retry_delay_ms=20, max_delay_ms=30):
                    pass

        assert exc_info.value.attempts == 3
        assert exc_info.value.file_path == target
        # Backoff doubles and is capped; no sleep after the last attempt
        assert [call.args[0] for call in sleep.call_args_list] == [0.02, 0.03]
        # Someone else's lock is never removed on timeout
        assert lock_path.exists()

    def test_malformed_lock_uses_mtime(self, tmp_path):
        target = tmp_path / "tasks.json"
        target.write_text("{}")
        lock_path = lock_path_for(target)
        lock_path.write_text("not json")
        old = time.time() - 120
        os.utime(lock_path, (old, old))

        with file_lock(target, stale_ms=1_000, max_attempts=2):
            pass

        assert not lock_path.exists()

    def test_lock_renewed_during_reclaim_is_kept(self, tmp_path):
        target = tmp_path / "tasks.json"
        target.write_text("{}")
        lock_path = _write_lock(target, now_ms() - 60_000)
        real_age = lock_module._lock_age_ms
        calls = []

        def age_then_renewed(path):
            age = real_age(path)
            if not calls:
                # Another process reclaims the stale lock and takes it right
                # after this process read its age
                lock_path.write_text(json.dumps({"pid": 424242, "timestamp": now_ms()}))
            calls.append(path)
            return age

        with patch.object(lock_module, "_lock_age_ms", side_effect=age_then_renewed):
            with patch.object(lock_module.time, "sleep"):
                with pytest.raises(LockTimeoutError):
                    with file_lock(target, stale_ms=10_000, max_attempts=2):
                        pass

        assert read_lock_record(lock_path).pid == 424242
        assert sorted(p.name for p in tmp_path.iterdir()) == ["tasks.json", "tasks.json.lock"]

    def test_stale_lock_reclaimed_by_someone_else(self, tmp_path):
        target = tmp_path / "tasks.json"
        target.write_text("{}")
        lock_path = _write_lock(target, now_ms() - 60_000)
        real_age = lock_module._lock_age_ms

        def age_then_gone(path):
            age = real_age(path)
            lock_path.unlink(missing_ok=True)
            return age

        with patch.object(lock_module, "_lock_age_ms", side_effect=age_then_gone):
            with file_lock(target, stale_ms=10_000) as held:
                assert read_lock_record(held).pid == os.getpid()

        assert not lock_path.exists()

    def test_waits_for_holder_to_release(self, tmp_path):
        target = tmp_path / "tasks.json"
        order = []
        acquired = threading.Event()

        def holder():
            with file_lock(target):
                acquired.set()
                time.sleep(0.1)
                order.append("holder")

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(timeout=5)

        with file_lock(target):
            order.append("waiter")
        thread.join()

        assert order == ["holder", "waiter"]


class TestLockHelpers:
    def test_read_missing_record(self, tmp_path):
        assert read_lock_record(tmp_path / "missing.lock") is None

    def test_read_record_with_wrong_types(self, tmp_path):
        path = tmp_path / "x.lock"
        path.write_text(json.dumps({"pid": "abc", "timestamp": 1}))
        assert read_lock_record(path) is None

    def test_is_lock_stale(self):
        record = LockRecord(pid=1, timestamp=1_000)
        assert is_lock_stale(record, stale_ms=500, current_ms=2_000)
        assert not is_lock_stale(record, stale_ms=5_000, current_ms=2_000)

    def test_lock_path_for(self, tmp_path):
        assert lock_path_for(tmp_path / "tasks.json") == tmp_path / "tasks.json.lock"
