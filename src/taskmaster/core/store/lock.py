"""
Advisory file locking with a sidecar lock file.

A lock on ``tasks.json`` is the file ``tasks.json.lock`` containing the
holder's pid and acquisition time in epoch milliseconds:

    {"pid": 4242, "timestamp": 1718000000000}

The lock file is created with O_CREAT | O_EXCL, so two processes racing for
the same lock rely on the filesystem's atomic create. A lock older than the
staleness threshold is treated as abandoned and reclaimed. Holder pids are
recorded for diagnostics only; liveness is never checked.

Acquisition blocks (sleeping between attempts) and gives up with
LockTimeoutError after a bounded number of attempts.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCK_SUFFIX = ".lock"

DEFAULT_STALE_MS = 10_000
DEFAULT_MAX_ATTEMPTS = 40
DEFAULT_RETRY_DELAY_MS = 20
DEFAULT_MAX_DELAY_MS = 500


@dataclass(frozen=True)
class LockRecord:
    """Contents of a lock sidecar file."""

    pid: int
    timestamp: int


def now_ms() -> int:
    return int(time.time() * 1000)


def lock_path_for(file_path: Path | str) -> Path:
    """Return the sidecar lock path for file_path."""
    path = Path(file_path)
    return path.with_name(path.name + LOCK_SUFFIX)


def read_lock_record(lock_path: Path) -> LockRecord | None:
    """
    Read a lock sidecar file.

    Returns:
        The parsed record, or None if the file is missing or malformed.
    """
    try:
        raw = json.loads(lock_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None

    if not isinstance(raw, dict):
        return None
    pid = raw.get("pid")
    timestamp = raw.get("timestamp")
    if not isinstance(pid, int) or not isinstance(timestamp, (int, float)):
        return None
    return LockRecord(pid=pid, timestamp=int(timestamp))


def is_lock_stale(record: LockRecord, stale_ms: int, current_ms: int | None = None) -> bool:
    """Return True if the lock record is older than stale_ms."""
    if current_ms is None:
        current_ms = now_ms()
    return current_ms - record.timestamp > stale_ms


def _lock_age_ms(lock_path: Path) -> int | None:
    record = read_lock_record(lock_path)
    if record is not None:
        return now_ms() - record.timestamp

    # Half-written or foreign lock file: fall back to its mtime
    try:
        return now_ms() - int(lock_path.stat().st_mtime * 1000)
    except OSError:
        return None


def _try_create_lock(lock_path: Path) -> bool:
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False

    record = {"pid": os.getpid(), "timestamp": now_ms()}
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(record, f)
    return True


def _ensure_target(file_path: Path) -> None:
    if file_path.exists():
        return
    file_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write("{}\n")


def _reclaim_stale_lock(lock_path: Path, stale_ms: int) -> None:
    """
    Remove a stale lock unless it was replaced since its age was read.

    The lock is first renamed to a private name, so only one of several
    processes reclaiming it wins. A fresh lock moved by mistake is linked
    back, which fails rather than overwriting a newer lock.
    """
    claimed = lock_path.with_name(f"{lock_path.name}.{os.getpid()}.{time.monotonic_ns()}")
    try:
        os.rename(lock_path, claimed)
    except FileNotFoundError:
        return

    age = _lock_age_ms(claimed)
    if age is not None and age <= stale_ms:
        logger.debug("Lock %s was renewed before reclaiming; putting it back", lock_path)
        try:
            os.link(claimed, lock_path)
        except FileExistsError:
            logger.warning("Could not restore renewed lock %s; it was taken again", lock_path)
    else:
        logger.warning("Reclaimed stale lock %s (age %sms)", lock_path, age)
    claimed.unlink(missing_ok=True)


def acquire_lock(
    file_path: Path | str,
    *,
    stale_ms: int = DEFAULT_STALE_MS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
) -> Path:
    """
    Acquire the sidecar lock for file_path.

    Creates file_path (containing ``{}``) if it does not exist yet.

    Returns:
        Path to the lock file now held by this process.

    Raises:
        LockTimeoutError: If the lock is still held after max_attempts tries.
    """
    path = Path(file_path)
    _ensure_target(path)
    lock_path = lock_path_for(path)

    delay_ms = retry_delay_ms
    for attempt in range(1, max_attempts + 1):
        if _try_create_lock(lock_path):
            logger.debug("Acquired lock %s (attempt %d)", lock_path, attempt)
            return lock_path

        age = _lock_age_ms(lock_path)
        if age is not None and age > stale_ms:
            _reclaim_stale_lock(lock_path, stale_ms)
            continue

        if attempt < max_attempts:
            time.sleep(delay_ms / 1000)
            delay_ms = min(delay_ms * 2, max_delay_ms)

    raise LockTimeoutError(path, max_attempts)


def release_lock(lock_path: Path) -> None:
    """Remove a lock file; missing files are ignored."""
    lock_path.unlink(missing_ok=True)
    logger.debug("Released lock %s", lock_path)


@contextmanager
def file_lock(
    file_path: Path | str,
    *,
    stale_ms: int = DEFAULT_STALE_MS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
) -> Iterator[Path]:
    """
    Hold an exclusive lock on file_path for the duration of the block.

    The lock file is removed on every exit path; exceptions raised inside the
    block propagate after release.

    Example:
        >>> with file_lock(tasks_path):
        ...     data = json.loads(tasks_path.read_text())
    """
    lock_path = acquire_lock(
        file_path,
        stale_ms=stale_ms,
        max_attempts=max_attempts,
        retry_delay_ms=retry_delay_ms,
        max_delay_ms=max_delay_ms,
    )
    try:
        yield lock_path
    finally:
        release_lock(lock_path)


def with_file_lock_sync(
    file_path: Path | str,
    callback: Callable[[], T],
    *,
    stale_ms: int = DEFAULT_STALE_MS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
) -> T:
    """
    Run callback while holding the lock on file_path.

    Returns:
        Whatever callback returns.
    """
    with file_lock(
        file_path,
        stale_ms=stale_ms,
        max_attempts=max_attempts,
        retry_delay_ms=retry_delay_ms,
        max_delay_ms=max_delay_ms,
    ):
        return callback()
