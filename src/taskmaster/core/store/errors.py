"""
Typed exceptions for the task store.

Filesystem failures are not wrapped: they surface as the builtin OSError so
callers see exactly what the operating system reported.
"""

from __future__ import annotations

from pathlib import Path


class StoreError(Exception):
    """Base exception for task store errors."""


class LockTimeoutError(StoreError):
    """A file lock could not be acquired within the retry budget."""

    def __init__(self, file_path: Path, attempts: int) -> None:
        self.file_path = file_path
        self.attempts = attempts
        super().__init__(
            f"Could not acquire lock on {file_path} after {attempts} attempts"
        )


class TasksFileCorruptedError(StoreError):
    """The tasks file exists but is not a JSON object."""


class InvalidStateStructureError(StoreError):
    """A state file exists but fails structural validation."""


class StateExistsError(StoreError):
    """Raised when creating a state file that is already present."""
