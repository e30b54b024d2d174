"""
Task store: file locking, atomic tagged JSON persistence and state files.
"""

from .archive import ArchiveResult, RestoreResult, archive_tasks_before_overwrite, restore_archive
from .atomic import atomic_write_json
from .errors import (
    InvalidStateStructureError,
    LockTimeoutError,
    StateExistsError,
    StoreError,
    TasksFileCorruptedError,
)
from .json_store import (
    is_plain_document,
    is_tagged_document,
    read_json,
    resolve_tag,
    update_document,
    update_tag,
    write_json,
)
from .lock import file_lock, with_file_lock_sync
from .state import (
    create_state,
    delete_state,
    get_current_tag,
    read_state,
    set_current_tag,
    update_state,
    validate_state,
)

__all__ = [
    # Errors
    "InvalidStateStructureError",
    "LockTimeoutError",
    "StateExistsError",
    "StoreError",
    "TasksFileCorruptedError",
    # Locking
    "file_lock",
    "with_file_lock_sync",
    # Tasks file
    "atomic_write_json",
    "is_plain_document",
    "is_tagged_document",
    "read_json",
    "resolve_tag",
    "update_document",
    "update_tag",
    "write_json",
    # State
    "create_state",
    "delete_state",
    "get_current_tag",
    "read_state",
    "set_current_tag",
    "update_state",
    "validate_state",
    # Archives
    "ArchiveResult",
    "RestoreResult",
    "archive_tasks_before_overwrite",
    "restore_archive",
]
