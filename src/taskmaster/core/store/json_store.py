"""
Tagged JSON task store.

One tasks file holds several independent task collections keyed by tag:

    {
        "master": {
            "tasks": [{"id": 1, "title": "...", ...}],
            "metadata": {"created": "2024-01-15T10:30:45+00:00"}
        },
        "feature-auth": {"tasks": [...], "metadata": {...}}
    }

Older files hold a single plain collection, ``{"tasks": [...]}``; that shape
is read as the ``master`` tag and migrated to the tagged layout on the next
write.

Every write locks the file, re-reads what is on disk, merges the caller's
data into one tag and writes the whole document back atomically. Tags the
caller did not target are written back exactly as they were read.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from .atomic import atomic_write_json
from .errors import TasksFileCorruptedError
from .lock import file_lock
from .state import DEFAULT_TAG, get_current_tag

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ==============================================================================
# Document shape detection
# ==============================================================================


def is_plain_document(data: Any) -> bool:
    """True for the legacy single-collection shape ``{"tasks": [...]}``."""
    return isinstance(data, Mapping) and isinstance(data.get("tasks"), list)


def is_tagged_document(data: Any) -> bool:
    """
    True for the tagged shape ``{tag: {"tasks": [...]}, ...}``.

    An empty object counts as tagged (a fresh file with no tags yet).
    """
    if not isinstance(data, Mapping) or "tasks" in data:
        return False
    return all(
        isinstance(record, Mapping) and isinstance(record.get("tasks"), list)
        for record in data.values()
    )


def empty_tag_record() -> dict[str, Any]:
    return {"tasks": [], "metadata": {}}


def new_tag_record(description: str | None = None) -> dict[str, Any]:
    """Build the record for a newly created tag."""
    metadata: dict[str, Any] = {"created": _now_iso()}
    if description:
        metadata["description"] = description
    return {"tasks": [], "metadata": metadata}


def to_tagged_document(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return data in tagged form, wrapping a plain document as ``master``."""
    if is_plain_document(data):
        return {DEFAULT_TAG: dict(data)}
    return dict(data)


def resolve_tag(project_root: Path | str | None = None, tag: str | None = None) -> str:
    """An explicit tag wins, then the project's current tag, then ``master``."""
    if tag:
        return tag
    return get_current_tag(project_root)


# ==============================================================================
# Reading
# ==============================================================================


def _load_document(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TasksFileCorruptedError(f"Failed to parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise TasksFileCorruptedError(f"{path} must contain a JSON object")
    return data


def read_json(
    file_path: Path | str,
    project_root: Path | str | None = None,
    tag: str | None = None,
    *,
    raw: bool = False,
) -> dict[str, Any] | None:
    """
    Read a tasks file.

    Args:
        file_path: Path to tasks.json
        project_root: Project root, used to look up the current tag when
            no tag is given
        tag: Tag to read
        raw: Return the whole document as stored instead of one tag

    Returns:
        The tag's ``{"tasks": [...], "metadata": {...}}`` slice (a deep copy;
        empty if the tag does not exist), the full document when raw is set,
        or None if the file does not exist.

    Raises:
        TasksFileCorruptedError: If the file is not a JSON object.
    """
    path = Path(file_path)
    document = _load_document(path)
    if document is None:
        return None
    if raw:
        return document

    target = resolve_tag(project_root, tag)

    if is_plain_document(document):
        if target == DEFAULT_TAG:
            return copy.deepcopy(document)
        return empty_tag_record()

    record = document.get(target)
    if not isinstance(record, Mapping) or not isinstance(record.get("tasks"), list):
        logger.debug("Tag %s not found in %s", target, path)
        return empty_tag_record()

    result = copy.deepcopy(dict(record))
    result.setdefault("metadata", {})
    return result


# ==============================================================================
# Writing
# ==============================================================================


def _merge_record(
    existing: Mapping[str, Any] | None, incoming: Mapping[str, Any]
) -> dict[str, Any]:
    record: dict[str, Any] = copy.deepcopy(dict(existing)) if existing else {}

    for key, value in incoming.items():
        if key == "metadata" or key.startswith("_"):
            continue
        record[key] = copy.deepcopy(value)
    record.setdefault("tasks", [])

    metadata = dict(record.get("metadata") or {})
    incoming_metadata = incoming.get("metadata")
    if isinstance(incoming_metadata, Mapping):
        metadata.update(copy.deepcopy(dict(incoming_metadata)))
    metadata.setdefault("created", _now_iso())
    metadata["updated"] = _now_iso()
    record["metadata"] = metadata
    return record


def _read_for_update(path: Path) -> dict[str, Any]:
    document = _load_document(path) or {}
    if is_plain_document(document):
        logger.debug("Migrating %s to tagged format", path)
        document = to_tagged_document(document)
    return document


def write_json(
    file_path: Path | str,
    data: Mapping[str, Any],
    project_root: Path | str | None = None,
    tag: str | None = None,
    lock_options: Mapping[str, Any] | None = None,
) -> None:
    """
    Write tasks into one tag of a tasks file.

    data may be a tag slice (``{"tasks": [...], ...}``), stored under the
    resolved tag, or a tagged document, in which case each tag it holds is
    merged (only ``tag`` when one is given). Tags not present in data are
    left exactly as they were on disk. data itself is never modified.
    lock_options are passed on to file_lock.

    Raises:
        LockTimeoutError: If the file lock cannot be acquired.
        TasksFileCorruptedError: If the existing file is not a JSON object.
        OSError: If writing or renaming fails. The existing file is intact.
    """
    path = Path(file_path)

    if is_tagged_document(data):
        if tag:
            updates = {tag: data[tag]} if tag in data else {}
        else:
            updates = dict(data)
    else:
        updates = {resolve_tag(project_root, tag): data}

    with file_lock(path, **(lock_options or {})):
        document = _read_for_update(path)
        for name, record in updates.items():
            document[name] = _merge_record(document.get(name), record)
        atomic_write_json(path, document)

    logger.debug("Wrote %s (tags: %s)", path, ", ".join(updates) or "none")


def update_tag(
    file_path: Path | str,
    tag: str,
    mutator: Callable[[dict[str, Any]], T],
    lock_options: Mapping[str, Any] | None = None,
) -> T:
    """
    Read-modify-write one tag under a single lock.

    mutator receives the tag's live ``{"tasks": [...], "metadata": {...}}``
    record (created if missing) and may change it in place. Its return value
    is passed back to the caller. If mutator raises, nothing is written.
    """
    path = Path(file_path)

    with file_lock(path, **(lock_options or {})):
        document = _read_for_update(path)
        record = document.get(tag)
        if not isinstance(record, dict) or not isinstance(record.get("tasks"), list):
            record = new_tag_record()
        result = mutator(record)
        document[tag] = _merge_record(None, record)
        atomic_write_json(path, document)

    return result


def update_document(
    file_path: Path | str,
    mutator: Callable[[dict[str, Any]], T],
    lock_options: Mapping[str, Any] | None = None,
) -> T:
    """
    Read-modify-write the whole tagged document under a single lock.

    Used for tag lifecycle operations that add, rename or remove tags.
    If mutator raises, nothing is written.
    """
    path = Path(file_path)

    with file_lock(path, **(lock_options or {})):
        document = _read_for_update(path)
        result = mutator(document)
        atomic_write_json(path, document)

    return result
