"""
Tag lifecycle on a tagged tasks document.

All functions edit the document (``{tag: {"tasks": [...], "metadata": {...}}}``)
in place and leave other tags alone. Persisting and moving the current-tag
pointer are up to the caller (see TaskService).
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from taskmaster.core.store.json_store import new_tag_record

from .errors import (
    ActiveTagError,
    InvalidTagNameError,
    TagExistsError,
    TagNotEmptyError,
    TagNotFoundError,
)
from .models import TaskStatus

logger = logging.getLogger(__name__)

TAG_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


@dataclass
class TagSummary:
    """One row of list_tags output."""

    name: str
    task_count: int
    completed_count: int
    is_current: bool
    description: str | None = None
    created: str | None = None


def validate_tag_name(name: str) -> str:
    """
    Check a tag name.

    Returns:
        The name, unchanged.

    Raises:
        InvalidTagNameError: If name is empty or has characters other than
            letters, digits, hyphens and underscores.
    """
    if not isinstance(name, str) or not name:
        raise InvalidTagNameError("Tag name cannot be empty")
    if not TAG_NAME_PATTERN.match(name):
        raise InvalidTagNameError(
            f"Invalid tag name {name!r}: use only letters, numbers, hyphens and underscores"
        )
    return name


def _require_tag(document: dict[str, Any], name: str) -> dict[str, Any]:
    record = document.get(name)
    if not isinstance(record, dict):
        raise TagNotFoundError(f"Tag {name!r} does not exist")
    return record


def add_tag(
    document: dict[str, Any],
    name: str,
    description: str | None = None,
    copy_from: str | None = None,
) -> dict[str, Any]:
    """
    Create a new tag.

    Args:
        document: Tagged tasks document
        name: New tag name
        description: Stored in the tag's metadata
        copy_from: Existing tag whose tasks are copied into the new one

    Returns:
        The new tag record.

    Raises:
        InvalidTagNameError, TagExistsError, TagNotFoundError
    """
    validate_tag_name(name)
    if name in document:
        raise TagExistsError(f"Tag {name!r} already exists")

    record = new_tag_record(description)
    if copy_from is not None:
        source = _require_tag(document, copy_from)
        record["tasks"] = copy.deepcopy(source.get("tasks") or [])
        if not description:
            record["metadata"]["description"] = f"Copy of {copy_from!r}"

    document[name] = record
    logger.debug("Added tag %s (%d tasks)", name, len(record["tasks"]))
    return record


def rename_tag(document: dict[str, Any], old_name: str, new_name: str) -> None:
    """
    Rename a tag, keeping its position in the document.

    Raises:
        InvalidTagNameError, TagExistsError, TagNotFoundError
    """
    validate_tag_name(new_name)
    _require_tag(document, old_name)
    if new_name in document:
        raise TagExistsError(f"Tag {new_name!r} already exists")

    items = list(document.items())
    document.clear()
    for name, record in items:
        document[new_name if name == old_name else name] = record

    metadata = document[new_name].setdefault("metadata", {})
    metadata["renamed"] = {
        "from": old_name,
        "date": datetime.now(timezone.utc).isoformat(),
    }
    logger.debug("Renamed tag %s to %s", old_name, new_name)


def delete_tag(document: dict[str, Any], name: str, current_tag: str) -> dict[str, Any]:
    """
    Delete an empty, inactive tag.

    Returns:
        The removed record.

    Raises:
        TagNotFoundError: If the tag does not exist.
        ActiveTagError: If name is the current tag.
        TagNotEmptyError: If the tag still has tasks.
    """
    record = _require_tag(document, name)
    if name == current_tag:
        raise ActiveTagError(f"Cannot delete the current tag {name!r}; switch to another tag first")
    task_count = len(record.get("tasks") or [])
    if task_count:
        raise TagNotEmptyError(f"Tag {name!r} has {task_count} task(s); remove them first")

    del document[name]
    logger.debug("Deleted tag %s", name)
    return record


def list_tags(document: dict[str, Any], current_tag: str) -> list[TagSummary]:
    """Summarize every tag, in document order."""
    summaries: list[TagSummary] = []
    for name, record in document.items():
        if not isinstance(record, dict):
            continue
        tasks = [t for t in record.get("tasks") or [] if isinstance(t, dict)]
        metadata = record.get("metadata") or {}
        summaries.append(
            TagSummary(
                name=name,
                task_count=len(tasks),
                completed_count=sum(
                    1 for t in tasks if t.get("status") == TaskStatus.DONE.value
                ),
                is_current=name == current_tag,
                description=metadata.get("description"),
                created=metadata.get("created"),
            )
        )
    return summaries
