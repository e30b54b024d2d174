"""
Subtask operations on one tag's task list.

Functions take the tag record (``{"tasks": [...], ...}``) and edit it in
place; persisting is up to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import (
    ParentTaskNotFoundError,
    SubtaskConversionError,
    SubtaskNotFoundError,
    TaskNotFoundError,
)
from .ids import (
    as_int,
    build_node_index,
    format_task_id,
    is_subtask_ref,
    iter_nodes,
    parse_subtask_id,
    resolve_dependency,
)
from .models import Subtask, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

# Fields a converted subtask carries over to its new task
DESCRIPTIVE_FIELDS = ("title", "description", "details", "testStrategy")


def _find_task(tasks: list[Any], task_id: int) -> dict[str, Any] | None:
    for task in tasks:
        if isinstance(task, dict) and as_int(task.get("id")) == task_id:
            return task
    return None


def _next_task_id(tasks: list[Any]) -> int:
    ids = [as_int(task.get("id")) for task in tasks if isinstance(task, dict)]
    return max((i for i in ids if i is not None), default=0) + 1


def _retarget_references(tasks: list[Any], removed_key: str, replacement: int | None) -> None:
    """
    Point dependencies on removed_key at replacement, or drop them.

    Nothing is changed when the conversion would be ambiguous.

    Raises:
        SubtaskConversionError: If a subtask depending on removed_key has a
            sibling numbered replacement, which the plain id would then name.
    """
    index = build_node_index(tasks)
    updates: list[tuple[dict[str, Any], list[Any]]] = []
    for key, item, parent_id in iter_nodes(tasks):
        dependencies = item.get("dependencies")
        if key == removed_key or not isinstance(dependencies, list):
            continue
        updated: list[Any] = []
        for dependency in dependencies:
            if resolve_dependency(dependency, parent_id, index) != removed_key:
                updated.append(dependency)
            elif replacement is not None and replacement not in updated:
                updated.append(replacement)
        if updated == dependencies:
            continue
        if replacement is not None and parent_id is not None:
            sibling = f"{parent_id}.{replacement}"
            if sibling in index and sibling != removed_key:
                raise SubtaskConversionError(removed_key, replacement, key)
        updates.append((item, updated))

    for item, updated in updates:
        item["dependencies"] = updated


def remove_subtask(
    data: dict[str, Any], subtask_id: str, convert_to_task: bool = False
) -> dict[str, Any] | None:
    """
    Remove subtask ``"parent.sub"`` from its parent.

    When the parent has no subtasks left, its ``subtasks`` key is removed.
    Dependencies on the subtask are dropped, or point at the new task when
    converting.

    Args:
        data: Tag record holding the task list
        subtask_id: Dotted subtask id
        convert_to_task: Turn the removed subtask into a new top-level task

    Returns:
        The new task when converting, otherwise None.

    Raises:
        InvalidSubtaskIdFormatError: If subtask_id is not "parent.sub".
        ParentTaskNotFoundError: If the parent task does not exist.
        SubtaskNotFoundError: If the parent has no such subtask.
        SubtaskConversionError: If converting would make a sibling reference
            name a different subtask.
    """
    parent_id, sub_id = parse_subtask_id(subtask_id)
    tasks = data.setdefault("tasks", [])

    parent = _find_task(tasks, parent_id)
    if parent is None:
        raise ParentTaskNotFoundError(parent_id)

    subtasks = parent.get("subtasks")
    if not isinstance(subtasks, list):
        raise SubtaskNotFoundError(f"{parent_id}.{sub_id}")

    position = next(
        (
            i
            for i, subtask in enumerate(subtasks)
            if isinstance(subtask, dict) and as_int(subtask.get("id")) == sub_id
        ),
        None,
    )
    if position is None:
        raise SubtaskNotFoundError(f"{parent_id}.{sub_id}")

    new_task_id = _next_task_id(tasks) if convert_to_task else None
    _retarget_references(tasks, f"{parent_id}.{sub_id}", new_task_id)

    removed = subtasks.pop(position)
    if not subtasks:
        del parent["subtasks"]
    logger.debug("Removed subtask %s.%s", parent_id, sub_id)

    if not convert_to_task:
        return None

    return _convert_to_task(tasks, parent, removed)


def _convert_to_task(
    tasks: list[Any], parent: dict[str, Any], subtask: dict[str, Any]
) -> dict[str, Any]:
    parent_id = format_task_id(parent["id"])
    sibling_ids = {
        as_int(s.get("id")) for s in parent.get("subtasks") or [] if isinstance(s, dict)
    }

    dependencies: list[Any] = []
    for dependency in subtask.get("dependencies") or []:
        number = as_int(dependency)
        # A sibling reference must become explicit once the task leaves its parent
        if not is_subtask_ref(dependency) and number in sibling_ids:
            dependencies.append(f"{parent_id}.{number}")
        else:
            dependencies.append(dependency)
    if parent_id not in dependencies:
        dependencies.append(parent_id)

    new_task: dict[str, Any] = {"id": _next_task_id(tasks)}
    for name in DESCRIPTIVE_FIELDS:
        if name in subtask:
            new_task[name] = subtask[name]
    new_task.setdefault("title", f"Subtask {parent_id}.{subtask.get('id')}")
    new_task["status"] = subtask.get("status") or TaskStatus.PENDING.value
    new_task["priority"] = parent.get("priority") or TaskPriority.MEDIUM.value
    new_task["dependencies"] = dependencies

    tasks.append(new_task)
    logger.debug(
        "Converted subtask %s.%s to task %s", parent_id, subtask.get("id"), new_task["id"]
    )
    return new_task


def add_subtask(
    data: dict[str, Any],
    parent_id: int | str,
    title: str,
    description: str = "",
    details: str = "",
    dependencies: list[int | str] | None = None,
    status: TaskStatus = TaskStatus.PENDING,
) -> dict[str, Any]:
    """
    Append a new subtask to a task.

    The subtask gets the next free id within its parent.

    Raises:
        TaskNotFoundError: If the parent task does not exist.
    """
    parent_number = as_int(parent_id)
    parent = _find_task(data.get("tasks") or [], parent_number) if parent_number else None
    if parent is None:
        raise TaskNotFoundError(parent_id)

    subtasks = parent.setdefault("subtasks", [])
    ids = [as_int(s.get("id")) or 0 for s in subtasks if isinstance(s, dict)]
    next_id = max(ids, default=0)

    subtask = Subtask(
        id=next_id + 1,
        title=title,
        description=description,
        details=details,
        status=status,
        dependencies=list(dependencies or []),
        parent_task_id=parent_number,
    )
    record = subtask.dump()
    subtasks.append(record)
    logger.debug("Added subtask %s.%s", parent_number, record["id"])
    return record
