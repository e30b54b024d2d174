"""
Task and subtask identifiers.

Tasks are numbered within a tag; subtasks are numbered within their parent.
Everywhere the two need to share a namespace (dependency graphs, issue
reports) a node key is used: ``"5"`` for task 5 and ``"5.2"`` for subtask 2
of task 5.

Dependency lists hold either form. A dotted string always names a subtask.
A plain integer on a top-level task names a top-level task. A plain integer
on a subtask names a sibling subtask when the parent has one with that id,
and a top-level task otherwise.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from .errors import InvalidSubtaskIdFormatError

NodeKey = str


def as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def is_subtask_ref(value: Any) -> bool:
    return isinstance(value, str) and "." in value


def format_task_id(value: Any) -> int | str:
    """
    Normalize a task reference.

    Plain ids become ints (``"3"`` -> ``3``); dotted subtask ids stay strings.
    Anything else is returned as its string form.
    """
    if is_subtask_ref(value):
        return value.strip()
    number = as_int(value)
    if number is not None:
        return number
    return str(value)


def parse_subtask_id(value: Any) -> tuple[int, int]:
    """
    Split ``"parent.sub"`` into two ints.

    Raises:
        InvalidSubtaskIdFormatError: Unless value has exactly two positive
            integer parts.
    """
    if not isinstance(value, str):
        raise InvalidSubtaskIdFormatError(value)
    parts = value.strip().split(".")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise InvalidSubtaskIdFormatError(value)
    parent_id, subtask_id = int(parts[0]), int(parts[1])
    if parent_id < 1 or subtask_id < 1:
        raise InvalidSubtaskIdFormatError(value)
    return parent_id, subtask_id


def node_key(item_id: Any, parent_id: Any = None) -> NodeKey:
    """Node key for a task (no parent) or a subtask."""
    if parent_id is None:
        return str(format_task_id(item_id))
    return f"{format_task_id(parent_id)}.{format_task_id(item_id)}"


def node_sort_key(key: NodeKey) -> tuple:
    """Sort key ordering node keys numerically (1 < 1.1 < 1.2 < 2 < 10)."""
    try:
        return (0, tuple(int(part) for part in key.split(".")))
    except ValueError:
        return (1, key)


def iter_nodes(tasks: Sequence[Any]) -> Iterator[tuple[NodeKey, dict[str, Any], int | None]]:
    """
    Yield ``(key, item, parent_id)`` for every task and subtask.

    parent_id is None for top-level tasks. Entries that are not objects or
    have no id are skipped.
    """
    for task in tasks:
        if not isinstance(task, dict) or "id" not in task:
            continue
        task_key = node_key(task["id"])
        yield task_key, task, None

        subtasks = task.get("subtasks")
        if not isinstance(subtasks, list):
            continue
        parent_id = format_task_id(task["id"])
        for subtask in subtasks:
            if isinstance(subtask, dict) and "id" in subtask:
                yield node_key(subtask["id"], parent_id), subtask, parent_id


def build_node_index(tasks: Sequence[Any]) -> dict[NodeKey, dict[str, Any]]:
    """Map every node key in tasks to its task or subtask object."""
    return {key: item for key, item, _ in iter_nodes(tasks)}


def resolve_dependency(
    dependency: Any,
    parent_id: Any = None,
    index: Mapping[NodeKey, Any] | None = None,
) -> NodeKey:
    """
    Resolve one dependency entry to a node key.

    Args:
        dependency: Entry from a dependencies list
        parent_id: Parent task id when the list belongs to a subtask
        index: Node index of the collection, used to tell a sibling subtask
            from a top-level task of the same number

    Returns:
        The node key the entry refers to. The node may not exist.
    """
    if is_subtask_ref(dependency):
        try:
            parent, sub = parse_subtask_id(dependency)
        except InvalidSubtaskIdFormatError:
            return str(dependency)
        return f"{parent}.{sub}"

    number = as_int(dependency)
    if number is None:
        return str(dependency)

    if parent_id is not None:
        sibling = f"{format_task_id(parent_id)}.{number}"
        if index is not None and sibling in index:
            return sibling
    return str(number)


def task_exists(tasks: Sequence[Any], ref: Any) -> bool:
    """
    Check whether a task (``3``) or subtask (``"3.1"``) exists in tasks.

    Malformed references are reported as missing.
    """
    if is_subtask_ref(ref):
        try:
            parent, sub = parse_subtask_id(ref)
        except InvalidSubtaskIdFormatError:
            return False
        return f"{parent}.{sub}" in build_node_index(tasks)

    number = as_int(ref)
    if number is None:
        return False
    return any(
        isinstance(task, dict) and as_int(task.get("id")) == number for task in tasks
    )
