"""
Dependency validation and repair.

Works on the raw task dictionaries read from a tasks file, so unknown keys
are never lost. Nothing here reads or writes files; callers persist the
result through the store (see TaskService).

Repairs are applied in a fixed order:

1. self-dependencies are removed
2. duplicate entries are removed, keeping the first occurrence
3. dependencies on ids that do not exist are removed

fix_dependencies additionally breaks cycles by dropping one back-edge per
cycle. validate_and_fix_dependencies does not touch cycles, so a structure
it leaves alone is exactly one that is self-, duplicate- and dangling-free.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from taskmaster.core.store.json_store import is_plain_document, is_tagged_document

from .errors import (
    DependencyError,
    ParentTaskNotFoundError,
    SubtaskNotFoundError,
    TaskNotFoundError,
)
from .graph import DependencyGraph
from .ids import (
    NodeKey,
    build_node_index,
    format_task_id,
    is_subtask_ref,
    iter_nodes,
    parse_subtask_id,
    resolve_dependency,
)

logger = logging.getLogger(__name__)

IssueType = Literal["self", "missing", "circular"]


@dataclass
class DependencyIssue:
    """One problem found by validate_task_dependencies."""

    type: IssueType
    task_id: NodeKey
    dependency_id: int | str
    message: str


@dataclass
class DependencyValidationResult:
    valid: bool
    issues: list[DependencyIssue] = field(default_factory=list)


@dataclass
class DependencyFixStats:
    """Counts of what fix_dependencies removed."""

    non_existent_dependencies_removed: int = 0
    self_dependencies_removed: int = 0
    duplicate_dependencies_removed: int = 0
    circular_dependencies_fixed: int = 0
    tasks_fixed: int = 0
    subtasks_fixed: int = 0

    @property
    def total_removed(self) -> int:
        return (
            self.non_existent_dependencies_removed
            + self.self_dependencies_removed
            + self.duplicate_dependencies_removed
            + self.circular_dependencies_fixed
        )

    @property
    def changes_made(self) -> bool:
        return self.total_removed > 0


# ==============================================================================
# Helpers
# ==============================================================================


def _task_lists(data: Any) -> list[list[Any]] | None:
    """Task lists to work on, or None when data has no recognizable shape."""
    if is_plain_document(data):
        return [data["tasks"]]
    if isinstance(data, Mapping) and data and is_tagged_document(data):
        return [record["tasks"] for record in data.values()]
    return None


# A filter decides, per dependency entry, whether to drop it
DependencyFilter = Callable[[NodeKey, NodeKey, set[NodeKey]], bool]


def _filter_dependencies(
    tasks: Sequence[Any], drop: DependencyFilter, reason: str
) -> dict[NodeKey, int]:
    """
    Remove dependency entries for which drop(owner, target, seen) is true.

    Returns:
        Number of entries removed, per owning node key.
    """
    index = build_node_index(tasks)
    removed: dict[NodeKey, int] = {}

    for key, item, parent_id in iter_nodes(tasks):
        dependencies = item.get("dependencies")
        if not isinstance(dependencies, list) or not dependencies:
            continue

        kept: list[Any] = []
        seen: set[NodeKey] = set()
        for dependency in dependencies:
            target = resolve_dependency(dependency, parent_id, index)
            if drop(key, target, seen):
                logger.debug("Removing %s dependency %s from %s", reason, dependency, key)
                removed[key] = removed.get(key, 0) + 1
                continue
            seen.add(target)
            kept.append(dependency)

        if len(kept) != len(dependencies):
            item["dependencies"] = kept

    return removed


def _remove_self_dependencies(tasks: Sequence[Any]) -> dict[NodeKey, int]:
    return _filter_dependencies(tasks, lambda key, target, seen: target == key, "self")


def _remove_duplicate_dependencies(tasks: Sequence[Any]) -> dict[NodeKey, int]:
    return _filter_dependencies(tasks, lambda key, target, seen: target in seen, "duplicate")


def _remove_missing_dependencies(tasks: Sequence[Any]) -> dict[NodeKey, int]:
    existing = build_node_index(tasks).keys()
    return _filter_dependencies(
        tasks, lambda key, target, seen: target not in existing, "non-existent"
    )


def _break_cycles(tasks: Sequence[Any]) -> dict[NodeKey, int]:
    back_edges = set(DependencyGraph(tasks).back_edges())
    if not back_edges:
        return {}
    return _filter_dependencies(
        tasks, lambda key, target, seen: (key, target) in back_edges, "circular"
    )


# ==============================================================================
# Queries
# ==============================================================================


def count_all_dependencies(tasks: Sequence[Any]) -> int:
    """Count dependency entries across all tasks and subtasks."""
    total = 0
    for _, item, _ in iter_nodes(tasks):
        dependencies = item.get("dependencies")
        if isinstance(dependencies, list):
            total += len(dependencies)
    return total


def is_circular_dependency(
    tasks: Sequence[Any],
    candidate_id: Any,
    additional_edges: Iterable[tuple[Any, Any]] | None = None,
) -> bool:
    """
    Check whether a cycle is reachable from candidate_id.

    Args:
        tasks: Task list of one tag
        candidate_id: Task (``3``) or subtask (``"3.1"``) to start from
        additional_edges: (dependent, dependency) pairs to treat as present,
            used to test a dependency before adding it

    Returns:
        True if following dependencies from candidate_id reaches a node that
        is still being visited. A task depending on itself counts.
    """
    graph = DependencyGraph(tasks, additional_edges=additional_edges)
    return graph.has_cycle_from(resolve_dependency(candidate_id))


def validate_task_dependencies(tasks: Sequence[Any]) -> DependencyValidationResult:
    """Report self, missing and circular dependencies without changing anything."""
    index = build_node_index(tasks)
    issues: list[DependencyIssue] = []

    for key, item, parent_id in iter_nodes(tasks):
        dependencies = item.get("dependencies")
        if not isinstance(dependencies, list):
            continue
        kind = "Subtask" if parent_id is not None else "Task"
        for dependency in dependencies:
            target = resolve_dependency(dependency, parent_id, index)
            if target == key:
                issues.append(
                    DependencyIssue(
                        type="self",
                        task_id=key,
                        dependency_id=dependency,
                        message=f"{kind} {key} depends on itself",
                    )
                )
            elif target not in index:
                issues.append(
                    DependencyIssue(
                        type="missing",
                        task_id=key,
                        dependency_id=dependency,
                        message=f"{kind} {key} depends on non-existent task {target}",
                    )
                )

    for source, target in DependencyGraph(tasks).back_edges():
        if source == target:
            # Already reported as a self-dependency
            continue
        issues.append(
            DependencyIssue(
                type="circular",
                task_id=source,
                dependency_id=target,
                message=f"Circular dependency: {source} -> {target} closes a cycle",
            )
        )

    return DependencyValidationResult(valid=not issues, issues=issues)


# ==============================================================================
# Repairs
# ==============================================================================


def validate_and_fix_dependencies(data: Any, tasks_path: Path | str | None = None) -> bool:
    """
    Remove self, duplicate and dangling dependencies in place.

    Args:
        data: ``{"tasks": [...]}`` or a tagged document; each tag is fixed
            against its own task list
        tasks_path: Where data came from. Only used for logging; the result
            is never written here.

    Returns:
        True if anything was changed, False if data was already clean or is
        not a tasks structure at all.
    """
    task_lists = _task_lists(data)
    if task_lists is None:
        logger.debug("Skipping dependency validation: no tasks array found")
        return False

    changed = False
    for tasks in task_lists:
        for step in (
            _remove_self_dependencies,
            _remove_duplicate_dependencies,
            _remove_missing_dependencies,
        ):
            if step(tasks):
                changed = True

    if changed:
        logger.debug("Fixed dependencies%s", f" for {tasks_path}" if tasks_path else "")
    return changed


def fix_dependencies(data: Any) -> DependencyFixStats:
    """
    Repair every dependency problem in place, cycles included.

    Returns:
        Counts of removed entries and of tasks/subtasks that changed.
    """
    stats = DependencyFixStats()
    task_lists = _task_lists(data)
    if task_lists is None:
        return stats

    for tasks in task_lists:
        touched: set[NodeKey] = set()

        for step, attribute in (
            (_remove_self_dependencies, "self_dependencies_removed"),
            (_remove_duplicate_dependencies, "duplicate_dependencies_removed"),
            (_remove_missing_dependencies, "non_existent_dependencies_removed"),
            (_break_cycles, "circular_dependencies_fixed"),
        ):
            removed = step(tasks)
            setattr(stats, attribute, getattr(stats, attribute) + sum(removed.values()))
            touched.update(removed)

        stats.subtasks_fixed += sum(1 for key in touched if "." in key)
        stats.tasks_fixed += sum(1 for key in touched if "." not in key)

    return stats


def ensure_at_least_one_independent_subtask(data: Any) -> bool:
    """
    Make sure every task with subtasks has one subtask that can start.

    When all subtasks of a task have dependencies, the first one's are
    cleared.

    Returns:
        True if anything was changed.
    """
    task_lists = _task_lists(data)
    if task_lists is None:
        return False

    changed = False
    for tasks in task_lists:
        for task in tasks:
            subtasks = task.get("subtasks") if isinstance(task, dict) else None
            if not isinstance(subtasks, list) or not subtasks:
                continue
            if any(not subtask.get("dependencies") for subtask in subtasks):
                continue
            first = subtasks[0]
            logger.debug(
                "Clearing dependencies of subtask %s.%s so it can start",
                task.get("id"),
                first.get("id"),
            )
            first["dependencies"] = []
            changed = True
    return changed


# ==============================================================================
# Editing
# ==============================================================================


def _find_item(tasks: Sequence[Any], item_id: int | str) -> tuple[dict[str, Any], int | None]:
    """Return (task or subtask, parent id) for item_id."""
    if is_subtask_ref(item_id):
        parent_id, subtask_id = parse_subtask_id(item_id)
        parent = next(
            (t for t in tasks if isinstance(t, dict) and format_task_id(t.get("id")) == parent_id),
            None,
        )
        if parent is None:
            raise ParentTaskNotFoundError(parent_id)
        for subtask in parent.get("subtasks") or []:
            if isinstance(subtask, dict) and format_task_id(subtask.get("id")) == subtask_id:
                return subtask, parent_id
        raise SubtaskNotFoundError(f"{parent_id}.{subtask_id}")

    task_id = format_task_id(item_id)
    for task in tasks:
        if isinstance(task, dict) and format_task_id(task.get("id")) == task_id:
            return task, None
    raise TaskNotFoundError(task_id)


def _dependency_sort_key(dependency: Any) -> tuple:
    if isinstance(dependency, int) and not isinstance(dependency, bool):
        return (0, dependency, 0)
    try:
        parent_id, subtask_id = parse_subtask_id(dependency)
    except ValueError:
        return (2, 0, 0, str(dependency))
    return (1, parent_id, subtask_id)


def add_dependency(tasks: Sequence[Any], task_id: int | str, dependency_id: int | str) -> bool:
    """
    Make task_id depend on dependency_id.

    On a subtask, a plain dependency id names a sibling subtask when one
    exists (see taskmaster.core.tasks.ids). The list is kept sorted: task ids
    first, then subtask ids by parent and position.

    Returns:
        True if added, False if the dependency was already present.

    Raises:
        TaskNotFoundError, ParentTaskNotFoundError, SubtaskNotFoundError: If
            task_id does not exist.
        DependencyError: If the dependency does not exist, is task_id itself,
            or would create a cycle.
    """
    item, parent_id = _find_item(tasks, format_task_id(task_id))
    key = resolve_dependency(format_task_id(task_id))
    index = build_node_index(tasks)

    dependency = format_task_id(dependency_id)
    target = resolve_dependency(dependency, parent_id, index)
    if target not in index:
        raise DependencyError(f"Dependency target {dependency} does not exist")
    if target == key:
        raise DependencyError(f"Task {key} cannot depend on itself")

    dependencies = item.get("dependencies")
    if not isinstance(dependencies, list):
        dependencies = []
    if any(resolve_dependency(d, parent_id, index) == target for d in dependencies):
        logger.info("Dependency %s already exists in task %s", dependency, key)
        return False

    if is_circular_dependency(tasks, key, additional_edges=[(key, dependency)]):
        raise DependencyError(
            f"Cannot add dependency {dependency} to task {key} "
            "as it would create a circular dependency"
        )

    item["dependencies"] = sorted([*dependencies, dependency], key=_dependency_sort_key)
    logger.debug("Added dependency %s to task %s", dependency, key)
    return True


def remove_dependency(tasks: Sequence[Any], task_id: int | str, dependency_id: int | str) -> bool:
    """
    Remove dependency_id from task_id's dependencies.

    Returns:
        True if removed, False if task_id did not depend on it.

    Raises:
        TaskNotFoundError, ParentTaskNotFoundError, SubtaskNotFoundError: If
            task_id does not exist.
    """
    item, parent_id = _find_item(tasks, format_task_id(task_id))
    dependencies = item.get("dependencies")
    if not isinstance(dependencies, list) or not dependencies:
        return False

    index = build_node_index(tasks)
    target = resolve_dependency(format_task_id(dependency_id), parent_id, index)
    kept = [d for d in dependencies if resolve_dependency(d, parent_id, index) != target]
    if len(kept) == len(dependencies):
        return False

    item["dependencies"] = kept
    logger.debug("Removed dependency %s from task %s", dependency_id, task_id)
    return True
