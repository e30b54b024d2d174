"""Typed exceptions for task, subtask, dependency and tag operations."""

from __future__ import annotations


class TaskGraphError(Exception):
    """Base exception for task domain errors."""


class TaskNotFoundError(TaskGraphError):
    """A top-level task id does not exist."""

    def __init__(self, task_id: int | str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class ParentTaskNotFoundError(TaskGraphError):
    """The parent of a subtask reference does not exist."""

    def __init__(self, parent_id: int) -> None:
        self.parent_id = parent_id
        super().__init__(f"Parent task with ID {parent_id} not found")


class SubtaskNotFoundError(TaskGraphError):
    """A subtask reference names a subtask its parent does not have."""

    def __init__(self, subtask_id: str) -> None:
        self.subtask_id = subtask_id
        super().__init__(f"Subtask {subtask_id} not found")


class InvalidSubtaskIdFormatError(TaskGraphError, ValueError):
    """A subtask id is not of the form "parentId.subtaskId"."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(
            f'Invalid subtask ID format: {value!r}. Expected "parentId.subtaskId"'
        )


class DependencyError(TaskGraphError):
    """A dependency cannot be added (missing target, self reference, cycle)."""


class TagError(TaskGraphError):
    """Base exception for tag lifecycle errors."""


class InvalidTagNameError(TagError, ValueError):
    """Tag name is empty or contains characters outside [a-zA-Z0-9-_]."""


class TagExistsError(TagError):
    """A tag with this name already exists."""


class TagNotFoundError(TagError):
    """The tag does not exist in the tasks file."""


class TagNotEmptyError(TagError):
    """The tag still has tasks and cannot be deleted."""


class ActiveTagError(TagError):
    """The operation is not allowed on the currently active tag."""


class SubtaskConversionError(TaskGraphError):
    """Converting a subtask would leave a reference that names the wrong node."""

    def __init__(self, subtask_id: str, new_task_id: int, owner: str) -> None:
        self.subtask_id = subtask_id
        self.new_task_id = new_task_id
        self.owner = owner
        parent = owner.split(".")[0]
        super().__init__(
            f"Cannot convert subtask {subtask_id} to task {new_task_id}: subtask {owner} "
            f"depends on it and would read {new_task_id} as its sibling {parent}.{new_task_id}"
        )
