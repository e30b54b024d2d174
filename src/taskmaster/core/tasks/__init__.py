"""
Task domain: models, identifiers, dependency graph and tag lifecycle.
"""

from .dependencies import (
    DependencyFixStats,
    DependencyIssue,
    DependencyValidationResult,
    add_dependency,
    count_all_dependencies,
    ensure_at_least_one_independent_subtask,
    fix_dependencies,
    is_circular_dependency,
    remove_dependency,
    validate_and_fix_dependencies,
    validate_task_dependencies,
)
from .errors import (
    ActiveTagError,
    DependencyError,
    InvalidSubtaskIdFormatError,
    InvalidTagNameError,
    ParentTaskNotFoundError,
    SubtaskConversionError,
    SubtaskNotFoundError,
    TagError,
    TagExistsError,
    TagNotEmptyError,
    TagNotFoundError,
    TaskGraphError,
    TaskNotFoundError,
)
from .graph import DependencyGraph
from .ids import format_task_id, parse_subtask_id, task_exists
from .models import Subtask, TagMetadata, TagRecord, Task, TaskPriority, TaskStatus
from .subtasks import add_subtask, remove_subtask
from .tags import TagSummary, add_tag, delete_tag, list_tags, rename_tag, validate_tag_name

__all__ = [
    # Models
    "Subtask",
    "TagMetadata",
    "TagRecord",
    "Task",
    "TaskPriority",
    "TaskStatus",
    # Errors
    "ActiveTagError",
    "DependencyError",
    "InvalidSubtaskIdFormatError",
    "InvalidTagNameError",
    "ParentTaskNotFoundError",
    "SubtaskConversionError",
    "SubtaskNotFoundError",
    "TagError",
    "TagExistsError",
    "TagNotEmptyError",
    "TagNotFoundError",
    "TaskGraphError",
    "TaskNotFoundError",
    # Identifiers and graph
    "DependencyGraph",
    "format_task_id",
    "parse_subtask_id",
    "task_exists",
    # Dependencies
    "DependencyFixStats",
    "DependencyIssue",
    "DependencyValidationResult",
    "add_dependency",
    "count_all_dependencies",
    "ensure_at_least_one_independent_subtask",
    "fix_dependencies",
    "is_circular_dependency",
    "remove_dependency",
    "validate_and_fix_dependencies",
    "validate_task_dependencies",
    # Subtasks and tags
    "TagSummary",
    "add_subtask",
    "add_tag",
    "delete_tag",
    "list_tags",
    "remove_subtask",
    "rename_tag",
    "validate_tag_name",
]
