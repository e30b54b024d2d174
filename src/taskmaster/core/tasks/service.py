"""
Task service: the API the CLI (and any other surface) calls.

Composes the store with the task domain. Every mutation is a single locked
read-modify-write of the tasks file, so concurrent callers never lose each
other's changes.

Usage:
    >>> from taskmaster.core.tasks.service import TaskService
    >>> service = TaskService.from_paths(init_task_master())
    >>> service.add_dependency(3, 1)
    >>> service.list_tags()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from taskmaster.core.config import TaskMasterConfig, load_config
from taskmaster.core.store.archive import (
    ArchiveResult,
    RestoreResult,
    archive_tasks_before_overwrite,
    restore_archive,
)
from taskmaster.core.store.json_store import read_json, update_document, update_tag
from taskmaster.core.store.state import DEFAULT_TAG, get_current_tag, set_current_tag

from . import dependencies, subtasks, tags
from .dependencies import DependencyFixStats, DependencyValidationResult
from .errors import TagNotFoundError
from .models import TagRecord
from .tags import TagSummary

if TYPE_CHECKING:
    from taskmaster.core.bootstrap import TaskMasterPaths

logger = logging.getLogger(__name__)


class TaskService:
    """
    Tasks, subtasks, dependencies and tags of one tasks file.

    Args:
        tasks_path: Path to tasks.json
        project_root: Project root holding .taskmaster/state.json; without
            it the current tag is always the configured default
        config: Loaded configuration (loaded from project_root if None)

    Example:
        >>> service = TaskService(Path(".taskmaster/tasks/tasks.json"), Path("."))
        >>> result = service.validate_dependencies()
        >>> result.valid
        True
    """

    def __init__(
        self,
        tasks_path: Path,
        project_root: Path | None = None,
        config: TaskMasterConfig | None = None,
    ) -> None:
        self.tasks_path = Path(tasks_path)
        self.project_root = Path(project_root) if project_root else None
        self.config = config or load_config(self.project_root)
        self._lock_options = self.config.storage.lock_options

    @classmethod
    def from_paths(
        cls, paths: TaskMasterPaths, config: TaskMasterConfig | None = None
    ) -> TaskService:
        """Create a service from bootstrapped project paths."""
        if paths.tasks_path is None:
            raise FileNotFoundError(f"No tasks file found under {paths.project_root}")
        return cls(paths.tasks_path, paths.project_root, config)

    # ------------------------------------------------------------------
    # Tags and reading
    # ------------------------------------------------------------------

    @property
    def current_tag(self) -> str:
        if self.project_root is None:
            return self.config.tags.default_tag
        return get_current_tag(self.project_root, default=self.config.tags.default_tag)

    def resolve_tag(self, tag: str | None = None) -> str:
        return tag or self.current_tag

    def read_tag(self, tag: str | None = None) -> dict[str, Any]:
        """Raw ``{"tasks": [...], "metadata": {...}}`` of a tag (empty if missing)."""
        data = read_json(self.tasks_path, tag=self.resolve_tag(tag))
        return data or {"tasks": [], "metadata": {}}

    def get_tag_record(self, tag: str | None = None) -> TagRecord:
        """A tag's tasks as validated models."""
        return TagRecord.model_validate(self.read_tag(tag))

    def tag_exists(self, name: str) -> bool:
        document = read_json(self.tasks_path, raw=True) or {}
        if "tasks" in document:
            # Untagged file: its tasks are the master tag
            return name == DEFAULT_TAG
        return name in document

    def _require_tag(self, tag: str | None) -> str:
        name = self.resolve_tag(tag)
        if not self.tag_exists(name):
            raise TagNotFoundError(f"Tag {name!r} does not exist")
        return name

    def _update_tag(self, tag: str | None, mutator: Any) -> Any:
        return update_tag(
            self.tasks_path, self.resolve_tag(tag), mutator, lock_options=self._lock_options
        )

    def _update_document(self, mutator: Any) -> Any:
        return update_document(self.tasks_path, mutator, lock_options=self._lock_options)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def validate_dependencies(self, tag: str | None = None) -> DependencyValidationResult:
        """Report dependency problems in a tag without changing anything."""
        return dependencies.validate_task_dependencies(self.read_tag(tag)["tasks"])

    def fix_dependencies(self, tag: str | None = None) -> DependencyFixStats:
        """Repair all dependency problems in a tag, cycles included."""

        def fix(record: dict[str, Any]) -> DependencyFixStats:
            stats = dependencies.fix_dependencies(record)
            if dependencies.ensure_at_least_one_independent_subtask(record):
                logger.info("Cleared dependencies so every task has a startable subtask")
            return stats

        name = self._require_tag(tag)
        stats = self._update_tag(name, fix)
        logger.info("Fixed dependencies in tag %s: %d removed", name, stats.total_removed)
        return stats

    def add_dependency(
        self, task_id: int | str, dependency_id: int | str, tag: str | None = None
    ) -> bool:
        """Make task_id depend on dependency_id. False if already present."""
        return self._update_tag(
            tag,
            lambda record: dependencies.add_dependency(record["tasks"], task_id, dependency_id),
        )

    def remove_dependency(
        self, task_id: int | str, dependency_id: int | str, tag: str | None = None
    ) -> bool:
        """Remove dependency_id from task_id. False if it was not there."""
        return self._update_tag(
            tag,
            lambda record: dependencies.remove_dependency(
                record["tasks"], task_id, dependency_id
            ),
        )

    # ------------------------------------------------------------------
    # Subtasks
    # ------------------------------------------------------------------

    def remove_subtask(
        self, subtask_id: str, convert_to_task: bool = False, tag: str | None = None
    ) -> dict[str, Any] | None:
        """
        Remove a subtask, optionally turning it into a top-level task.

        Dependencies left dangling by the removal are cleaned up in the same
        write.
        """

        def remove(record: dict[str, Any]) -> dict[str, Any] | None:
            new_task = subtasks.remove_subtask(record, subtask_id, convert_to_task)
            dependencies.validate_and_fix_dependencies(record)
            return new_task

        return self._update_tag(tag, remove)

    def add_subtask(
        self, parent_id: int | str, title: str, tag: str | None = None, **fields: Any
    ) -> dict[str, Any]:
        """Append a subtask to a task; see subtasks.add_subtask for fields."""
        return self._update_tag(
            tag, lambda record: subtasks.add_subtask(record, parent_id, title, **fields)
        )

    # ------------------------------------------------------------------
    # Tag lifecycle
    # ------------------------------------------------------------------

    def list_tags(self) -> list[TagSummary]:
        document = read_json(self.tasks_path, raw=True) or {}
        current = self.current_tag
        if "tasks" in document:
            document = {DEFAULT_TAG: document}
        return tags.list_tags(document, current)

    def add_tag(
        self,
        name: str,
        description: str | None = None,
        copy_from: str | None = None,
        copy_from_current: bool = False,
    ) -> dict[str, Any]:
        """Create a tag, optionally seeded with another tag's tasks."""
        source = self.current_tag if copy_from_current and not copy_from else copy_from
        return self._update_document(
            lambda document: tags.add_tag(document, name, description, source)
        )

    def rename_tag(self, old_name: str, new_name: str) -> None:
        """Rename a tag; the current-tag pointer follows it."""
        was_current = self.current_tag == old_name
        self._update_document(lambda document: tags.rename_tag(document, old_name, new_name))
        if was_current and self.project_root is not None:
            set_current_tag(self.project_root, new_name)

    def delete_tag(self, name: str) -> dict[str, Any]:
        """Delete an empty tag that is not the current one."""
        current = self.current_tag
        return self._update_document(lambda document: tags.delete_tag(document, name, current))

    def use_tag(self, name: str) -> None:
        """Make name the current tag."""
        if not self.tag_exists(name):
            raise TagNotFoundError(f"Tag {name!r} does not exist")
        if self.project_root is None:
            raise FileNotFoundError("No project root to record the current tag in")
        set_current_tag(self.project_root, name)

    # ------------------------------------------------------------------
    # Archives
    # ------------------------------------------------------------------

    def archive(self) -> ArchiveResult:
        """Copy the tasks file into archives/."""
        return archive_tasks_before_overwrite(self.tasks_path)

    def restore(self, archive_path: Path) -> RestoreResult:
        """Restore an archive over the tasks file."""
        return restore_archive(
            archive_path,
            destination=self.tasks_path,
            create_backup=self.config.storage.create_backups,
        )
