"""
Task data models for taskmaster.

Pydantic models for the records stored in a tasks file. Files are written by
several tools, so every model keeps keys it does not know about
(``extra="allow"``) and dumps back to the camelCase keys it was read from.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    """Task status values."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    REVIEW = "review"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"

    @property
    def is_complete(self) -> bool:
        """Check if the status counts as finished work."""
        return self in (TaskStatus.DONE, TaskStatus.CANCELLED)


class TaskPriority(str, Enum):
    """Task priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


DependencyRef = int | str


class _Record(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        use_enum_values=True,
    )

    def dump(self) -> dict[str, Any]:
        """Serialize to the JSON shape stored on disk."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Subtask(_Record):
    """A subtask, identified by an id unique within its parent task."""

    id: int = Field(..., ge=1, description="Subtask id within the parent")
    title: str = Field(..., min_length=1, description="Subtask title")
    description: str = Field(default="", description="Short description")
    details: str = Field(default="", description="Implementation notes")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    dependencies: list[DependencyRef] = Field(
        default_factory=list,
        description="Sibling subtask ids or dotted 'parent.sub' ids",
    )
    parent_task_id: int | None = Field(default=None, alias="parentTaskId")
    test_strategy: str | None = Field(default=None, alias="testStrategy")


class Task(_Record):
    """A top-level task.

    Example:
        >>> task = Task(id=3, title="Wire up the store", dependencies=[1, "2.1"])
        >>> task.dump()["dependencies"]
        [1, '2.1']
    """

    id: int = Field(..., ge=1, description="Task id, unique within its tag")
    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Short description")
    details: str = Field(default="", description="Implementation notes")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    dependencies: list[DependencyRef] = Field(default_factory=list)
    test_strategy: str | None = Field(default=None, alias="testStrategy")
    subtasks: list[Subtask] = Field(default_factory=list)

    @field_validator("dependencies")
    @classmethod
    def validate_dependencies(cls, v: list[DependencyRef]) -> list[DependencyRef]:
        """Reject booleans, which JSON would otherwise coerce to ids."""
        if any(isinstance(dep, bool) for dep in v):
            raise ValueError("Dependencies must be task ids, not booleans")
        return v

    def dump(self) -> dict[str, Any]:
        data = super().dump()
        if not self.subtasks:
            data.pop("subtasks", None)
        return data

    def get_subtask(self, subtask_id: int) -> Subtask | None:
        """Get a subtask by its id within this task."""
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None

    @property
    def subtask_progress(self) -> tuple[int, int]:
        """(done, total) count of subtasks."""
        done = sum(1 for s in self.subtasks if TaskStatus(s.status).is_complete)
        return done, len(self.subtasks)


class TagMetadata(_Record):
    """Metadata kept alongside each tag's task list."""

    created: str | None = None
    updated: str | None = None
    description: str | None = None


class TagRecord(_Record):
    """One tag's slice of a tasks file: ``{"tasks": [...], "metadata": {...}}``."""

    tasks: list[Task] = Field(default_factory=list)
    metadata: TagMetadata = Field(default_factory=TagMetadata)

    def dump(self) -> dict[str, Any]:
        data = super().dump()
        data["tasks"] = [task.dump() for task in self.tasks]
        return data

    def get_task(self, task_id: int) -> Task | None:
        """Get a task by id."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None
