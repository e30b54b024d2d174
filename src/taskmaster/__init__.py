"""
taskmaster - tagged task-graph store

Locked, atomic storage for tagged task collections, with dependency
validation and tag management.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from taskmaster.core.config.models import TaskMasterConfig
from taskmaster.core.tasks.models import Task, TaskPriority, TaskStatus

__all__ = ["TaskMasterConfig", "Task", "TaskStatus", "TaskPriority", "__version__"]
