"""Utility modules for taskmaster."""

from .project import (
    MAX_DEPTH,
    PROJECT_ROOT_MARKERS,
    TASKMASTER_MARKERS,
    ProjectRootNotFoundError,
    find_project_root,
    find_taskmaster_root,
    get_project_root,
    normalize_project_root,
)

__all__ = [
    "MAX_DEPTH",
    "PROJECT_ROOT_MARKERS",
    "TASKMASTER_MARKERS",
    "ProjectRootNotFoundError",
    "find_project_root",
    "find_taskmaster_root",
    "get_project_root",
    "normalize_project_root",
]
