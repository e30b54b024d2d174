"""
Project root discovery utilities for taskmaster.

This module provides functions for discovering project boundaries by
searching upward for marker files. Task-Master markers (.taskmaster/ or the
legacy .taskmasterconfig file) always take priority over generic project
markers like .git/ or package.json, so a monorepo subproject with its own
.git still resolves to the parent that owns the task store.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from urllib.parse import unquote

# Markers that identify a Task-Master project root
TASKMASTER_MARKERS = [
    ".taskmaster",  # Task-Master directory
    ".taskmasterconfig",  # Legacy single-file config
]

# Generic markers, consulted only when no Task-Master marker exists upward
PROJECT_ROOT_MARKERS = [
    ".git",
    ".svn",
    ".hg",
    "package.json",
    "Cargo.toml",
    "go.mod",
    "pyproject.toml",
    "setup.py",
    "requirements.txt",
    "Gemfile",
    "composer.json",
    "pom.xml",
    "build.gradle",
]

# Upper bound on directory levels inspected per pass
MAX_DEPTH = 50

_WINDOWS_DRIVE = re.compile(r"^/[A-Za-z]:")


class ProjectRootNotFoundError(FileNotFoundError):
    """Raised when no Task-Master project marker can be found."""


def _resolve_start(start_dir: str | Path | None) -> Path:
    if not start_dir:
        return Path.cwd()
    start = Path(start_dir)
    if not start.is_absolute():
        start = Path.cwd() / start
    return start.resolve()


def _has_marker(directory: Path, markers: list[str]) -> bool:
    for marker in markers:
        try:
            if (directory / marker).exists():
                return True
        except OSError:
            # Unreadable level: treat as "not here" and keep walking
            continue
    return False


def _walk_up(start: Path, markers: list[str]) -> Path | None:
    current = start
    for _ in range(MAX_DEPTH):
        if _has_marker(current, markers):
            return current
        if current == current.parent:
            break
        current = current.parent
    return None


def find_taskmaster_root(start_dir: str | Path | None = "") -> Path | None:
    """
    Find the nearest ancestor carrying a Task-Master marker.

    Args:
        start_dir: Directory to start from. Empty means the current directory.

    Returns:
        Path to the directory holding .taskmaster/ or .taskmasterconfig,
        or None if no such directory exists within MAX_DEPTH levels.
    """
    return _walk_up(_resolve_start(start_dir), TASKMASTER_MARKERS)


def find_project_root(start_dir: str | Path | None = "") -> Path:
    """
    Find the project root directory by searching upward for marker files.

    Two passes are made. The first only looks for Task-Master markers; if one
    exists anywhere up the chain it wins, even when a generic marker sits
    closer to start_dir. The second pass looks for generic markers, nearest
    first. Files that merely happen to be called tasks.json are never markers.

    Args:
        start_dir: Directory to start searching from. Relative paths are
            resolved against the current working directory; an empty value
            means the current working directory.

    Returns:
        Path to the project root, or the current working directory when no
        marker is found.

    Example:
        >>> find_project_root("/project/subdir")  # .taskmaster at /project
        PosixPath('/project')
    """
    start = _resolve_start(start_dir)

    root = _walk_up(start, TASKMASTER_MARKERS)
    if root is not None:
        return root

    root = _walk_up(start, PROJECT_ROOT_MARKERS)
    if root is not None:
        return root

    return Path.cwd()


def get_project_root(start_dir: str | Path | None = "") -> Path:
    """
    Get the Task-Master project root, raising an error if not found.

    Unlike find_project_root this never falls back to the current working
    directory; it is used by bootstrap code that needs a real project.

    Raises:
        ProjectRootNotFoundError: If no Task-Master marker can be found.
    """
    root = find_taskmaster_root(start_dir)
    if root is None:
        start = _resolve_start(start_dir)
        raise ProjectRootNotFoundError(
            f"Could not find project root from {start}. "
            f"Expected one of: {', '.join(TASKMASTER_MARKERS)}. "
            'Run "task-master init" first.'
        )
    return root


def normalize_project_root(raw: str | Path | list[str] | None) -> Path | None:
    """
    Normalize a project root given as a path, file:// URI or list of them.

    Handles URI encoding, file:// prefixes, Windows drive paths and
    backslashes, then resolves to an absolute path.

    Returns:
        The normalized absolute path, or None for empty input.
    """
    if not raw:
        return None

    value = raw[0] if isinstance(raw, list) else str(raw)
    if not value:
        return None

    value = unquote(value)

    if value.startswith("file://"):
        value = value[len("file://") :]

    if _WINDOWS_DRIVE.match(value):
        value = value[1:]

    value = value.replace("\\", "/")
    return Path(os.path.abspath(value))
