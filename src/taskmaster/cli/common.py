"""
Shared options and helpers for task-master commands.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from taskmaster.core.bootstrap import TaskMasterPaths, with_task_master
from taskmaster.core.config import TaskMasterConfig, load_config
from taskmaster.core.store.errors import StoreError
from taskmaster.core.tasks.errors import TaskGraphError
from taskmaster.core.tasks.service import TaskService
from taskmaster.utils.project import find_project_root

from .errors import ExitCode, report_exception

FileOption = Annotated[
    str | None,
    typer.Option(
        "--file", "-f", help="Path to the tasks file (default: .taskmaster/tasks/tasks.json)"
    ),
]
TagOption = Annotated[
    str | None,
    typer.Option("--tag", help="Tag to work on (default: the current tag)"),
]
ProjectRootOption = Annotated[
    str | None,
    typer.Option("--project-root", help="Project root (default: searched upward from cwd)"),
]


def setup_logging(debug: bool = False, level: str = "WARNING") -> None:
    """
    Configure logging for task-master commands.

    Args:
        debug: If True, log at DEBUG level whatever the configured level
        level: Configured level name (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@with_task_master(required=["tasks_path"], tasks_path="file")
def _resolve_paths(paths: TaskMasterPaths, args: Any, context: Any) -> TaskMasterPaths:
    return paths


def get_paths(file: str | None = None, project_root: str | None = None) -> TaskMasterPaths:
    """Resolve the project and its tasks file for a command."""
    root = project_root or str(find_project_root())
    return _resolve_paths({"file": file, "project_root": root})


def get_config(project_root: Path) -> TaskMasterConfig:
    """Load the config of a project, bypassing the process-wide cache."""
    return load_config(project_root, use_cache=False)


def get_service(file: str | None = None, project_root: str | None = None) -> TaskService:
    """Build a TaskService for the resolved project."""
    paths = get_paths(file, project_root)
    return TaskService.from_paths(paths, get_config(paths.project_root))


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn core exceptions into an error message and exit code."""
    try:
        yield
    except KeyboardInterrupt:
        raise typer.Exit(ExitCode.SIGINT) from None
    except (StoreError, TaskGraphError, ValidationError, OSError) as e:
        raise typer.Exit(report_exception(e)) from e
