"""
Standardized error handling and exit codes for the task-master CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

from taskmaster.core.store.errors import LockTimeoutError, StoreError
from taskmaster.core.tasks.errors import TagError, TaskGraphError
from taskmaster.utils.project import ProjectRootNotFoundError

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for task-master CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, or a check that found problems."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Tag 'feature' does not exist",
        ...     solution="task-master tags  # to see available tags",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_not_project_root_error(detail: str | None = None) -> None:
    """Print error when not in a Task Master project."""
    print_error(
        "Not in a Task Master project",
        reason=detail or "Could not find .taskmaster/ or .taskmasterconfig",
        solution="task-master init  # or cd to your project root",
    )


def print_lock_timeout_error(error: LockTimeoutError) -> None:
    """Print error when the tasks file stays locked."""
    print_error(
        f"Could not lock {error.file_path}",
        reason=f"Another process held the lock for all {error.attempts} attempts",
        solution=f"Retry, or remove {error.file_path}.lock if no other task-master is running",
    )


def report_exception(error: BaseException) -> ExitCode:
    """
    Print a domain error and return the exit code it maps to.

    Args:
        error: Exception raised by a core operation

    Returns:
        USER_ERROR for problems the user can fix (bad ids, missing project,
        corrupt files), GENERAL_ERROR otherwise.
    """
    if isinstance(error, ProjectRootNotFoundError):
        print_not_project_root_error(str(error))
        return ExitCode.USER_ERROR

    if isinstance(error, LockTimeoutError):
        print_lock_timeout_error(error)
        return ExitCode.GENERAL_ERROR

    if isinstance(error, TagError):
        print_error(str(error), solution="task-master tags  # to see available tags")
        return ExitCode.USER_ERROR

    if isinstance(error, TaskGraphError):
        print_error(str(error), solution="task-master list  # to see available tasks")
        return ExitCode.USER_ERROR

    if isinstance(error, StoreError):
        print_error(str(error), reason="The file could not be read as expected")
        return ExitCode.USER_ERROR

    if isinstance(error, FileNotFoundError):
        print_error(str(error), solution="task-master init  # to create the project files")
        return ExitCode.USER_ERROR

    print_error(str(error))
    return ExitCode.GENERAL_ERROR


__all__ = [
    "ExitCode",
    "print_error",
    "print_lock_timeout_error",
    "print_not_project_root_error",
    "report_exception",
]
