"""
Archive commands: snapshot the tasks file and restore snapshots.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from .common import FileOption, ProjectRootOption, get_service, handle_errors
from .errors import ExitCode, print_error

console = Console()


def archive(
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Copy the tasks file into the archives/ directory next to it.

    Examples:
        task-master archive
    """
    with handle_errors():
        result = get_service(file, project_root).archive()

    if not result.success:
        print_error("Could not archive the tasks file", reason=result.error)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    if not result.archived:
        console.print("[dim]Nothing to archive[/dim]")
        return
    console.print(f"[green]Archived to {result.archive_path}[/green]")


def restore(
    archive_path: Annotated[Path, typer.Argument(help="Archive file to restore")],
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Restore an archived tasks file.

    The current tasks file is archived first when backups are enabled.

    Examples:
        task-master restore .taskmaster/tasks/archives/tasks-2025-01-01T00-00-00.000+00-00.json
    """
    with handle_errors():
        result = get_service(file, project_root).restore(archive_path)

    if not result.success:
        print_error("Could not restore the archive", reason=result.error)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print(f"[green]Restored {archive_path} to {result.restored_to}[/green]")
