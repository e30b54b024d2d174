"""
Dependency commands: validate, fix, add and remove task dependencies.
"""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from .common import FileOption, ProjectRootOption, TagOption, get_service, handle_errors
from .errors import ExitCode

console = Console()

IdOption = Annotated[
    str,
    typer.Option("--id", "-i", help="Task or subtask id (e.g. 5 or 5.2)"),
]
DependsOnOption = Annotated[
    str,
    typer.Option("--depends-on", "-d", help="Id of the task or subtask depended on"),
]


def validate_dependencies(
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Check dependencies for self references, missing targets and cycles.

    Nothing is changed. Exits with 1 when problems are found.

    Examples:
        task-master validate-dependencies
        task-master validate-dependencies --tag feature-auth
    """
    with handle_errors():
        service = get_service(file, project_root)
        tag_name = service.resolve_tag(tag)
        result = service.validate_dependencies(tag_name)

    if result.valid:
        console.print(f"[green]All dependencies in tag '{tag_name}' are valid[/green]")
        return

    table = Table(title=f"Dependency issues ({tag_name})", border_style="red")
    table.add_column("Type", style="red", no_wrap=True)
    table.add_column("Task", style="cyan", no_wrap=True)
    table.add_column("Dependency", no_wrap=True)
    table.add_column("Message")
    for issue in result.issues:
        table.add_row(issue.type, str(issue.task_id), str(issue.dependency_id), issue.message)
    console.print(table)
    console.print(
        f"[yellow]{len(result.issues)} issue(s) found.[/yellow] "
        "Run [cyan]task-master fix-dependencies[/cyan] to repair them."
    )
    raise typer.Exit(ExitCode.GENERAL_ERROR)


def fix_dependencies(
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Remove invalid dependencies and break dependency cycles.

    Examples:
        task-master fix-dependencies
    """
    with handle_errors():
        service = get_service(file, project_root)
        tag_name = service.resolve_tag(tag)
        stats = service.fix_dependencies(tag_name)

    if not stats.changes_made:
        console.print(f"[green]No dependency issues in tag '{tag_name}'[/green]")
        return

    table = Table(title=f"Dependency fixes ({tag_name})", border_style="green")
    table.add_column("Fix")
    table.add_column("Count", justify="right", style="cyan")
    table.add_row("Missing dependencies removed", str(stats.non_existent_dependencies_removed))
    table.add_row("Self dependencies removed", str(stats.self_dependencies_removed))
    table.add_row("Duplicate dependencies removed", str(stats.duplicate_dependencies_removed))
    table.add_row("Circular dependencies broken", str(stats.circular_dependencies_fixed))
    table.add_row("Tasks changed", str(stats.tasks_fixed))
    table.add_row("Subtasks changed", str(stats.subtasks_fixed))
    console.print(table)


def add_dependency(
    task_id: IdOption,
    depends_on: DependsOnOption,
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Make a task or subtask depend on another one.

    On a subtask, a plain number names a sibling subtask when one exists.

    Examples:
        task-master add-dependency --id 5 --depends-on 3
        task-master add-dependency --id 5.2 --depends-on 5.1
    """
    with handle_errors():
        added = get_service(file, project_root).add_dependency(task_id, depends_on, tag)

    if added:
        console.print(f"[green]Task {task_id} now depends on {depends_on}[/green]")
    else:
        console.print(f"[dim]Task {task_id} already depends on {depends_on}[/dim]")


def remove_dependency(
    task_id: IdOption,
    depends_on: DependsOnOption,
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Remove a dependency from a task or subtask.

    Examples:
        task-master remove-dependency --id 5 --depends-on 3
    """
    with handle_errors():
        removed = get_service(file, project_root).remove_dependency(task_id, depends_on, tag)

    if removed:
        console.print(f"[green]Removed dependency {depends_on} from task {task_id}[/green]")
    else:
        console.print(f"[dim]Task {task_id} does not depend on {depends_on}[/dim]")
