"""
Subtask commands.
"""

from typing import Annotated

import typer
from rich.console import Console

from taskmaster.core.tasks.ids import format_task_id

from .common import FileOption, ProjectRootOption, TagOption, get_service, handle_errors

console = Console()


def remove_subtask(
    subtask_id: Annotated[
        str,
        typer.Option("--id", "-i", help="Subtask id in parent.sub form, e.g. 5.2"),
    ],
    convert: Annotated[
        bool,
        typer.Option("--convert", "-c", help="Turn the subtask into a top-level task"),
    ] = False,
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Remove a subtask from its parent task.

    With --convert the subtask becomes a new task that depends on its former
    parent. Dependencies on the removed subtask are updated accordingly.

    Examples:
        task-master remove-subtask --id 5.2
        task-master remove-subtask --id 5.2 --convert
    """
    with handle_errors():
        new_task = get_service(file, project_root).remove_subtask(subtask_id, convert, tag)

    if new_task is None:
        console.print(f"[green]Removed subtask {subtask_id}[/green]")
    else:
        console.print(
            f"[green]Converted subtask {subtask_id} to task {new_task['id']}[/green] "
            f"[dim]({new_task.get('title', '')})[/dim]"
        )


def add_subtask(
    parent_id: Annotated[
        str,
        typer.Option("--parent", "-p", help="Id of the parent task"),
    ],
    title: Annotated[str, typer.Option("--title", "-t", help="Subtask title")],
    description: Annotated[
        str, typer.Option("--description", help="Subtask description")
    ] = "",
    details: Annotated[str, typer.Option("--details", help="Implementation details")] = "",
    dependencies: Annotated[
        str | None,
        typer.Option("--dependencies", help="Comma-separated dependency ids, e.g. 1,5.1"),
    ] = None,
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Add a subtask to a task.

    Examples:
        task-master add-subtask --parent 5 --title "Write migration"
    """
    deps = [format_task_id(d) for d in dependencies.split(",") if d.strip()] if dependencies else []

    with handle_errors():
        subtask = get_service(file, project_root).add_subtask(
            parent_id, title, tag, description=description, details=details, dependencies=deps
        )

    console.print(f"[green]Added subtask {parent_id}.{subtask['id']}:[/green] {title}")
