"""
Task listing command.
"""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from taskmaster.core.tasks.graph import DependencyGraph
from taskmaster.core.tasks.models import Task, TaskStatus

from .common import FileOption, ProjectRootOption, TagOption, get_service, handle_errors

console = Console()

STATUS_STYLES = {
    "pending": "[yellow]pending[/yellow]",
    "in-progress": "[blue]in-progress[/blue]",
    "done": "[green]done[/green]",
    "review": "[magenta]review[/magenta]",
    "deferred": "[dim]deferred[/dim]",
    "cancelled": "[dim]cancelled[/dim]",
}


def _format_status(status: str) -> str:
    return STATUS_STYLES.get(status, status)


def _format_dependencies(task: Task) -> str:
    if not task.dependencies:
        return "[dim]-[/dim]"
    return ", ".join(str(dep) for dep in task.dependencies)


def list_tasks(
    file: FileOption = None,
    tag: TagOption = None,
    project_root: ProjectRootOption = None,
    status: Annotated[
        str | None,
        typer.Option("--status", "-s", help="Only show tasks with this status"),
    ] = None,
    with_subtasks: Annotated[
        bool,
        typer.Option("--with-subtasks", help="Show subtasks under each task"),
    ] = False,
) -> None:
    """
    List the tasks of a tag.

    Examples:
        task-master list
        task-master list --tag feature-auth --with-subtasks
        task-master list --status pending
    """
    if status is not None and status not in {s.value for s in TaskStatus}:
        valid = ", ".join(s.value for s in TaskStatus)
        console.print(f"[red]Error:[/red] Invalid status {status!r}. Valid: {valid}")
        raise typer.Exit(2)

    with handle_errors():
        service = get_service(file, project_root)
        tag_name = service.resolve_tag(tag)
        raw = service.read_tag(tag_name)
        record = service.get_tag_record(tag_name)

    graph = DependencyGraph(raw["tasks"])
    tasks = [t for t in record.tasks if status is None or t.status == status]

    if not tasks:
        console.print(f"[dim]No tasks in tag '{tag_name}'[/dim]")
        return

    table = Table(title=f"Tasks ({tag_name})", border_style="cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Status", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Depends on")
    table.add_column("Unblocks", style="dim")

    for task in tasks:
        done, total = task.subtask_progress
        title = task.title if not total else f"{task.title} [dim]({done}/{total})[/dim]"
        table.add_row(
            str(task.id),
            title,
            _format_status(task.status),
            str(task.priority),
            _format_dependencies(task),
            ", ".join(graph.dependents_of(str(task.id))) or "-",
        )
        if with_subtasks:
            for subtask in task.subtasks:
                deps = ", ".join(str(d) for d in subtask.dependencies) or "[dim]-[/dim]"
                table.add_row(
                    f"  {task.id}.{subtask.id}",
                    f"  {subtask.title}",
                    _format_status(subtask.status),
                    "",
                    deps,
                    ", ".join(graph.dependents_of(f"{task.id}.{subtask.id}")) or "-",
                )

    console.print(table)
