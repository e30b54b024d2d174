"""
Tag commands: list, add, rename, delete and switch tags.
"""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from .common import FileOption, ProjectRootOption, get_service, handle_errors

console = Console()


def list_tags(
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    List all tags with their task counts.

    Examples:
        task-master tags
    """
    with handle_errors():
        summaries = get_service(file, project_root).list_tags()

    if not summaries:
        console.print("[dim]No tags found[/dim]")
        return

    table = Table(title="Tags", border_style="cyan")
    table.add_column("", no_wrap=True)
    table.add_column("Tag", style="cyan", no_wrap=True)
    table.add_column("Tasks", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Description", style="dim")
    for summary in summaries:
        table.add_row(
            "[green]*[/green]" if summary.is_current else "",
            summary.name,
            str(summary.task_count),
            str(summary.completed_count),
            summary.description or "",
        )
    console.print(table)


def add_tag(
    name: Annotated[str, typer.Argument(help="Name of the new tag")],
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Tag description")
    ] = None,
    copy_from: Annotated[
        str | None, typer.Option("--copy-from", help="Copy the tasks of this tag")
    ] = None,
    copy_from_current: Annotated[
        bool,
        typer.Option("--copy-from-current", help="Copy the tasks of the current tag"),
    ] = False,
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Create a new tag.

    Examples:
        task-master add-tag feature-auth
        task-master add-tag experiment --copy-from-current
    """
    with handle_errors():
        record = get_service(file, project_root).add_tag(
            name, description, copy_from, copy_from_current
        )

    console.print(f"[green]Created tag '{name}'[/green] [dim]({len(record['tasks'])} tasks)[/dim]")


def rename_tag(
    old_name: Annotated[str, typer.Argument(help="Current tag name")],
    new_name: Annotated[str, typer.Argument(help="New tag name")],
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Rename a tag.

    Examples:
        task-master rename-tag feature-auth auth
    """
    with handle_errors():
        get_service(file, project_root).rename_tag(old_name, new_name)

    console.print(f"[green]Renamed tag '{old_name}' to '{new_name}'[/green]")


def delete_tag(
    name: Annotated[str, typer.Argument(help="Tag to delete")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Delete an empty tag that is not the current tag.

    Examples:
        task-master delete-tag old-experiment --yes
    """
    if not yes and not typer.confirm(f"Delete tag '{name}'?"):
        console.print("[dim]Cancelled[/dim]")
        raise typer.Exit(0)

    with handle_errors():
        get_service(file, project_root).delete_tag(name)

    console.print(f"[green]Deleted tag '{name}'[/green]")


def use_tag(
    name: Annotated[str, typer.Argument(help="Tag to make current")],
    file: FileOption = None,
    project_root: ProjectRootOption = None,
) -> None:
    """
    Switch the current tag.

    Examples:
        task-master use-tag feature-auth
    """
    with handle_errors():
        get_service(file, project_root).use_tag(name)

    console.print(f"[green]Now using tag '{name}'[/green]")
