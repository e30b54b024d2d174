"""
Task Master CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from pydantic import ValidationError
from rich.console import Console

from taskmaster import __version__
from taskmaster.cli import archive, dependencies, init_cmd, subtasks, tags, tasks
from taskmaster.cli.common import setup_logging
from taskmaster.core.config import load_config
from taskmaster.core.config.env import load_layered_env
from taskmaster.utils.project import find_project_root

# Help panel names for command grouping
PANEL_PROJECT = "Set Up a Project"
PANEL_TASKS = "Work with Tasks"
PANEL_DEPENDENCIES = "Manage Dependencies"
PANEL_TAGS = "Manage Tags"
PANEL_ARCHIVE = "Archive and Restore"

app = typer.Typer(
    name="task-master",
    help="Manage a project's tasks, subtasks, dependencies and tags",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Task Master - tasks, subtasks, dependencies and tags in .taskmaster/.

    Quick Start:
        1. task-master init                       # Initialize your project
        2. task-master list                       # See the current tag's tasks
        3. task-master validate-dependencies      # Check the dependency graph

    Tags:
        task-master tags                          # List tags
        task-master add-tag feature-auth          # Create a tag
        task-master use-tag feature-auth          # Switch to it
    """
    # Precedence: OS env > project .env > user .env
    project_root = find_project_root()
    load_layered_env(project_dir=project_root)

    try:
        level = load_config(project_root, use_cache=False).logging.level
    except ValidationError:
        # Reported again, with details, by the command that needs the config
        level = "WARNING"
    setup_logging(debug, level)

    ctx.obj = {"debug": debug}


app.command(name="init", rich_help_panel=PANEL_PROJECT)(init_cmd.main)

app.command(name="list", rich_help_panel=PANEL_TASKS)(tasks.list_tasks)
app.command(name="add-subtask", rich_help_panel=PANEL_TASKS)(subtasks.add_subtask)
app.command(name="remove-subtask", rich_help_panel=PANEL_TASKS)(subtasks.remove_subtask)

app.command(name="validate-dependencies", rich_help_panel=PANEL_DEPENDENCIES)(
    dependencies.validate_dependencies
)
app.command(name="fix-dependencies", rich_help_panel=PANEL_DEPENDENCIES)(
    dependencies.fix_dependencies
)
app.command(name="add-dependency", rich_help_panel=PANEL_DEPENDENCIES)(
    dependencies.add_dependency
)
app.command(name="remove-dependency", rich_help_panel=PANEL_DEPENDENCIES)(
    dependencies.remove_dependency
)

app.command(name="tags", rich_help_panel=PANEL_TAGS)(tags.list_tags)
app.command(name="add-tag", rich_help_panel=PANEL_TAGS)(tags.add_tag)
app.command(name="rename-tag", rich_help_panel=PANEL_TAGS)(tags.rename_tag)
app.command(name="delete-tag", rich_help_panel=PANEL_TAGS)(tags.delete_tag)
app.command(name="use-tag", rich_help_panel=PANEL_TAGS)(tags.use_tag)

app.command(name="archive", rich_help_panel=PANEL_ARCHIVE)(archive.archive)
app.command(name="restore", rich_help_panel=PANEL_ARCHIVE)(archive.restore)


@app.command()
def version() -> None:
    """Show task-master version."""
    console.print(f"task-master version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
