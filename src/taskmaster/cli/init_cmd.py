"""
Init command: create the .taskmaster directory layout in a project.

Creates, when missing:
- .taskmaster/tasks/tasks.json with an empty ``master`` tag
- .taskmaster/docs/ and .taskmaster/reports/
- .taskmaster/config.json
- .taskmaster/state.json pointing at ``master``

Existing files are never overwritten.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from taskmaster.core.bootstrap import (
    TASKMASTER_CONFIG_FILE,
    TASKMASTER_DIR,
    TASKMASTER_DOCS_DIR,
    TASKMASTER_REPORTS_DIR,
    TASKMASTER_TASKS_FILE,
)
from taskmaster.core.store.atomic import atomic_write_json
from taskmaster.core.store.json_store import new_tag_record
from taskmaster.core.store.state import DEFAULT_TAG, get_state_path, set_current_tag

from .common import handle_errors

console = Console()
logger = logging.getLogger(__name__)


def init_project(project_dir: Path) -> list[Path]:
    """
    Create missing Task Master files under project_dir.

    Returns:
        Paths that were created.
    """
    created: list[Path] = []

    for directory in (
        project_dir / TASKMASTER_DIR,
        project_dir / TASKMASTER_TASKS_FILE.parent,
        project_dir / TASKMASTER_DOCS_DIR,
        project_dir / TASKMASTER_REPORTS_DIR,
    ):
        if not directory.exists():
            directory.mkdir(parents=True)
            created.append(directory)

    tasks_file = project_dir / TASKMASTER_TASKS_FILE
    if not tasks_file.exists():
        atomic_write_json(tasks_file, {DEFAULT_TAG: new_tag_record()})
        created.append(tasks_file)

    config_file = project_dir / TASKMASTER_CONFIG_FILE
    if not config_file.exists():
        atomic_write_json(config_file, {"global": {"defaultTag": DEFAULT_TAG}})
        created.append(config_file)

    state_file = get_state_path(project_dir)
    if not state_file.exists():
        set_current_tag(project_dir, DEFAULT_TAG)
        created.append(state_file)

    logger.debug("Initialized %s (%d paths created)", project_dir, len(created))
    return created


def main(
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", help="Directory to initialize (default: cwd)"),
    ] = None,
) -> None:
    """
    Initialize Task Master in a project.

    Safe to run again: files that already exist are left untouched.

    Examples:
        task-master init
        task-master init --project-root ../other-project
    """
    project_dir = Path(project_root).resolve() if project_root else Path.cwd()

    with handle_errors():
        created = init_project(project_dir)

    if not created:
        console.print(f"[dim]Task Master already initialized in {project_dir}[/dim]")
        return

    console.print(f"[green]Initialized Task Master in {project_dir}[/green]")
    for path in created:
        console.print(f"  [dim]created[/dim] {path.relative_to(project_dir)}")
