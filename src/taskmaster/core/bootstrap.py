"""
Project bootstrap: resolve the project root and the paths commands need.

init_task_master() finds (or checks) the project root and resolves each
path a caller asks for. with_task_master() wraps a handler so it receives
those paths, with the project root taken from the environment, the call
arguments or the client session.

Path overrides passed to init_task_master follow one rule for every path:

- a string: use it (relative to the project root); it must exist
- True: required; search the default locations and fail if none exists
- False: optional; search the default locations, None if none exists
- not given: the default location, whether it exists or not
"""

from __future__ import annotations

import functools
import logging
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from taskmaster.core.store.state import get_current_tag
from taskmaster.utils.project import (
    ProjectRootNotFoundError,
    find_taskmaster_root,
    normalize_project_root,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASKMASTER_DIR = ".taskmaster"
TASKMASTER_TASKS_FILE = Path(TASKMASTER_DIR) / "tasks" / "tasks.json"
LEGACY_TASKS_FILE = Path("tasks") / "tasks.json"
TASKMASTER_DOCS_DIR = Path(TASKMASTER_DIR) / "docs"
TASKMASTER_REPORTS_DIR = Path(TASKMASTER_DIR) / "reports"
TASKMASTER_CONFIG_FILE = Path(TASKMASTER_DIR) / "config.json"
LEGACY_CONFIG_FILE = ".taskmasterconfig"
STATE_FILE = "state.json"

PROJECT_ROOT_ENV = "TASK_MASTER_PROJECT_ROOT"

PRD_CANDIDATES = [
    TASKMASTER_DOCS_DIR / "PRD.md",
    TASKMASTER_DOCS_DIR / "prd.md",
    TASKMASTER_DOCS_DIR / "PRD.txt",
    TASKMASTER_DOCS_DIR / "prd.txt",
    Path("scripts") / "PRD.md",
    Path("scripts") / "prd.md",
    Path("scripts") / "PRD.txt",
    Path("scripts") / "prd.txt",
    Path("PRD.md"),
    Path("prd.md"),
    Path("PRD.txt"),
    Path("prd.txt"),
]

COMPLEXITY_REPORT_CANDIDATES = [
    TASKMASTER_REPORTS_DIR / "task-complexity-report.json",
    TASKMASTER_REPORTS_DIR / "complexity-report.json",
    Path("scripts") / "task-complexity-report.json",
    Path("scripts") / "complexity-report.json",
    Path("task-complexity-report.json"),
    Path("complexity-report.json"),
]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

PathOverride = str | Path | bool


@dataclass(frozen=True)
class TaskMasterPaths:
    """Resolved paths of a Task Master project. Immutable."""

    project_root: Path
    taskmaster_dir: Path | None
    tasks_path: Path | None
    config_path: Path | None
    state_path: Path | None
    prd_path: Path | None = None
    complexity_report_path: Path | None = None

    def current_tag(self, default: str = "master") -> str:
        """Read the current tag from state.json once."""
        return get_current_tag(self.project_root, default=default)


def _resolve_path(
    label: str,
    override: Any,
    candidates: Sequence[Path | str],
    base: Path,
) -> Path | None:
    if isinstance(override, (str, Path)):
        path = Path(override)
        if not path.is_absolute():
            path = base / path
        if not path.exists():
            raise FileNotFoundError(f"{label} override path does not exist: {path}")
        return path

    for candidate in candidates:
        path = Path(candidate)
        if not path.is_absolute():
            path = base / path
        if path.exists():
            return path

    if override is True:
        searched = ", ".join(str(c) for c in candidates)
        raise FileNotFoundError(f"Required {label} not found. Searched: {searched}")
    return None


def _check_project_root(project_root: str | Path) -> Path:
    root = Path(project_root).resolve()
    if not root.exists():
        raise ProjectRootNotFoundError(f"Project root override path does not exist: {root}")
    if not (root / TASKMASTER_DIR).exists() and not (root / LEGACY_CONFIG_FILE).exists():
        raise ProjectRootNotFoundError(
            f"Project root override is not a valid taskmaster project: {root}"
        )
    return root


def init_task_master(
    project_root: str | Path | None = None,
    *,
    taskmaster_dir: PathOverride = UNSET,
    tasks_path: PathOverride = UNSET,
    config_path: PathOverride = UNSET,
    state_path: PathOverride = UNSET,
    prd_path: PathOverride = UNSET,
    complexity_report_path: PathOverride = UNSET,
) -> TaskMasterPaths:
    """
    Resolve the project root and the requested paths.

    Args:
        project_root: Explicit root. Must exist and hold .taskmaster/ or
            .taskmasterconfig. When None the root is searched upward from
            the current directory.
        taskmaster_dir, tasks_path, config_path, state_path, prd_path,
        complexity_report_path: Path overrides (see module docstring)

    Returns:
        TaskMasterPaths

    Raises:
        ProjectRootNotFoundError: If no valid project root is found.
        FileNotFoundError: If a given path does not exist, or a required
            one cannot be found.
    """
    if project_root:
        root = _check_project_root(project_root)
    else:
        found = find_taskmaster_root()
        if found is None:
            raise ProjectRootNotFoundError(
                'Unable to find project root. No project markers found. Run "init" command first.'
            )
        root = found

    tm_dir = _resolve_path(
        "taskmaster directory",
        False if taskmaster_dir is UNSET else taskmaster_dir,
        [TASKMASTER_DIR],
        root,
    )

    config = root / TASKMASTER_CONFIG_FILE
    if config_path is not UNSET:
        config = _resolve_path(
            "config file", config_path, [TASKMASTER_CONFIG_FILE, LEGACY_CONFIG_FILE], root
        )

    state = (tm_dir or root / TASKMASTER_DIR) / STATE_FILE
    if state_path is not UNSET:
        state = _resolve_path("state file", state_path, [STATE_FILE], tm_dir or root)

    tasks = root / TASKMASTER_TASKS_FILE
    if tasks_path is not UNSET:
        tasks = _resolve_path(
            "tasks file", tasks_path, [TASKMASTER_TASKS_FILE, LEGACY_TASKS_FILE], root
        )

    prd = None
    if prd_path is not UNSET:
        prd = _resolve_path("PRD file", prd_path, PRD_CANDIDATES, root)

    report = None
    if complexity_report_path is not UNSET:
        report = _resolve_path(
            "complexity report", complexity_report_path, COMPLEXITY_REPORT_CANDIDATES, root
        )

    return TaskMasterPaths(
        project_root=root,
        taskmaster_dir=tm_dir,
        tasks_path=tasks,
        config_path=config,
        state_path=state,
        prd_path=prd,
        complexity_report_path=report,
    )


def _session_root(session: Mapping[str, Any] | None) -> Path | None:
    """Project root from a client session's ``roots`` (first URI wins)."""
    if not session:
        return None
    roots = session.get("roots")
    if isinstance(roots, Mapping):
        roots = roots.get("roots")
    if not isinstance(roots, list) or not roots:
        return None
    first = roots[0]
    uri = first.get("uri") if isinstance(first, Mapping) else None
    return normalize_project_root(uri) if uri else None


def resolve_project_root(
    args: Mapping[str, Any], session: Mapping[str, Any] | None = None
) -> tuple[Path, str]:
    """
    Pick the project root for a call.

    Precedence: TASK_MASTER_PROJECT_ROOT in the process environment, then in
    the session environment, then args["project_root"], then the session
    roots, then the current directory.

    Returns:
        (root, description of where it came from)
    """
    session = session or {}
    session_env = session.get("env") or {}

    for env, source in (
        (os.environ, f"{PROJECT_ROOT_ENV} environment variable"),
        (session_env, f"{PROJECT_ROOT_ENV} session environment variable"),
    ):
        if value := env.get(PROJECT_ROOT_ENV):
            return Path(os.path.abspath(value)), source

    if args.get("project_root"):
        root = normalize_project_root(args["project_root"])
        if root is not None:
            return root, "args.project_root"

    if (root := _session_root(session)) is not None:
        return root, "session"

    return Path.cwd(), "current directory"


def with_task_master(
    required: Sequence[str] = (), **parameter_map: str
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorate a handler so it receives resolved TaskMasterPaths.

    Args:
        required: Path names (init_task_master keywords) that must exist
        **parameter_map: Path name to the argument carrying its override,
            e.g. ``tasks_path="file"``

    The wrapped handler is called as ``handler(paths, args, context)``;
    the wrapper takes ``(args, context)``. A mapped argument that is present
    but empty falls back to a search (required or optional).

    Example:
        >>> @with_task_master(required=["tasks_path"], tasks_path="file")
        ... def list_handler(paths, args, context):
        ...     return paths.tasks_path
    """

    def decorator(handler: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(handler)
        def wrapper(args: Mapping[str, Any], context: Mapping[str, Any] | None = None) -> T:
            context = context or {}
            root: Path | None = None
            try:
                root, source = resolve_project_root(args, context.get("session"))
                logger.info("Using project root from %s: %s", source, root)

                overrides: dict[str, Any] = {}
                for path_name, arg_name in parameter_map.items():
                    if arg_name in args:
                        overrides[path_name] = args[arg_name] or path_name in required
                for path_name in required:
                    overrides.setdefault(path_name, True)

                paths = init_task_master(root, **overrides)
            except Exception as e:
                logger.error(
                    "Error resolving Task Master project (root: %s): %s", root, e
                )
                raise

            return handler(paths, args, context)

        return wrapper

    return decorator
