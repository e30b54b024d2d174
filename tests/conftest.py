"""
Pytest configuration and shared fixtures.

Provides temp project directories, sample task documents and isolation from
the user's environment and config.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from taskmaster.core.config import clear_cache

# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real user config and env overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "TASK_MASTER_PROJECT_ROOT",
        "TASKMASTER_LOCK_STALE_MS",
        "TASKMASTER_LOCK_MAX_ATTEMPTS",
        "TASKMASTER_DEFAULT_TAG",
        "TASKMASTER_LOG_LEVEL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Task data
# ==============================================================================


@pytest.fixture
def sample_tasks() -> list[dict[str, Any]]:
    """Three tasks; task 2 has subtasks, task 3 depends on 1 and 2."""
    return [
        {
            "id": 1,
            "title": "Set up storage",
            "status": "done",
            "priority": "high",
            "dependencies": [],
        },
        {
            "id": 2,
            "title": "Build dependency checks",
            "status": "in-progress",
            "priority": "medium",
            "dependencies": [1],
            "subtasks": [
                {"id": 1, "title": "Detect cycles", "status": "done", "dependencies": []},
                {"id": 2, "title": "Remove dangling ids", "status": "pending", "dependencies": [1]},
            ],
        },
        {
            "id": 3,
            "title": "Ship the CLI",
            "status": "pending",
            "priority": "low",
            "dependencies": [1, 2],
        },
    ]


@pytest.fixture
def tagged_document(sample_tasks) -> dict[str, Any]:
    """A tagged document with a populated master and an empty feature tag."""
    return {
        "master": {
            "tasks": sample_tasks,
            "metadata": {"created": "2024-01-15T10:30:45+00:00", "description": "Main"},
        },
        "feature-auth": {
            "tasks": [],
            "metadata": {"created": "2024-02-01T09:00:00+00:00"},
        },
    }


# ==============================================================================
# Project directories
# ==============================================================================


def write_json_file(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def project_dir(tmp_path, tagged_document) -> Path:
    """
    Provide a temporary Task Master project.

    Creates:
    - .taskmaster/tasks/tasks.json (tagged document)
    - .taskmaster/state.json (current tag: master)
    - .taskmaster/config.json
    """
    project = tmp_path / "project"
    write_json_file(project / ".taskmaster" / "tasks" / "tasks.json", tagged_document)
    write_json_file(project / ".taskmaster" / "state.json", {"currentTag": "master"})
    write_json_file(
        project / ".taskmaster" / "config.json", {"global": {"defaultTag": "master"}}
    )
    return project


@pytest.fixture
def tasks_file(project_dir) -> Path:
    return project_dir / ".taskmaster" / "tasks" / "tasks.json"
