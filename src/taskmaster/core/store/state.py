"""
State files: workflow/session state records and the current-tag pointer.

A state record wraps arbitrary data with a timestamp:

    {"data": {...}, "lastUpdated": "2024-01-15T10:30:45.123456+00:00"}

The tag-selection file ``.taskmaster/state.json`` is simpler and flat:

    {"currentTag": "master", "lastSwitched": "..."}

get_current_tag accepts either layout so a project can keep the tag pointer
inside a state record.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from .atomic import atomic_write_json
from .errors import InvalidStateStructureError, StateExistsError
from .lock import file_lock

logger = logging.getLogger(__name__)

TASKMASTER_DIR = ".taskmaster"
STATE_FILE = "state.json"
DEFAULT_TAG = "master"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _next_timestamp(previous: str | None) -> str:
    """Return now as ISO-8601, strictly later than previous."""
    now = datetime.now(timezone.utc)
    if previous:
        try:
            prev = _parse_iso(previous)
        except ValueError:
            prev = None
        if prev is not None:
            if prev.tzinfo is None:
                prev = prev.replace(tzinfo=timezone.utc)
            if now <= prev:
                now = prev + timedelta(microseconds=1)
    return now.isoformat(timespec="microseconds")


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# ==============================================================================
# State records
# ==============================================================================


def validate_state(state: Any) -> None:
    """
    Validate the structure of a state record.

    Raises:
        InvalidStateStructureError: If data is missing or not an object, or
            lastUpdated is missing or not an ISO-8601 timestamp.
    """
    if not isinstance(state, dict):
        raise InvalidStateStructureError("Invalid state: state must be an object")

    if "data" not in state:
        raise InvalidStateStructureError("Invalid state: missing required field 'data'")
    if not isinstance(state["data"], dict):
        raise InvalidStateStructureError("Invalid state: data must be an object")

    last_updated = state.get("lastUpdated")
    if last_updated is None:
        raise InvalidStateStructureError(
            "Invalid state: missing required field 'lastUpdated'"
        )
    if not isinstance(last_updated, str):
        raise InvalidStateStructureError("Invalid state: lastUpdated must be a string")
    try:
        _parse_iso(last_updated)
    except ValueError as e:
        raise InvalidStateStructureError(
            f"Invalid state: lastUpdated is not an ISO-8601 timestamp ({last_updated!r})"
        ) from e


def create_state(path: Path | str, data: dict[str, Any]) -> dict[str, Any]:
    """
    Create a new state file.

    Raises:
        StateExistsError: If the file already exists.
    """
    state_path = Path(path)
    if state_path.exists():
        raise StateExistsError(f"State file already exists: {state_path}")

    state = {"data": copy.deepcopy(data), "lastUpdated": _now_iso()}
    validate_state(state)
    atomic_write_json(state_path, state)
    return state


def read_state(path: Path | str) -> dict[str, Any]:
    """
    Read and validate a state file.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidStateStructureError: If the file is not valid JSON or fails
            validation. The file is left as it is.
    """
    state_path = Path(path)
    text = state_path.read_text(encoding="utf-8")
    try:
        state = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidStateStructureError(
            f"Invalid state file {state_path}: not valid JSON ({e})"
        ) from e

    validate_state(state)
    return state


def update_state(path: Path | str, updates: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge updates into an existing state file.

    Nested objects are merged, other values (lists included) are replaced.
    lastUpdated always moves forward, even for an empty update.

    Raises:
        FileNotFoundError: If the state file does not exist.
    """
    state_path = Path(path)
    if not state_path.exists():
        raise FileNotFoundError(f"State file not found: {state_path}")

    with file_lock(state_path):
        current = read_state(state_path)
        state = {
            "data": _deep_merge(current["data"], updates),
            "lastUpdated": _next_timestamp(current["lastUpdated"]),
        }
        atomic_write_json(state_path, state)
    return state


def delete_state(path: Path | str) -> None:
    """Delete a state file. Missing files are ignored."""
    Path(path).unlink(missing_ok=True)


# ==============================================================================
# Current tag
# ==============================================================================


def get_state_path(project_root: Path | str) -> Path:
    return Path(project_root) / TASKMASTER_DIR / STATE_FILE


def read_tag_state(project_root: Path | str) -> dict[str, Any]:
    """Read the tag-selection state, returning {} when absent or unreadable."""
    state_path = get_state_path(project_root)
    if not state_path.exists():
        return {}
    try:
        raw = json.loads(state_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", state_path, e)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring %s: expected a JSON object", state_path)
        return {}
    return raw


def get_current_tag(project_root: Path | str | None, default: str = DEFAULT_TAG) -> str:
    """
    Return the current tag recorded for a project.

    Looks for a top-level ``currentTag`` and then for ``data.currentTag``.
    """
    if project_root is None:
        return default

    state = read_tag_state(project_root)
    tag = state.get("currentTag")
    if not tag and isinstance(state.get("data"), dict):
        tag = state["data"].get("currentTag")
    if isinstance(tag, str) and tag:
        return tag
    return default


def set_current_tag(project_root: Path | str, tag: str) -> dict[str, Any]:
    """Record tag as the current tag, preserving other state keys."""
    state_path = get_state_path(project_root)
    with file_lock(state_path):
        state = read_tag_state(project_root)
        if isinstance(state.get("data"), dict) and "lastUpdated" in state:
            # State record layout
            state["data"]["currentTag"] = tag
            state["lastUpdated"] = _next_timestamp(state.get("lastUpdated"))
        else:
            state["currentTag"] = tag
            state["lastSwitched"] = _now_iso()
        atomic_write_json(state_path, state)
    logger.debug("Current tag set to %s", tag)
    return state
