"""
Archive and restore task files.

Before a destructive overwrite (for example regenerating tasks from a PRD)
the current file is copied into an ``archives/`` directory next to it with a
timestamp in the name. Archives can later be copied back.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

ARCHIVE_DIR = "archives"

# Number of "-" separated fields an ISO timestamp adds to an archive name
_TIMESTAMP_FIELDS = 6


@dataclass
class ArchiveResult:
    """Outcome of archive_tasks_before_overwrite."""

    success: bool
    archived: bool = False
    archive_path: Path | None = None
    error: str | None = None


@dataclass
class RestoreResult:
    """Outcome of restore_archive."""

    success: bool
    restored_to: Path | None = None
    error: str | None = None


def _archive_path(archive_dir: Path, file_path: Path) -> Path:
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(":", "-")
    candidate = archive_dir / f"{file_path.stem}-{timestamp}{file_path.suffix}"
    # Two archives within the same millisecond must not overwrite each other
    counter = 1
    while candidate.exists():
        candidate = archive_dir / f"{file_path.stem}-{timestamp}.{counter}{file_path.suffix}"
        counter += 1
    return candidate


def archive_tasks_before_overwrite(
    file_path: Path | str, create_backup: bool = True
) -> ArchiveResult:
    """
    Copy file_path into <dir>/archives/ before it gets overwritten.

    Args:
        file_path: File about to be overwritten (tasks.json, a PRD, ...)
        create_backup: When False, do nothing

    Returns:
        ArchiveResult; archived is False when there was nothing to archive.
    """
    path = Path(file_path)
    if not create_backup or not path.exists():
        return ArchiveResult(success=True, archived=False)

    try:
        archive_dir = path.parent / ARCHIVE_DIR
        archive_dir.mkdir(parents=True, exist_ok=True)
        archive_path = _archive_path(archive_dir, path)
        shutil.copy2(path, archive_path)
    except OSError as e:
        logger.error("Error archiving %s: %s", path, e)
        return ArchiveResult(success=False, error=str(e))

    logger.info("Archived %s to %s", path, archive_path)
    return ArchiveResult(success=True, archived=True, archive_path=archive_path)


def infer_restore_destination(archive_path: Path) -> Path:
    """Work out where an archive originally lived from its file name."""
    base_dir = archive_path.parent.parent
    name = archive_path.name

    if name.startswith("tasks-"):
        original = "tasks.json"
    elif name.startswith("prd-"):
        original = f"prd{archive_path.suffix}"
    else:
        parts = archive_path.stem.split("-")
        original = "-".join(parts[: len(parts) - _TIMESTAMP_FIELDS]) + archive_path.suffix

    return base_dir / original


def restore_archive(
    archive_path: Path | str,
    destination: Path | str | None = None,
    create_backup: bool = True,
) -> RestoreResult:
    """
    Copy an archive back to its original location.

    An existing file at the destination is archived first unless
    create_backup is False.
    """
    source = Path(archive_path)
    if not source.exists():
        return RestoreResult(success=False, error=f"Archive file not found: {source}")

    target = Path(destination) if destination else infer_restore_destination(source)

    try:
        if target.exists() and create_backup:
            backup = archive_tasks_before_overwrite(target)
            if not backup.success:
                logger.warning(
                    "Could not archive existing file before restore: %s", backup.error
                )
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
    except OSError as e:
        logger.error("Error restoring archive %s: %s", source, e)
        return RestoreResult(success=False, error=str(e))

    logger.info("Restored archive %s to %s", source, target)
    return RestoreResult(success=True, restored_to=target)
