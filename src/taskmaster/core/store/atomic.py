"""Atomic JSON file writes: temporary file in the same directory, then rename."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def dump_json(data: Any) -> str:
    """Serialize data the way every store file is formatted."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def atomic_write_json(path: Path | str, data: Any) -> None:
    """
    Write data to path atomically.

    The content goes to a temporary file next to path which is then renamed
    over it, so readers see either the old file or the new one. The rename is
    the only step that touches path; on any failure the temporary file is
    removed and the error propagates.

    Args:
        path: Destination file
        data: JSON-serializable data
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    # Serialize before touching the filesystem so bad data never leaves a temp file
    content = dump_json(data)

    fd, temp_path = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (replaces existing file)
        os.replace(temp_path, target)

    except BaseException:
        # Clean up temp file on error
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
