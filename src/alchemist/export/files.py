# src/alchemist/export/files.py
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from alchemist.errors import ExportError


def atomic_write_text(path: Path, text: str, *, source: str = "atomic_write_text") -> Path:
    """
    @brief
    Write text to `path` via a temp file in the same directory and os.replace.

    @details
    Readers never observe a half-written artifact. The temp file is removed
    if anything fails before the replace.

    @raises
        ExportError
            Raised on any I/O failure.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as e:
        raise ExportError(
            f"Cannot prepare output location {path.parent}: {e}",
            source=source,
            suggested_action="Check that the output directory is writable.",
        ) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise ExportError(
            f"Failed to write {path}: {e}",
            source=source,
            suggested_action="Check disk permissions and free space.",
        ) from e
    return path


def atomic_write_json(path: Path, payload: Any, *, source: str = "atomic_write_json") -> Path:
    """Serialize `payload` as indented UTF-8 JSON and write it atomically."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    return atomic_write_text(path, text + "\n", source=source)


__all__ = ["atomic_write_json", "atomic_write_text"]
