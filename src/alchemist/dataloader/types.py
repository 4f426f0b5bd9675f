# src/alchemist/dataloader/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of reading one entity CSV.

    Fields:
        success: True if no row-level issues were found.
        kind: entity kind the file was read as ("client" / "worker" / "task").
        rows: raw rows keyed by column name, cells stripped, blank lines removed.
              Values stay text: interpreting them is the normalizer's job.
        errors: issue dicts with keys kind, line_no, message.
        total_rows: data lines observed in the CSV (excludes header).
        kept_rows: len(rows).
    """

    success: bool
    kind: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    kept_rows: int = 0
