# src/alchemist/dataloader/entities_loader.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from alchemist.dataloader.types import LoadResult
from alchemist.errors import DataError

logger = logging.getLogger(__name__)

_KINDS = {"clients": "client", "workers": "worker", "tasks": "task"}


class EntitiesLoader:
    """
    CSV -> LoadResult with raw entity rows.

    Rules:
      - UTF-8 CSV (a BOM is tolerated), delimiter ','
      - every cell is read as text; nothing is coerced to NaN or numbers
      - required header columns depend on the entity kind
      - blank lines are reported as row-level issues and dropped
      - unknown extra columns are kept (the schema check ignores them)

    Fatal problems (DataError raised immediately):
      - missing / unreadable file
      - no header row or missing required columns
      - unknown entity kind
    """

    REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
        "client": ("ClientID", "ClientName", "PriorityLevel"),
        "worker": ("WorkerID", "WorkerName", "AvailableSlots", "MaxLoadPerPhase"),
        "task": ("TaskID", "TaskName", "Duration"),
    }

    def load(self, path: Path, kind: str) -> LoadResult:
        kind = self._kind(kind)
        frame = self._read_csv(path, kind)
        result = self._frame_to_result(frame, kind)
        self._report_summary(path, result)
        return result

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _kind(self, kind: str) -> str:
        kind = _KINDS.get(kind, kind)
        if kind not in self.REQUIRED_COLUMNS:
            raise DataError(
                message=f"Unknown entity kind: {kind}",
                source="EntitiesLoader.load",
                suggested_action="Use one of: client, worker, task.",
            )
        return kind

    def _read_csv(self, path: Path, kind: str) -> pd.DataFrame:
        path = Path(path)
        if not path.is_file():
            raise DataError(
                message=f"Input CSV not found: {path}",
                source="EntitiesLoader._read_csv",
                suggested_action=f"Check the path to the {kind} CSV.",
            )

        try:
            frame = pd.read_csv(
                path,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        except pd.errors.EmptyDataError as e:
            raise DataError(
                message=f"CSV has no header row: {path}",
                source="EntitiesLoader._read_csv",
                suggested_action="Ensure the first line contains column names.",
            ) from e
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise DataError(
                message=f"Unable to read CSV {path}: {e}",
                source="EntitiesLoader._read_csv",
                suggested_action="Save the sheet as UTF-8 CSV with a consistent column count.",
            ) from e

        frame.columns = [str(c).strip() for c in frame.columns]
        missing = [c for c in self.REQUIRED_COLUMNS[kind] if c not in frame.columns]
        if missing:
            raise DataError(
                message=f"Invalid {kind} CSV header: missing column(s): {', '.join(missing)}",
                source="EntitiesLoader._read_csv",
                suggested_action=f"Add columns: {','.join(self.REQUIRED_COLUMNS[kind])}",
            )
        return frame

    def _frame_to_result(self, frame: pd.DataFrame, kind: str) -> LoadResult:
        issues: list[dict[str, Any]] = []
        rows: list[dict[str, Any]] = []

        records = frame.to_dict(orient="records")
        for line_no, record in enumerate(records, start=2):  # header = line 1
            row = {str(k): self._cell(v) for k, v in record.items()}
            if all(v == "" for v in row.values()):
                issues.append({"kind": "blank_row", "line_no": line_no, "message": "Blank line"})
                continue
            rows.append(row)

        return LoadResult(
            success=not issues,
            kind=kind,
            rows=rows,
            errors=issues,
            total_rows=len(records),
            kept_rows=len(rows),
        )

    @staticmethod
    def _cell(value: Any) -> str:
        # short lines are padded by pandas with NaN even with keep_default_na=False
        if isinstance(value, str):
            return value.strip()
        return "" if pd.isna(value) else str(value).strip()

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        if result.success:
            logger.info(
                "EntitiesLoader OK (%s): kept=%d/%d from %s",
                result.kind,
                result.kept_rows,
                result.total_rows,
                path,
            )
        else:
            logger.warning(
                "EntitiesLoader (%s): %d issue(s), kept=%d/%d from %s",
                result.kind,
                len(result.errors),
                result.kept_rows,
                result.total_rows,
                path,
            )


__all__ = ["EntitiesLoader"]
