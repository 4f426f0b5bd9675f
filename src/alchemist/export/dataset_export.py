# src/alchemist/export/dataset_export.py
"""
@brief
Production export of the cleaned Client/Worker/Task dataset as CSV.

@details
Validation reports out-of-range values; this module is where they get fixed
for clean output. Each row is normalized (canonical JSON attributes,
qualification enum, normalized skills, JSON-array slots and phases, valid
task references only) and numeric fields are clamped:
    PriorityLevel 1..5 (missing -> 1), Duration >= 1, MaxConcurrent >= 1,
    MaxLoadPerPhase >= 0.
CSV files are written through pandas and replaced atomically.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from alchemist.errors import ExportError
from alchemist.export.files import atomic_write_text
from alchemist.normalizer.normalizer import (
    as_text,
    coerce_int,
    normalize_attributes_json,
    normalize_available_slots,
    normalize_preferred_phases,
    normalize_qualification_level,
    normalize_skills,
    validate_task_ids,
)
from alchemist.schemas.models import Config, ExportConfig, ValidationSummary

logger = logging.getLogger(__name__)

CLIENT_COLUMNS = [
    "ClientID",
    "ClientName",
    "PriorityLevel",
    "RequestedTaskIDs",
    "GroupTag",
    "AttributesJSON",
]
WORKER_COLUMNS = [
    "WorkerID",
    "WorkerName",
    "Skills",
    "AvailableSlots",
    "MaxLoadPerPhase",
    "WorkerGroup",
    "QualificationLevel",
]
TASK_COLUMNS = [
    "TaskID",
    "TaskName",
    "Category",
    "Duration",
    "RequiredSkills",
    "PreferredPhases",
    "MaxConcurrent",
]


@dataclass(slots=True)
class ExportResult:
    """
    Fields:
        paths: entity key ("clients" / "workers" / "tasks") -> written CSV path.
        rows: number of rows written per entity key.
        skipped: number of rows left out per entity key.
        warnings: human-readable notes about skipped rows.
    """

    paths: dict[str, Path] = field(default_factory=dict)
    rows: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def _clamp(value: Any, low: int, high: int | None = None, default: int | None = None) -> int:
    number = coerce_int(value)
    if number is None or (number == 0 and default is not None and default > 0):
        number = default if default is not None else low
    number = max(low, number)
    return min(high, number) if high is not None else number


# ----------------------------
# ROW NORMALIZATION
# ----------------------------
def normalize_client_for_export(
    row: Mapping[str, Any], valid_task_ids: set[str], include_invalid: bool = False
) -> dict[str, Any] | None:
    """
    @brief
    Export form of one client, or None when the row should be left out.

    @details
    Only resolvable task references are kept. A client that requested tasks
    but has none left is dropped unless `include_invalid` is set.
    """
    partition = validate_task_ids(row.get("RequestedTaskIDs"), valid_task_ids)
    if not include_invalid and not partition.valid and partition.invalid:
        return None
    return {
        **dict(row),
        "ClientID": as_text(row.get("ClientID")),
        "ClientName": as_text(row.get("ClientName")),
        "RequestedTaskIDs": ",".join(partition.valid),
        "GroupTag": as_text(row.get("GroupTag")),
        "AttributesJSON": normalize_attributes_json(row.get("AttributesJSON")),
        "PriorityLevel": _clamp(row.get("PriorityLevel"), 1, 5, default=1),
    }


def normalize_worker_for_export(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        **dict(row),
        "WorkerID": as_text(row.get("WorkerID")),
        "WorkerName": as_text(row.get("WorkerName")),
        "QualificationLevel": normalize_qualification_level(row.get("QualificationLevel")).value,
        "Skills": ",".join(normalize_skills(row.get("Skills"))),
        "AvailableSlots": json.dumps(normalize_available_slots(row.get("AvailableSlots"))),
        "MaxLoadPerPhase": _clamp(row.get("MaxLoadPerPhase"), 0),
        "WorkerGroup": as_text(row.get("WorkerGroup")),
    }


def normalize_task_for_export(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        **dict(row),
        "TaskID": as_text(row.get("TaskID")),
        "TaskName": as_text(row.get("TaskName")),
        "Category": as_text(row.get("Category")),
        "RequiredSkills": ",".join(normalize_skills(row.get("RequiredSkills"))),
        "PreferredPhases": json.dumps(normalize_preferred_phases(row.get("PreferredPhases"))),
        "Duration": _clamp(row.get("Duration"), 1, default=1),
        "MaxConcurrent": _clamp(row.get("MaxConcurrent"), 1, default=1),
    }


# ----------------------------
# EXPORT
# ----------------------------
def _to_csv(rows: list[dict[str, Any]], columns: list[str]) -> str:
    frame = pd.DataFrame(rows)
    extra = [c for c in frame.columns if c not in columns]
    frame = frame.reindex(columns=columns + extra)
    return frame.to_csv(index=False)


def _keep(rows: Sequence[Mapping[str, Any]], bad_rows: set[int]) -> list[Mapping[str, Any]]:
    return [row for i, row in enumerate(rows) if i not in bad_rows]


def export_dataset(
    clients: Sequence[Mapping[str, Any]],
    workers: Sequence[Mapping[str, Any]],
    tasks: Sequence[Mapping[str, Any]],
    out_dir: Path,
    summary: ValidationSummary | None = None,
    options: Config | ExportConfig | None = None,
) -> ExportResult:
    """
    @brief
    Write clients.csv, workers.csv and tasks.csv for downstream allocation.

    @details
    Steps:
      (1) refuse when the summary still holds errors (unless allow_errors);
      (2) drop rows with per-entity errors unless include_invalid_rows;
      (3) normalize and clamp rows (apply_normalization);
      (4) write the three CSVs atomically.

    @raises
        ExportError
            Raised when export is refused or a file cannot be written.
    """
    if isinstance(options, Config):
        options = options.export
    opts = options or ExportConfig()

    # (1) Export gate
    if summary is not None and summary.total_errors > 0 and not opts.allow_errors:
        raise ExportError(
            f"Dataset still has {summary.total_errors} validation error(s)",
            source="export_dataset",
            suggested_action="Fix the errors (or run the bulk auto-fix) or force the export.",
        )

    result = ExportResult()

    # (2) Row filtering by validation outcome
    def bad_rows(entity_type: str) -> set[int]:
        if summary is None or opts.include_invalid_rows:
            return set()
        return summary.error_rows(entity_type)  # type: ignore[arg-type]

    kept_tasks = _keep(tasks, bad_rows("task"))
    kept_workers = _keep(workers, bad_rows("worker"))
    kept_clients = _keep(clients, bad_rows("client"))

    # (3) Normalization
    if opts.apply_normalization:
        task_rows = [normalize_task_for_export(r) for r in kept_tasks]
        worker_rows = [normalize_worker_for_export(r) for r in kept_workers]
        valid_ids = {r["TaskID"] for r in task_rows if r["TaskID"]}
        client_rows = [
            c
            for c in (
                normalize_client_for_export(r, valid_ids, opts.include_invalid_rows)
                for r in kept_clients
            )
            if c is not None
        ]
    else:
        task_rows = [dict(r) for r in kept_tasks]
        worker_rows = [dict(r) for r in kept_workers]
        client_rows = [dict(r) for r in kept_clients]

    # (4) Write files
    out_dir = Path(out_dir)
    plan = [
        ("clients", client_rows, CLIENT_COLUMNS, len(clients)),
        ("workers", worker_rows, WORKER_COLUMNS, len(workers)),
        ("tasks", task_rows, TASK_COLUMNS, len(tasks)),
    ]
    for key, rows, columns, total in plan:
        path = atomic_write_text(
            out_dir / f"{key}.csv", _to_csv(rows, columns), source="export_dataset"
        )
        result.paths[key] = path
        result.rows[key] = len(rows)
        result.skipped[key] = total - len(rows)
        if result.skipped[key]:
            result.warnings.append(
                f"{result.skipped[key]} {key[:-1]} rows were skipped due to validation issues"
            )

    logger.info("Dataset exported to %s: %s", out_dir, result.rows)
    return result


__all__ = [
    "CLIENT_COLUMNS",
    "ExportResult",
    "TASK_COLUMNS",
    "WORKER_COLUMNS",
    "export_dataset",
    "normalize_client_for_export",
    "normalize_task_for_export",
    "normalize_worker_for_export",
]
