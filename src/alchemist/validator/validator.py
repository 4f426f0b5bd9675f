# src/alchemist/validator/validator.py
"""
@brief
Validation orchestrator: schema, business rules and cross-entity checks.

@details
Normalizes the raw collections once, runs the four validation groups in a
fixed order (clients, workers, tasks, cross-entity) and assembles a single
ValidationSummary. Pure and stateless apart from the optional report file;
validators never raise on bad data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alchemist.export.files import atomic_write_json
from alchemist.normalizer.normalizer import normalize_clients, normalize_tasks, normalize_workers
from alchemist.schemas.models import Config, ValidationConfig, ValidationResult, ValidationSummary
from alchemist.validator.business_rules import (
    check_client_formats,
    check_clients,
    check_task_formats,
    check_tasks,
    check_workers,
)
from alchemist.validator.cross_entity import (
    check_capacity,
    check_reference_integrity,
    check_skill_coverage,
)
from alchemist.validator.issues import IssueCollector
from alchemist.validator.reference_index import ReferenceIndex
from alchemist.validator.schema_validator import validate_schema

logger = logging.getLogger(__name__)

RawRows = Sequence[Mapping[str, Any]]


def _validation_cfg(cfg: Config | ValidationConfig | None) -> ValidationConfig:
    if cfg is None:
        return ValidationConfig()
    if isinstance(cfg, Config):
        return cfg.validation
    return cfg


# ----------------------------
# VALIDATOR
# ----------------------------
class Validator:
    """
    @brief
    Runs every validation group over one snapshot of the three collections.

    @details
    Inputs are treated as immutable snapshots: they are read, normalized
    into new canonical records and never written back.
    """

    def __init__(
        self,
        clients: RawRows,
        workers: RawRows,
        tasks: RawRows,
        cfg: Config | ValidationConfig | None = None,
    ) -> None:
        """
        @brief
        Initialize validation context.

        @params
            clients, workers, tasks : Sequence[Mapping[str, Any]]
                Raw rows keyed by spreadsheet column names.
            cfg : Config | ValidationConfig | None
                Thresholds; defaults apply when omitted.
        """
        self.clients = list(clients)
        self.workers = list(workers)
        self.tasks = list(tasks)
        self.cfg = _validation_cfg(cfg)

        # (1) Normalize once; business and cross-entity checks read only these
        self.normalized_clients = normalize_clients(self.clients)
        self.normalized_workers = normalize_workers(self.workers)
        self.normalized_tasks = normalize_tasks(self.tasks)

        # (2) Results per group, filled by run_all_checks()
        self.results: dict[str, ValidationResult] = {}

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> None:
        """Execute the four validation groups in their fixed order."""
        self.results["clients"] = self.check_clients()
        self.results["workers"] = self.check_workers()
        self.results["tasks"] = self.check_tasks()
        self.results["crossEntity"] = self.check_cross_entity()

    def check_clients(self) -> ValidationResult:
        issues = IssueCollector()
        issues.extend(validate_schema(self.clients, "client"))
        check_clients(self.normalized_clients, self.cfg, issues)
        if self.cfg.data_quality_checks:
            check_client_formats(self.normalized_clients, issues)
        return issues.result()

    def check_workers(self) -> ValidationResult:
        issues = IssueCollector()
        issues.extend(validate_schema(self.workers, "worker"))
        check_workers(self.normalized_workers, self.cfg, issues)
        return issues.result()

    def check_tasks(self) -> ValidationResult:
        issues = IssueCollector()
        issues.extend(validate_schema(self.tasks, "task"))
        check_tasks(self.normalized_tasks, self.cfg, issues)
        if self.cfg.data_quality_checks:
            check_task_formats(self.normalized_tasks, issues)
        return issues.result()

    def check_cross_entity(self) -> ValidationResult:
        index = self.reference_index()
        issues = IssueCollector()
        check_reference_integrity(self.normalized_clients, index, issues)
        check_skill_coverage(index, issues)
        check_capacity(
            self.normalized_clients, self.normalized_workers, self.normalized_tasks, self.cfg, issues
        )
        return issues.result()

    def reference_index(self) -> ReferenceIndex:
        return ReferenceIndex.build(
            self.normalized_clients, self.normalized_workers, self.normalized_tasks
        )

    def build_summary(self) -> ValidationSummary:
        """
        @brief
        Assemble group results into the unified summary.

        @details
        All four groups must have completed; there are no partial summaries.
        Missing groups are computed on demand.
        """
        if len(self.results) < 4:
            self.run_all_checks()

        groups = [self.results[k] for k in ("clients", "workers", "tasks", "crossEntity")]
        summary = ValidationSummary(
            clients=groups[0],
            workers=groups[1],
            tasks=groups[2],
            cross_entity=groups[3],
            total_errors=sum(len(g.errors) for g in groups),
            total_warnings=sum(len(g.warnings) for g in groups),
        )
        logger.info(
            "Validation finished: %d error(s), %d warning(s)",
            summary.total_errors,
            summary.total_warnings,
        )
        return summary

    @staticmethod
    def save_report(
        summary: ValidationSummary,
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the summary atomically as camelCase JSON.

        Args:
            summary: Validation summary to persist.
            out_dir: Target directory (defaults to 'data/output').
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = Path(out_dir) if out_dir is not None else Path("data/output")
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "isValid": summary.is_valid,
            **summary.model_dump(by_alias=True, mode="json"),
        }
        final_path = atomic_write_json(
            target_dir / filename, payload, source="Validator.save_report"
        )
        logger.info("Validation report saved: %s", final_path)
        return final_path


# ----------------------------
# THIN FACADE
# ----------------------------
def validate_clients(
    clients: RawRows, cfg: Config | ValidationConfig | None = None
) -> ValidationResult:
    """Schema and business validation of the client collection alone."""
    return Validator(clients, [], [], cfg).check_clients()


def validate_workers(
    workers: RawRows, cfg: Config | ValidationConfig | None = None
) -> ValidationResult:
    return Validator([], workers, [], cfg).check_workers()


def validate_tasks(tasks: RawRows, cfg: Config | ValidationConfig | None = None) -> ValidationResult:
    return Validator([], [], tasks, cfg).check_tasks()


def validate_cross_entity(
    clients: RawRows,
    workers: RawRows,
    tasks: RawRows,
    cfg: Config | ValidationConfig | None = None,
) -> ValidationResult:
    """Reference integrity, skill coverage and capacity planning."""
    return Validator(clients, workers, tasks, cfg).check_cross_entity()


def validate_all(
    clients: RawRows,
    workers: RawRows,
    tasks: RawRows,
    cfg: Config | ValidationConfig | None = None,
    *,
    write_report: bool = False,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> ValidationSummary:
    """
    @brief
    High-level convenience wrapper for full dataset validation.

    @details
    Creates a Validator, runs clients, workers, tasks and cross-entity checks
    in that order, builds the summary and optionally writes it to disk.
    Always returns the in-memory summary.

    @params
        clients, workers, tasks : Sequence[Mapping[str, Any]]
            Raw entity rows.
        cfg : Config | ValidationConfig | None
            Runtime configuration; defaults when omitted.
        write_report : bool
            If True, persist the summary as JSON.
        out_dir : Path | None
            Output directory for the report.

    @returns
        ValidationSummary with per-group results and aggregate counts.
    """
    # (1) Initialize validator with the current snapshot
    validator = Validator(clients, workers, tasks, cfg)

    # (2) Execute full validation workflow
    validator.run_all_checks()

    # (3) Build the summary
    summary = validator.build_summary()

    # (4) Optionally persist it
    if write_report:
        validator.save_report(summary, out_dir=out_dir, filename=filename)

    return summary


__all__ = [
    "Validator",
    "validate_all",
    "validate_clients",
    "validate_cross_entity",
    "validate_tasks",
    "validate_workers",
]
