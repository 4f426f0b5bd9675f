# scripts/run.py
from __future__ import annotations

import argparse
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.entities_loader import EntitiesLoader
from alchemist.dataloader.rules_loader import RulesLoader
from alchemist.errors import AlchemistError
from alchemist.export.dataset_export import export_dataset
from alchemist.export.files import atomic_write_json
from alchemist.fixes.advisor import EntityCollections, FixAdvisor
from alchemist.rules.config_export import generate_rules_configuration, write_rules_json
from alchemist.rules.ruleset import check_rules_against_data
from alchemist.schemas.models import Config, LoggingConfig
from alchemist.validator import Validator


def _setup_logging(cfg: LoggingConfig | None = None) -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    Called once with defaults before the config is read, then again with the
    configured level and format (force=True replaces the first handler).
    """
    cfg = cfg or LoggingConfig()
    logging.basicConfig(level=cfg.level.upper(), format=cfg.format, force=True)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    @brief
    Parses command-line arguments for the Alchemist pipeline.

    @details
    Input files default to the bundled sample dataset; the output directory
    defaults to `output_dir` from the configuration.
    """
    parser = argparse.ArgumentParser(
        prog="alchemist-run",
        description="Load, validate, optionally auto-fix and export a Client/Worker/Task dataset",
    )

    # (1) Configuration
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml); 'none' runs with defaults",
    )

    # (2) Entity CSVs
    parser.add_argument("--clients", type=str, default="data/sample/clients.csv")
    parser.add_argument("--workers", type=str, default="data/sample/workers.csv")
    parser.add_argument("--tasks", type=str, default="data/sample/tasks.csv")

    # (3) Output and behavior switches
    parser.add_argument("--output", type=str, default=None, help="Output directory for artifacts")
    parser.add_argument(
        "--rules", type=str, default=None, help="Rules document (YAML/JSON) to export as rules.json"
    )
    parser.add_argument(
        "--auto-fix", action="store_true", help="Apply high-confidence fixes before exporting"
    )
    parser.add_argument(
        "--force", action="store_true", help="Export even when validation errors remain"
    )

    return parser.parse_args(argv)


def _load_entities(path: Path, kind: str) -> list[dict[str, Any]]:
    result = EntitiesLoader().load(path, kind)
    for issue in result.errors:
        logging.warning("%s line %s: %s", path.name, issue["line_no"], issue["message"])
    return result.rows


def run_pipeline(
    config: Path | Config | None,
    clients_path: Path,
    workers_path: Path,
    tasks_path: Path,
    output_dir: Path | None = None,
    *,
    auto_fix: bool = False,
    force: bool = False,
    rules_path: Path | None = None,
) -> dict[str, Any]:
    """
    @brief
    Executes the full Alchemist pipeline.

    @details
    Performs sequential steps:
    (1) Load configuration and the three entity CSVs.
    (2) Validate the dataset.
    (3) Optionally bulk-fix errors and re-validate the fixed data.
    (4) Write the validation report (and the fix log).
    (5) Export the cleaned dataset when no errors remain (or when forced).
    (6) Optionally check a rules document and export rules.json.

    @returns
        Dictionary with the validity flag, error/warning counts, fix counts
        and artifact paths (None for artifacts that were not produced).

    @raises
        AlchemistError
            On configuration, input, rule or write failures.
    """
    t0 = time.perf_counter()

    # (1) Configuration and inputs
    if isinstance(config, Config):
        cfg = config
        if force:
            cfg = cfg.model_copy(
                update={"export": cfg.export.model_copy(update={"allow_errors": True})}
            )
    else:
        overrides = {"export": {"allow_errors": True}} if force else None
        cfg = ConfigLoader().load_or_default(config, overrides)
    out_dir = Path(output_dir or cfg.output_dir or "data/output")
    out_dir.mkdir(parents=True, exist_ok=True)

    clients = _load_entities(Path(clients_path), "client")
    workers = _load_entities(Path(workers_path), "worker")
    tasks = _load_entities(Path(tasks_path), "task")

    # (2) Validation
    logging.info(
        "Validating %d client(s), %d worker(s), %d task(s)…",
        len(clients),
        len(workers),
        len(tasks),
    )
    validator = Validator(clients, workers, tasks, cfg)
    summary = validator.build_summary()

    # (3) Bulk auto-fix
    fixed_count = 0
    fix_log_path: Path | None = None
    if auto_fix and summary.total_errors:
        logging.info("Applying automatic fixes to %d error(s)…", summary.total_errors)
        advisor = FixAdvisor(cfg=cfg)
        bulk = advisor.apply_bulk_fix(
            summary.all_errors(), EntityCollections.of(clients, workers, tasks)
        )
        fixed_count = bulk.fixed_count
        fix_log_path = atomic_write_json(
            out_dir / "fix_log.json",
            {
                "message": bulk.message,
                "fixedCount": bulk.fixed_count,
                "skippedCount": bulk.skipped_count,
                "details": bulk.details,
            },
            source="scripts.run",
        )
        if bulk.success:
            clients, workers, tasks = bulk.data.clients, bulk.data.workers, bulk.data.tasks
            validator = Validator(clients, workers, tasks, cfg)
            summary = validator.build_summary()

    # (4) Validation report
    report_path: Path | None = None
    if cfg.validation.write_report:
        report_path = Validator.save_report(summary, out_dir=out_dir)

    # (5) Dataset export
    export_paths: dict[str, Path] = {}
    if summary.is_valid or cfg.export.allow_errors:
        exported = export_dataset(clients, workers, tasks, out_dir, summary, cfg)
        export_paths = exported.paths
        for note in exported.warnings:
            logging.warning(note)
    else:
        logging.warning(
            "Export skipped: %d validation error(s) remain (use --auto-fix or --force)",
            summary.total_errors,
        )

    # (6) Rules configuration
    rules_json_path: Path | None = None
    if rules_path is not None:
        ruleset = RulesLoader().load(Path(rules_path))
        rules_report = check_rules_against_data(ruleset.rules, validator.reference_index())
        for message in rules_report.errors:
            logging.error("Rules: %s", message)
        for message in rules_report.warnings:
            logging.warning("Rules: %s", message)
        document = generate_rules_configuration(
            ruleset.rules,
            ruleset.priority_weights,
            ruleset.priority_method,
            ruleset.preset_profile,
            clients,
            workers,
            tasks,
            hours_per_slot=cfg.validation.hours_per_slot,
        )
        rules_json_path = write_rules_json(document, out_dir)

    dt = time.perf_counter() - t0
    logging.info("Pipeline finished in %.2f s", dt)

    return {
        "valid": summary.is_valid,
        "total_errors": summary.total_errors,
        "total_warnings": summary.total_warnings,
        "fixed_count": fixed_count,
        "artifacts": {
            "validation_report": report_path,
            "fix_log": fix_log_path,
            "clients_csv": export_paths.get("clients"),
            "workers_csv": export_paths.get("workers"),
            "tasks_csv": export_paths.get("tasks"),
            "rules_json": rules_json_path,
        },
    }


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point for the Alchemist pipeline.

    @details
    Returns numeric exit codes suitable for shell integration:
      0 – dataset valid (after optional fixes)
      1 – controlled failure or validation errors remain
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    config_path = None if args.config.lower() == "none" else Path(args.config)

    try:
        cfg = ConfigLoader().load_or_default(config_path)
        _setup_logging(cfg.logging)
        result = run_pipeline(
            cfg,
            Path(args.clients),
            Path(args.workers),
            Path(args.tasks),
            Path(args.output) if args.output else None,
            auto_fix=args.auto_fix,
            force=args.force,
            rules_path=Path(args.rules) if args.rules else None,
        )
        written = [name for name, path in result["artifacts"].items() if path is not None]
        logging.info(
            "Errors: %d, warnings: %d, fixed: %d. Artifacts: %s",
            result["total_errors"],
            result["total_warnings"],
            result["fixed_count"],
            ", ".join(written) or "none",
        )
        return 0 if result["valid"] else 1

    except AlchemistError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
