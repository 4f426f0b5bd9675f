# src/alchemist/validator/business_rules.py
"""
@brief
Per-entity heuristic checks over canonical records.

@details
Duplicate IDs are hard errors: duplicate identity breaks every downstream
cross-reference. Everything else here is a warning that a human should
review but that never blocks export.

Duplicate convention: one error per occurrence after the first. The first
occurrence owns the ID; blank IDs are left to the schema validator.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from alchemist.normalizer.types import NormalizedClient, NormalizedTask, NormalizedWorker
from alchemist.schemas.models import EntityType, RuleType, ValidationConfig
from alchemist.validator.issues import IssueCollector


# ----------------------------
# SHARED HELPERS
# ----------------------------
def iter_duplicates(ids: Sequence[str]) -> Iterator[tuple[int, str, int]]:
    """Yield (row_index, id, first_row_index) for every repeated non-blank ID."""
    first_seen: dict[str, int] = {}
    for row_index, entity_id in enumerate(ids):
        if not entity_id:
            continue
        if entity_id in first_seen:
            yield row_index, entity_id, first_seen[entity_id]
        else:
            first_seen[entity_id] = row_index


def _check_duplicates(
    ids: Sequence[str],
    entity_type: EntityType,
    label: str,
    field: str,
    issues: IssueCollector,
) -> None:
    for row_index, entity_id, first_row in iter_duplicates(ids):
        issues.add_error(
            entity_type,
            RuleType.DUPLICATE_DETECTION,
            f"Duplicate {label} ID: {entity_id}",
            field=field,
            row_index=row_index,
            entities={"id": entity_id, "firstRowIndex": first_row},
        )


# ----------------------------
# CLIENTS
# ----------------------------
def check_clients(
    clients: Sequence[NormalizedClient], cfg: ValidationConfig, issues: IssueCollector
) -> None:
    """
    @brief
    Client battery: duplicates, priority skew, excessive task requests.

    @details
    Priority skew is one aggregate warning when more than
    `high_priority_ratio` of all clients carry PriorityLevel at or above
    `high_priority_threshold`. Clients whose priority is unreadable are
    counted in the total but never as high priority.
    """
    # (1) Duplicate ClientIDs
    _check_duplicates([c.client_id for c in clients], "client", "client", "ClientID", issues)

    # (2) Priority distribution
    high_priority = sum(
        1
        for c in clients
        if c.priority_level is not None and c.priority_level >= cfg.high_priority_threshold
    )
    if clients and high_priority > len(clients) * cfg.high_priority_ratio:
        issues.add_warning(
            "client",
            RuleType.PRIORITY_DISTRIBUTION,
            f"High priority clients ({high_priority}) exceed "
            f"{cfg.high_priority_ratio:.0%} of total clients. Consider redistributing priorities.",
            entities={"highPriorityCount": high_priority, "totalClients": len(clients)},
        )

    # (3) Excessive task requests
    for row_index, client in enumerate(clients):
        requested = len(client.requested_task_ids)
        if requested > cfg.max_requested_tasks:
            issues.add_warning(
                "client",
                RuleType.TASK_COUNT_LIMIT,
                f"Client {client.client_id} requests {requested} tasks. "
                "Consider splitting into multiple clients.",
                field="RequestedTaskIDs",
                row_index=row_index,
                entities={"requestedCount": requested},
            )


# ----------------------------
# WORKERS
# ----------------------------
def check_workers(
    workers: Sequence[NormalizedWorker], cfg: ValidationConfig, issues: IssueCollector
) -> None:
    """Worker battery: duplicates, capacity, load balance, skills."""
    _check_duplicates([w.worker_id for w in workers], "worker", "worker", "WorkerID", issues)

    for row_index, worker in enumerate(workers):
        slot_count = len(worker.available_slots)

        if slot_count == 0:
            issues.add_warning(
                "worker",
                RuleType.CAPACITY_CHECK,
                f"Worker {worker.worker_id} has 0 available slots",
                field="AvailableSlots",
                row_index=row_index,
            )

        max_load = worker.max_load_per_phase
        if max_load is not None and max_load > slot_count * cfg.load_to_slot_ratio:
            issues.add_warning(
                "worker",
                RuleType.LOAD_BALANCE_CHECK,
                f"Worker {worker.worker_id} max load per phase ({max_load}) is very high "
                f"compared to available slots ({slot_count})",
                field="MaxLoadPerPhase",
                row_index=row_index,
                entities={"maxLoadPerPhase": max_load, "slotCount": slot_count},
            )

        skill_count = len(worker.skills)
        if skill_count == 0:
            issues.add_warning(
                "worker",
                RuleType.SKILL_VALIDATION,
                f"Worker {worker.worker_id} has no skills defined",
                field="Skills",
                row_index=row_index,
            )
        elif skill_count > cfg.max_skills_per_worker:
            issues.add_warning(
                "worker",
                RuleType.SKILL_VALIDATION,
                f"Worker {worker.worker_id} has {skill_count} skills. "
                "Consider consolidating similar skills.",
                field="Skills",
                row_index=row_index,
                entities={"skillCount": skill_count},
            )


# ----------------------------
# TASKS
# ----------------------------
def check_tasks(
    tasks: Sequence[NormalizedTask], cfg: ValidationConfig, issues: IssueCollector
) -> None:
    """Task battery: duplicates, duration sanity, concurrency sanity."""
    _check_duplicates([t.task_id for t in tasks], "task", "task", "TaskID", issues)

    for row_index, task in enumerate(tasks):
        if task.duration is not None:
            if task.duration == 0:
                issues.add_warning(
                    "task",
                    RuleType.DURATION_CHECK,
                    f"Task {task.task_id} has 0 duration",
                    field="Duration",
                    row_index=row_index,
                )
            elif task.duration > cfg.max_task_duration:
                issues.add_warning(
                    "task",
                    RuleType.DURATION_CHECK,
                    f"Task {task.task_id} has duration of {task.duration} hours. "
                    "Consider breaking into smaller tasks.",
                    field="Duration",
                    row_index=row_index,
                    entities={"duration": task.duration},
                )

        if task.max_concurrent is not None and task.max_concurrent > cfg.max_concurrent:
            issues.add_warning(
                "task",
                RuleType.CONCURRENCY_CHECK,
                f"Task {task.task_id} allows {task.max_concurrent} concurrent instances. "
                "Verify this is intentional.",
                field="MaxConcurrent",
                row_index=row_index,
                entities={"maxConcurrent": task.max_concurrent},
            )


# ----------------------------
# DATA QUALITY
# ----------------------------
def check_client_formats(clients: Sequence[NormalizedClient], issues: IssueCollector) -> None:
    for row_index, client in enumerate(clients):
        if client.attributes_converted:
            issues.add_warning(
                "client",
                RuleType.INVALID_FORMAT,
                f"Client {client.client_id} has invalid JSON in AttributesJSON",
                field="AttributesJSON",
                row_index=row_index,
            )


def check_task_formats(tasks: Sequence[NormalizedTask], issues: IssueCollector) -> None:
    for row_index, task in enumerate(tasks):
        if task.phases_unrecognized:
            issues.add_warning(
                "task",
                RuleType.INVALID_FORMAT,
                f"Task {task.task_id} has unrecognized PreferredPhases format",
                field="PreferredPhases",
                row_index=row_index,
            )


__all__ = [
    "check_client_formats",
    "check_clients",
    "check_task_formats",
    "check_tasks",
    "check_workers",
    "iter_duplicates",
]
