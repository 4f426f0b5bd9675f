# src/alchemist/validator/cross_entity.py
"""
@brief
Checks that span more than one entity collection.

@details
Runs after all three collections are available:
    1. reference integrity (hard error per unresolved RequestedTaskIDs entry)
    2. skill coverage (one aggregate warning)
    3. capacity planning (aggregate warnings; heuristics, never blocking)
"""

from __future__ import annotations

from collections.abc import Sequence

from alchemist.normalizer.normalizer import validate_task_ids
from alchemist.normalizer.types import NormalizedClient, NormalizedTask, NormalizedWorker
from alchemist.schemas.models import QualificationLevel, RuleType, ValidationConfig
from alchemist.validator.issues import IssueCollector
from alchemist.validator.reference_index import ReferenceIndex

SENIOR_LEVELS = frozenset({QualificationLevel.SENIOR, QualificationLevel.EXPERT})


def check_reference_integrity(
    clients: Sequence[NormalizedClient], index: ReferenceIndex, issues: IssueCollector
) -> None:
    """
    @brief
    One error per distinct unresolved task reference per client.

    @details
    The message names the missing ID and `entities.taskId` carries it, so
    fix tooling can strip exactly that entry. Valid IDs in the same list
    produce nothing.
    """
    for row_index, client in enumerate(clients):
        partition = validate_task_ids(client.requested_task_ids, index.task_ids)
        for task_id in dict.fromkeys(partition.invalid):
            issues.add_error(
                "client",
                RuleType.REFERENCE_INTEGRITY,
                f"Client {client.client_id} references non-existent task: {task_id}",
                field="RequestedTaskIDs",
                row_index=row_index,
                entities={"clientId": client.client_id, "taskId": task_id},
            )


def check_skill_coverage(index: ReferenceIndex, issues: IssueCollector) -> None:
    missing = index.uncovered_skills()
    if missing:
        issues.add_warning(
            "worker",
            RuleType.SKILL_COVERAGE,
            f"These required skills are not covered by any worker: {', '.join(missing)}",
            entities={"missingSkills": missing},
        )


def check_capacity(
    clients: Sequence[NormalizedClient],
    workers: Sequence[NormalizedWorker],
    tasks: Sequence[NormalizedTask],
    cfg: ValidationConfig,
    issues: IssueCollector,
) -> None:
    """
    @brief
    Aggregate staffing heuristics.

    @details
    (a) Demand, the sum of task durations, against supply, the total
        normalized slot count times `hours_per_slot`.
    (b) High-priority clients against Senior/Expert workers.
    """
    # (1) Hours demand vs slot supply
    total_slots = sum(len(w.available_slots) for w in workers)
    demand = sum(t.duration for t in tasks if t.duration is not None)
    supply = total_slots * cfg.hours_per_slot
    if demand > supply:
        issues.add_warning(
            "worker",
            RuleType.CAPACITY_PLANNING,
            f"Total task demand ({demand} hours) may exceed worker capacity "
            f"({total_slots} slots). Consider adding more workers or reducing task scope.",
            entities={
                "demandHours": demand,
                "totalSlots": total_slots,
                "hoursPerSlot": cfg.hours_per_slot,
            },
        )

    # (2) High-priority clients vs senior staff
    high_priority = sum(
        1
        for c in clients
        if c.priority_level is not None and c.priority_level >= cfg.high_priority_threshold
    )
    senior = sum(1 for w in workers if w.qualification_level in SENIOR_LEVELS)
    if high_priority > senior:
        issues.add_warning(
            "client",
            RuleType.PRIORITY_CAPACITY,
            f"{high_priority} high-priority clients but only {senior} senior/expert workers. "
            "Consider adjusting priorities or worker qualifications.",
            entities={"highPriorityClients": high_priority, "seniorWorkers": senior},
        )


__all__ = ["SENIOR_LEVELS", "check_capacity", "check_reference_integrity", "check_skill_coverage"]
