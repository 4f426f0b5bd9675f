# src/alchemist/rules/config_export.py
"""
@brief
Build and persist the versioned rules.json consumed by allocation engines.

@details
Document layout (camelCase on the wire):
    version, generatedAt,
    configuration: {rules, prioritization, dataContext},
    statistics: {totalRules, activeRules, rulesByType, conflictResolution},
    compatibility: {allocationEngine, schemaVersion, requiredFeatures}
Only active rules are emitted; statistics count every rule.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, assert_never

from alchemist.export.files import atomic_write_json
from alchemist.normalizer.normalizer import (
    MAX_PHASE,
    normalize_clients,
    normalize_tasks,
    normalize_workers,
)
from alchemist.rules.models import (
    BusinessRule,
    CoRunRule,
    LoadLimitRule,
    PatternMatchRule,
    PhaseWindowRule,
    PrecedenceOverrideRule,
    PriorityWeights,
    SlotRestrictionRule,
)
from alchemist.rules.ruleset import (
    active_rules,
    detect_rule_conflicts,
    has_precedence_cycle,
    normalize_weights,
)
from alchemist.schemas.models import DEFAULT_HOURS_PER_SLOT
from alchemist.validator.reference_index import ReferenceIndex

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0.0"
SCHEMA_VERSION = "1.0"
ALLOCATION_ENGINE = "data-alchemist-v1"
REQUIRED_FEATURES = [
    "constraint-satisfaction",
    "priority-weighting",
    "cross-entity-validation",
    "phase-based-allocation",
]

_CRITERIA: dict[str, tuple[str, str, dict[str, Any]]] = {
    "fairness": (
        "Ensure equitable distribution of work across workers and clients",
        "gini_coefficient",
        {"penaltyFunction": "exponential", "threshold": 0.3},
    ),
    "priorityLevel": (
        "Respect client priority levels (1-5) in allocation decisions",
        "weighted_priority",
        {"scalingFunction": "linear", "boostHighPriority": True},
    ),
    "taskFulfillment": (
        "Maximize the number of successfully allocated tasks",
        "fulfillment_rate",
        {"partialCredit": 0.5, "timeWindowPenalty": 0.2},
    ),
    "workerUtilization": (
        "Optimize worker capacity utilization across phases",
        "utilization_balance",
        {"targetUtilization": 0.85, "underutilizationPenalty": 0.1},
    ),
    "constraints": (
        "Enforce hard and soft constraints from business rules",
        "constraint_satisfaction",
        {"hardConstraintPenalty": 1000, "softConstraintPenalty": 10},
    ),
}


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def production_rule(rule: BusinessRule) -> dict[str, Any]:
    """
    @brief
    Convert one rule into its production form with a per-type `config` block.

    @details
    Precedence overrides carry their own priority; every other rule gets 1.
    Rules whose ID starts with "ai-" are tagged with source "ai".
    """
    priority = 1
    if isinstance(rule, CoRunRule):
        config: dict[str, Any] = {
            "taskIds": list(rule.task_ids),
            "enforcement": "strict",
            "allowPartial": False,
        }
    elif isinstance(rule, SlotRestrictionRule):
        config = {
            "targetType": rule.target_type,
            "groupTag": rule.group_tag,
            "minCommonSlots": rule.min_common_slots,
            "enforcement": "soft",
        }
    elif isinstance(rule, LoadLimitRule):
        config = {
            "workerGroup": rule.worker_group,
            "maxSlotsPerPhase": rule.max_slots_per_phase,
            "enforcement": "strict",
            "overloadPenalty": "high",
        }
    elif isinstance(rule, PhaseWindowRule):
        config = {
            "taskId": rule.task_id,
            "allowedPhases": list(rule.allowed_phases),
            "enforcement": "strict",
            "fallbackBehavior": "defer",
        }
    elif isinstance(rule, PatternMatchRule):
        config = {
            "regex": rule.regex,
            "template": rule.template,
            "parameters": dict(rule.parameters),
            "enforcement": "conditional",
            "caseSensitive": False,
        }
    elif isinstance(rule, PrecedenceOverrideRule):
        config = {
            "overrideType": rule.override_type,
            "targetRuleIds": list(rule.target_rule_ids),
            "priority": rule.priority,
            "conditions": dict(rule.conditions),
            "enforcement": "override",
        }
        priority = rule.priority
    else:
        assert_never(rule)

    return {
        "id": rule.id,
        "name": rule.name,
        "description": rule.description,
        "type": rule.type,
        "isActive": rule.is_active,
        "priority": priority,
        "config": config,
        "metadata": {
            "createdAt": _iso(rule.created_at),
            "updatedAt": _iso(rule.updated_at),
            "source": "ai" if rule.id.startswith("ai-") else "user",
        },
    }


def prioritization_config(
    weights: PriorityWeights, method: str, preset_profile: str
) -> dict[str, Any]:
    normalized = normalize_weights(weights).model_dump(by_alias=True)
    return {
        "method": method,
        "weights": weights.model_dump(by_alias=True),
        "presetProfile": preset_profile,
        "normalizedWeights": normalized,
        "criteria": {
            key: {
                "weight": normalized[key],
                "description": description,
                "algorithm": algorithm,
                "parameters": dict(parameters),
            }
            for key, (description, algorithm, parameters) in _CRITERIA.items()
        },
    }


def data_context(
    clients: Sequence[Mapping[str, Any]],
    workers: Sequence[Mapping[str, Any]],
    tasks: Sequence[Mapping[str, Any]],
    rules: Sequence[BusinessRule],
    hours_per_slot: float = DEFAULT_HOURS_PER_SLOT,
) -> dict[str, Any]:
    """
    @brief
    Dataset statistics and feasibility flags attached to the rules document.

    @details
    Computed from canonical records: distinct priority levels, the skill
    vocabulary, task counts per preferred phase (phases 1-10), MaxLoadPerPhase
    summed per worker group ("default" for ungrouped workers) and four
    feasibility flags.
    """
    ncl = normalize_clients(clients)
    nwk = normalize_workers(workers)
    ntk = normalize_tasks(tasks)
    index = ReferenceIndex.build(ncl, nwk, ntk)

    phase_distribution = [0] * MAX_PHASE
    for task in ntk:
        for phase in task.preferred_phases:
            if 1 <= phase <= MAX_PHASE:
                phase_distribution[phase - 1] += 1

    workload: Counter[str] = Counter()
    for worker in nwk:
        workload[worker.worker_group or "default"] += worker.max_load_per_phase or 0

    refs_ok = all(t in index.task_ids for c in ncl for t in c.requested_task_ids)
    demand = sum(t.duration or 0 for t in ntk)
    supply = sum(len(w.available_slots) for w in nwk) * hours_per_slot

    return {
        "entities": {"clients": len(ncl), "workers": len(nwk), "tasks": len(ntk)},
        "summary": {
            "totalPriorityLevels": sorted({c.priority_level for c in ncl if c.priority_level is not None}),
            "skillCoverage": sorted(index.worker_skills | index.required_skills),
            "phaseDistribution": phase_distribution,
            "workloadDistribution": dict(workload),
        },
        "validation": {
            "crossReferences": refs_ok,
            "circularDependencies": has_precedence_cycle(rules),
            "capacityFeasibility": demand <= supply,
            "skillCoverage": not index.uncovered_skills(),
        },
    }


def generate_rules_configuration(
    rules: Sequence[BusinessRule],
    weights: PriorityWeights,
    method: str,
    preset_profile: str,
    clients: Sequence[Mapping[str, Any]],
    workers: Sequence[Mapping[str, Any]],
    tasks: Sequence[Mapping[str, Any]],
    *,
    hours_per_slot: float = DEFAULT_HOURS_PER_SLOT,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """
    @brief
    Assemble the complete rules configuration document.

    @params
        rules : Sequence[BusinessRule]
            Every rule; inactive ones are counted but not emitted.
        weights, method, preset_profile :
            Prioritization settings.
        clients, workers, tasks :
            Raw rows used for the data context block.

    @returns
        JSON-serializable dict.
    """
    emitted = [production_rule(r) for r in active_rules(rules)]
    by_type = Counter(r.type for r in rules)
    conflicts = detect_rule_conflicts(rules)

    return {
        "version": CONFIG_VERSION,
        "generatedAt": _iso(generated_at or datetime.now(timezone.utc)),
        "configuration": {
            "rules": emitted,
            "prioritization": prioritization_config(weights, method, preset_profile),
            "dataContext": data_context(clients, workers, tasks, rules, hours_per_slot),
        },
        "statistics": {
            "totalRules": len(rules),
            "activeRules": len(emitted),
            "rulesByType": dict(by_type),
            "conflictResolution": [c.model_dump(by_alias=True) for c in conflicts],
        },
        "compatibility": {
            "allocationEngine": ALLOCATION_ENGINE,
            "schemaVersion": SCHEMA_VERSION,
            "requiredFeatures": list(REQUIRED_FEATURES),
        },
    }


def write_rules_json(
    document: Mapping[str, Any], out_dir: Path, filename: str = "rules.json"
) -> Path:
    """Write a rules configuration document atomically; returns the final path."""
    path = atomic_write_json(Path(out_dir) / filename, dict(document), source="write_rules_json")
    logger.info("Rules configuration saved: %s", path)
    return path


__all__ = [
    "data_context",
    "generate_rules_configuration",
    "prioritization_config",
    "production_rule",
    "write_rules_json",
]
