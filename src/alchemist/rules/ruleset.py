# src/alchemist/rules/ruleset.py
"""
@brief
Pure operations over lists of allocation rules.

@details
Every transition returns a new list and leaves its input untouched; the
caller owns scheduling and persistence. Lookup failures (unknown rule ID,
duplicate ID, forbidden field change) raise RuleError because they are
caller mistakes, not data findings.

Consumers dispatch on the rule class with an exhaustive isinstance chain
ending in assert_never, so adding a seventh rule type is a type error until
every site handles it.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import combinations
from typing import Any, Literal, assert_never

from pydantic import ValidationError

from alchemist.errors import RuleError
from alchemist.normalizer.normalizer import MAX_PHASE, MIN_PHASE
from alchemist.normalizer.types import NormalizedClient, NormalizedTask, NormalizedWorker
from alchemist.rules.models import (
    PRESET_WEIGHTS,
    BusinessRule,
    CoRunRule,
    LoadLimitRule,
    PatternMatchRule,
    PhaseWindowRule,
    PrecedenceOverrideRule,
    PriorityWeights,
    RuleConflict,
    SlotRestrictionRule,
)
from alchemist.validator.reference_index import ReferenceIndex

logger = logging.getLogger(__name__)

MIN_OVERRIDE_PRIORITY = 1
MAX_OVERRIDE_PRIORITY = 10

_IMMUTABLE_FIELDS = frozenset({"id", "type", "created_at", "createdAt"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _index_of(rules: Sequence[BusinessRule], rule_id: str) -> int:
    for i, rule in enumerate(rules):
        if rule.id == rule_id:
            return i
    raise RuleError(
        f"Rule not found: {rule_id}",
        source="ruleset",
        suggested_action="Reload the rule list; the rule may have been deleted.",
    )


# ----------------------------
# TRANSITIONS
# ----------------------------
def get_rule(rules: Sequence[BusinessRule], rule_id: str) -> BusinessRule | None:
    return next((r for r in rules if r.id == rule_id), None)


def active_rules(rules: Sequence[BusinessRule]) -> list[BusinessRule]:
    return [r for r in rules if r.is_active]


def add_rule(rules: Sequence[BusinessRule], rule: BusinessRule) -> list[BusinessRule]:
    """Append `rule`; its ID must not be taken."""
    if get_rule(rules, rule.id) is not None:
        raise RuleError(
            f"Rule ID already exists: {rule.id}",
            source="ruleset.add_rule",
            suggested_action="Use a fresh rule ID or update the existing rule.",
        )
    return [*rules, rule]


def update_rule(
    rules: Sequence[BusinessRule], rule_id: str, **changes: Any
) -> list[BusinessRule]:
    """
    @brief
    Replace fields of one rule and bump its updated_at.

    @details
    The updated rule is re-validated against its own class, so a change of
    the wrong type raises RuleError instead of producing a broken rule.
    id, type and created_at cannot be changed.
    """
    forbidden = _IMMUTABLE_FIELDS & changes.keys()
    if forbidden:
        raise RuleError(
            f"Cannot change rule field(s): {sorted(forbidden)}",
            source="ruleset.update_rule",
        )

    i = _index_of(rules, rule_id)
    current = rules[i]
    data = {**current.model_dump(), **changes, "updated_at": _utc_now()}
    try:
        updated = type(current).model_validate(data)
    except ValidationError as e:
        raise RuleError(
            f"Invalid update for rule {rule_id}: {e}",
            source="ruleset.update_rule",
            suggested_action="Check field names and types for this rule type.",
        ) from e

    out = list(rules)
    out[i] = updated
    return out


def delete_rule(rules: Sequence[BusinessRule], rule_id: str) -> list[BusinessRule]:
    i = _index_of(rules, rule_id)
    return [*rules[:i], *rules[i + 1 :]]


def toggle_rule(rules: Sequence[BusinessRule], rule_id: str) -> list[BusinessRule]:
    i = _index_of(rules, rule_id)
    return update_rule(rules, rule_id, is_active=not rules[i].is_active)


def duplicate_rule(
    rules: Sequence[BusinessRule], rule_id: str, new_id: str | None = None
) -> tuple[list[BusinessRule], str]:
    """Copy a rule under a new ID with " (Copy)" appended to its name."""
    source = rules[_index_of(rules, rule_id)]
    new_id = new_id or str(uuid.uuid4())
    now = _utc_now()
    copy = source.model_copy(
        update={"id": new_id, "name": f"{source.name} (Copy)", "created_at": now, "updated_at": now}
    )
    return add_rule(rules, copy), new_id


# ----------------------------
# STRUCTURAL CHECKS
# ----------------------------
def validate_rule(rule: BusinessRule) -> list[str]:
    """
    @brief
    Structural problems of one rule (empty list when valid).

    @details
    Checks that need the dataset (do referenced tasks exist?) live in
    check_rules_against_data().
    """
    errors: list[str] = []
    if not rule.name.strip():
        errors.append("Rule name is required")

    if isinstance(rule, CoRunRule):
        if len(set(rule.task_ids)) < 2:
            errors.append("Co-run rule must include at least 2 tasks")
    elif isinstance(rule, SlotRestrictionRule):
        if not rule.group_tag:
            errors.append("Group tag is required")
        if rule.min_common_slots < 1:
            errors.append("Minimum common slots must be at least 1")
    elif isinstance(rule, LoadLimitRule):
        if not rule.worker_group:
            errors.append("Worker group is required")
        if rule.max_slots_per_phase < 1:
            errors.append("Maximum slots per phase must be at least 1")
    elif isinstance(rule, PhaseWindowRule):
        if not rule.task_id:
            errors.append("Task ID is required")
        if not rule.allowed_phases:
            errors.append("Phase window must specify at least one allowed phase")
        elif any(not MIN_PHASE <= p <= MAX_PHASE for p in rule.allowed_phases):
            errors.append(f"Allowed phases must be between {MIN_PHASE} and {MAX_PHASE}")
    elif isinstance(rule, PatternMatchRule):
        try:
            re.compile(rule.regex)
        except re.error:
            errors.append("Invalid regular expression")
    elif isinstance(rule, PrecedenceOverrideRule):
        if not MIN_OVERRIDE_PRIORITY <= rule.priority <= MAX_OVERRIDE_PRIORITY:
            errors.append(
                f"Priority must be between {MIN_OVERRIDE_PRIORITY} and {MAX_OVERRIDE_PRIORITY}"
            )
        if not rule.override_type:
            errors.append("Override type is required")
        if not rule.target_rule_ids:
            errors.append("At least one target rule must be specified")
    else:
        assert_never(rule)

    return errors


# ----------------------------
# DATASET CHECKS
# ----------------------------
@dataclass(slots=True)
class RulesReport:
    """Outcome of checking a rule list against the current dataset."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    conflicts: list[RuleConflict] = field(default_factory=list)
    total_rules: int = 0
    active_rules: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def statistics(self) -> dict[str, int]:
        return {
            "totalRules": self.total_rules,
            "activeRules": self.active_rules,
            "disabledRules": self.total_rules - self.active_rules,
            "conflictCount": len(self.conflicts),
        }


def _check_references(rule: BusinessRule, index: ReferenceIndex, report: RulesReport) -> None:
    label = f'"{rule.name or rule.id}"'
    if isinstance(rule, CoRunRule):
        for task_id in rule.task_ids:
            if task_id not in index.task_ids:
                report.errors.append(f"Co-run rule {label}: Task {task_id} does not exist")
    elif isinstance(rule, SlotRestrictionRule):
        groups = index.clients_by_group if rule.target_type == "client" else index.workers_by_group
        if rule.group_tag not in groups:
            report.errors.append(
                f"Slot restriction rule {label}: "
                f"{rule.target_type.capitalize()} group {rule.group_tag} does not exist"
            )
        elif rule.target_type == "worker":
            common = index.common_slots(rule.group_tag)
            if len(common) < rule.min_common_slots:
                report.warnings.append(
                    f"Slot restriction rule {label}: worker group {rule.group_tag} shares "
                    f"{len(common)} common slot(s), fewer than the required {rule.min_common_slots}"
                )
    elif isinstance(rule, LoadLimitRule):
        if rule.worker_group not in index.workers_by_group:
            report.errors.append(
                f"Load limit rule {label}: Worker group {rule.worker_group} does not exist"
            )
    elif isinstance(rule, PhaseWindowRule):
        if rule.task_id not in index.task_ids:
            report.errors.append(f"Phase window rule {label}: Task {rule.task_id} does not exist")
    elif isinstance(rule, (PatternMatchRule, PrecedenceOverrideRule)):
        pass
    else:
        assert_never(rule)


def check_rules_against_data(
    rules: Sequence[BusinessRule], index: ReferenceIndex
) -> RulesReport:
    """
    @brief
    Validate a rule list against the dataset it will be applied to.

    @details
    Reports structural errors, references to unknown tasks or groups,
    infeasible slot restrictions (warning), disabled rules (warning) and
    conflicts among the active rules. Precedence overrides that target
    unknown rule IDs are errors.
    """
    report = RulesReport(total_rules=len(rules), active_rules=len(active_rules(rules)))
    known_ids = {r.id for r in rules}

    for rule in rules:
        label = f'"{rule.name or rule.id}"'
        for problem in validate_rule(rule):
            report.errors.append(f"Rule {label}: {problem}")
        _check_references(rule, index, report)
        if isinstance(rule, PrecedenceOverrideRule):
            for target in rule.target_rule_ids:
                if target not in known_ids:
                    report.errors.append(
                        f"Precedence override {label}: target rule {target} does not exist"
                    )
        if not rule.is_active:
            report.warnings.append(f"Rule {label} is disabled and will not be exported")

    report.conflicts = detect_rule_conflicts(rules)
    if report.errors:
        logger.warning("Rule check found %d error(s)", len(report.errors))
    return report


def detect_rule_conflicts(rules: Sequence[BusinessRule]) -> list[RuleConflict]:
    """
    @brief
    Interactions among active rules and their resolution.

    @details
    - co-run rules sharing a task are merged;
    - different load limits for the same worker group are contradictory
      (the lowest limit wins);
    - precedence overrides targeting the same rule are ordered by priority.
    """
    active = active_rules(rules)
    conflicts: list[RuleConflict] = []

    # (1) Overlapping co-run groups
    co_runs = [r for r in active if isinstance(r, CoRunRule)]
    for a, b in combinations(co_runs, 2):
        shared = sorted(set(a.task_ids) & set(b.task_ids))
        if shared:
            conflicts.append(
                RuleConflict(
                    conflict_id=f"corun-overlap-{a.id}-{b.id}",
                    kind="overlapping",
                    severity="warning",
                    affected_rules=[a.id, b.id],
                    resolution="merge",
                    reason=f"Co-run rules share task(s) {', '.join(shared)} and are merged",
                )
            )

    # (2) Contradictory load limits
    limits: dict[str, list[LoadLimitRule]] = defaultdict(list)
    for rule in active:
        if isinstance(rule, LoadLimitRule):
            limits[rule.worker_group].append(rule)
    for group, group_rules in limits.items():
        values = {r.max_slots_per_phase for r in group_rules}
        if len(values) > 1:
            conflicts.append(
                RuleConflict(
                    conflict_id=f"loadlimit-{group}",
                    kind="contradictory",
                    severity="warning",
                    affected_rules=[r.id for r in group_rules],
                    resolution="prioritize",
                    reason=(
                        f"Multiple different load limits for worker group {group}; "
                        f"the lowest ({min(values)}) applies"
                    ),
                )
            )

    # (3) Overlapping precedence overrides
    overrides = [r for r in active if isinstance(r, PrecedenceOverrideRule)]
    for a, b in combinations(overrides, 2):
        if set(a.target_rule_ids) & set(b.target_rule_ids):
            conflicts.append(
                RuleConflict(
                    conflict_id=f"precedence-conflict-{a.id}-{b.id}",
                    kind="overlapping",
                    severity="warning",
                    affected_rules=[a.id, b.id],
                    resolution="prioritize",
                    reason="Resolved by rule priority ordering",
                )
            )

    return conflicts


def has_precedence_cycle(rules: Sequence[BusinessRule]) -> bool:
    """True if active precedence overrides target each other in a cycle."""
    graph: dict[str, set[str]] = {
        r.id: set(r.target_rule_ids) for r in active_rules(rules) if isinstance(r, PrecedenceOverrideRule)
    }
    visiting: set[str] = set()
    done: set[str] = set()

    def visit(node: str) -> bool:
        if node in visiting:
            return True
        if node in done or node not in graph:
            return False
        visiting.add(node)
        found = any(visit(nxt) for nxt in graph[node])
        visiting.discard(node)
        done.add(node)
        return found

    return any(visit(node) for node in graph)


# ----------------------------
# RULE PREVIEW
# ----------------------------
Severity = Literal["low", "medium", "high"]

# a co-run group served by fewer workers than this is fragile
MIN_CAPABLE_WORKERS = 3
# pattern rules matching more names than this are probably too broad
MAX_PATTERN_MATCHES = 20


@dataclass(slots=True)
class AffectedEntities:
    """IDs of the rows a rule constrains, per collection."""

    clients: list[str] = field(default_factory=list)
    workers: list[str] = field(default_factory=list)
    tasks: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.clients) + len(self.workers) + len(self.tasks)


@dataclass(slots=True)
class RuleImpact:
    severity: Severity
    description: str
    quantified_effect: str
    recommendations: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RulePreview:
    """What a rule would do to the current dataset, before it is saved."""

    rule_id: str
    rule_name: str
    rule_type: str
    errors: list[str]
    warnings: list[str]
    affected: AffectedEntities
    impact: RuleImpact
    conflicts: list[RuleConflict] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _impact_severity(total_affected: int) -> Severity:
    if total_affected > 20:
        return "high"
    if total_affected > 10:
        return "medium"
    return "low"


def _co_run_tasks(rule: CoRunRule, tasks: Sequence[NormalizedTask]) -> list[NormalizedTask]:
    by_id = {t.task_id: t for t in tasks if t.task_id}
    return [by_id[task_id] for task_id in dict.fromkeys(rule.task_ids) if task_id in by_id]


def affected_entities(
    rule: BusinessRule,
    clients: Sequence[NormalizedClient],
    workers: Sequence[NormalizedWorker],
    tasks: Sequence[NormalizedTask],
) -> AffectedEntities:
    """
    @brief
    Rows a rule constrains in the current dataset.

    @details
    Co-run rules touch their existing tasks plus every worker holding at
    least one skill those tasks require. Group rules touch the group's
    members, phase windows their task. Pattern matches and precedence
    overrides act on other rules, so they touch no rows directly.
    """
    affected = AffectedEntities()
    if isinstance(rule, CoRunRule):
        group = _co_run_tasks(rule, tasks)
        affected.tasks = [t.task_id for t in group]
        needed = {s for t in group for s in t.required_skills}
        affected.workers = [w.worker_id for w in workers if needed & set(w.skills)]
    elif isinstance(rule, SlotRestrictionRule):
        if rule.target_type == "worker":
            affected.workers = [w.worker_id for w in workers if w.worker_group == rule.group_tag]
        else:
            affected.clients = [c.client_id for c in clients if c.group_tag == rule.group_tag]
    elif isinstance(rule, LoadLimitRule):
        affected.workers = [w.worker_id for w in workers if w.worker_group == rule.worker_group]
    elif isinstance(rule, PhaseWindowRule):
        affected.tasks = [t.task_id for t in tasks if t.task_id == rule.task_id][:1]
    elif isinstance(rule, (PatternMatchRule, PrecedenceOverrideRule)):
        pass
    else:
        assert_never(rule)
    return affected


def _data_findings(
    rule: BusinessRule,
    clients: Sequence[NormalizedClient],
    workers: Sequence[NormalizedWorker],
    tasks: Sequence[NormalizedTask],
    others: Sequence[BusinessRule],
    report: RulesReport,
) -> None:
    if isinstance(rule, CoRunRule):
        group = _co_run_tasks(rule, tasks)
        if len(group) > 1:
            needed = {s for t in group for s in t.required_skills}
            capable = [w for w in workers if needed <= set(w.skills)]
            if not capable:
                report.warnings.append("No workers have all required skills for co-run tasks")
            elif len(capable) < MIN_CAPABLE_WORKERS:
                report.warnings.append(
                    f"Only {len(capable)} worker(s) can handle all co-run tasks"
                )
    elif isinstance(rule, LoadLimitRule):
        over = [
            w
            for w in workers
            if w.worker_group == rule.worker_group
            and (w.max_load_per_phase or 0) > rule.max_slots_per_phase
        ]
        if over:
            report.warnings.append(
                f"{len(over)} worker(s) currently exceed the new limit of {rule.max_slots_per_phase}"
            )
    elif isinstance(rule, PhaseWindowRule):
        task = next((t for t in tasks if t.task_id == rule.task_id), None)
        if task is not None:
            allowed = set(rule.allowed_phases)
            if task.preferred_phases and not set(task.preferred_phases) <= allowed:
                report.warnings.append(
                    f"Task's preferred phases {task.preferred_phases} conflict with "
                    f"allowed phases {sorted(allowed)}"
                )
            duration = task.duration or 1
            if rule.allowed_phases and duration > len(allowed):
                report.errors.append(
                    f"Task duration ({duration}) exceeds number of allowed phases ({len(allowed)})"
                )
    elif isinstance(rule, PatternMatchRule):
        try:
            pattern = re.compile(rule.regex)
        except re.error:
            return
        names = (
            [t.task_name for t in tasks]
            + [w.worker_name for w in workers]
            + [c.client_name for c in clients]
        )
        matches = sum(1 for name in names if pattern.search(name))
        if matches == 0:
            report.warnings.append("Pattern does not match any entity names")
        elif matches > MAX_PATTERN_MATCHES:
            report.warnings.append(
                f"Pattern matches many entities ({matches}), consider making it more specific"
            )
    elif isinstance(rule, PrecedenceOverrideRule):
        same = [
            r
            for r in others
            if isinstance(r, PrecedenceOverrideRule) and r.priority == rule.priority
        ]
        if same:
            report.warnings.append(f"{len(same)} other rule(s) have the same priority level")
    elif isinstance(rule, SlotRestrictionRule):
        # common-slot feasibility is part of the reference checks
        pass
    else:
        assert_never(rule)


def _impact(rule: BusinessRule, affected: AffectedEntities) -> RuleImpact:
    severity = _impact_severity(affected.total)
    if isinstance(rule, CoRunRule):
        return RuleImpact(
            severity=severity,
            description=f"Groups {len(rule.task_ids)} tasks to run together",
            quantified_effect=(
                f"{len(affected.tasks)} tasks grouped, "
                f"affecting {len(affected.workers)} potential workers"
            ),
            recommendations=(
                ["Consider splitting into smaller co-run groups"] if severity == "high" else []
            ),
        )
    if isinstance(rule, LoadLimitRule):
        return RuleImpact(
            severity=severity,
            description=(
                f"Limits worker group {rule.worker_group} "
                f"to {rule.max_slots_per_phase} slots per phase"
            ),
            quantified_effect=f"{len(affected.workers)} workers affected",
            recommendations=(
                ["Monitor for potential capacity bottlenecks"] if severity == "high" else []
            ),
        )
    if isinstance(rule, PhaseWindowRule):
        return RuleImpact(
            severity=severity,
            description=f"Restricts task {rule.task_id} to phases {rule.allowed_phases}",
            quantified_effect=f"1 task constrained to {len(rule.allowed_phases)} phases",
            recommendations=(
                ["Ensure sufficient scheduling flexibility"]
                if len(rule.allowed_phases) < 3
                else []
            ),
        )
    return RuleImpact(
        severity=severity,
        description="Rule will modify allocation behavior",
        quantified_effect=f"{affected.total} entities potentially affected",
    )


def preview_rule(
    rule: BusinessRule,
    clients: Sequence[NormalizedClient],
    workers: Sequence[NormalizedWorker],
    tasks: Sequence[NormalizedTask],
    existing_rules: Sequence[BusinessRule] = (),
) -> RulePreview:
    """
    @brief
    Analyze one rule against the current dataset without applying it.

    @details
    The preview combines:
      (1) structural and reference errors (same messages as
          check_rules_against_data);
      (2) data-level findings: co-run skill compatibility, workers already
          above a new load limit, phase windows narrower than the task,
          pattern match counts, precedence overrides sharing a priority;
      (3) the affected rows and an impact estimate whose severity grows
          with the number of affected rows (>10 medium, >20 high);
      (4) conflicts between this rule and `existing_rules`.

    @params
        rule : BusinessRule
            Rule being edited; it may or may not be part of existing_rules.
        clients, workers, tasks : Sequence of normalized records.
        existing_rules : Sequence[BusinessRule]
            Saved rules; an entry with the same ID as `rule` is replaced by it.

    @returns
        RulePreview. Never raises on bad data.
    """
    others = [r for r in existing_rules if r.id != rule.id]
    report = RulesReport()

    # (1) Structure and references
    report.errors.extend(validate_rule(rule))
    _check_references(rule, ReferenceIndex.build(clients, workers, tasks), report)

    # (2) Data-level findings
    _data_findings(rule, clients, workers, tasks, others, report)

    # (3) Affected rows and impact
    affected = affected_entities(rule, clients, workers, tasks)
    impact = _impact(rule, affected)

    # (4) Conflicts involving this rule
    conflicts = [
        c for c in detect_rule_conflicts([*others, rule]) if rule.id in c.affected_rules
    ]

    logger.debug(
        "Preview of rule %s: %d error(s), %d warning(s), %d row(s) affected",
        rule.id,
        len(report.errors),
        len(report.warnings),
        affected.total,
    )
    return RulePreview(
        rule_id=rule.id,
        rule_name=rule.name,
        rule_type=rule.type,
        errors=report.errors,
        warnings=report.warnings,
        affected=affected,
        impact=impact,
        conflicts=conflicts,
    )


# ----------------------------
# PRIORITY WEIGHTS
# ----------------------------
def weights_for_preset(profile: str) -> PriorityWeights:
    """Weights of a preset profile; "custom" and unknown profiles get the defaults."""
    return PRESET_WEIGHTS.get(profile, PriorityWeights()).model_copy()


def normalize_weights(weights: PriorityWeights) -> PriorityWeights:
    """Scale weights to sum to 1; all-zero weights become equal shares."""
    total = weights.total()
    if total <= 0:
        return PriorityWeights(
            fairness=0.2,
            priority_level=0.2,
            task_fulfillment=0.2,
            worker_utilization=0.2,
            constraints=0.2,
        )
    return PriorityWeights(
        fairness=weights.fairness / total,
        priority_level=weights.priority_level / total,
        task_fulfillment=weights.task_fulfillment / total,
        worker_utilization=weights.worker_utilization / total,
        constraints=weights.constraints / total,
    )


__all__ = [
    "RulesReport",
    "active_rules",
    "add_rule",
    "check_rules_against_data",
    "delete_rule",
    "detect_rule_conflicts",
    "duplicate_rule",
    "get_rule",
    "has_precedence_cycle",
    "normalize_weights",
    "toggle_rule",
    "update_rule",
    "validate_rule",
    "weights_for_preset",
]
