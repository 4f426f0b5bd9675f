# src/alchemist/fixes/advisor.py
"""
@brief
Error-fix advisor: ranked fix suggestions and copy-and-return fix application.

@details
Suggestions are dispatched through a registry mapping every ruleType tag to
a provider function. The registry is checked against the RuleType
vocabulary when this module is imported, so a rule type added to the
validators but forgotten here fails loudly instead of silently yielding no
suggestions.

Applying a fix never mutates the caller's collections: the advisor works on
a deep copy and returns it inside a FixOutcome. Fix failures (stale row,
unknown fix, missing context) are reported as FixOutcome(success=False),
never raised.
"""

from __future__ import annotations

import copy
import logging
import random
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from alchemist.errors import RegistryError
from alchemist.normalizer.normalizer import as_text, split_list
from alchemist.schemas.models import (
    Config,
    Confidence,
    FixConfig,
    FixSuggestion,
    RuleType,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

CONFIDENCE_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}

ID_FIELDS: dict[str, str] = {"client": "ClientID", "worker": "WorkerID", "task": "TaskID"}

DEFAULT_PRIORITY = 3

# Reset values for bounded fields without a dedicated fix
FIELD_DEFAULTS: dict[str, Any] = {
    "Duration": 1,
    "MaxConcurrent": 1,
    "MaxLoadPerPhase": 1,
    "QualificationLevel": "Mid",
    "AvailableSlots": "[]",
    "PreferredPhases": "",
}

MAX_ID_ATTEMPTS = 100


# ----------------------------
# DATA CONTAINERS
# ----------------------------
@dataclass(slots=True)
class EntityCollections:
    """The three raw collections a fix operates on."""

    clients: list[dict[str, Any]] = field(default_factory=list)
    workers: list[dict[str, Any]] = field(default_factory=list)
    tasks: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def of(
        cls,
        clients: Sequence[Mapping[str, Any]],
        workers: Sequence[Mapping[str, Any]],
        tasks: Sequence[Mapping[str, Any]],
    ) -> EntityCollections:
        return cls([dict(r) for r in clients], [dict(r) for r in workers], [dict(r) for r in tasks])

    def rows(self, entity_type: str) -> list[dict[str, Any]]:
        return {"client": self.clients, "worker": self.workers, "task": self.tasks}[entity_type]

    def deep_copy(self) -> EntityCollections:
        return EntityCollections(
            copy.deepcopy(self.clients), copy.deepcopy(self.workers), copy.deepcopy(self.tasks)
        )


@dataclass(slots=True)
class FixOutcome:
    success: bool
    data: EntityCollections
    message: str


@dataclass(slots=True)
class BulkFixResult:
    """
    Consolidated result of apply_bulk_fix.

    Fields:
        details: one audit entry per input issue, in input order, with keys
                 issueId, ruleType, status ("fixed" | "skipped" | "manual"),
                 fixId (may be None) and message.
    """

    success: bool
    message: str
    fixed_count: int
    skipped_count: int
    data: EntityCollections
    details: list[dict[str, Any]] = field(default_factory=list)


# ----------------------------
# SUGGESTION PROVIDERS
# ----------------------------
SuggestionProvider = Callable[[ValidationIssue, EntityCollections], list[FixSuggestion]]


def _suggestion(
    fix_id: str,
    description: str,
    action: str,
    confidence: Confidence,
    preview: str | None = None,
    *,
    auto: bool = False,
) -> FixSuggestion:
    return FixSuggestion(
        id=fix_id,
        description=description,
        action=action,
        confidence=confidence,
        preview=preview,
        can_auto_fix=auto,
    )


def _duplicate_fixes(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    current = _current_id(issue, data) or "ID"
    return [
        _suggestion(
            "generate-new-id",
            "Generate a new unique ID",
            "Replace duplicate ID with auto-generated unique ID",
            "high",
            f"New ID: {issue.entity_type.upper()}-<generated>",
            auto=True,
        ),
        _suggestion(
            "add-suffix",
            "Add suffix to make ID unique",
            "Append a number suffix to the duplicate ID",
            "medium",
            f"Example: {current} -> {current}-2",
            auto=True,
        ),
    ]


def _format_fixes(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    name = issue.field or ""
    suggestions: list[FixSuggestion] = []
    if "JSON" in name:
        suggestions.append(
            _suggestion(
                "fix-json",
                "Fix JSON format",
                "Convert invalid JSON to valid format or empty object",
                "high",
                "Convert to: {}",
                auto=True,
            )
        )
    elif "Priority" in name:
        suggestions.append(
            _suggestion(
                "fix-priority",
                "Fix priority level",
                "Set priority to valid range (1-5)",
                "high",
                f"Set to: {DEFAULT_PRIORITY} (Medium priority)",
                auto=True,
            )
        )
    elif name in FIELD_DEFAULTS:
        suggestions.append(
            _suggestion(
                "reset-to-default",
                f"Reset {name} to its default",
                f"Replace the invalid {name} value with a safe default",
                "medium",
                f"Set to: {FIELD_DEFAULTS[name]!r}",
                auto=True,
            )
        )
    elif name == ID_FIELDS.get(issue.entity_type):
        suggestions.append(
            _suggestion(
                "generate-new-id",
                "Generate a new unique ID",
                "Fill the missing ID with an auto-generated unique ID",
                "medium",
                f"New ID: {issue.entity_type.upper()}-<generated>",
                auto=True,
            )
        )
    return suggestions or _manual_review(issue, data)


def _reference_fixes(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    task_id = (issue.entities or {}).get("taskId", "")
    suggestions = [
        _suggestion(
            "remove-invalid-ref",
            "Remove invalid reference",
            "Remove the non-existent task ID from the list",
            "high",
            f"Remove task reference: {task_id}" if task_id else "Remove invalid task reference",
            auto=True,
        )
    ]
    if issue.field == "RequestedTaskIDs":
        suggestions.append(
            _suggestion(
                "create-missing-task",
                "Create missing task",
                "Create a placeholder task with the referenced ID",
                "low",
                "Create new task with basic properties",
            )
        )
    return suggestions


def _skill_coverage_fixes(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    missing = (issue.entities or {}).get("missingSkills") or []
    listed = ", ".join(missing) if missing else "missing skills"
    return [
        _suggestion(
            "add-skills-to-workers",
            "Add missing skills to existing workers",
            "Add the required skills to workers with similar qualifications",
            "medium",
            f"Add skills: {listed} to qualified workers",
        ),
        _suggestion(
            "create-skilled-worker",
            "Create new worker with required skills",
            "Create a new worker that has all the missing skills",
            "low",
            f"Create new worker with skills: {listed}",
        ),
    ]


def _capacity_fixes(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    return [
        _suggestion(
            "increase-worker-capacity",
            "Increase worker capacity",
            "Increase MaxLoadPerPhase or AvailableSlots for workers",
            "medium",
            "Increase capacity by 20% across all workers",
        ),
        _suggestion(
            "reduce-task-duration",
            "Optimize task durations",
            "Reduce duration of non-critical tasks",
            "low",
            "Reduce task durations by 10%",
        ),
    ]


def _priority_fixes(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    return [
        _suggestion(
            "rebalance-priorities",
            "Rebalance client priorities",
            "Distribute priorities more evenly across clients",
            "medium",
            "Redistribute to: 20% high, 60% medium, 20% low priority",
        )
    ]


def _priority_capacity_fixes(
    issue: ValidationIssue, data: EntityCollections
) -> list[FixSuggestion]:
    return [
        *_priority_fixes(issue, data),
        _suggestion(
            "review-worker-qualifications",
            "Review worker qualifications",
            "Promote or hire Senior/Expert workers to cover high-priority clients",
            "low",
        ),
    ]


def _manual(fix_id: str, description: str, action: str) -> SuggestionProvider:
    def provider(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
        return [_suggestion(fix_id, description, action, "medium"), *_manual_review(issue, data)]

    return provider


def _manual_review(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    return [
        _suggestion(
            "manual-review",
            "Manual review required",
            "This issue requires manual attention and business context",
            "low",
            "Review and fix manually",
        )
    ]


_PROVIDERS: dict[str, SuggestionProvider] = {
    RuleType.SCHEMA.value: _format_fixes,
    RuleType.DUPLICATE_DETECTION.value: _duplicate_fixes,
    RuleType.DUPLICATE_ID.value: _duplicate_fixes,
    RuleType.INVALID_FORMAT.value: _format_fixes,
    RuleType.REFERENCE_INTEGRITY.value: _reference_fixes,
    RuleType.SKILL_COVERAGE.value: _skill_coverage_fixes,
    RuleType.CAPACITY_PLANNING.value: _capacity_fixes,
    RuleType.PRIORITY_DISTRIBUTION.value: _priority_fixes,
    RuleType.PRIORITY_CAPACITY.value: _priority_capacity_fixes,
    RuleType.TASK_COUNT_LIMIT.value: _manual(
        "split-client",
        "Split client requests",
        "Move part of the requested tasks to a new client record",
    ),
    RuleType.CAPACITY_CHECK.value: _manual(
        "add-available-slots",
        "Add available slots",
        "Give the worker at least one available phase slot",
    ),
    RuleType.LOAD_BALANCE_CHECK.value: _manual(
        "reduce-max-load",
        "Reduce max load per phase",
        "Lower MaxLoadPerPhase or add available slots for this worker",
    ),
    RuleType.SKILL_VALIDATION.value: _manual(
        "review-skills",
        "Review worker skills",
        "Add missing skills or consolidate similar ones",
    ),
    RuleType.DURATION_CHECK.value: _manual(
        "review-duration",
        "Review task duration",
        "Correct a zero duration or split a very long task",
    ),
    RuleType.CONCURRENCY_CHECK.value: _manual(
        "confirm-concurrency",
        "Confirm concurrency limit",
        "Verify the high MaxConcurrent value is intentional",
    ),
}


def _verify_registry() -> None:
    missing = sorted({rt.value for rt in RuleType} - _PROVIDERS.keys())
    if missing:
        raise RegistryError(
            f"No fix-suggestion provider registered for ruleType(s): {missing}",
            source="alchemist.fixes.advisor",
            suggested_action="Register a provider in _PROVIDERS for every RuleType member.",
        )


_verify_registry()


# ----------------------------
# HELPERS
# ----------------------------
def _row(issue: ValidationIssue, data: EntityCollections) -> dict[str, Any] | None:
    rows = data.rows(issue.entity_type)
    if issue.row_index is None or not 0 <= issue.row_index < len(rows):
        return None
    return rows[issue.row_index]


def _current_id(issue: ValidationIssue, data: EntityCollections) -> str:
    row = _row(issue, data)
    return as_text(row.get(ID_FIELDS[issue.entity_type])) if row is not None else ""


def _default_id_factory(entity_type: str) -> str:
    return f"{entity_type.upper()}-{uuid.uuid4().hex[:8].upper()}"


def _meets(confidence: str, minimum: str) -> bool:
    return CONFIDENCE_RANK[confidence] >= CONFIDENCE_RANK[minimum]


# ----------------------------
# ADVISOR
# ----------------------------
class FixAdvisor:
    """
    @brief
    Proposes and applies corrections for validation issues.

    @details
    `id_factory(entity_type) -> str` supplies candidate IDs for the
    generate-new-id fix; `rng` drives the add-suffix fix. Both are
    injectable for deterministic tests. Generated IDs are checked against
    the IDs already present in the collection and retried on collision.
    """

    def __init__(
        self,
        id_factory: Callable[[str], str] | None = None,
        rng: random.Random | None = None,
        cfg: Config | FixConfig | None = None,
    ) -> None:
        self.id_factory = id_factory or _default_id_factory
        self.rng = rng or random.Random()
        if isinstance(cfg, Config):
            cfg = cfg.fixes
        self.cfg = cfg or FixConfig()

    # ---------- Suggestions ----------
    def get_fix_suggestions(
        self, issue: ValidationIssue, data: EntityCollections
    ) -> list[FixSuggestion]:
        """
        @brief
        Ranked suggestions for one issue (high confidence first).

        @details
        Ties keep the provider's order. Every registered ruleType yields at
        least one suggestion.
        """
        provider = _PROVIDERS[RuleType(issue.rule_type).value]
        suggestions = provider(issue, data)
        return sorted(suggestions, key=lambda s: -CONFIDENCE_RANK[s.confidence])

    # ---------- Single fix ----------
    def apply_fix(self, issue: ValidationIssue, fix_id: str, data: EntityCollections) -> FixOutcome:
        """
        @brief
        Apply one auto-fixable suggestion to a deep copy of `data`.

        @details
        The fix must be offered (and auto-fixable) for this issue against the
        current data. On failure the original `data` is returned untouched.

        @returns
            FixOutcome with success flag, resulting collections and message.
        """
        offered = {s.id: s for s in self.get_fix_suggestions(issue, data)}
        suggestion = offered.get(fix_id)
        if suggestion is None:
            return FixOutcome(False, data, f"Fix '{fix_id}' is not available for {issue.rule_type}")
        if not suggestion.can_auto_fix:
            return FixOutcome(False, data, f"Fix '{fix_id}' requires manual intervention")

        working = data.deep_copy()
        row = _row(issue, working)
        if row is None:
            return FixOutcome(False, data, "Cannot fix: row index not available")

        if fix_id in ("generate-new-id", "add-suffix"):
            ok, message = self._fix_id(issue, fix_id, row, working)
        elif fix_id == "fix-json":
            ok, message = self._set_field(issue, row, "{}", "Fixed invalid JSON format")
        elif fix_id == "fix-priority":
            ok, message = self._set_field(
                issue, row, DEFAULT_PRIORITY, f"Set priority to default value ({DEFAULT_PRIORITY})"
            )
        elif fix_id == "reset-to-default":
            value = FIELD_DEFAULTS[issue.field or ""]
            ok, message = self._set_field(issue, row, value, f"Reset {issue.field} to {value!r}")
        elif fix_id == "remove-invalid-ref":
            ok, message = self._remove_reference(issue, row)
        else:
            ok, message = False, f"Unknown fix type: {fix_id}"

        if not ok:
            return FixOutcome(False, data, message)
        logger.debug("Applied %s to %s row %s", fix_id, issue.entity_type, issue.row_index)
        return FixOutcome(True, working, message)

    # ---------- Bulk fix ----------
    def apply_bulk_fix(
        self, issues: Sequence[ValidationIssue], data: EntityCollections
    ) -> BulkFixResult:
        """
        @brief
        Apply the best auto-fixable suggestion to each issue in turn.

        @details
        Suggestions are re-derived against the progressively updated data,
        so fixing one duplicate never collides with fixing the next. Only
        suggestions at or above `bulk_min_confidence` are applied.
        """
        current = data
        fixed = 0
        skipped = 0
        details: list[dict[str, Any]] = []

        for issue in issues:
            candidates = [
                s
                for s in self.get_fix_suggestions(issue, current)
                if s.can_auto_fix and _meets(s.confidence, self.cfg.bulk_min_confidence)
            ]
            entry: dict[str, Any] = {
                "issueId": issue.id,
                "ruleType": RuleType(issue.rule_type).value,
                "fixId": None,
            }

            if not candidates:
                skipped += 1
                entry.update(status="manual", message=f"Manual fix required: {issue.message}")
                details.append(entry)
                continue

            best = candidates[0]
            outcome = self.apply_fix(issue, best.id, current)
            entry["fixId"] = best.id
            if outcome.success:
                current = outcome.data
                fixed += 1
                entry.update(status="fixed", message=f"Fixed: {issue.message} ({outcome.message})")
            else:
                skipped += 1
                entry.update(
                    status="skipped", message=f"Skipped: {issue.message} - {outcome.message}"
                )
            details.append(entry)

        logger.info("Bulk fix: %d fixed, %d skipped", fixed, skipped)
        return BulkFixResult(
            success=fixed > 0,
            message=f"Fixed {fixed} errors, {skipped} require manual attention",
            fixed_count=fixed,
            skipped_count=skipped,
            data=current if fixed else data,
            details=details,
        )

    # ---------- Fix implementations ----------
    def _fix_id(
        self, issue: ValidationIssue, fix_id: str, row: dict[str, Any], data: EntityCollections
    ) -> tuple[bool, str]:
        id_field = ID_FIELDS[issue.entity_type]
        current = as_text(row.get(id_field))
        expected = (issue.entities or {}).get("id")
        if expected is not None and current != expected:
            return False, f"Row no longer holds ID {expected}"

        taken = {as_text(r.get(id_field)) for r in data.rows(issue.entity_type)}
        for _ in range(MAX_ID_ATTEMPTS):
            if fix_id == "generate-new-id":
                candidate = self.id_factory(issue.entity_type)
            else:
                candidate = f"{current}-{self.rng.randint(1, 999)}"
            if candidate and candidate not in taken:
                row[id_field] = candidate
                return True, f"Fixed duplicate ID: changed to {candidate}"
        return False, "Could not generate a unique ID"

    @staticmethod
    def _set_field(
        issue: ValidationIssue, row: dict[str, Any], value: Any, message: str
    ) -> tuple[bool, str]:
        if not issue.field:
            return False, "Cannot fix: insufficient error information"
        row[issue.field] = value
        return True, message

    @staticmethod
    def _remove_reference(issue: ValidationIssue, row: dict[str, Any]) -> tuple[bool, str]:
        task_id = (issue.entities or {}).get("taskId")
        if issue.entity_type != "client" or not task_id:
            return False, "Could not identify invalid reference to remove"
        requested = split_list(row.get("RequestedTaskIDs"))
        if task_id not in requested:
            return False, f"Reference {task_id} is no longer present"
        row["RequestedTaskIDs"] = ",".join(t for t in requested if t != task_id)
        return True, f"Removed invalid task reference: {task_id}"


# ----------------------------
# THIN FACADE
# ----------------------------
_default_advisor = FixAdvisor()


def get_fix_suggestions(issue: ValidationIssue, data: EntityCollections) -> list[FixSuggestion]:
    return _default_advisor.get_fix_suggestions(issue, data)


def apply_fix(issue: ValidationIssue, fix_id: str, data: EntityCollections) -> FixOutcome:
    return _default_advisor.apply_fix(issue, fix_id, data)


def apply_bulk_fix(issues: Sequence[ValidationIssue], data: EntityCollections) -> BulkFixResult:
    return _default_advisor.apply_bulk_fix(issues, data)


__all__ = [
    "BulkFixResult",
    "EntityCollections",
    "FixAdvisor",
    "FixOutcome",
    "apply_bulk_fix",
    "apply_fix",
    "get_fix_suggestions",
]
