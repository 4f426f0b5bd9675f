# src/alchemist/validator/issues.py
from __future__ import annotations

import hashlib
from typing import Any

from alchemist.schemas.models import EntityType, RuleType, ValidationIssue, ValidationResult


def issue_id(
    entity_type: str,
    rule_type: str,
    row_index: int | None,
    field: str | None,
    message: str,
) -> str:
    """
    @brief
    Stable identifier of a finding.

    @details
    Content digest over the identifying parts of the issue, so validating the
    same data twice yields the same IDs (UI selections survive re-runs).
    """
    key = "|".join(
        [entity_type, rule_type, "" if row_index is None else str(row_index), field or "", message]
    )
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
    return f"{entity_type}-{rule_type}-{digest}"


class IssueCollector:
    """
    @brief
    Accumulator of errors and warnings for one validation group.

    @details
    Validators only ever append here; they never raise on bad data.
    """

    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def add_error(
        self,
        entity_type: EntityType,
        rule_type: RuleType,
        message: str,
        *,
        field: str | None = None,
        row_index: int | None = None,
        entities: dict[str, Any] | None = None,
    ) -> None:
        self.errors.append(
            _build("error", entity_type, rule_type, message, field, row_index, entities)
        )

    def add_warning(
        self,
        entity_type: EntityType,
        rule_type: RuleType,
        message: str,
        *,
        field: str | None = None,
        row_index: int | None = None,
        entities: dict[str, Any] | None = None,
    ) -> None:
        self.warnings.append(
            _build("warning", entity_type, rule_type, message, field, row_index, entities)
        )

    def extend(self, issues: list[ValidationIssue]) -> None:
        for issue in issues:
            (self.errors if issue.level == "error" else self.warnings).append(issue)

    def result(self) -> ValidationResult:
        return ValidationResult.from_issues(self.errors, self.warnings)


def _build(
    level: str,
    entity_type: EntityType,
    rule_type: RuleType,
    message: str,
    field: str | None,
    row_index: int | None,
    entities: dict[str, Any] | None,
) -> ValidationIssue:
    tag = RuleType(rule_type).value
    return ValidationIssue(
        id=issue_id(entity_type, tag, row_index, field, message),
        level=level,
        message=message,
        field=field,
        row_index=row_index,
        entity_type=entity_type,
        rule_type=RuleType(tag),
        entities=entities or None,
    )


__all__ = ["IssueCollector", "issue_id"]
