# src/alchemist/validator/schema_validator.py
"""
@brief
Schema conformance of raw entity rows.

@details
The only component that reads raw rows directly: it checks that each row
can be read as its declared record model (alchemist.schemas.models) and
turns every pydantic violation into one `schema` error. All violations of a
row are collected before moving on to the next row.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from alchemist.schemas.models import (
    ClientRecord,
    EntityType,
    RuleType,
    TaskRecord,
    ValidationIssue,
    WorkerRecord,
)
from alchemist.validator.issues import IssueCollector

logger = logging.getLogger(__name__)

RECORD_MODELS: dict[str, type[BaseModel]] = {
    "client": ClientRecord,
    "worker": WorkerRecord,
    "task": TaskRecord,
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _present_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    # blank spreadsheet cells count as missing so required fields report
    # "Field required" and optional fields take their defaults
    return {str(key): value for key, value in row.items() if not _is_blank(value)}


def _field_of(loc: tuple[Any, ...]) -> str | None:
    return str(loc[0]) if loc else None


def check_record(row: Mapping[str, Any], entity_type: EntityType) -> list[dict[str, Any]]:
    """
    @brief
    Raw pydantic error dicts for one row (empty list when conformant).

    @details
    Callers that want ValidationIssues should use validate_schema(); this
    helper is shared with the export path, which only needs pass/fail.
    """
    model = RECORD_MODELS[entity_type]
    try:
        model.model_validate(_present_fields(row))
    except ValidationError as e:
        return list(e.errors())
    return []


def validate_schema(
    rows: Sequence[Mapping[str, Any]], entity_type: EntityType
) -> list[ValidationIssue]:
    """
    @brief
    Validate every raw row of one collection against its record schema.

    @details
    Each violation becomes one error with ruleType `schema`, the offending
    field, the row's ordinal position and a message of the form
    "<field path>: <reason>". Unknown extra columns are ignored.

    @params
        rows : Sequence[Mapping[str, Any]]
            Raw rows keyed by spreadsheet column name.
        entity_type : "client" | "worker" | "task"
            Collection the rows belong to.

    @returns
        List of schema errors in row order.
    """
    issues = IssueCollector()

    for row_index, row in enumerate(rows):
        for err in check_record(row, entity_type):
            loc = tuple(err.get("loc", ()))
            path = ".".join(str(part) for part in loc) or "<row>"
            issues.add_error(
                entity_type,
                RuleType.SCHEMA,
                f"{path}: {err.get('msg', 'invalid value')}",
                field=_field_of(loc),
                row_index=row_index,
            )

    if issues.errors:
        logger.debug("Schema check (%s): %d violation(s)", entity_type, len(issues.errors))
    return issues.errors


__all__ = ["RECORD_MODELS", "check_record", "validate_schema"]
